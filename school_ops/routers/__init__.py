from school_ops.routers import attendance, class_booking, cohorts, enrollments, follow_ups, rpc, students, teachers, touchpoints

__all__ = [
    'attendance',
    'class_booking',
    'cohorts',
    'enrollments',
    'follow_ups',
    'rpc',
    'students',
    'teachers',
    'touchpoints',
]
