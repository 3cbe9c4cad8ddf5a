import uuid
from datetime import date, datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_ops.core.time_provider import utc_now
from school_ops.db import Base


class OnboardingStatus(str, Enum):
    NEW = 'new'
    TRAINING_IN_PROGRESS = 'training_in_progress'
    ONBOARDED = 'onboarded'
    OFFBOARDED = 'offboarded'


class ContractType(str, Enum):
    FULL_TIME = 'full_time'
    FREELANCER = 'freelancer'


class GroupClassBonusTerms(str, Enum):
    PER_STUDENT_PER_HOUR = 'per_student_per_hour'
    PER_HOUR = 'per_hour'


class TeamRole(str, Enum):
    TEACHER = 'Teacher'
    EVALUATOR = 'Evaluator'
    MARKETING_ADMIN = 'Marketing/Admin'
    EXEC = 'Exec'


class InitialChannel(str, Enum):
    FORM = 'form'
    QUIZ = 'quiz'
    CALL = 'call'
    MESSAGE = 'message'
    EMAIL = 'email'
    ASSESSMENT = 'assessment'


class CommunicationChannel(str, Enum):
    SMS_EMAIL = 'sms_email'
    EMAIL = 'email'
    SMS = 'sms'


class CohortStatus(str, Enum):
    ENROLLMENT_OPEN = 'enrollment_open'
    ENROLLMENT_CLOSED = 'enrollment_closed'
    CLASS_ENDED = 'class_ended'


class RoomType(str, Enum):
    FOR_ONE_TO_ONE = 'for_one_to_one'
    MEDIUM = 'medium'
    MEDIUM_PLUS = 'medium_plus'
    LARGE = 'large'


class EnrollmentStatus(str, Enum):
    DECLINED_CONTRACT = 'declined_contract'
    DROPPED_OUT = 'dropped_out'
    INTERESTED = 'interested'
    BEGINNER_FORM_FILLED = 'beginner_form_filled'
    CONTRACT_ABANDONED = 'contract_abandoned'
    CONTRACT_SIGNED = 'contract_signed'
    PAYMENT_ABANDONED = 'payment_abandoned'
    PAID = 'paid'
    WELCOME_PACKAGE_SENT = 'welcome_package_sent'


TERMINAL_ENROLLMENT_STATUSES = frozenset({EnrollmentStatus.DECLINED_CONTRACT.value, EnrollmentStatus.DROPPED_OUT.value})
ACTIVE_ENROLLMENT_STATUSES = (EnrollmentStatus.PAID.value, EnrollmentStatus.WELCOME_PACKAGE_SENT.value)


class ProductFormat(str, Enum):
    GROUP = 'group'
    PRIVATE = 'private'
    HYBRID = 'hybrid'


class ProductLocation(str, Enum):
    ONLINE = 'online'
    IN_PERSON = 'in_person'
    HYBRID = 'hybrid'


class ClassStatus(str, Enum):
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class ClassMode(str, Enum):
    ONLINE = 'online'
    IN_PERSON = 'in_person'
    HYBRID = 'hybrid'


class AttendanceStatus(str, Enum):
    UNSET = 'unset'
    ATTENDED = 'attended'
    NOT_ATTENDED = 'not_attended'


class FollowUpMessageStatus(str, Enum):
    ACTIVE = 'active'
    DISABLED = 'disabled'


class FollowUpStatus(str, Enum):
    ACTIVATED = 'activated'
    ONGOING = 'ongoing'
    ANSWER_RECEIVED = 'answer_received'
    DISABLED = 'disabled'
    COMPLETED = 'completed'
    FAILED = 'failed'


RUNNING_FOLLOW_UP_STATUSES = (FollowUpStatus.ACTIVATED.value, FollowUpStatus.ONGOING.value)


class TouchpointChannel(str, Enum):
    SMS = 'sms'
    CALL = 'call'
    WHATSAPP = 'whatsapp'
    EMAIL = 'email'


class TouchpointType(str, Enum):
    INBOUND = 'inbound'
    OUTBOUND = 'outbound'


class TouchpointSource(str, Enum):
    MANUAL = 'manual'
    AUTOMATED = 'automated'
    OPENPHONE = 'openphone'
    GMAIL = 'gmail'
    WHATSAPP_BUSINESS = 'whatsapp_business'
    WEBHOOK = 'webhook'


class LanguageLevel(Base):
    __tablename__ = 'language_levels'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    display_name: Mapped[str] = mapped_column(String(120))
    level_group: Mapped[str] = mapped_column(String(10), index=True)
    level_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)


class Teacher(Base):
    __tablename__ = 'teachers'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    first_name: Mapped[str] = mapped_column(String(120))
    last_name: Mapped[str] = mapped_column(String(120))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[list | None] = mapped_column(JSON, nullable=True)
    group_class_bonus_terms: Mapped[str | None] = mapped_column(String(40), nullable=True)
    onboarding_status: Mapped[str] = mapped_column(String(40), default=OnboardingStatus.NEW.value, index=True)
    google_calendar_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    maximum_hours_per_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    maximum_hours_per_day: Mapped[int | None] = mapped_column(Integer, nullable=True)
    qualified_for_under_16: Mapped[bool] = mapped_column(Boolean, default=False)
    available_for_booking: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    contract_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    available_for_online_classes: Mapped[bool] = mapped_column(Boolean, default=True)
    available_for_in_person_classes: Mapped[bool] = mapped_column(Boolean, default=False)
    max_students_in_person: Mapped[int | None] = mapped_column(Integer, nullable=True)
    max_students_online: Mapped[int | None] = mapped_column(Integer, nullable=True)
    days_available_online: Mapped[list | None] = mapped_column(JSON, nullable=True)
    days_available_in_person: Mapped[list | None] = mapped_column(JSON, nullable=True)
    mobile_phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    admin_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    weekly_sessions: Mapped[list['WeeklySession']] = relationship('WeeklySession', back_populates='teacher')

    @property
    def full_name(self) -> str:
        return f'{self.first_name} {self.last_name}'.strip()


class Student(Base):
    __tablename__ = 'students'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    full_name: Mapped[str] = mapped_column(String(255))
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    desired_starting_language_level_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey('language_levels.id'), nullable=True
    )
    mobile_phone_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    city: Mapped[str | None] = mapped_column(String(120), nullable=True)
    website_quiz_submission_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    added_to_email_newsletter: Mapped[bool] = mapped_column(Boolean, default=False)
    initial_channel: Mapped[str | None] = mapped_column(String(20), nullable=True)
    heard_from: Mapped[str | None] = mapped_column(Text, nullable=True)
    convertkit_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    openphone_contact_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    tally_form_submission_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    respondent_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    stripe_customer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_under_16: Mapped[bool] = mapped_column(Boolean, default=False)
    communication_channel: Mapped[str] = mapped_column(String(20), default=CommunicationChannel.SMS_EMAIL.value)
    is_full_beginner: Mapped[bool] = mapped_column(Boolean, default=False)
    subjective_deadline_for_student: Mapped[date | None] = mapped_column(Date, nullable=True)
    purpose_to_learn: Mapped[str | None] = mapped_column(Text, nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    airtable_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)

    desired_starting_level: Mapped['LanguageLevel | None'] = relationship('LanguageLevel')
    enrollments: Mapped[list['Enrollment']] = relationship('Enrollment', back_populates='student')
    automated_follow_ups: Mapped[list['AutomatedFollowUp']] = relationship('AutomatedFollowUp', back_populates='student')

    @property
    def first_name(self) -> str:
        return (self.full_name or '').split(' ', 1)[0]

    @property
    def last_name(self) -> str:
        parts = (self.full_name or '').split(' ', 1)
        return parts[1] if len(parts) == 2 else ''


class Product(Base):
    __tablename__ = 'products'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name: Mapped[str] = mapped_column(String(180), default='')
    format: Mapped[str | None] = mapped_column(String(20), nullable=True)
    location: Mapped[str | None] = mapped_column(String(20), nullable=True)
    signup_link_for_self_checkout: Mapped[str | None] = mapped_column(String(500), nullable=True)
    pandadoc_contract_template_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    cohorts: Mapped[list['Cohort']] = relationship('Cohort', back_populates='product')


class Cohort(Base):
    __tablename__ = 'cohorts'
    __table_args__ = (
        Index('ix_cohorts_status_start_date', 'cohort_status', 'start_date'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey('products.id'), nullable=True, index=True)
    google_drive_folder_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    starting_level_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey('language_levels.id', ondelete='SET NULL'), nullable=True
    )
    current_level_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey('language_levels.id', ondelete='SET NULL'), nullable=True, index=True
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cohort_status: Mapped[str] = mapped_column(String(30), default=CohortStatus.ENROLLMENT_OPEN.value)
    room_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    max_students: Mapped[int | None] = mapped_column(Integer, nullable=True, default=10)
    setup_finalized: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    airtable_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    product: Mapped['Product | None'] = relationship('Product', back_populates='cohorts')
    starting_level: Mapped['LanguageLevel | None'] = relationship('LanguageLevel', foreign_keys=[starting_level_id])
    current_level: Mapped['LanguageLevel | None'] = relationship('LanguageLevel', foreign_keys=[current_level_id])
    weekly_sessions: Mapped[list['WeeklySession']] = relationship(
        'WeeklySession', back_populates='cohort', cascade='all, delete-orphan'
    )
    enrollments: Mapped[list['Enrollment']] = relationship('Enrollment', back_populates='cohort')
    classes: Mapped[list['CohortClass']] = relationship('CohortClass', back_populates='cohort', cascade='all, delete-orphan')


class WeeklySession(Base):
    __tablename__ = 'weekly_sessions'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cohort_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('cohorts.id', ondelete='CASCADE'), index=True)
    teacher_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey('teachers.id'), nullable=True, index=True)
    day_of_week: Mapped[str] = mapped_column(String(10), index=True)
    start_time: Mapped[str] = mapped_column(String(8))
    end_time: Mapped[str] = mapped_column(String(8))
    google_calendar_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    airtable_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    cohort: Mapped['Cohort'] = relationship('Cohort', back_populates='weekly_sessions')
    teacher: Mapped['Teacher | None'] = relationship('Teacher', back_populates='weekly_sessions')


class CohortClass(Base):
    __tablename__ = 'classes'
    __table_args__ = (
        Index('ix_classes_cohort_start', 'cohort_id', 'start_time'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cohort_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('cohorts.id', ondelete='CASCADE'), index=True)
    teacher_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey('teachers.id'), nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime)
    end_time: Mapped[datetime] = mapped_column(DateTime)
    status: Mapped[str] = mapped_column(String(20), default=ClassStatus.SCHEDULED.value, index=True)
    mode: Mapped[str] = mapped_column(String(20), default=ClassMode.ONLINE.value)
    google_calendar_event_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    meeting_link: Mapped[str | None] = mapped_column(String(500), nullable=True)
    google_drive_folder_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    cohort: Mapped['Cohort'] = relationship('Cohort', back_populates='classes')
    teacher: Mapped['Teacher | None'] = relationship('Teacher')
    attendance_records: Mapped[list['AttendanceRecord']] = relationship(
        'AttendanceRecord', back_populates='cohort_class', cascade='all, delete-orphan'
    )


class Enrollment(Base):
    __tablename__ = 'enrollments'
    __table_args__ = (
        Index('ix_enrollments_student_cohort', 'student_id', 'cohort_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('students.id'), index=True)
    cohort_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('cohorts.id'), index=True)
    status: Mapped[str] = mapped_column(String(30), default=EnrollmentStatus.INTERESTED.value, index=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    airtable_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    student: Mapped['Student'] = relationship('Student', back_populates='enrollments')
    cohort: Mapped['Cohort'] = relationship('Cohort', back_populates='enrollments')


class AttendanceRecord(Base):
    __tablename__ = 'attendance_records'
    __table_args__ = (
        Index('ix_attendance_records_class_student', 'class_id', 'student_id'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('students.id', ondelete='CASCADE'), index=True)
    cohort_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('cohorts.id', ondelete='CASCADE'), index=True)
    class_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey('classes.id', ondelete='CASCADE'), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=AttendanceStatus.UNSET.value)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    homework_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    marked_by: Mapped[uuid.UUID | None] = mapped_column(ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True)
    marked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    cohort_class: Mapped['CohortClass | None'] = relationship('CohortClass', back_populates='attendance_records')


class TemplateFollowUpSequence(Base):
    __tablename__ = 'template_follow_up_sequences'

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    display_name: Mapped[str] = mapped_column(String(180), default='')
    subject: Mapped[str] = mapped_column(String(255), default='')
    backend_name: Mapped[str | None] = mapped_column(String(120), nullable=True, unique=True, index=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    messages: Mapped[list['TemplateFollowUpMessage']] = relationship(
        'TemplateFollowUpMessage', back_populates='sequence', order_by='TemplateFollowUpMessage.step_index'
    )


class TemplateFollowUpMessage(Base):
    __tablename__ = 'template_follow_up_messages'
    __table_args__ = (
        Index('ix_template_follow_up_messages_sequence_step', 'sequence_id', 'step_index'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    sequence_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('template_follow_up_sequences.id'), index=True)
    step_index: Mapped[int] = mapped_column(Integer)
    time_delay_hours: Mapped[int] = mapped_column(Integer, default=0)
    message_content: Mapped[str] = mapped_column(Text, default='')
    status: Mapped[str | None] = mapped_column(String(20), default=FollowUpMessageStatus.ACTIVE.value, nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    sequence: Mapped['TemplateFollowUpSequence'] = relationship('TemplateFollowUpSequence', back_populates='messages')


class AutomatedFollowUp(Base):
    __tablename__ = 'automated_follow_ups'
    __table_args__ = (
        Index('ix_automated_follow_ups_student_status', 'student_id', 'status'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('students.id'), index=True)
    sequence_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('template_follow_up_sequences.id'), index=True)
    current_step: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20), default=FollowUpStatus.ACTIVATED.value, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    last_message_sent_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)

    student: Mapped['Student'] = relationship('Student', back_populates='automated_follow_ups')
    sequence: Mapped['TemplateFollowUpSequence'] = relationship('TemplateFollowUpSequence')


class Touchpoint(Base):
    __tablename__ = 'touchpoints'
    __table_args__ = (
        Index('ix_touchpoints_type_occurred', 'type', 'occurred_at'),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id: Mapped[uuid.UUID] = mapped_column(ForeignKey('students.id'), index=True)
    channel: Mapped[str] = mapped_column(String(20))
    type: Mapped[str] = mapped_column(String(20))
    message: Mapped[str] = mapped_column(Text, default='')
    source: Mapped[str] = mapped_column(String(30), default=TouchpointSource.MANUAL.value)
    automated_follow_up_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey('automated_follow_ups.id'), nullable=True, index=True
    )
    external_id: Mapped[str | None] = mapped_column(String(120), nullable=True)
    external_metadata: Mapped[str | None] = mapped_column(Text, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, index=True)
    airtable_record_id: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    airtable_created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, onupdate=utc_now)
