"""initial school operations schema

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20261019_0001'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def _airtable_columns(with_created: bool = True) -> list[sa.Column]:
    columns = [sa.Column('airtable_record_id', sa.String(length=40), nullable=True)]
    if with_created:
        columns.append(sa.Column('airtable_created_at', sa.DateTime(), nullable=True))
    return columns


def upgrade() -> None:
    op.create_table(
        'language_levels',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('code', sa.String(length=20), nullable=False, unique=True),
        sa.Column('display_name', sa.String(length=120), nullable=False),
        sa.Column('level_group', sa.String(length=10), nullable=False),
        sa.Column('level_number', sa.Integer(), nullable=True),
        sa.Column('airtable_record_id', sa.String(length=40), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_language_levels_code', 'language_levels', ['code'])
    op.create_index('ix_language_levels_level_group', 'language_levels', ['level_group'])
    op.create_index('ix_language_levels_airtable_record_id', 'language_levels', ['airtable_record_id'])

    op.create_table(
        'teachers',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('first_name', sa.String(length=120), nullable=False),
        sa.Column('last_name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('role', sa.JSON(), nullable=True),
        sa.Column('group_class_bonus_terms', sa.String(length=40), nullable=True),
        sa.Column('onboarding_status', sa.String(length=40), nullable=False, server_default='new'),
        sa.Column('google_calendar_id', sa.String(length=255), nullable=True),
        sa.Column('maximum_hours_per_week', sa.Integer(), nullable=True),
        sa.Column('maximum_hours_per_day', sa.Integer(), nullable=True),
        sa.Column('qualified_for_under_16', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('available_for_booking', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('contract_type', sa.String(length=20), nullable=True),
        sa.Column('available_for_online_classes', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('available_for_in_person_classes', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_students_in_person', sa.Integer(), nullable=True),
        sa.Column('max_students_online', sa.Integer(), nullable=True),
        sa.Column('days_available_online', sa.JSON(), nullable=True),
        sa.Column('days_available_in_person', sa.JSON(), nullable=True),
        sa.Column('mobile_phone_number', sa.String(length=20), nullable=True),
        sa.Column('admin_notes', sa.Text(), nullable=True),
        *_airtable_columns(with_created=False),
        *_timestamps(),
    )
    op.create_index('ix_teachers_onboarding_status', 'teachers', ['onboarding_status'])
    op.create_index('ix_teachers_available_for_booking', 'teachers', ['available_for_booking'])
    op.create_index('ix_teachers_airtable_record_id', 'teachers', ['airtable_record_id'])

    op.create_table(
        'students',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(length=64), nullable=True),
        sa.Column('full_name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('desired_starting_language_level_id', sa.Uuid(), sa.ForeignKey('language_levels.id'), nullable=True),
        sa.Column('mobile_phone_number', sa.String(length=20), nullable=True),
        sa.Column('city', sa.String(length=120), nullable=True),
        sa.Column('website_quiz_submission_date', sa.Date(), nullable=True),
        sa.Column('added_to_email_newsletter', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('initial_channel', sa.String(length=20), nullable=True),
        sa.Column('heard_from', sa.Text(), nullable=True),
        sa.Column('convertkit_id', sa.String(length=64), nullable=True),
        sa.Column('openphone_contact_id', sa.String(length=64), nullable=True),
        sa.Column('tally_form_submission_id', sa.String(length=64), nullable=True),
        sa.Column('respondent_id', sa.String(length=64), nullable=True),
        sa.Column('stripe_customer_id', sa.String(length=64), nullable=True),
        sa.Column('is_under_16', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('communication_channel', sa.String(length=20), nullable=False, server_default='sms_email'),
        sa.Column('is_full_beginner', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('subjective_deadline_for_student', sa.Date(), nullable=True),
        sa.Column('purpose_to_learn', sa.Text(), nullable=True),
        *_airtable_columns(),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_students_email', 'students', ['email'])
    op.create_index('ix_students_tally_form_submission_id', 'students', ['tally_form_submission_id'])
    op.create_index('ix_students_airtable_record_id', 'students', ['airtable_record_id'])
    op.create_index('ix_students_created_at', 'students', ['created_at'])
    op.create_index('ix_students_deleted_at', 'students', ['deleted_at'])

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('display_name', sa.String(length=180), nullable=False, server_default=''),
        sa.Column('format', sa.String(length=20), nullable=True),
        sa.Column('location', sa.String(length=20), nullable=True),
        sa.Column('signup_link_for_self_checkout', sa.String(length=500), nullable=True),
        sa.Column('pandadoc_contract_template_id', sa.String(length=120), nullable=True),
        *_airtable_columns(with_created=False),
        *_timestamps(),
    )
    op.create_index('ix_products_airtable_record_id', 'products', ['airtable_record_id'])

    op.create_table(
        'cohorts',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id'), nullable=True),
        sa.Column('google_drive_folder_id', sa.String(length=120), nullable=True),
        sa.Column('starting_level_id', sa.Uuid(), sa.ForeignKey('language_levels.id', ondelete='SET NULL'), nullable=True),
        sa.Column('current_level_id', sa.Uuid(), sa.ForeignKey('language_levels.id', ondelete='SET NULL'), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('cohort_status', sa.String(length=30), nullable=False, server_default='enrollment_open'),
        sa.Column('room_type', sa.String(length=30), nullable=True),
        sa.Column('max_students', sa.Integer(), nullable=True),
        sa.Column('setup_finalized', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_airtable_columns(),
        *_timestamps(),
    )
    op.create_index('ix_cohorts_product_id', 'cohorts', ['product_id'])
    op.create_index('ix_cohorts_current_level_id', 'cohorts', ['current_level_id'])
    op.create_index('ix_cohorts_setup_finalized', 'cohorts', ['setup_finalized'])
    op.create_index('ix_cohorts_airtable_record_id', 'cohorts', ['airtable_record_id'])
    op.create_index('ix_cohorts_status_start_date', 'cohorts', ['cohort_status', 'start_date'])

    op.create_table(
        'weekly_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('cohort_id', sa.Uuid(), sa.ForeignKey('cohorts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('teacher_id', sa.Uuid(), sa.ForeignKey('teachers.id'), nullable=True),
        sa.Column('day_of_week', sa.String(length=10), nullable=False),
        sa.Column('start_time', sa.String(length=8), nullable=False),
        sa.Column('end_time', sa.String(length=8), nullable=False),
        sa.Column('google_calendar_event_id', sa.String(length=255), nullable=True),
        *_airtable_columns(),
        *_timestamps(),
    )
    op.create_index('ix_weekly_sessions_cohort_id', 'weekly_sessions', ['cohort_id'])
    op.create_index('ix_weekly_sessions_teacher_id', 'weekly_sessions', ['teacher_id'])
    op.create_index('ix_weekly_sessions_day_of_week', 'weekly_sessions', ['day_of_week'])
    op.create_index('ix_weekly_sessions_google_calendar_event_id', 'weekly_sessions', ['google_calendar_event_id'])
    op.create_index('ix_weekly_sessions_airtable_record_id', 'weekly_sessions', ['airtable_record_id'])

    op.create_table(
        'classes',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('cohort_id', sa.Uuid(), sa.ForeignKey('cohorts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('teacher_id', sa.Uuid(), sa.ForeignKey('teachers.id'), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('mode', sa.String(length=20), nullable=False, server_default='online'),
        sa.Column('google_calendar_event_id', sa.String(length=255), nullable=True),
        sa.Column('meeting_link', sa.String(length=500), nullable=True),
        sa.Column('google_drive_folder_id', sa.String(length=120), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_airtable_columns(with_created=False),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_classes_cohort_id', 'classes', ['cohort_id'])
    op.create_index('ix_classes_teacher_id', 'classes', ['teacher_id'])
    op.create_index('ix_classes_status', 'classes', ['status'])
    op.create_index('ix_classes_google_calendar_event_id', 'classes', ['google_calendar_event_id'])
    op.create_index('ix_classes_airtable_record_id', 'classes', ['airtable_record_id'])
    op.create_index('ix_classes_cohort_start', 'classes', ['cohort_id', 'start_time'])

    op.create_table(
        'enrollments',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('cohort_id', sa.Uuid(), sa.ForeignKey('cohorts.id'), nullable=False),
        sa.Column('status', sa.String(length=30), nullable=False, server_default='interested'),
        *_airtable_columns(),
        *_timestamps(),
    )
    op.create_index('ix_enrollments_student_id', 'enrollments', ['student_id'])
    op.create_index('ix_enrollments_cohort_id', 'enrollments', ['cohort_id'])
    op.create_index('ix_enrollments_status', 'enrollments', ['status'])
    op.create_index('ix_enrollments_airtable_record_id', 'enrollments', ['airtable_record_id'])
    op.create_index('ix_enrollments_student_cohort', 'enrollments', ['student_id', 'cohort_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('cohort_id', sa.Uuid(), sa.ForeignKey('cohorts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('class_id', sa.Uuid(), sa.ForeignKey('classes.id', ondelete='CASCADE'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='unset'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('homework_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('marked_by', sa.Uuid(), sa.ForeignKey('teachers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('marked_at', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_attendance_records_student_id', 'attendance_records', ['student_id'])
    op.create_index('ix_attendance_records_cohort_id', 'attendance_records', ['cohort_id'])
    op.create_index('ix_attendance_records_class_student', 'attendance_records', ['class_id', 'student_id'])

    op.create_table(
        'template_follow_up_sequences',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('display_name', sa.String(length=180), nullable=False, server_default=''),
        sa.Column('subject', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('backend_name', sa.String(length=120), nullable=True, unique=True),
        *_airtable_columns(with_created=False),
        *_timestamps(),
    )
    op.create_index('ix_template_follow_up_sequences_backend_name', 'template_follow_up_sequences', ['backend_name'])
    op.create_index('ix_template_follow_up_sequences_airtable_record_id', 'template_follow_up_sequences', ['airtable_record_id'])

    op.create_table(
        'template_follow_up_messages',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('sequence_id', sa.Uuid(), sa.ForeignKey('template_follow_up_sequences.id'), nullable=False),
        sa.Column('step_index', sa.Integer(), nullable=False),
        sa.Column('time_delay_hours', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('message_content', sa.Text(), nullable=False, server_default=''),
        sa.Column('status', sa.String(length=20), nullable=True, server_default='active'),
        *_airtable_columns(with_created=False),
        *_timestamps(),
    )
    op.create_index('ix_template_follow_up_messages_sequence_id', 'template_follow_up_messages', ['sequence_id'])
    op.create_index('ix_template_follow_up_messages_airtable_record_id', 'template_follow_up_messages', ['airtable_record_id'])
    op.create_index(
        'ix_template_follow_up_messages_sequence_step', 'template_follow_up_messages', ['sequence_id', 'step_index']
    )

    op.create_table(
        'automated_follow_ups',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('sequence_id', sa.Uuid(), sa.ForeignKey('template_follow_up_sequences.id'), nullable=False),
        sa.Column('current_step', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='activated'),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('last_message_sent_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('last_error', sa.Text(), nullable=True),
        *_airtable_columns(with_created=False),
        *_timestamps(),
    )
    op.create_index('ix_automated_follow_ups_student_id', 'automated_follow_ups', ['student_id'])
    op.create_index('ix_automated_follow_ups_sequence_id', 'automated_follow_ups', ['sequence_id'])
    op.create_index('ix_automated_follow_ups_status', 'automated_follow_ups', ['status'])
    op.create_index('ix_automated_follow_ups_created_at', 'automated_follow_ups', ['created_at'])
    op.create_index('ix_automated_follow_ups_airtable_record_id', 'automated_follow_ups', ['airtable_record_id'])
    op.create_index('ix_automated_follow_ups_student_status', 'automated_follow_ups', ['student_id', 'status'])

    op.create_table(
        'touchpoints',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('student_id', sa.Uuid(), sa.ForeignKey('students.id'), nullable=False),
        sa.Column('channel', sa.String(length=20), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('message', sa.Text(), nullable=False, server_default=''),
        sa.Column('source', sa.String(length=30), nullable=False, server_default='manual'),
        sa.Column('automated_follow_up_id', sa.Uuid(), sa.ForeignKey('automated_follow_ups.id'), nullable=True),
        sa.Column('external_id', sa.String(length=120), nullable=True),
        sa.Column('external_metadata', sa.Text(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(), nullable=False),
        *_airtable_columns(),
        *_timestamps(),
    )
    op.create_index('ix_touchpoints_student_id', 'touchpoints', ['student_id'])
    op.create_index('ix_touchpoints_automated_follow_up_id', 'touchpoints', ['automated_follow_up_id'])
    op.create_index('ix_touchpoints_occurred_at', 'touchpoints', ['occurred_at'])
    op.create_index('ix_touchpoints_airtable_record_id', 'touchpoints', ['airtable_record_id'])
    op.create_index('ix_touchpoints_type_occurred', 'touchpoints', ['type', 'occurred_at'])


def downgrade() -> None:
    for table in (
        'touchpoints',
        'automated_follow_ups',
        'template_follow_up_messages',
        'template_follow_up_sequences',
        'attendance_records',
        'enrollments',
        'classes',
        'weekly_sessions',
        'cohorts',
        'products',
        'students',
        'teachers',
        'language_levels',
    ):
        op.drop_table(table)
