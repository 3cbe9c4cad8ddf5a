import uuid
from datetime import date
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class StudentCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str | None = None
    city: str | None = None
    initial_channel: Literal['form', 'quiz', 'call', 'message', 'email', 'assessment'] | None = None
    communication_channel: Literal['sms_email', 'email', 'sms'] = 'sms_email'
    heard_from: str | None = None
    is_under_16: bool = False
    is_full_beginner: bool = False
    purpose_to_learn: str | None = None
    tally_form_submission_id: str | None = None
    desired_starting_language_level_id: uuid.UUID | None = None

    @field_validator('name', 'email')
    @classmethod
    def _strip_required(cls, value: str) -> str:
        value = (value or '').strip()
        if not value:
            raise ValueError('must not be blank')
        return value


class StudentUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    city: str | None = None
    communication_channel: Literal['sms_email', 'email', 'sms'] | None = None
    heard_from: str | None = None
    is_under_16: bool | None = None
    is_full_beginner: bool | None = None
    purpose_to_learn: str | None = None
    stripe_customer_id: str | None = None
    convertkit_id: str | None = None
    openphone_contact_id: str | None = None


class StudentUpsertData(BaseModel):
    model_config = ConfigDict(extra='ignore')

    name: str | None = None
    phone: str | None = None
    city: str | None = None
    initial_channel: Literal['form', 'quiz', 'call', 'message', 'email', 'assessment'] | None = None
    communication_channel: Literal['sms_email', 'email', 'sms'] | None = None
    heard_from: str | None = None
    is_under_16: bool | None = None
    is_full_beginner: bool | None = None
    purpose_to_learn: str | None = None
    desired_starting_language_level_id: uuid.UUID | None = None
    website_quiz_submission_date: date | None = None
    subjective_deadline_for_student: date | None = None
    added_to_email_newsletter: bool | None = None
    tally_form_submission_id: str | None = None
    respondent_id: str | None = None
    stripe_customer_id: str | None = None
    convertkit_id: str | None = None
    openphone_contact_id: str | None = None


class StudentUpsertRequest(BaseModel):
    email: str = Field(min_length=3)
    data: StudentUpsertData = Field(default_factory=StudentUpsertData)


class PrivateClassAvailabilityRequest(BaseModel):
    format: Literal['online', 'in_person']
    duration_minutes: int = Field(gt=0)
    day_of_week: str
    student_id: uuid.UUID
    session_structure: Literal['single', 'double'] = 'single'


class FinalizeSetupRequest(BaseModel):
    cohort_id: uuid.UUID


class CalendarEvent(_CamelModel):
    id: str
    start: Any = None
    end: Any = None
    hangout_link: str | None = Field(default=None, alias='hangoutLink')


class CreateClassesFromEventsRequest(BaseModel):
    events: list[CalendarEvent] | str


class CheckoutUrlRequest(BaseModel):
    student_id: uuid.UUID
    cohort_id: uuid.UUID


class SetFollowUpRequest(_CamelModel):
    student_id: uuid.UUID = Field(alias='studentId')
    sequence_backend_name: str = Field(alias='sequenceBackendName', min_length=1)


class AdvanceFollowUpRequest(_CamelModel):
    follow_up_id: uuid.UUID = Field(alias='followUpId')


class StopFollowUpRequest(_CamelModel):
    student_id: uuid.UUID = Field(alias='studentId')


class TriggerNextMessagesRequest(_CamelModel):
    webhook_url: str | None = Field(default=None, alias='webhookUrl')


class CheckRecentEngagementsRequest(_CamelModel):
    hours_back: int = Field(default=1, ge=1, le=24 * 30, alias='hoursBack')


class EnrollmentCreateRequest(BaseModel):
    student_id: uuid.UUID
    cohort_id: uuid.UUID
    status: str = 'interested'


class EnrollmentStatusUpdateRequest(BaseModel):
    status: str


class AttendanceUpdateRequest(BaseModel):
    status: Literal['unset', 'attended', 'not_attended']
    marked_by: uuid.UUID | None = None
    notes: str | None = None
    homework_completed: bool | None = None


class DailyAttendanceRequest(BaseModel):
    student_id: uuid.UUID
    cohort_id: uuid.UUID
    status: Literal['unset', 'attended', 'not_attended']
    marked_by: uuid.UUID | None = None
    notes: str | None = None


class TouchpointCreateRequest(BaseModel):
    student_id: uuid.UUID
    channel: Literal['sms', 'call', 'whatsapp', 'email']
    type: Literal['inbound', 'outbound']
    message: str = ''
    source: Literal['manual', 'automated', 'openphone', 'gmail', 'whatsapp_business', 'webhook'] = 'manual'
    external_id: str | None = None
    external_metadata: str | None = None
