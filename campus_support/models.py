"""
Entity models for the campus support platform.
Includes profiles, help-session requests, ratings, session reports and notifications.
Entities are pydantic models persisted as JSON documents inside a store namespace.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime
from typing import List, Optional, Union
import enum

# Enum for profile roles
class Role(str, enum.Enum):
    STUDENT = "student"
    TUTOR = "tutor"
    COUNSELLOR = "counsellor"
    ADMIN = "admin"

PROVIDER_ROLES = (Role.TUTOR, Role.COUNSELLOR)

class RequestStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    DECLINED = "Declined"
    SUGGESTED = "Suggested"
    COMPLETED = "Completed"

# Statuses from which no further transition is permitted
TERMINAL_STATUSES = (RequestStatus.COMPLETED, RequestStatus.DECLINED)

# Statuses a provider may still decide on
OPEN_STATUSES = (RequestStatus.PENDING, RequestStatus.SUGGESTED)

# Status strings written by older front-ends, read as their current equivalent
LEGACY_STATUSES = {
    "Ignored": RequestStatus.PENDING,
    "Rejected": RequestStatus.DECLINED,
    "Rescheduled": RequestStatus.SUGGESTED,
}

class Decision(str, enum.Enum):
    APPROVE = "Approve"
    DECLINE = "Decline"
    SUGGEST = "Suggest"

class Mode(str, enum.Enum):
    ONLINE = "Online"
    IN_PERSON = "In-person"

class RequestKind(str, enum.Enum):
    TUTORING = "tutoring"
    COUNSELLING = "counselling"

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# Shown to providers in place of the name on anonymous requests
ANONYMOUS_STUDENT_NAME = "Anonymous Student"

class StoredEntity(BaseModel):
    """Fields shared by everything kept in a repository."""
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str
    version: int = 1

class ScheduleBlock(BaseModel):
    """One weekly availability block, e.g. Monday 09:00-12:00."""
    day: str
    start: str
    end: str

    @field_validator('day')
    def validate_day(cls, v):
        day = v.strip().capitalize()
        if day not in WEEKDAYS:
            raise ValueError(f'Unknown weekday: {v}')
        return day

    @field_validator('start', 'end')
    def validate_time(cls, v):
        datetime.strptime(v, "%H:%M")
        return v

class Profile(StoredEntity):
    """A student, tutor, counsellor or admin. The id is the only identifier; email and student number are lookup aids."""
    role: Role
    name: str
    email: Optional[str] = None
    student_number: Optional[str] = None
    university: Optional[str] = None
    modules: List[str] = []
    category: Optional[str] = None
    bio: Optional[str] = None
    available_now: bool = False
    schedule: Union[List[ScheduleBlock], str, None] = None
    suspended: bool = False
    rating: Optional[float] = None # Seeded rating, used until real ratings exist
    created_at: Optional[datetime] = None

    @property
    def is_provider(self) -> bool:
        return self.role in PROVIDER_ROLES

class SessionRequest(StoredEntity):
    """
    A student's request for a help session with a provider.

    The student writes the initial fields at creation; the provider writes
    status and review fields; an admin may delete the request outright.
    """
    student_id: str
    provider_id: str
    student_name: Optional[str] = None
    provider_name: Optional[str] = None
    kind: RequestKind = RequestKind.TUTORING
    category: Optional[str] = None
    module: Optional[str] = None
    mode: Mode = Mode.ONLINE
    requested_time: Optional[datetime] = None # Slot chosen by the student
    urgent: bool = False # "Need help now", no fixed slot
    anonymous: bool = False # Counselling only: the provider does not see who asked
    notes: Optional[str] = None
    suggested_time: Optional[datetime] = None # Provider counter-offer
    status: RequestStatus = RequestStatus.PENDING
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = None
    rated_at: Optional[datetime] = None

    @field_validator('status', mode='before')
    def upgrade_legacy_status(cls, v):
        if isinstance(v, str) and v in LEGACY_STATUSES:
            return LEGACY_STATUSES[v]
        return v

    def provider_view(self) -> "SessionRequest":
        """Copy safe to show the provider: the student's name is hidden on anonymous requests."""
        if not self.anonymous:
            return self
        return self.model_copy(update={"student_name": ANONYMOUS_STUDENT_NAME})

class Rating(StoredEntity):
    """A standalone rating, as seeded by an admin. Ratings of completed requests live on the request itself."""
    provider_id: str
    rater_name: Optional[str] = None
    rating: int = Field(ge=1, le=5)
    comment: Optional[str] = None
    date: Optional[datetime] = None
    request_id: Optional[str] = None

class Report(StoredEntity):
    """Session note written by the provider when closing a session."""
    request_id: str
    author_id: str
    summary: str
    topics: Optional[str] = None
    follow_up: Optional[str] = None
    date: Optional[datetime] = None

class Notification(StoredEntity):
    """Append-only message for a student or provider; recipient None means broadcast."""
    recipient_id: Optional[str] = None
    title: str
    created_at: Optional[datetime] = None

class Video(StoredEntity):
    """Lesson video link in a tutor's library. Only the link is stored, never the file."""
    provider_id: str
    title: str
    module: Optional[str] = None
    url: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
