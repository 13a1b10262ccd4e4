from pydantic import BaseModel, ConfigDict, StringConstraints, field_validator
from typing import Annotated, Optional
from datetime import datetime
from bleach import clean
from campus_support.models import Decision, Mode, RequestKind, RequestStatus

def _clean_optional(v):
    return clean(v) if v is not None else v

class SessionRequestCreate(BaseModel):
    """A student's request for a session. An urgent request may leave requested_time empty. Only counselling requests may be anonymous."""
    provider_id: str
    category: Optional[str] = None
    module: Optional[str] = None
    mode: Mode = Mode.ONLINE
    requested_time: Optional[datetime] = None
    urgent: bool = False
    anonymous: bool = False
    notes: Optional[str] = None

    @field_validator('notes')
    def sanitize_notes(cls, v):
        return _clean_optional(v)

class DecisionCreate(BaseModel):
    """Provider decision on an open request"""
    decision: Decision
    reason: Optional[str] = None # Used when declining
    suggested_time: Optional[datetime] = None # Required when suggesting
    version: Optional[int] = None # Optimistic concurrency check

    @field_validator('reason')
    def sanitize_reason(cls, v):
        return _clean_optional(v)

class SuggestionAnswer(BaseModel):
    """Student's answer to a suggested time"""
    accept: bool
    version: Optional[int] = None

class SessionReportCreate(BaseModel):
    """Session note written when the provider closes a session"""
    summary: Annotated[str, StringConstraints(min_length=1)]
    topics: Optional[str] = None
    follow_up: Optional[str] = None
    version: Optional[int] = None

    @field_validator('summary')
    def sanitize_summary(cls, v):
        return clean(v)

    @field_validator('topics', 'follow_up')
    def sanitize_text(cls, v):
        return _clean_optional(v)

class RatingCreate(BaseModel):
    """Student rating of a completed session"""
    rating: int
    comment: Optional[str] = None # Comment is optional

    @field_validator('comment')
    def sanitize_comment(cls, v):
        return _clean_optional(v)

class SessionRequestResponse(BaseModel):
    """Request response data"""
    id: str
    version: int
    student_id: str
    provider_id: str
    student_name: Optional[str] = None
    provider_name: Optional[str] = None
    kind: RequestKind
    category: Optional[str] = None
    module: Optional[str] = None
    mode: Mode
    requested_time: Optional[datetime] = None
    urgent: bool
    anonymous: bool = False
    notes: Optional[str] = None
    suggested_time: Optional[datetime] = None
    status: RequestStatus
    created_at: Optional[datetime] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class SessionReportResponse(BaseModel):
    """Session report response data"""
    id: str
    request_id: str
    author_id: str
    summary: str
    topics: Optional[str] = None
    follow_up: Optional[str] = None
    date: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
