from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional
from datetime import datetime
from bleach import clean

class SummaryResponse(BaseModel):
    """Request counts. approved + declined + pending + ignored == total; completed and suggested are sub-counts."""
    total: int
    approved: int
    declined: int
    pending: int
    ignored: int
    completed: int
    suggested: int

class DashboardResponse(BaseModel):
    """Admin dashboard data, split by kind of help"""
    tutoring: SummaryResponse
    counselling: SummaryResponse
    overall: SummaryResponse

class ActivityResponse(BaseModel):
    """Per-provider activity metrics"""
    provider_id: str
    name: str
    role: str
    avg_response_time_ms: Optional[float] = None
    ignored_count: int
    completed_count: int
    total_count: int

class RatingEntryResponse(BaseModel):
    """One rating in the admin feed"""
    provider_id: str
    provider_name: Optional[str] = None
    kind: Optional[str] = None
    rater_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    date: Optional[datetime] = None
    request_id: Optional[str] = None

class RatingSeed(BaseModel):
    """Standalone rating entered by an admin"""
    provider_id: str
    rater_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    date: Optional[datetime] = None

    @field_validator('rating')
    def validate_rating(cls, v):
        if v < 1 or v > 5:
            raise ValueError('Rating must be between 1 and 5')
        return v

    @field_validator('comment', 'rater_name')
    def sanitize_text(cls, v):
        return clean(v, strip=True) if v is not None else v

class RatingResponse(RatingSeed):
    """Stored standalone rating"""
    id: str
    model_config = ConfigDict(from_attributes=True)

class AverageRatingResponse(BaseModel):
    provider_id: str
    average_rating: Optional[float] = None

class MessageResponse(BaseModel):
    """Plain confirmation message"""
    message: str
