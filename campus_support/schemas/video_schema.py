from pydantic import BaseModel, ConfigDict, HttpUrl, StringConstraints, field_validator
from typing import Annotated, Optional
from datetime import datetime
from bleach import clean

class VideoCreate(BaseModel):
    """Lesson video link added to a tutor's library"""
    title: Annotated[str, StringConstraints(min_length=1, max_length=200)]
    module: Optional[str] = None
    url: HttpUrl # YouTube or any other http(s) link
    notes: Optional[str] = None # Notes or quiz prompts

    @field_validator('title')
    def sanitize_title(cls, v):
        return clean(v, strip=True)

    @field_validator('module')
    def normalize_module(cls, v):
        return v.strip().upper() if v else None

    @field_validator('notes')
    def sanitize_notes(cls, v):
        return clean(v) if v is not None else v

class VideoResponse(BaseModel):
    """Video response data"""
    id: str
    provider_id: str
    title: str
    module: Optional[str] = None
    url: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
