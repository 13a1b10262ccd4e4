from pydantic import BaseModel, ConfigDict, EmailStr, StringConstraints, field_validator
from typing import Annotated, Optional, List, Union
from campus_support.models import Role, ScheduleBlock
from bleach import clean
from datetime import datetime

###############################
### PROFILE ACCOUNT SCHEMAS ###
###############################

class ProfileBase(BaseModel):
    """Base profile data"""
    # Add constraints to name field (min length: 1, max length: 100)
    name: Annotated[str, StringConstraints(min_length=1, max_length=100)]
    email: Optional[EmailStr] = None
    student_number: Optional[str] = None
    university: Optional[str] = None
    modules: List[str] = []
    category: Optional[str] = None
    bio: Optional[str] = None
    schedule: Union[List[ScheduleBlock], str, None] = None
    available_now: bool = False

    @field_validator('name')
    def sanitize_name(cls, v):
        return clean(v, strip=True)

    @field_validator('bio')
    def sanitize_bio(cls, v):
        return clean(v) if v is not None else v

    @field_validator('modules')
    def normalize_modules(cls, v):
        return [m.strip().upper() for m in v if m and m.strip()]

class ProfileCreate(ProfileBase):
    """Profile registration data"""
    rating: Optional[float] = None # Only used when an admin seeds providers

    @field_validator('rating')
    def validate_rating(cls, v):
        if v is not None and (v < 0 or v > 5):
            raise ValueError('Rating must be between 0 and 5')
        return v

class ProfileUpdate(BaseModel):
    """Profile edit data; fields left out are not changed"""
    name: Optional[Annotated[str, StringConstraints(min_length=1, max_length=100)]] = None
    email: Optional[EmailStr] = None
    student_number: Optional[str] = None
    university: Optional[str] = None
    modules: Optional[List[str]] = None
    category: Optional[str] = None
    bio: Optional[str] = None
    version: Optional[int] = None # Optimistic concurrency check

    @field_validator('name')
    def sanitize_name(cls, v):
        return clean(v, strip=True) if v is not None else v

    @field_validator('bio')
    def sanitize_bio(cls, v):
        return clean(v) if v is not None else v

class ProfileResponse(ProfileBase):
    """Profile response data"""
    id: str
    version: int
    role: Role
    suspended: bool
    rating: Optional[float] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

class ProviderSearchResult(BaseModel):
    """A provider matching a student's search, with the rating used for ranking"""
    profile: ProfileResponse
    rating: Optional[float] = None

############################
### AVAILABILITY SCHEMAS ###
############################

class AvailabilityUpdate(BaseModel):
    """Available-now toggle"""
    available_now: bool

class ScheduleUpdate(BaseModel):
    """Free-text or structured weekly schedule"""
    schedule: Union[List[ScheduleBlock], str, None]

    @field_validator('schedule')
    def sanitize_schedule(cls, v):
        return clean(v, strip=True) if isinstance(v, str) else v
