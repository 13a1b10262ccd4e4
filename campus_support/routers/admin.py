"""
Admin router providing reporting over all requests and management of profiles.
Requires an admin actor for all endpoints.
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from datetime import datetime
from typing import List, Optional
from slowapi import Limiter
from slowapi.util import get_remote_address
from campus_support.actor_tools import admin_only
from campus_support.config import get_settings
from campus_support.logger import logger
from campus_support.models import Profile, RequestKind, Role
from campus_support.schemas.admin_schema import (
    ActivityResponse, DashboardResponse, MessageResponse, RatingEntryResponse, RatingResponse, RatingSeed, SummaryResponse,
)
from campus_support.schemas.profile_schema import ProfileCreate, ProfileResponse
from campus_support.schemas.request_schema import SessionRequestResponse
from campus_support.services import SupportServices, get_services
from campus_support.utilities import utcnow

router = APIRouter(prefix='/admin')

# Add rate limiting
limiter = Limiter(key_func=get_remote_address)
ADMIN_RATE_LIMIT = get_settings().admin_rate_limit

@router.get('/dashboard', response_model=DashboardResponse)
@limiter.limit(ADMIN_RATE_LIMIT)
async def admin_dashboard(request: Request, services: SupportServices = Depends(get_services), _=Depends(admin_only)):
    """
    Fetch request counts for tutoring, counselling and both together.
    All three summaries use the same moment as "now".
    """
    now = utcnow()
    return {
        "tutoring": await services.reporting.summarize(RequestKind.TUTORING, now=now),
        "counselling": await services.reporting.summarize(RequestKind.COUNSELLING, now=now),
        "overall": await services.reporting.summarize(now=now),
    }

@router.get('/summary', response_model=SummaryResponse)
@limiter.limit(ADMIN_RATE_LIMIT)
async def summary(request: Request, kind: Optional[RequestKind] = None, services: SupportServices = Depends(get_services), _=Depends(admin_only)):
    return await services.reporting.summarize(kind)

@router.get('/requests', response_model=List[SessionRequestResponse])
@limiter.limit(ADMIN_RATE_LIMIT)
async def list_requests(
    request: Request,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    category: Optional[str] = None,
    kind: Optional[RequestKind] = None,
    services: SupportServices = Depends(get_services),
    _=Depends(admin_only)
):
    """
    Requests made between start and end (inclusive), optionally of one category and kind.
    This is the data the CSV/PDF exports are built from.
    """
    return await services.reporting.filter_by_range(start, end, category, kind)

@router.delete('/requests/{request_id}', response_model=MessageResponse)
async def delete_request(request_id: str, services: SupportServices = Depends(get_services), admin: Profile = Depends(admin_only)):
    """Delete a request for good. Neither party is notified."""
    await services.lifecycle.delete(request_id, admin.id)
    return {"message": f"Request {request_id} deleted"}

@router.get('/activity', response_model=List[ActivityResponse])
@limiter.limit(ADMIN_RATE_LIMIT)
async def activity(request: Request, services: SupportServices = Depends(get_services), _=Depends(admin_only)):
    """Per-provider response time, ignored, completed and total requests, busiest first."""
    return await services.reporting.activity_metrics()

@router.get('/ratings', response_model=List[RatingEntryResponse])
async def ratings(provider_id: Optional[str] = None, services: SupportServices = Depends(get_services), _=Depends(admin_only)):
    return await services.reporting.rating_feed(provider_id)

@router.post('/ratings', response_model=RatingResponse)
async def seed_rating(rating: RatingSeed, services: SupportServices = Depends(get_services), admin: Profile = Depends(admin_only)):
    """Record a standalone rating, e.g. feedback collected outside the platform."""
    await services.directory.get(rating.provider_id)
    data = rating.model_dump()
    data["date"] = data["date"] or utcnow()
    created = await services.ratings.create(data)
    logger.info(f"Rating {created.id} for {created.provider_id} added by admin {admin.id}")
    return created

@router.get('/users', response_model=List[ProfileResponse])
async def list_users(role: Optional[Role] = None, services: SupportServices = Depends(get_services), _=Depends(admin_only)):
    return await services.directory.list(role)

@router.post('/users/{role}', response_model=ProfileResponse)
async def create_user(role: Role, profile: ProfileCreate, services: SupportServices = Depends(get_services), _=Depends(admin_only)):
    """
    Create a profile of any role, including admins and providers with a seeded rating.
    """
    return await services.directory.register(role, profile.model_dump())

@router.post('/users/{profile_id}/suspend', response_model=ProfileResponse)
async def toggle_suspend(profile_id: str, services: SupportServices = Depends(get_services), admin: Profile = Depends(admin_only)):
    """Suspend the profile, or lift its suspension."""
    return await services.directory.toggle_suspend(profile_id, admin.id)

@router.delete('/users/{profile_id}', response_model=MessageResponse)
async def delete_user(profile_id: str, services: SupportServices = Depends(get_services), admin: Profile = Depends(admin_only)):
    """
    Delete a profile. Its requests stay, showing "Deleted Account" as the name.
    """
    if profile_id == admin.id:
        raise HTTPException(status_code=400, detail="Admins cannot delete themselves")
    await services.directory.delete(profile_id, admin.id)
    return {"message": f"User {profile_id} deleted"}
