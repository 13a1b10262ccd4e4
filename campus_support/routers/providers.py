"""
Provider router shared by tutors and counsellors: incoming requests, decisions,
session reports, availability, ratings and the tutor lesson-video library.
"""
from fastapi import APIRouter, Depends
from typing import List, Optional
from campus_support.actor_tools import get_actor, ensure_self_or_admin
from campus_support.models import Profile, RequestStatus
from campus_support.schemas.admin_schema import AverageRatingResponse, MessageResponse, RatingEntryResponse
from campus_support.schemas.profile_schema import AvailabilityUpdate, ProfileResponse, ScheduleUpdate
from campus_support.schemas.request_schema import DecisionCreate, SessionReportCreate, SessionReportResponse, SessionRequestResponse
from campus_support.schemas.video_schema import VideoCreate, VideoResponse
from campus_support.services import SupportServices, get_services

router = APIRouter(prefix='/providers')

@router.get('/{provider_id}/requests', response_model=List[SessionRequestResponse])
async def list_requests(
    provider_id: str,
    status: Optional[RequestStatus] = None,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """Get requests addressed to the provider, optionally only those with one status."""
    ensure_self_or_admin(actor, provider_id)
    return [r.provider_view() for r in await services.lifecycle.requests_for_provider(provider_id, status)]

@router.post('/{provider_id}/requests/{request_id}/decision', response_model=SessionRequestResponse)
async def decide(
    provider_id: str,
    request_id: str,
    decision: DecisionCreate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """
    Approve, decline or suggest a new time for a Pending or Suggested request.

    Raises:
    - 409: If the request is already Approved, Declined or Completed, or the version is stale
    - 422: If a suggestion has no suggested_time
    """
    ensure_self_or_admin(actor, provider_id)
    payload = {"reason": decision.reason, "suggested_time": decision.suggested_time}
    decided = await services.lifecycle.decide(request_id, actor.id, decision.decision, payload, expected_version=decision.version)
    return decided.provider_view()

@router.post('/{provider_id}/requests/{request_id}/report', response_model=SessionRequestResponse)
async def close_session(
    provider_id: str,
    request_id: str,
    report: SessionReportCreate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """Submit the session report, which completes the approved request."""
    ensure_self_or_admin(actor, provider_id)
    data = report.model_dump(exclude={"version"})
    completed = await services.lifecycle.complete(request_id, data, expected_version=report.version, actor_id=actor.id)
    return completed.provider_view()

@router.get('/{provider_id}/reports', response_model=List[SessionReportResponse])
async def list_reports(provider_id: str, actor: Profile = Depends(get_actor), services: SupportServices = Depends(get_services)):
    ensure_self_or_admin(actor, provider_id)
    own_requests = {r.id for r in await services.lifecycle.requests_for_provider(provider_id)}
    return await services.reports.list(lambda rep: rep.request_id in own_requests)

@router.put('/{provider_id}/availability', response_model=ProfileResponse)
async def set_availability(
    provider_id: str,
    availability: AvailabilityUpdate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    ensure_self_or_admin(actor, provider_id)
    return await services.availability.set_availability(provider_id, availability.available_now)

@router.put('/{provider_id}/schedule', response_model=ProfileResponse)
async def set_schedule(
    provider_id: str,
    schedule: ScheduleUpdate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    ensure_self_or_admin(actor, provider_id)
    return await services.availability.set_schedule(provider_id, schedule.schedule)

@router.get('/{provider_id}/ratings', response_model=List[RatingEntryResponse])
async def list_ratings(provider_id: str, services: SupportServices = Depends(get_services)):
    """Ratings and comments the provider received, newest first."""
    return await services.reporting.rating_feed(provider_id, reveal_anonymous=False)

@router.get('/{provider_id}/rating', response_model=AverageRatingResponse)
async def average_rating(provider_id: str, services: SupportServices = Depends(get_services)):
    return {"provider_id": provider_id, "average_rating": await services.reporting.average_rating(provider_id)}

@router.get('/{provider_id}/videos', response_model=List[VideoResponse])
async def list_videos(
    provider_id: str,
    module: Optional[str] = None,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """The tutor's lesson videos, newest first, optionally for one module."""
    ensure_self_or_admin(actor, provider_id)
    return await services.library.list_for(provider_id, module)

@router.post('/{provider_id}/videos', response_model=VideoResponse)
async def add_video(
    provider_id: str,
    video: VideoCreate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """
    Add a lesson video link to the tutor's library.

    Raises:
    - 422: If the provider is not a tutor
    """
    ensure_self_or_admin(actor, provider_id)
    data = video.model_dump()
    data["url"] = str(video.url)
    return await services.library.add(provider_id, data)

@router.delete('/{provider_id}/videos/{video_id}', response_model=MessageResponse)
async def remove_video(
    provider_id: str,
    video_id: str,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    ensure_self_or_admin(actor, provider_id)
    await services.library.remove(provider_id, video_id)
    return {"message": f"Video {video_id} deleted"}
