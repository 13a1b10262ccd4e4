"""
Student router: requesting sessions, answering suggested times and rating completed sessions.
"""
from fastapi import APIRouter, Depends
from typing import List
from campus_support.actor_tools import get_actor, ensure_self_or_admin
from campus_support.models import Profile
from campus_support.schemas.request_schema import RatingCreate, SessionRequestCreate, SessionRequestResponse, SuggestionAnswer
from campus_support.services import SupportServices, get_services

router = APIRouter(prefix='/students')

@router.post('/{student_id}/requests', response_model=SessionRequestResponse)
async def request_session(
    student_id: str,
    details: SessionRequestCreate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """
    Request a session with a tutor or counsellor.
    The provider is notified; the request starts as Pending.
    """
    ensure_self_or_admin(actor, student_id)
    data = details.model_dump(exclude={"provider_id"})
    return await services.lifecycle.request_session(student_id, details.provider_id, data)

@router.get('/{student_id}/requests', response_model=List[SessionRequestResponse])
async def list_requests(student_id: str, actor: Profile = Depends(get_actor), services: SupportServices = Depends(get_services)):
    """Get the student's requests, newest first."""
    ensure_self_or_admin(actor, student_id)
    requests = await services.lifecycle.requests_for_student(student_id)
    requests.reverse()
    return requests

@router.post('/{student_id}/requests/{request_id}/suggestion', response_model=SessionRequestResponse)
async def answer_suggestion(
    student_id: str,
    request_id: str,
    answer: SuggestionAnswer,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    ensure_self_or_admin(actor, student_id)
    return await services.lifecycle.respond_to_suggestion(request_id, student_id, answer.accept, expected_version=answer.version)

@router.post('/{student_id}/requests/{request_id}/rating', response_model=SessionRequestResponse)
async def rate_session(
    student_id: str,
    request_id: str,
    rating: RatingCreate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """
    Rate a completed session from 1 to 5. A session can only be rated once.
    """
    ensure_self_or_admin(actor, student_id)
    return await services.lifecycle.rate(request_id, rating.rating, rating.comment, rater_id=student_id)
