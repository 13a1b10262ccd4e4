from fastapi import APIRouter, Depends
from typing import List
from campus_support.actor_tools import get_actor, ensure_self_or_admin
from campus_support.models import Profile
from campus_support.schemas.notification_schema import NotificationResponse
from campus_support.services import SupportServices, get_services

router = APIRouter(prefix='/notifications')

@router.get('/{recipient_id}', response_model=List[NotificationResponse])
async def list_notifications(
    recipient_id: str,
    include_broadcast: bool = True,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """Notifications for a student or provider, most recent first."""
    ensure_self_or_admin(actor, recipient_id)
    return await services.relay.list_for(recipient_id, include_broadcast)
