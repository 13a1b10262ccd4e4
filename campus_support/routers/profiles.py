"""
Profile router handling self-registration, profile edits and provider search.
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional
from campus_support.actor_tools import get_actor, ensure_self_or_admin
from campus_support.models import Profile, Role
from campus_support.schemas.profile_schema import ProfileCreate, ProfileResponse, ProfileUpdate, ProviderSearchResult
from campus_support.services import SupportServices, get_services

router = APIRouter(prefix='/profiles')

SELF_REGISTER_ROLES = (Role.STUDENT, Role.TUTOR, Role.COUNSELLOR)

@router.post('/{role}', response_model=ProfileResponse)
async def register(role: Role, profile: ProfileCreate, services: SupportServices = Depends(get_services)):
    """
    Register a student, tutor or counsellor profile.

    Parameters:
    - role: student, tutor or counsellor
    - profile: Profile data

    Raises:
    - HTTPException(403): If the role cannot self-register (admins are created by admins)
    """
    if role not in SELF_REGISTER_ROLES:
        raise HTTPException(status_code=403, detail="Admins cannot self-register")
    # Seeded ratings are for admin-created providers only
    data = profile.model_dump(exclude={"rating"})
    return await services.directory.register(role, data)

@router.get('/providers/search', response_model=List[ProviderSearchResult])
async def search_providers(
    query: Optional[str] = None,
    module: Optional[str] = None,
    category: Optional[str] = None,
    role: Optional[Role] = None,
    available_only: bool = False,
    university: Optional[str] = None,
    services: SupportServices = Depends(get_services)
):
    """Find tutors and counsellors, optionally at one university: available now first, then by rating."""
    if role is not None and role not in (Role.TUTOR, Role.COUNSELLOR):
        raise HTTPException(status_code=422, detail="Role must be tutor or counsellor")
    return await services.availability.find_providers(query, module, category, role, available_only, university)

@router.get('/{profile_id}', response_model=ProfileResponse)
async def get_profile(profile_id: str, services: SupportServices = Depends(get_services)):
    return await services.directory.get(profile_id)

@router.patch('/{profile_id}', response_model=ProfileResponse)
async def update_profile(
    profile_id: str,
    changes: ProfileUpdate,
    actor: Profile = Depends(get_actor),
    services: SupportServices = Depends(get_services)
):
    """
    Edit the fields given in the body. Only the profile owner or an admin may edit.
    """
    ensure_self_or_admin(actor, profile_id)
    patch = changes.model_dump(exclude_unset=True, exclude={"version"})
    return await services.directory.update(profile_id, patch, expected_version=changes.version)
