from fastapi import Depends, Header, HTTPException
from campus_support.config import Settings, get_settings
from campus_support.logger import logger
from campus_support.models import Profile, Role
from campus_support.services import SupportServices, get_services

##############################
### ACTOR DEPENDENCIES #######
##############################

# There is no authentication: callers name themselves in the X-Actor-Id header.
# These checks keep honest callers on their own paths; they are not security.

async def get_actor(
    x_actor_id: str = Header(...),
    services: SupportServices = Depends(get_services),
    settings: Settings = Depends(get_settings),
) -> Profile:
    """
    Resolve the acting profile from the X-Actor-Id header.

    The configured default admin is created on first use so a fresh store
    always has someone who can reach the admin views.
    """
    if x_actor_id == settings.default_admin_id:
        actor = await services.directory.ensure_admin(settings.default_admin_id, settings.default_admin_name)
    else:
        actor = await services.directory.resolve(x_actor_id)
    if actor is None:
        raise HTTPException(status_code=401, detail="Unknown actor")
    if actor.suspended:
        raise HTTPException(status_code=403, detail="Account is suspended")
    return actor

def require_roles(*roles: Role):
    """Dependency factory: the actor must hold one of `roles`."""
    async def role_checker(actor: Profile = Depends(get_actor)) -> Profile:
        if actor.role not in roles:
            logger.warning(f"Actor {actor.id} with role {actor.role.value} denied; needs {[r.value for r in roles]}")
            raise HTTPException(status_code=403, detail="Operation not permitted for this role")
        return actor
    return role_checker

admin_only = require_roles(Role.ADMIN)

def ensure_self_or_admin(actor: Profile, profile_id: str):
    """Students and providers act only on their own paths; admins may act on any."""
    if actor.role != Role.ADMIN and actor.id != profile_id:
        raise HTTPException(status_code=403, detail="User not authorized for this profile")
