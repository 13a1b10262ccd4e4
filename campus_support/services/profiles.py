from typing import Callable, List, Optional
from datetime import datetime
from campus_support.errors import ValidationError
from campus_support.logger import logger, audit_logger
from campus_support.models import Profile, Role
from campus_support.services.repositories import ProfileRepository, RequestRepository
from campus_support.utilities import generate_id, utcnow

DELETED_ACCOUNT_NAME = "Deleted Account"

# Fields a profile owner may change; role, suspension and timestamps are not among them
EDITABLE_FIELDS = (
    "name", "email", "student_number", "university", "modules",
    "category", "bio", "schedule", "available_now",
)

_ID_PREFIXES = {
    Role.STUDENT: "stu-",
    Role.TUTOR: "tutor-",
    Role.COUNSELLOR: "counsellor-",
    Role.ADMIN: "admin-",
}

class ProfileDirectory:
    """Registration, lookup and admin management of profiles."""

    def __init__(self, profiles: ProfileRepository, requests: RequestRepository, clock: Callable[[], datetime] = utcnow):
        self.profiles = profiles
        self.requests = requests
        self.clock = clock

    async def register(self, role: Role, data: dict) -> Profile:
        """Create a profile for self-registration or admin seeding."""
        role = Role(role)
        if not (data.get("name") or "").strip():
            raise ValidationError("A profile needs a name")
        fields = {k: v for k, v in data.items() if k in EDITABLE_FIELDS or k in ("rating", "suspended")}
        profile = await self.profiles.create({
            **fields,
            "id": data.get("id") or generate_id(_ID_PREFIXES[role]),
            "role": role,
            "created_at": self.clock(),
        })
        logger.info(f"New {role.value} profile registered: {profile.id}")
        return profile

    async def ensure_admin(self, admin_id: str, name: str) -> Profile:
        """Return the admin profile `admin_id`, creating it if the store has none."""
        existing = await self.profiles.find_by_id(admin_id)
        if existing is not None:
            if existing.role != Role.ADMIN:
                raise ValidationError(f"Profile {admin_id} exists and is not an admin")
            return existing
        return await self.register(Role.ADMIN, {"id": admin_id, "name": name})

    async def resolve(self, profile_id: str) -> Optional[Profile]:
        return await self.profiles.find_by_id(profile_id)

    async def get(self, profile_id: str) -> Profile:
        return await self.profiles.get(profile_id)

    async def find_by_email(self, email: str) -> List[Profile]:
        """Email is a lookup aid, not an identifier: several profiles may share one."""
        needle = email.strip().lower()
        return await self.profiles.list(lambda p: (p.email or "").lower() == needle)

    async def list(self, role: Role = None) -> List[Profile]:
        return await self.profiles.list(lambda p: role is None or p.role == role)

    async def update(self, profile_id: str, changes: dict, expected_version: int = None) -> Profile:
        """Apply a profile edit. Only owner-editable fields are accepted."""
        forbidden = sorted(set(changes) - set(EDITABLE_FIELDS))
        if forbidden:
            raise ValidationError(f"Cannot edit profile fields: {', '.join(forbidden)}")
        return await self.profiles.update(profile_id, changes, expected_version=expected_version)

    async def toggle_suspend(self, profile_id: str, admin_id: str = None) -> Profile:
        profile = await self.profiles.get(profile_id)
        updated = await self.profiles.update(profile_id, {"suspended": not profile.suspended})
        audit_logger.log_event("profile_suspension", admin_id, profile_id, {"suspended": updated.suspended})
        logger.info(f"Profile {profile_id} suspended={updated.suspended}")
        return updated

    async def delete(self, profile_id: str, admin_id: str = None) -> Profile:
        """
        Remove a profile. Requests that reference it are kept, with the
        display name replaced by a tombstone.
        """
        removed = await self.profiles.delete(profile_id)
        touched = 0
        for request in await self.requests.list(lambda r: profile_id in (r.student_id, r.provider_id)):
            patch = {}
            if request.student_id == profile_id:
                patch["student_name"] = DELETED_ACCOUNT_NAME
            if request.provider_id == profile_id:
                patch["provider_name"] = DELETED_ACCOUNT_NAME
            await self.requests.update(request.id, patch)
            touched += 1
        audit_logger.log_event("profile_deleted", admin_id, profile_id, {"requests_tombstoned": touched})
        logger.info(f"Profile {profile_id} deleted; {touched} requests keep a tombstone name")
        return removed
