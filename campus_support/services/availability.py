from typing import List, Optional, Union
from campus_support.errors import ValidationError
from campus_support.models import PROVIDER_ROLES, Profile, Role, ScheduleBlock
from campus_support.services.aggregation import ReportingService
from campus_support.services.repositories import ProfileRepository

class AvailabilityTracker:
    """
    Per-provider "available now" flag and weekly schedule, plus the provider search
    students use to find help. Toggling either attribute starts no workflow.
    """

    def __init__(self, profiles: ProfileRepository, reporting: ReportingService):
        self.profiles = profiles
        self.reporting = reporting

    async def _provider(self, provider_id: str) -> Profile:
        provider = await self.profiles.get(provider_id)
        if not provider.is_provider:
            raise ValidationError(f"{provider_id} is not a tutor or counsellor")
        return provider

    async def set_availability(self, provider_id: str, available: bool) -> Profile:
        await self._provider(provider_id)
        return await self.profiles.update(provider_id, {"available_now": bool(available)})

    async def set_schedule(self, provider_id: str, schedule: Union[str, List[ScheduleBlock], List[dict], None]) -> Profile:
        """Accepts free text ("Monday 9-12, Wednesday 14-17") or structured weekly blocks."""
        await self._provider(provider_id)
        return await self.profiles.update(provider_id, {"schedule": schedule})

    async def find_providers(
        self,
        query: Optional[str] = None,
        module: Optional[str] = None,
        category: Optional[str] = None,
        role: Optional[Role] = None,
        available_only: bool = False,
        university: Optional[str] = None,
    ) -> List[dict]:
        """
        Search providers for a student.

        Name matches are case-insensitive substrings; module, category and university must
        match exactly (ignoring case). Suspended providers are left out. Results list available-now providers
        first, then higher ratings; ties keep registration order.
        """
        roles = (Role(role),) if role else PROVIDER_ROLES
        needle = (query or "").strip().lower()

        def matches(p: Profile) -> bool:
            if p.role not in roles or p.suspended:
                return False
            if available_only and not p.available_now:
                return False
            if needle and needle not in p.name.lower():
                return False
            if module and module.strip().lower() not in (m.lower() for m in p.modules):
                return False
            if category and (p.category or "").lower() != category.strip().lower():
                return False
            if university and (p.university or "").strip().lower() != university.strip().lower():
                return False
            return True

        scores = {}
        for entry in await self.reporting.rating_feed():
            scores.setdefault(entry["provider_id"], []).append(entry["rating"])

        results = []
        for provider in await self.profiles.list(matches):
            values = scores.get(provider.id)
            results.append({
                "profile": provider,
                # Seeded rating until the provider has real ones
                "rating": sum(values) / len(values) if values else provider.rating,
            })
        return sorted(results, key=lambda r: (not r["profile"].available_now, -(r["rating"] or 0)))
