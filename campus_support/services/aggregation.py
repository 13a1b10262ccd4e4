"""
Read-only reporting over request, rating and profile snapshots.

The module-level functions are pure: they take entity lists and an explicit
`now`, never touch the store and keep no state, so the same snapshot always
yields the same result. `ReportingService` loads a snapshot and hands it to them.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, List, Optional
from campus_support.models import ANONYMOUS_STUDENT_NAME, OPEN_STATUSES, Profile, Rating, RequestKind, RequestStatus, SessionRequest
from campus_support.services.repositories import ProfileRepository, RatingRepository, RequestRepository
from campus_support.utilities import ensure_aware, utcnow

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

def reference_time(request: SessionRequest) -> Optional[datetime]:
    """When the request was made; records without created_at fall back to the requested slot."""
    return ensure_aware(request.created_at or request.requested_time)

def is_ignored(request: SessionRequest, now: datetime, staleness: timedelta) -> bool:
    """An open request nobody acted on within the staleness window."""
    if request.status not in OPEN_STATUSES:
        return False
    made_at = reference_time(request)
    return made_at is not None and ensure_aware(now) - made_at > staleness

def summarize(requests: Iterable[SessionRequest], now: datetime, staleness: timedelta) -> Dict[str, int]:
    """
    Partition requests into approved, declined, pending and ignored.

    Completed requests count as approved; Suggested requests count as pending
    or ignored like Pending ones. The four partition counts always sum to total.
    """
    summary = {"total": 0, "approved": 0, "declined": 0, "pending": 0, "ignored": 0, "completed": 0, "suggested": 0}
    for request in requests:
        summary["total"] += 1
        if request.status in (RequestStatus.APPROVED, RequestStatus.COMPLETED):
            summary["approved"] += 1
            if request.status == RequestStatus.COMPLETED:
                summary["completed"] += 1
        elif request.status == RequestStatus.DECLINED:
            summary["declined"] += 1
        else:
            if request.status == RequestStatus.SUGGESTED:
                summary["suggested"] += 1
            if is_ignored(request, now, staleness):
                summary["ignored"] += 1
            else:
                summary["pending"] += 1
    return summary

def filter_by_range(
    requests: Iterable[SessionRequest],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    category: Optional[str] = None,
    kind: Optional[RequestKind] = None,
) -> List[SessionRequest]:
    """Requests made between `start` and `end` (both inclusive), optionally of one category and kind."""
    start, end = ensure_aware(start), ensure_aware(end)
    selected = []
    for request in requests:
        if kind is not None and request.kind != kind:
            continue
        if category and (request.category or "").lower() != category.lower():
            continue
        if start is not None or end is not None:
            made_at = reference_time(request)
            if made_at is None:
                continue
            if start is not None and made_at < start:
                continue
            if end is not None and made_at > end:
                continue
        selected.append(request)
    return selected

def rating_feed(
    requests: Iterable[SessionRequest],
    ratings: Iterable[Rating],
    provider_id: str = None,
    reveal_anonymous: bool = True,
) -> List[dict]:
    """
    Standalone ratings plus ratings left on completed requests, newest first.
    With `reveal_anonymous` off, anonymous requests show as "Anonymous Student".
    """
    feed = []
    for rating in ratings:
        if provider_id is None or rating.provider_id == provider_id:
            feed.append({
                "provider_id": rating.provider_id,
                "provider_name": None,
                "kind": None,
                "rater_name": rating.rater_name,
                "rating": rating.rating,
                "comment": rating.comment,
                "date": ensure_aware(rating.date),
                "request_id": rating.request_id,
            })
    for request in requests:
        if request.rating is None or (provider_id is not None and request.provider_id != provider_id):
            continue
        feed.append({
            "provider_id": request.provider_id,
            "provider_name": request.provider_name,
            "kind": request.kind.value,
            "rater_name": request.student_name if reveal_anonymous or not request.anonymous else ANONYMOUS_STUDENT_NAME,
            "rating": request.rating,
            "comment": request.comment,
            "date": ensure_aware(request.rated_at or request.completed_at),
            "request_id": request.id,
        })
    return sorted(feed, key=lambda entry: entry["date"] or _EPOCH, reverse=True)

def average_rating(provider_id: str, requests: Iterable[SessionRequest], ratings: Iterable[Rating]) -> Optional[float]:
    values = [entry["rating"] for entry in rating_feed(requests, ratings, provider_id)]
    if not values:
        return None
    return sum(values) / len(values)

def activity_metrics(
    providers: Iterable[Profile],
    requests: Iterable[SessionRequest],
    now: datetime,
    staleness: timedelta,
) -> List[dict]:
    """
    Per-provider activity: average response time, ignored, completed and total requests.

    Response time is reviewed_at minus created_at, averaged over the requests
    that have both. Sorted by completed count, busiest first; ties keep provider order.
    """
    requests = list(requests)
    metrics = []
    for provider in providers:
        own = [r for r in requests if r.provider_id == provider.id]
        response_ms = [
            (ensure_aware(r.reviewed_at) - ensure_aware(r.created_at)) // timedelta(milliseconds=1)
            for r in own
            if r.reviewed_at is not None and r.created_at is not None
        ]
        metrics.append({
            "provider_id": provider.id,
            "name": provider.name,
            "role": provider.role.value,
            "avg_response_time_ms": sum(response_ms) / len(response_ms) if response_ms else None,
            "ignored_count": sum(1 for r in own if is_ignored(r, now, staleness)),
            "completed_count": sum(1 for r in own if r.status == RequestStatus.COMPLETED),
            "total_count": len(own),
        })
    return sorted(metrics, key=lambda m: m["completed_count"], reverse=True)

class ReportingService:
    """Loads repository snapshots for the admin reporting endpoints."""

    def __init__(
        self,
        requests: RequestRepository,
        ratings: RatingRepository,
        profiles: ProfileRepository,
        staleness_hours: int = 72,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.requests = requests
        self.ratings = ratings
        self.profiles = profiles
        self.staleness = timedelta(hours=staleness_hours)
        self.clock = clock

    async def summarize(self, kind: RequestKind = None, now: datetime = None) -> Dict[str, int]:
        requests = filter_by_range(await self.requests.list(), kind=kind)
        return summarize(requests, now or self.clock(), self.staleness)

    async def filter_by_range(self, start: datetime = None, end: datetime = None, category: str = None, kind: RequestKind = None) -> List[SessionRequest]:
        return filter_by_range(await self.requests.list(), start, end, category, kind)

    async def rating_feed(self, provider_id: str = None, reveal_anonymous: bool = True) -> List[dict]:
        return rating_feed(await self.requests.list(), await self.ratings.list(), provider_id, reveal_anonymous)

    async def average_rating(self, provider_id: str) -> Optional[float]:
        return average_rating(provider_id, await self.requests.list(), await self.ratings.list())

    async def activity_metrics(self, now: datetime = None) -> List[dict]:
        providers = await self.profiles.list(lambda p: p.is_provider)
        return activity_metrics(providers, await self.requests.list(), now or self.clock(), self.staleness)
