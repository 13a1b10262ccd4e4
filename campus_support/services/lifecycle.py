"""
Request lifecycle engine.

Pending --decide--> Approved | Declined | Suggested
Suggested --decide--> Approved | Declined | Suggested
Suggested --student response--> Approved | Declined
Approved --complete--> Completed

Completed and Declined are terminal. Every successful transition writes one
notification to the other party; rating and deletion write none.
"""
from datetime import datetime
from typing import Callable, List, Optional
from campus_support.errors import AlreadyRated, IllegalTransition, PermissionDenied, ValidationError, VersionConflict
from campus_support.logger import logger, audit_logger
from campus_support.models import (
    Decision, Mode, OPEN_STATUSES, Report, RequestKind, RequestStatus, Role, SessionRequest,
)
from campus_support.services.notifications import NotificationRelay
from campus_support.services.repositories import ProfileRepository, ReportRepository, RequestRepository
from campus_support.utilities import generate_id, parse_datetime, utcnow

DEFAULT_DECLINE_REASON = "No reason provided"
STUDENT_DECLINED_SUGGESTION = "Suggested time declined by student"

class LifecycleEngine:
    """Validates and records every status change of a help-session request."""

    def __init__(
        self,
        requests: RequestRepository,
        profiles: ProfileRepository,
        reports: ReportRepository,
        relay: NotificationRelay,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.requests = requests
        self.profiles = profiles
        self.reports = reports
        self.relay = relay
        self.clock = clock

    ######################
    ### ACTOR CHECKS #####
    ######################

    async def _is_admin(self, actor_id: str) -> bool:
        actor = await self.profiles.find_by_id(actor_id)
        return actor is not None and actor.role == Role.ADMIN

    async def _ensure_reviewer(self, request: SessionRequest, actor_id: str):
        if actor_id != request.provider_id and not await self._is_admin(actor_id):
            raise PermissionDenied(f"{actor_id} cannot review request {request.id}")

    @staticmethod
    def _provider_label(request: SessionRequest) -> str:
        return "Counsellor" if request.kind == RequestKind.COUNSELLING else "Tutor"

    def _audit(self, event_type: str, actor_id: str, request: SessionRequest, **details):
        audit_logger.log_event(event_type, actor_id, request.id, {"status": request.status.value, **details})

    ######################
    ### TRANSITIONS ######
    ######################

    async def request_session(self, student_id: str, provider_id: str, details: dict = None) -> SessionRequest:
        """
        Create a Pending request from a student to a provider.

        `details` may carry category, module, mode, requested_time, urgent, anonymous and notes.
        Only counselling requests may be anonymous.
        An urgent ("need help now") request may omit requested_time; any other request must have one.

        Raises:
            ValidationError: unknown student or provider, suspended provider, or missing session time.
        """
        details = dict(details or {})
        student = await self.profiles.find_by_id(student_id)
        if student is None or student.role != Role.STUDENT:
            raise ValidationError(f"Unknown student: {student_id}")
        provider = await self.profiles.find_by_id(provider_id)
        if provider is None or not provider.is_provider:
            raise ValidationError(f"Unknown provider: {provider_id}")
        if provider.suspended:
            raise ValidationError(f"Provider {provider_id} is suspended and cannot take requests")

        urgent = bool(details.get("urgent", False))
        try:
            requested_time = parse_datetime(details.get("requested_time"))
        except ValueError:
            raise ValidationError(f"Invalid session time: {details.get('requested_time')}")
        if requested_time is None and not urgent:
            raise ValidationError("A session time is required unless the request is urgent")

        kind = RequestKind.COUNSELLING if provider.role == Role.COUNSELLOR else RequestKind.TUTORING
        anonymous = bool(details.get("anonymous", False))
        if anonymous and kind != RequestKind.COUNSELLING:
            raise ValidationError("Only counselling requests can be anonymous")

        request = await self.requests.create({
            "id": generate_id("req-"),
            "student_id": student.id,
            "provider_id": provider.id,
            "student_name": student.name,
            "provider_name": provider.name,
            "kind": kind,
            "category": details.get("category") or provider.category,
            "module": details.get("module"),
            "mode": details.get("mode") or Mode.ONLINE,
            "requested_time": requested_time,
            "urgent": urgent,
            "anonymous": anonymous,
            "notes": details.get("notes"),
            "status": RequestStatus.PENDING,
            "created_at": self.clock(),
        })
        await self.relay.notify(provider.id, f"New {request.kind.value} request from {request.provider_view().student_name}")
        self._audit("request_created", student.id, request, provider_id=provider.id)
        logger.info(f"Request {request.id} created by {student.id} for {provider.id}")
        return request

    async def decide(self, request_id: str, actor_id: str, decision, payload: dict = None, expected_version: int = None) -> SessionRequest:
        """
        Approve, decline or suggest a new time for an open request.

        Legal from Pending or Suggested only. The first decision stamps
        reviewed_at; every decision records reviewed_by.

        Raises:
            NotFound, PermissionDenied, IllegalTransition, ValidationError, VersionConflict
        """
        payload = dict(payload or {})
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision}")

        request = await self.requests.get(request_id)
        await self._ensure_reviewer(request, actor_id)
        if request.status not in OPEN_STATUSES:
            raise IllegalTransition(request.id, request.status.value, decision.value.lower())

        now = self.clock()
        patch = {"reviewed_by": actor_id}
        if request.reviewed_at is None:
            patch["reviewed_at"] = now

        if decision == Decision.APPROVE:
            patch["status"] = RequestStatus.APPROVED
            title = f"Your request to {request.provider_name} was approved"
        elif decision == Decision.DECLINE:
            reason = (payload.get("reason") or "").strip() or DEFAULT_DECLINE_REASON
            patch["status"] = RequestStatus.DECLINED
            patch["rejection_reason"] = reason
            title = f"Your request to {request.provider_name} was declined: {reason}"
        else:
            try:
                suggested_time = parse_datetime(payload.get("suggested_time"))
            except ValueError:
                raise ValidationError(f"Invalid suggested time: {payload.get('suggested_time')}")
            if suggested_time is None:
                raise ValidationError("A suggested time is required to suggest a new time")
            patch["status"] = RequestStatus.SUGGESTED
            patch["suggested_time"] = suggested_time
            title = f"{self._provider_label(request)} suggested a new time: {suggested_time.isoformat()}"

        updated = await self.requests.update(request.id, patch, expected_version=expected_version)
        await self.relay.notify(updated.student_id, title)
        self._audit("request_decided", actor_id, updated, decision=decision.value)
        logger.info(f"Request {updated.id} {decision.value.lower()} by {actor_id}")
        return updated

    async def respond_to_suggestion(self, request_id: str, student_id: str, accept: bool, expected_version: int = None) -> SessionRequest:
        """
        The student accepts or rejects the provider's suggested time.

        Accepting approves the request at the suggested time; rejecting declines it.
        """
        request = await self.requests.get(request_id)
        if request.student_id != student_id:
            raise PermissionDenied(f"{student_id} cannot respond to request {request.id}")
        if request.status != RequestStatus.SUGGESTED:
            raise IllegalTransition(request.id, request.status.value, "respond to a suggestion on")

        if accept:
            patch = {"status": RequestStatus.APPROVED, "requested_time": request.suggested_time}
            title = f"{request.provider_view().student_name} accepted the suggested time"
        else:
            patch = {"status": RequestStatus.DECLINED, "rejection_reason": STUDENT_DECLINED_SUGGESTION}
            title = f"{request.provider_view().student_name} declined the suggested time"

        updated = await self.requests.update(request.id, patch, expected_version=expected_version)
        await self.relay.notify(updated.provider_id, title)
        self._audit("suggestion_answered", student_id, updated, accepted=accept)
        return updated

    async def complete(self, request_id: str, report: dict, expected_version: int = None, actor_id: str = None) -> SessionRequest:
        """
        Close an approved session: store its report and mark the request Completed.

        `report` needs a summary; topics and follow_up are optional. The report's
        author is always the provider who ran the session; `actor_id` (default: that
        provider) is who submitted it and may also be an admin.

        Raises:
            NotFound, IllegalTransition (not Approved), PermissionDenied (actor is neither the provider nor an admin),
            ValidationError (missing summary), VersionConflict
        """
        report = dict(report or {})
        request = await self.requests.get(request_id)
        actor_id = actor_id or request.provider_id
        if actor_id != request.provider_id and not await self._is_admin(actor_id):
            raise PermissionDenied(f"{actor_id} cannot close request {request.id}")
        if request.status != RequestStatus.APPROVED:
            raise IllegalTransition(request.id, request.status.value, "complete")
        summary = (report.get("summary") or "").strip()
        if not summary:
            raise ValidationError("A session report needs a summary")

        now = self.clock()
        session_report = Report(
            id=generate_id("rep-"),
            request_id=request.id,
            author_id=request.provider_id,
            summary=summary,
            topics=report.get("topics"),
            follow_up=report.get("follow_up"),
            date=now,
        )
        updated = await self.requests.update(
            request.id,
            {"status": RequestStatus.COMPLETED, "completed_at": now},
            expected_version=expected_version,
        )
        await self.reports.create(session_report)
        await self.relay.notify(updated.student_id, "Session report submitted")
        self._audit("request_completed", actor_id, updated, report_id=session_report.id, author_id=session_report.author_id)
        logger.info(f"Request {updated.id} completed by {actor_id}")
        return updated

    async def rate(self, request_id: str, rating, comment: Optional[str] = None, rater_id: str = None) -> SessionRequest:
        """
        Attach the student's 1-5 rating to a completed request. A request is rated at most once.

        Raises:
            ValidationError (rating missing or outside 1-5), NotFound, PermissionDenied,
            IllegalTransition (not Completed), AlreadyRated
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be a whole number from 1 to 5")

        request = await self.requests.get(request_id)
        if rater_id is not None and rater_id != request.student_id:
            raise PermissionDenied(f"{rater_id} cannot rate request {request.id}")
        if request.status != RequestStatus.COMPLETED:
            raise IllegalTransition(request.id, request.status.value, "rate")
        if request.rating is not None:
            raise AlreadyRated(request.id)

        try:
            updated = await self.requests.update(
                request.id,
                {"rating": rating, "comment": comment, "rated_at": self.clock()},
                expected_version=request.version,
            )
        except VersionConflict:
            latest = await self.requests.get(request.id)
            if latest.rating is not None:
                raise AlreadyRated(request.id)
            raise
        self._audit("request_rated", request.student_id, updated, rating=rating)
        return updated

    async def delete(self, request_id: str, actor_id: str) -> SessionRequest:
        """Hard-delete a request. Admin only, irreversible, notifies nobody."""
        if not await self._is_admin(actor_id):
            raise PermissionDenied(f"{actor_id} is not an admin")
        removed = await self.requests.delete(request_id)
        self._audit("request_deleted", actor_id, removed)
        logger.info(f"Request {request_id} deleted by admin {actor_id}")
        return removed

    # Admin views call this cancel
    cancel = delete

    ######################
    ### QUERIES ##########
    ######################

    async def get_request(self, request_id: str) -> SessionRequest:
        return await self.requests.get(request_id)

    async def requests_for_student(self, student_id: str) -> List[SessionRequest]:
        return await self.requests.for_student(student_id)

    async def requests_for_provider(self, provider_id: str, status: RequestStatus = None) -> List[SessionRequest]:
        return await self.requests.for_provider(provider_id, status)

    async def requests_by_status(self, status: RequestStatus) -> List[SessionRequest]:
        return await self.requests.list(lambda r: r.status == status)
