from typing import Callable, List, Optional
from datetime import datetime, timezone
from campus_support.models import Notification
from campus_support.services.repositories import NotificationRepository
from campus_support.utilities import generate_id, utcnow
from campus_support.logger import logger

class NotificationRelay:
    """
    Append-only log of messages addressed to students and providers.

    Storage keeps insertion order; `list_for` returns newest first for display.
    Entries are never edited and readers never delete them.
    """

    def __init__(self, repository: NotificationRepository, max_entries: int = 0, clock: Callable[[], datetime] = utcnow):
        self.repository = repository
        self.max_entries = max_entries
        self.clock = clock

    async def notify(self, recipient_id: Optional[str], title: str) -> Notification:
        notification = Notification(
            id=generate_id("note-"),
            recipient_id=recipient_id,
            title=title,
            created_at=self.clock()
        )
        await self.repository.append(notification, self.max_entries)
        logger.info(f"Notification for {recipient_id or 'everyone'}: {title}")
        return notification

    async def list_for(self, recipient_id: str, include_broadcast: bool = True) -> List[Notification]:
        """Notifications addressed to `recipient_id` (and broadcasts), most recent first."""
        notes = await self.repository.list(
            lambda n: n.recipient_id == recipient_id or (include_broadcast and n.recipient_id is None)
        )
        # Reverse first so entries sharing a timestamp also come out newest first
        notes.reverse()
        return sorted(notes, key=lambda n: n.created_at or datetime.min.replace(tzinfo=timezone.utc), reverse=True)
