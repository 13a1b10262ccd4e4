import secrets
import time
from datetime import datetime, timezone
from typing import Optional, Union

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))

def generate_id(prefix: str = "") -> str:
    """
    Generate an entity id: prefix, millisecond timestamp in base36, random suffix.

    Apps sharing the store hold no common counter, so uniqueness comes from
    the random part rather than from a sequence.
    """
    return f"{prefix}{_to_base36(time.time_ns() // 1_000_000)}{secrets.token_hex(4)}"

def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)

def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with stored timestamps."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO-8601 string (a trailing Z is accepted) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))
