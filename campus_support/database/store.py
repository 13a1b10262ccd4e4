"""
Namespaced key-value store shared by every role's front-end.

A namespace is a single JSON document mapping string keys to values, stored
together with a revision number that every write bumps. `set` replaces the
whole document (last writer wins). `update` is a compare-and-swap: it writes
only if the revision it read is still current, and otherwise re-reads and
re-applies the mutation, so overlapping read-modify-write cycles never
silently drop one another.
"""
import json
from typing import Any, Callable, Dict, Optional, Tuple
from campus_support.errors import StorageCorrupt, WriteConflict
from campus_support.logger import logger

class NamespaceStore:
    """
    Base class for store backends.

    Subclasses only move raw payload strings in and out of their medium by
    implementing `_read_raw` and `_write_raw`; encoding, decoding, retries and
    corruption recovery live here so every backend behaves the same.
    """

    # Read-modify-write cycles per `update` before giving up with WriteConflict
    max_attempts = 10

    async def _read_raw(self, namespace: str) -> Tuple[Optional[str], int]:
        """Return the payload and its revision; an absent namespace is (None, 0)."""
        raise NotImplementedError

    async def _write_raw(self, namespace: str, payload: str, expected_revision: Optional[int] = None) -> bool:
        """
        Store `payload` and bump the revision.

        With `expected_revision` the write happens only if the stored revision
        still equals it; returns False when another writer got there first.
        """
        raise NotImplementedError

    def _decode(self, namespace: str, payload: Optional[str]) -> Dict[str, Any]:
        if payload is None:
            return {}
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise StorageCorrupt(f"Namespace {namespace} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise StorageCorrupt(f"Namespace {namespace} does not hold a JSON object")
        return data

    @staticmethod
    def _encode(data: Dict[str, Any]) -> str:
        return json.dumps(data, default=str)

    async def _load(self, namespace: str) -> Tuple[Dict[str, Any], int]:
        payload, revision = await self._read_raw(namespace)
        try:
            return self._decode(namespace, payload), revision
        except StorageCorrupt as e:
            logger.warning(f"{e.detail}; reading it as empty")
            return {}, revision

    async def load_namespace(self, namespace: str) -> Dict[str, Any]:
        """Read the whole namespace. Absent or corrupt namespaces read as empty."""
        data, _ = await self._load(namespace)
        return data

    async def save_namespace(self, namespace: str, data: Dict[str, Any]):
        """Overwrite the whole namespace."""
        await self._write_raw(namespace, self._encode(data))

    async def get(self, namespace: str, key: str, default: Any = None) -> Any:
        data = await self.load_namespace(namespace)
        return data.get(key, default)

    async def set(self, namespace: str, key: str, value: Any):
        data = await self.load_namespace(namespace)
        data[key] = value
        await self.save_namespace(namespace, data)

    async def update(self, namespace: str, key: str, mutate: Callable[[Any], Any], default: Any = None) -> Any:
        """
        Read-modify-write one key: `mutate` receives the current value and returns the new one.

        If another writer changes the namespace in between, `mutate` runs again
        on the fresh value, so it must not depend on state from earlier calls.
        If `mutate` raises, nothing is written.

        Raises:
            WriteConflict: the namespace changed on every one of `max_attempts` tries.
        """
        for attempt in range(1, self.max_attempts + 1):
            data, revision = await self._load(namespace)
            value = mutate(data.get(key, default))
            data[key] = value
            if await self._write_raw(namespace, self._encode(data), expected_revision=revision):
                return value
            logger.info(f"Namespace {namespace} changed since revision {revision}; retrying ({attempt}/{self.max_attempts})")
        raise WriteConflict(namespace, self.max_attempts)

class MemoryStore(NamespaceStore):
    """
    In-process backend holding one serialized payload per namespace.

    Payloads are kept as strings so readers never share objects with writers,
    the same as with the persistent backends.
    """

    def __init__(self):
        self._namespaces: Dict[str, Tuple[str, int]] = {}

    async def _read_raw(self, namespace: str) -> Tuple[Optional[str], int]:
        return self._namespaces.get(namespace, (None, 0))

    async def _write_raw(self, namespace: str, payload: str, expected_revision: Optional[int] = None) -> bool:
        _, revision = self._namespaces.get(namespace, (None, 0))
        if expected_revision is not None and revision != expected_revision:
            return False
        self._namespaces[namespace] = (payload, revision + 1)
        return True
