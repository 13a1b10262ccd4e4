"""
Typed collections layered on the namespaced store.

A repository keeps its entities under one key of one namespace, as a JSON
object mapping id to document in insertion order. Updates are shallow-merge
patches applied in a single read-modify-write cycle, so one entity is never
left half-updated; two overlapping cycles from different processes can still
lose one of the writes unless the caller passes `expected_version`.
"""
from pydantic import BaseModel, ValidationError as PydanticValidationError
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar, Union
from campus_support.database.store import NamespaceStore
from campus_support.errors import NotFound, ValidationError, VersionConflict
from campus_support.logger import logger
from campus_support.models import Notification, Profile, Rating, Report, SessionRequest, Video
from campus_support.utilities import generate_id

T = TypeVar("T", bound=BaseModel)

def _format_errors(exc: PydanticValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'value'}: {err['msg']}" for err in exc.errors()
    )

class Repository(Generic[T]):
    """Create/find/update/delete over one collection of `model` documents."""

    def __init__(self, store: NamespaceStore, namespace: str, key: str, model: Type[T], id_prefix: str, entity_name: str = None):
        self.store = store
        self.namespace = namespace
        self.key = key
        self.model = model
        self.id_prefix = id_prefix
        self.entity_name = entity_name or model.__name__

    @staticmethod
    def _as_mapping(value: Any) -> Dict[str, dict]:
        # Older front-ends stored some collections as arrays
        if isinstance(value, dict):
            return value
        if isinstance(value, list):
            return {doc["id"]: doc for doc in value if isinstance(doc, dict) and doc.get("id")}
        return {}

    def _validate(self, data: dict) -> T:
        try:
            return self.model.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid {self.entity_name}: {_format_errors(e)}")

    def _parse_stored(self, doc: dict) -> Optional[T]:
        try:
            return self.model.model_validate(doc)
        except PydanticValidationError as e:
            doc_id = doc.get('id') if isinstance(doc, dict) else None
            logger.warning(f"Skipping unreadable {self.entity_name} {doc_id}: {_format_errors(e)}")
            return None

    async def _mutate(self, mutate: Callable[[Dict[str, dict]], Any]) -> Any:
        """Run `mutate` on the collection inside one store read-modify-write cycle and return its result."""
        outcome = {}

        def apply(current):
            docs = self._as_mapping(current)
            outcome["result"] = mutate(docs)
            return docs

        await self.store.update(self.namespace, self.key, apply, default={})
        return outcome["result"]

    async def create(self, entity: Union[T, dict]) -> T:
        """Store a new entity, generating its id when absent."""
        data = entity.model_dump() if isinstance(entity, BaseModel) else dict(entity)
        if not data.get("id"):
            data["id"] = generate_id(self.id_prefix)
        data["version"] = 1
        created = self._validate(data)

        def insert(docs):
            if created.id in docs:
                raise ValidationError(f"{self.entity_name} {created.id} already exists")
            docs[created.id] = created.model_dump(mode="json")
            return created

        return await self._mutate(insert)

    async def list(self, predicate: Callable[[T], bool] = None) -> List[T]:
        """All entities in storage order, optionally filtered."""
        docs = self._as_mapping(await self.store.get(self.namespace, self.key, {}))
        entities = [e for e in (self._parse_stored(doc) for doc in docs.values()) if e is not None]
        if predicate is None:
            return entities
        return [e for e in entities if predicate(e)]

    async def find_by_id(self, entity_id: str) -> Optional[T]:
        docs = self._as_mapping(await self.store.get(self.namespace, self.key, {}))
        doc = docs.get(entity_id)
        return self._parse_stored(doc) if doc is not None else None

    async def get(self, entity_id: str) -> T:
        """Like find_by_id, but raises NotFound."""
        entity = await self.find_by_id(entity_id)
        if entity is None:
            raise NotFound(self.entity_name, entity_id)
        return entity

    async def update(self, entity_id: str, patch: dict, expected_version: int = None) -> T:
        """
        Shallow-merge `patch` into the stored entity and bump its version.

        Raises:
            NotFound: no entity with this id.
            ValidationError: the patch names unknown fields or produces an invalid entity.
            VersionConflict: `expected_version` is given and does not match the stored version.
        """
        unknown = set(patch) - set(self.model.model_fields)
        if unknown or "id" in patch or "version" in patch:
            bad = sorted(unknown | ({"id", "version"} & set(patch)))
            raise ValidationError(f"Cannot update {self.entity_name} fields: {', '.join(bad)}")

        def apply(docs):
            doc = docs.get(entity_id)
            if doc is None:
                raise NotFound(self.entity_name, entity_id)
            current = self._validate(doc)
            if expected_version is not None and current.version != expected_version:
                raise VersionConflict(entity_id, expected_version, current.version)
            merged = {**current.model_dump(), **patch, "version": current.version + 1}
            updated = self._validate(merged)
            docs[entity_id] = updated.model_dump(mode="json")
            return updated

        return await self._mutate(apply)

    async def delete(self, entity_id: str) -> T:
        """Remove an entity for good and return what was removed."""
        def remove(docs):
            doc = docs.pop(entity_id, None)
            if doc is None:
                raise NotFound(self.entity_name, entity_id)
            return self._validate(doc)

        return await self._mutate(remove)

class ProfileRepository(Repository[Profile]):
    def __init__(self, store: NamespaceStore, namespace: str):
        super().__init__(store, namespace, "profiles", Profile, "usr-", "Profile")

class RequestRepository(Repository[SessionRequest]):
    def __init__(self, store: NamespaceStore, namespace: str):
        super().__init__(store, namespace, "requests", SessionRequest, "req-", "Request")

    async def for_student(self, student_id: str) -> List[SessionRequest]:
        return await self.list(lambda r: r.student_id == student_id)

    async def for_provider(self, provider_id: str, status=None) -> List[SessionRequest]:
        return await self.list(lambda r: r.provider_id == provider_id and (status is None or r.status == status))

class RatingRepository(Repository[Rating]):
    def __init__(self, store: NamespaceStore, namespace: str):
        super().__init__(store, namespace, "ratings", Rating, "rt-", "Rating")

class ReportRepository(Repository[Report]):
    def __init__(self, store: NamespaceStore, namespace: str):
        super().__init__(store, namespace, "reports", Report, "rep-", "Report")

    async def for_request(self, request_id: str) -> Optional[Report]:
        matches = await self.list(lambda r: r.request_id == request_id)
        return matches[0] if matches else None

class NotificationRepository(Repository[Notification]):
    def __init__(self, store: NamespaceStore, namespace: str):
        super().__init__(store, namespace, "notifications", Notification, "note-", "Notification")

    async def append(self, notification: Notification, max_entries: int = 0) -> Notification:
        """Insert a notification, dropping the oldest entries beyond `max_entries` (0 keeps everything)."""
        def insert(docs):
            docs[notification.id] = notification.model_dump(mode="json")
            if max_entries and len(docs) > max_entries:
                for stale_id in list(docs)[:len(docs) - max_entries]:
                    del docs[stale_id]
            return notification

        return await self._mutate(insert)

class VideoRepository(Repository[Video]):
    def __init__(self, store: NamespaceStore, namespace: str):
        super().__init__(store, namespace, "videos", Video, "vid-", "Video")

    async def for_provider(self, provider_id: str) -> List[Video]:
        return await self.list(lambda v: v.provider_id == provider_id)
