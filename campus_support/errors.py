"""
Typed errors raised by the store, repositories and lifecycle engine.
Each error carries the HTTP status the API layer answers with.
"""

class SupportError(Exception):
    """Base class for every error the core raises to its callers."""
    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

class ValidationError(SupportError):
    """Malformed or missing input, e.g. a rating outside 1-5."""
    status_code = 422

class NotFound(SupportError):
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id

class IllegalTransition(SupportError):
    """The request's current status does not allow the attempted transition."""
    status_code = 409

    def __init__(self, request_id: str, current: str, action: str):
        super().__init__(f"Cannot {action} request {request_id} while it is {current}")
        self.request_id = request_id
        self.current = current
        self.action = action

class AlreadyRated(SupportError):
    status_code = 409

    def __init__(self, request_id: str):
        super().__init__(f"Request {request_id} has already been rated")
        self.request_id = request_id

class VersionConflict(SupportError):
    """Optimistic concurrency check failed: someone else wrote the entity first."""
    status_code = 409

    def __init__(self, entity_id: str, expected: int, actual: int):
        super().__init__(f"Entity {entity_id} is at version {actual}, expected {expected}")
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual

class WriteConflict(SupportError):
    """A namespace kept changing under a read-modify-write until the store gave up retrying."""
    status_code = 409

    def __init__(self, namespace: str, attempts: int):
        super().__init__(f"Namespace {namespace} changed during {attempts} write attempts; try again")
        self.namespace = namespace
        self.attempts = attempts

class PermissionDenied(SupportError):
    status_code = 403

class StorageCorrupt(SupportError):
    """
    A namespace payload failed to parse.
    Never reaches callers of the store: the store logs it and reads the namespace as empty.
    """
    status_code = 500
