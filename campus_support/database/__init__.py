from functools import lru_cache
from campus_support.config import get_settings
from campus_support.database.store import NamespaceStore, MemoryStore
from campus_support.logger import logger

@lru_cache()
def get_store() -> NamespaceStore:
    """
    Use this function as a dependency to get the shared store.
    Tests override it with a MemoryStore.
    """
    settings = get_settings()
    backend = settings.store_backend.lower()
    if backend == "memory":
        store = MemoryStore()
    elif backend == "sql":
        from campus_support.database.database import SqlStore
        store = SqlStore(settings.db_url)
    elif backend == "redis":
        from campus_support.database.redis import RedisStore
        store = RedisStore(settings.redis_host, settings.redis_port, settings.redis_password)
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend}")
    logger.info(f"Using {backend} store backend")
    return store
