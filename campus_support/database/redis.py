from starlette.concurrency import run_in_threadpool
from typing import Optional, Tuple
from campus_support.database.store import NamespaceStore
import redis

class RedisStore(NamespaceStore):
    """
    Store backend keeping each namespace under one Redis key, with its revision
    under a companion `<key>:revision` key.

    Writes run in a WATCH/MULTI transaction on the revision key, so a write
    that raced another one is rejected by Redis instead of overwriting it.

    Attributes:
        redis_host (str): Redis server hostname/IP
        redis_port (int): Redis server port
        redis_password (str): Redis server password
        key_prefix (str): Prefix added to every namespace key
        client (redis.StrictRedis): Redis client instance
    """

    def __init__(self, redis_host: str, redis_port: int, redis_password: Optional[str] = None, key_prefix: str = "campus_support", client=None):
        self.redis_host = redis_host
        self.redis_port = redis_port
        self.redis_password = redis_password
        self.key_prefix = key_prefix

        # decode_responses=True so payloads come back as str, not bytes
        self.client = client or redis.StrictRedis(
            host=self.redis_host,
            port=self.redis_port,
            password=self.redis_password,
            decode_responses=True
        )

    def _key(self, namespace: str) -> str:
        return f"{self.key_prefix}:{namespace}"

    def _revision_key(self, namespace: str) -> str:
        return f"{self._key(namespace)}:revision"

    def _read_sync(self, namespace: str) -> Tuple[Optional[str], int]:
        payload, revision = self.client.mget(self._key(namespace), self._revision_key(namespace))
        return payload, int(revision or 0)

    def _write_sync(self, namespace: str, payload: str, expected_revision: Optional[int]) -> bool:
        revision_key = self._revision_key(namespace)
        while True:
            with self.client.pipeline() as pipe:
                try:
                    pipe.watch(revision_key)
                    current = int(pipe.get(revision_key) or 0)
                    if expected_revision is not None and current != expected_revision:
                        return False
                    pipe.multi()
                    pipe.set(self._key(namespace), payload)
                    pipe.set(revision_key, current + 1)
                    pipe.execute()
                    return True
                except redis.WatchError:
                    if expected_revision is not None:
                        return False
                    # Unconditional writes just go again on top of the newer revision

    async def _read_raw(self, namespace: str) -> Tuple[Optional[str], int]:
        """
        Retrieve a namespace payload and its revision from Redis.

        Returns:
            tuple: The payload (None if absent) and the revision (0 if absent)
        """
        return await run_in_threadpool(self._read_sync, namespace)

    async def _write_raw(self, namespace: str, payload: str, expected_revision: Optional[int] = None) -> bool:
        """
        Store a namespace payload in Redis, replacing the previous one.
        """
        return await run_in_threadpool(self._write_sync, namespace, payload, expected_revision)
