"""Document backend on Redis.

Layout per collection (``<p>`` is the configured key prefix):

- ``<p>:<collection>:<id>``: hash, one JSON-encoded value per field
- ``<p>:<collection>:index``: sorted set of ids scored by the ordering
  timestamp in integer microseconds
- ``<p>:<collection>:unique:<field>``: hash of claimed value -> id
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any, AsyncIterator, Optional
from uuid import UUID

from redis.asyncio import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError
from redis.retry import Retry

from contentdesk.config import Settings
from contentdesk.errors import DuplicateKeyError, StorageUnavailable
from contentdesk.storage.base import Collection, Document, DocumentStore, Where, is_multi
from contentdesk.utils.clock import to_micros

logger = logging.getLogger(__name__)


def create_redis_client(settings: Settings) -> Redis:
    retry = Retry(ExponentialBackoff(), retries=3)
    client = Redis.from_url(
        settings.redis_url,
        decode_responses=True,
        retry=retry,
        retry_on_error=[ConnectionError, TimeoutError],
        socket_connect_timeout=5,
        socket_timeout=5,
    )
    logger.info("Redis client initialized with retry logic")
    return client


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    raise TypeError(f"Cannot encode {type(value).__name__}")


def _encode(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _normalize(value: Any) -> Any:
    """Bring a Python value into the shape it has after a JSON round trip."""
    return json.loads(_encode(value))


def _unique_member(value: Any) -> str:
    return str(_normalize(value))


def _decode(data: dict[str, str]) -> Optional[Document]:
    if not data:
        return None
    return {key: json.loads(value) for key, value in data.items()}


# Both scripts write only while the record hash still exists, so a
# concurrent delete can never leave a partial record behind.
INCREMENT_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return nil
end
redis.call('HINCRBY', KEYS[1], ARGV[1], ARGV[2])
return redis.call('HGETALL', KEYS[1])
"""

# KEYS: record hash, index zset. ARGV: id, score ('' keeps the current one), field/value pairs
UPDATE_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return 0
end
redis.call('HSET', KEYS[1], unpack(ARGV, 3))
if ARGV[2] ~= '' then
    redis.call('ZADD', KEYS[2], ARGV[2], ARGV[1])
end
return 1
"""


class RedisDocumentStore(DocumentStore):
    def __init__(self, client: Redis, prefix: str = "contentdesk"):
        self.client = client
        self.prefix = prefix

    def _key(self, collection: Collection, doc_id: Any) -> str:
        return f"{self.prefix}:{collection.name}:{doc_id}"

    def _index_key(self, collection: Collection) -> str:
        return f"{self.prefix}:{collection.name}:index"

    def _unique_key(self, collection: Collection, field: str) -> str:
        return f"{self.prefix}:{collection.name}:unique:{field}"

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        try:
            yield
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"Redis unavailable: {type(e).__name__}: {e}")
            raise StorageUnavailable("Document store connection failed") from e

    async def _load(self, collection: Collection, doc_id: Any) -> Optional[Document]:
        return _decode(await self.client.hgetall(self._key(collection, doc_id)))

    async def _claim(self, collection: Collection, field: str, value: Any, doc_id: str) -> None:
        unique_key = self._unique_key(collection, field)
        member = _unique_member(value)
        if await self.client.hsetnx(unique_key, member, doc_id):
            return
        owner = await self.client.hget(unique_key, member)
        if owner != doc_id:
            raise DuplicateKeyError(field, member)

    async def _release(self, collection: Collection, claims: list[tuple[str, Any]]) -> None:
        for field, value in claims:
            await self.client.hdel(self._unique_key(collection, field), _unique_member(value))

    async def insert(self, collection: Collection, document: Document) -> Document:
        doc_id = str(document["id"])
        claimed: list[tuple[str, Any]] = []
        async with self._guard():
            try:
                for field in collection.unique:
                    if document.get(field) is not None:
                        await self._claim(collection, field, document[field], doc_id)
                        claimed.append((field, document[field]))

                pipe = self.client.pipeline(transaction=True)
                pipe.hset(
                    self._key(collection, doc_id),
                    mapping={key: _encode(value) for key, value in document.items()},
                )
                pipe.zadd(self._index_key(collection), {doc_id: to_micros(document[collection.order_by])})
                await pipe.execute()
            except Exception:
                await self._release(collection, claimed)
                raise
            return await self._load(collection, doc_id)

    async def get(self, collection: Collection, doc_id: UUID) -> Optional[Document]:
        async with self._guard():
            return await self._load(collection, doc_id)

    def _matches(self, document: Document, where: Optional[Where]) -> bool:
        for key, expected in (where or {}).items():
            actual = document.get(key)
            if is_multi(expected):
                if actual not in [_normalize(v) for v in expected]:
                    return False
            elif actual != _normalize(expected):
                return False
        return True

    async def find(self, collection: Collection, where: Optional[Where] = None) -> list[Document]:
        async with self._guard():
            ids = await self.client.zrevrange(self._index_key(collection), 0, -1)
            documents = []
            for doc_id in ids:
                document = await self._load(collection, doc_id)
                if document is not None and self._matches(document, where):
                    documents.append(document)
            return documents

    async def find_one(self, collection: Collection, where: Where) -> Optional[Document]:
        if len(where) == 1:
            (field, value), = where.items()
            if field in collection.unique and not is_multi(value):
                async with self._guard():
                    owner = await self.client.hget(self._unique_key(collection, field), _unique_member(value))
                    return await self._load(collection, owner) if owner else None
        return await super().find_one(collection, where)

    async def update(self, collection: Collection, doc_id: UUID, changes: Document) -> Optional[Document]:
        key_id = str(doc_id)
        async with self._guard():
            current = await self._load(collection, key_id)
            if current is None:
                return None
            if not changes:
                return current

            claimed: list[tuple[str, Any]] = []
            released: list[tuple[str, Any]] = []
            try:
                for field in collection.unique:
                    if field in changes and _normalize(changes[field]) != current.get(field):
                        await self._claim(collection, field, changes[field], key_id)
                        claimed.append((field, changes[field]))
                        if current.get(field) is not None:
                            released.append((field, current[field]))

                score = to_micros(changes[collection.order_by]) if collection.order_by in changes else ""
                args = [key_id, score]
                for key, value in changes.items():
                    args.extend((key, _encode(value)))
                written = await self.client.eval(
                    UPDATE_SCRIPT,
                    2,
                    self._key(collection, key_id),
                    self._index_key(collection),
                    *args,
                )
            except Exception:
                await self._release(collection, claimed)
                raise

            if not written:
                # Deleted since it was loaded
                await self._release(collection, claimed)
                return None
            await self._release(collection, released)
            return await self._load(collection, key_id)

    async def increment(self, collection: Collection, doc_id: UUID, field: str, amount: int = 1) -> Optional[Document]:
        async with self._guard():
            flat = await self.client.eval(INCREMENT_SCRIPT, 1, self._key(collection, doc_id), field, amount)
            if not flat:
                return None
            return _decode(dict(zip(flat[::2], flat[1::2])))

    async def delete(self, collection: Collection, doc_id: UUID) -> Optional[Document]:
        key_id = str(doc_id)
        async with self._guard():
            document = await self._load(collection, key_id)
            if document is None:
                return None
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(self._key(collection, key_id))
            pipe.zrem(self._index_key(collection), key_id)
            for field in collection.unique:
                if document.get(field) is not None:
                    pipe.hdel(self._unique_key(collection, field), _unique_member(document[field]))
            await pipe.execute()
            return document

    async def count(self, collection: Collection) -> int:
        async with self._guard():
            return int(await self.client.zcard(self._index_key(collection)))

    async def sum(self, collection: Collection, field: str) -> int:
        documents = await self.find(collection)
        return sum(int(document.get(field) or 0) for document in documents)

    async def initialize(self) -> None:
        await self.ping()
        logger.info("Redis document store reachable")

    async def ping(self) -> None:
        async with self._guard():
            await self.client.ping()

    async def close(self) -> None:
        await self.client.aclose()
