import os
import sqlite3
from datetime import datetime, date
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

os.environ.setdefault("USE_SQLITE", "true")
os.environ.setdefault("SQLITE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("STORAGE_BACKEND", "sql")
os.environ.setdefault("NEWSLETTER_SEND_DELAY_SECONDS", "0")

# Avoid deprecated sqlite3 default datetime adapters in Python 3.12+.
sqlite3.register_adapter(datetime, lambda value: value.isoformat(sep=" "))
sqlite3.register_adapter(date, lambda value: value.isoformat())

from contentdesk.bootstrap import bootstrap  # noqa: E402
from contentdesk.config import Settings  # noqa: E402
from contentdesk.database import Database  # noqa: E402
from contentdesk.main import create_app  # noqa: E402
from contentdesk.services.container import build_services  # noqa: E402
from contentdesk.storage.redis_store import INCREMENT_SCRIPT, UPDATE_SCRIPT, RedisDocumentStore  # noqa: E402
from contentdesk.storage.sql import SqlDocumentStore  # noqa: E402

# Small ceilings so oversize uploads stay cheap to build
TEST_MAX_BYTES = 64 * 1024

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the document store uses.

    Behaves like a client created with ``decode_responses=True``.
    """

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.zsets: dict[str, dict[str, int]] = {}
        self.closed = False

    async def hset(self, key, mapping):
        bucket = self.hashes.setdefault(key, {})
        added = sum(1 for field in mapping if field not in bucket)
        bucket.update({field: str(value) for field, value in mapping.items()})
        return added

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    async def hsetnx(self, key, field, value):
        bucket = self.hashes.setdefault(key, {})
        if field in bucket:
            return 0
        bucket[field] = str(value)
        return 1

    async def hdel(self, key, *fields):
        bucket = self.hashes.get(key, {})
        removed = 0
        for field in fields:
            if bucket.pop(field, None) is not None:
                removed += 1
        if key in self.hashes and not bucket:
            del self.hashes[key]
        return removed

    def pipeline(self, transaction=True):
        return FakePipeline(self)

    async def eval(self, script, numkeys, *args):
        keys = list(args[:numkeys])
        argv = [str(arg) for arg in args[numkeys:]]
        scripts = {INCREMENT_SCRIPT: self._increment_if_exists, UPDATE_SCRIPT: self._update_if_exists}
        return scripts[script](keys, argv)

    def _increment_if_exists(self, keys, argv):
        bucket = self.hashes.get(keys[0])
        if not bucket:
            return None
        field, amount = argv
        bucket[field] = str(int(bucket.get(field, "0")) + int(amount))
        return [item for pair in bucket.items() for item in pair]

    def _update_if_exists(self, keys, argv):
        bucket = self.hashes.get(keys[0])
        if not bucket:
            return 0
        member, score, *pairs = argv
        bucket.update(zip(pairs[::2], pairs[1::2]))
        if score:
            self.zsets.setdefault(keys[1], {})[member] = int(score)
        return 1

    async def zadd(self, key, mapping):
        zset = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def zrevrange(self, key, start, end):
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: (item[1], item[0]), reverse=True)
        stop = None if end == -1 else end + 1
        return [member for member, _ in members[start:stop]]

    async def zrem(self, key, *members):
        zset = self.zsets.get(key, {})
        return sum(1 for member in members if zset.pop(member, None) is not None)

    async def zcard(self, key):
        return len(self.zsets.get(key, {}))

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None or self.zsets.pop(key, None) is not None:
                removed += 1
        return removed

    async def ping(self):
        return True

    async def aclose(self):
        self.closed = True


class FakePipeline:
    """Queues commands and runs them back to back on ``execute``.

    The fake's commands never yield to the event loop, so a queued batch
    runs without interleaving, like a MULTI/EXEC block.
    """

    def __init__(self, client):
        self.client = client
        self.commands = []

    def __getattr__(self, name):
        method = getattr(self.client, name)

        def queue(*args, **kwargs):
            self.commands.append((method, args, kwargs))
            return self

        return queue

    async def execute(self):
        commands, self.commands = self.commands, []
        return [await method(*args, **kwargs) for method, args, kwargs in commands]


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        app_env="development",
        use_sqlite=True,
        sqlite_url=f"sqlite+aiosqlite:///{tmp_path / 'data' / 'test.db'}",
        storage_backend="sql",
        uploads_dir=tmp_path / "uploads",
        image_max_bytes=TEST_MAX_BYTES,
        pdf_max_bytes=TEST_MAX_BYTES,
        newsletter_send_delay_seconds=0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture(params=["sql", "redis"])
async def store(request, settings):
    """A freshly initialized store for each backend."""
    if request.param == "redis":
        document_store = RedisDocumentStore(FakeRedis(), prefix="test")
    else:
        document_store = SqlDocumentStore(Database(settings))
    await document_store.initialize()
    yield document_store
    await document_store.close()


@pytest_asyncio.fixture
async def services(settings):
    container = build_services(settings)
    await bootstrap(container)
    yield container
    await container.close()


@pytest.fixture
def app(settings, services):
    return create_app(settings, services)


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
