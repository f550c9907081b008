"""Pytest fixtures: db engine, stores, services, async client."""
from collections.abc import Sequence

import pytest
from httpx import ASGITransport, AsyncClient

from photowall.database import make_engine, make_session_maker
from photowall.errors import ObjectStoreError
from photowall.main import app
from photowall.models import Base
from photowall.services.engagement import EngagementTracker, get_engagement_tracker
from photowall.services.feed import FeedAssembler, FeedView, get_feed_assembler, get_feed_view
from photowall.services.media_lifecycle import MediaFile, MediaLifecycleManager, get_media_manager
from photowall.services.object_store import ObjectStore
from photowall.services.record_store import RecordStore

BOOM = b"boom"


class MemoryObjectStore(ObjectStore):
    """Object store in a dict. Payload BOOM fails on store; fail_delete fails deletes."""

    def __init__(self, base_url: str = "http://cdn.test/valentine-images"):
        self.base_url = base_url
        self.objects: dict[str, bytes] = {}
        self.store_calls: list[str] = []
        self.delete_calls: list[list[str]] = []
        self.fail_delete = False

    async def store(self, path: str, data: bytes, content_type: str = "application/octet-stream") -> None:
        self.store_calls.append(path)
        if data == BOOM:
            raise ObjectStoreError(f"store {path} failed", [path])
        self.objects[path] = data

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    async def batch_delete(self, paths: Sequence[str]) -> None:
        self.delete_calls.append(list(paths))
        if self.fail_delete:
            raise ObjectStoreError("delete failed", list(paths))
        for p in paths:
            self.objects.pop(p, None)

    async def list_paths(self, prefix: str) -> list[str]:
        return sorted(p for p in self.objects if p.startswith(prefix))


class Ticker:
    """Deterministic clock: every reading is one second after the previous one."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        now = self.now
        self.now += self.step
        return now


def media(*names: str, data: bytes = b"\x89PNG...") -> list[MediaFile]:
    return [MediaFile(filename=n, data=data) for n in names]


@pytest.fixture
async def engine(tmp_path):
    eng = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def records(engine) -> RecordStore:
    return RecordStore(make_session_maker(engine))


@pytest.fixture
def objects() -> MemoryObjectStore:
    return MemoryObjectStore()


@pytest.fixture
def manager(records, objects) -> MediaLifecycleManager:
    return MediaLifecycleManager(records, objects, concurrency=2, clock=Ticker())


@pytest.fixture
def assembler(records) -> FeedAssembler:
    return FeedAssembler(records)


@pytest.fixture
def feed_view(assembler, manager) -> FeedView:
    view = FeedView(assembler)
    manager.add_listener(view.invalidate)
    return view


@pytest.fixture
def tracker(records) -> EngagementTracker:
    return EngagementTracker(records)


@pytest.fixture
async def async_client(manager, assembler, feed_view, tracker):
    app.dependency_overrides[get_media_manager] = lambda: manager
    app.dependency_overrides[get_feed_assembler] = lambda: assembler
    app.dependency_overrides[get_feed_view] = lambda: feed_view
    app.dependency_overrides[get_engagement_tracker] = lambda: tracker
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
