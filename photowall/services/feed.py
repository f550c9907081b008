"""Лента: все галереи (новые первыми), у каждой: её изображения (новые первыми)."""
import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from photowall.config import settings
from photowall.errors import GalleryNotFoundError
from photowall.models import Gallery, Image
from photowall.services.record_store import RecordStore, get_record_store

logger = logging.getLogger(__name__)

# id: вторичный ключ, чтобы порядок при равных created_at не плавал между чтениями
GALLERY_ORDER = ("-created_at", "-id")
IMAGE_ORDER = ("-created_at", "-id")


@dataclass
class FeedEntry:
    gallery: Gallery
    images: list[Image]


class FeedAssembler:
    def __init__(self, records: RecordStore, concurrency: int | None = None):
        self.records = records
        self.concurrency = max(1, concurrency or settings.upload_concurrency)

    async def _images(self, sem: asyncio.Semaphore, gallery: Gallery) -> FeedEntry:
        async with sem:
            images = await self.records.query("images", {"gallery_id": gallery.id}, IMAGE_ORDER)
        return FeedEntry(gallery=gallery, images=images)

    async def list_feed(self) -> list[FeedEntry]:
        """Полная перезагрузка, без инкрементальных обновлений."""
        galleries = await self.records.query("galleries", order_by=GALLERY_ORDER)
        sem = asyncio.Semaphore(self.concurrency)
        return list(await asyncio.gather(*(self._images(sem, g) for g in galleries)))

    async def get_gallery(self, gallery_id: UUID) -> FeedEntry:
        found = await self.records.query("galleries", {"id": gallery_id})
        if not found:
            raise GalleryNotFoundError(gallery_id)
        images = await self.records.query("images", {"gallery_id": gallery_id}, IMAGE_ORDER)
        return FeedEntry(gallery=found[0], images=images)


class FeedView:
    """Кэш ленты с монотонной версией.

    Каждый refresh() берёт новую версию; результат применяется, только если
    он новее уже применённого. Медленный ранний запрос не затрёт свежие данные.
    invalidate() подключается слушателем к MediaLifecycleManager.
    """

    def __init__(self, assembler: FeedAssembler):
        self.assembler = assembler
        self.version = 0
        self.applied_version = -1
        self.entries: list[FeedEntry] = []
        self._subscribers: list[Callable[[int, list[FeedEntry]], None]] = []

    def subscribe(self, callback: Callable[[int, list[FeedEntry]], None]) -> None:
        self._subscribers.append(callback)

    def invalidate(self) -> None:
        self.version += 1

    @property
    def stale(self) -> bool:
        return self.applied_version < self.version

    async def refresh(self) -> list[FeedEntry]:
        self.version += 1
        requested = self.version
        entries = await self.assembler.list_feed()
        if requested > self.applied_version:
            self.entries = entries
            self.applied_version = requested
            for cb in self._subscribers:
                cb(requested, entries)
        else:
            logger.debug("Discarding feed v%d, v%d already applied", requested, self.applied_version)
        return self.entries

    async def current(self) -> list[FeedEntry]:
        if self.stale:
            return await self.refresh()
        return self.entries


_assembler: FeedAssembler | None = None
_feed_view: FeedView | None = None


def get_feed_assembler() -> FeedAssembler:
    global _assembler
    if _assembler is None:
        _assembler = FeedAssembler(get_record_store())
    return _assembler


def get_feed_view() -> FeedView:
    global _feed_view
    if _feed_view is None:
        _feed_view = FeedView(get_feed_assembler())
    return _feed_view
