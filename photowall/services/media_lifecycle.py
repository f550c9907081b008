"""Жизненный цикл галерей и изображений: создание, дозагрузка, удаление.

Запись в БД и объект в MinIO: два независимых ресурса без общей транзакции.
Согласованность держится только порядком шагов:
  - создание: сначала объект, потом запись (запись без объекта не появляется);
  - удаление: сначала объекты, потом записи (пути ещё известны);
  - при сбое предпочитаем «осиротевший объект» «зависшей записи».
Автоматических повторов и откатов нет: частичные сбои возвращаются
вызывающему как значения (UploadResult / DeleteResult / AuditReport).
"""
import asyncio
import logging
import mimetypes
import time
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID

from photowall.config import settings
from photowall.errors import (
    ALREADY_ABSENT,
    PRESENT_OBJECT_ONLY,
    PRESENT_RECORD_ONLY,
    FileFailure,
    GalleryNotFoundError,
    ImageNotFoundError,
    InconsistencyWarning,
    ObjectStoreError,
    PartialUploadError,
    RecordStoreError,
    ValidationError,
)
from photowall.models import Image
from photowall.services.object_store import ObjectStore, get_object_store
from photowall.services.record_store import RecordStore, get_record_store

logger = logging.getLogger(__name__)


@dataclass
class MediaFile:
    filename: str
    data: bytes
    content_type: str | None = None

    def guess_content_type(self) -> str:
        if self.content_type:
            return self.content_type
        return mimetypes.guess_type(self.filename)[0] or "application/octet-stream"


@dataclass
class StoredObject:
    path: str
    created_at: datetime


@dataclass
class UploadResult:
    gallery_id: UUID
    total: int
    images: list[Image] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
    orphan_paths: list[str] = field(default_factory=list)

    @property
    def paired(self) -> int:
        return len(self.images)

    @property
    def ok(self) -> bool:
        return self.paired == self.total and not self.failures

    @property
    def error(self) -> PartialUploadError | None:
        if self.ok:
            return None
        stored = self.paired + len(self.orphan_paths)
        return PartialUploadError(
            self.gallery_id,
            self.total,
            self.paired,
            stored,
            self.failures,
            self.orphan_paths,
        )

    def raise_for_error(self) -> None:
        err = self.error
        if err is not None:
            raise err


@dataclass
class DeleteResult:
    object_removed: bool
    record_removed: bool
    paths: list[str] = field(default_factory=list)
    warnings: list[InconsistencyWarning] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.object_removed and self.record_removed


@dataclass
class AuditReport:
    gallery_id: UUID
    orphan_objects: list[str] = field(default_factory=list)
    missing_objects: list[str] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.orphan_objects and not self.missing_objects

    @property
    def warnings(self) -> list[InconsistencyWarning]:
        out = []
        if self.orphan_objects:
            out.append(InconsistencyWarning(
                PRESENT_OBJECT_ONLY,
                "objects without image records",
                gallery_id=self.gallery_id,
                paths=self.orphan_objects,
            ))
        if self.missing_objects:
            out.append(InconsistencyWarning(
                PRESENT_RECORD_ONLY,
                "image records without objects",
                gallery_id=self.gallery_id,
                paths=self.missing_objects,
            ))
        return out


def _validate_files(files: Sequence[MediaFile]) -> list[MediaFile]:
    files = list(files)
    if not files:
        raise ValidationError("select at least one image")
    return files


def _extension(filename: str) -> str:
    return Path(filename or "").suffix.lstrip(".").lower() or "bin"


class MediaLifecycleManager:
    def __init__(
        self,
        records: RecordStore,
        objects: ObjectStore,
        concurrency: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.records = records
        self.objects = objects
        self.concurrency = max(1, concurrency or settings.upload_concurrency)
        self._clock = clock
        self._listeners: list[Callable[[], None]] = []

    def add_listener(self, callback: Callable[[], None]) -> None:
        """callback вызывается после каждой операции, изменившей хоть одно хранилище."""
        self._listeners.append(callback)

    def _changed(self) -> None:
        for cb in self._listeners:
            cb()

    def make_path(self, gallery_id: UUID, filename: str, now: float | None = None) -> str:
        """{galleryId}/{ms}-{token}.{ext}; токен делает путь уникальным и в пределах одной миллисекунды."""
        now_ms = int((self._clock() if now is None else now) * 1000)
        token = uuid.uuid4().hex[:12]
        return f"{gallery_id}/{now_ms}-{token}.{_extension(filename)}"

    def _timestamp(self, now: float | None = None) -> datetime:
        return datetime.fromtimestamp(self._clock() if now is None else now, timezone.utc)

    def _image_row(self, gallery_id: UUID, stored: StoredObject) -> dict:
        return {
            "gallery_id": gallery_id,
            "image_url": self.objects.public_url(stored.path),
            "file_path": stored.path,
            "created_at": stored.created_at,
        }

    async def _store_one(
        self,
        sem: asyncio.Semaphore,
        abort: asyncio.Event | None,
        gallery_id: UUID,
        f: MediaFile,
    ) -> StoredObject | FileFailure:
        async with sem:
            if abort is not None and abort.is_set():
                return FileFailure(f.filename, "skipped", "not attempted after an earlier failure")
            # Время начала загрузки задаёт и путь, и created_at записи
            now = self._clock()
            path = self.make_path(gallery_id, f.filename, now)
            try:
                await self.objects.store(path, f.data, f.guess_content_type())
            except ObjectStoreError as e:
                if abort is not None:
                    abort.set()
                return FileFailure(f.filename, "store", str(e), path)
            return StoredObject(path, self._timestamp(now))

    async def create_gallery(self, uploader_name: str, files: Sequence[MediaFile]) -> UploadResult:
        name = (uploader_name or "").strip()
        if not name:
            raise ValidationError("uploader name is required")
        files = _validate_files(files)

        # Ошибка здесь пробрасывается как есть, ещё ничего не создано
        gallery = await self.records.insert(
            "galleries", {"uploader_name": name, "created_at": self._timestamp()}
        )
        result = UploadResult(gallery_id=gallery.id, total=len(files))
        logger.info("Created gallery %s for %r, uploading %d files", gallery.id, name, len(files))

        # Первый сбой загрузки останавливает ещё не начатые файлы
        sem = asyncio.Semaphore(self.concurrency)
        abort = asyncio.Event()
        outcomes = await asyncio.gather(*(self._store_one(sem, abort, gallery.id, f) for f in files))
        stored: list[tuple[MediaFile, StoredObject]] = []
        for f, outcome in zip(files, outcomes):
            if isinstance(outcome, FileFailure):
                result.failures.append(outcome)
            else:
                stored.append((f, outcome))

        if stored:
            rows = [self._image_row(gallery.id, obj) for _, obj in stored]
            try:
                result.images = await self.records.batch_insert("images", rows)
            except RecordStoreError as e:
                result.orphan_paths = [obj.path for _, obj in stored]
                result.failures.extend(FileFailure(f.filename, "insert", str(e), obj.path) for f, obj in stored)

        if not result.ok:
            logger.warning(
                "Gallery %s: %d of %d files paired, orphan objects: %s",
                gallery.id, result.paired, result.total, result.orphan_paths,
            )
        self._changed()
        return result

    async def _append_one(self, sem: asyncio.Semaphore, gallery_id: UUID, f: MediaFile) -> Image | FileFailure:
        outcome = await self._store_one(sem, None, gallery_id, f)
        if isinstance(outcome, FileFailure):
            return outcome
        try:
            return await self.records.insert("images", self._image_row(gallery_id, outcome))
        except RecordStoreError as e:
            return FileFailure(f.filename, "insert", str(e), outcome.path)

    async def append_images(self, gallery_id: UUID, files: Sequence[MediaFile]) -> UploadResult:
        """Каждый файл: отдельная пара (объект, запись); сбой одного не мешает остальным."""
        files = _validate_files(files)
        if not await self.records.query("galleries", {"id": gallery_id}):
            raise GalleryNotFoundError(gallery_id)

        sem = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(*(self._append_one(sem, gallery_id, f) for f in files))
        result = UploadResult(gallery_id=gallery_id, total=len(files))
        for outcome in outcomes:
            if isinstance(outcome, FileFailure):
                result.failures.append(outcome)
                if outcome.stage == "insert" and outcome.path:
                    result.orphan_paths.append(outcome.path)
            else:
                result.images.append(outcome)

        logger.info("Gallery %s: appended %d of %d files", gallery_id, result.paired, result.total)
        if result.failures:
            logger.warning("Gallery %s append failures: %s", gallery_id, result.failures)
        if result.images or result.orphan_paths:
            self._changed()
        return result

    async def delete_image(self, image_id: UUID, path: str) -> DeleteResult:
        """Сначала объект, затем запись. Запись удаляется, даже если объект удалить не вышло.

        path должен совпадать с file_path записи: чужой объект под этим id не удаляется.
        """
        found = await self.records.query("images", {"id": image_id})
        if not found:
            raise ImageNotFoundError(image_id)
        if path != found[0].file_path:
            raise ValidationError(f"path does not belong to image {image_id}")

        object_error: ObjectStoreError | None = None
        record_error: RecordStoreError | None = None
        deleted = 0
        try:
            await self.objects.batch_delete([path])
        except ObjectStoreError as e:
            object_error = e
        try:
            deleted = await self.records.delete("images", {"id": image_id})
        except RecordStoreError as e:
            record_error = e

        result = DeleteResult(
            object_removed=object_error is None,
            record_removed=record_error is None and deleted > 0,
            paths=[path],
        )
        if object_error is not None:
            result.warnings.append(InconsistencyWarning(
                PRESENT_OBJECT_ONLY, str(object_error), image_id=image_id, paths=[path],
            ))
        if record_error is not None:
            result.warnings.append(InconsistencyWarning(
                PRESENT_RECORD_ONLY, str(record_error), image_id=image_id, paths=[path],
            ))
        elif deleted == 0:
            result.warnings.append(InconsistencyWarning(
                ALREADY_ABSENT, "image record was removed by another request", image_id=image_id, paths=[path],
            ))
        for w in result.warnings:
            logger.warning("Image %s left %s: %s", image_id, w.state, w.cause)
        if result.object_removed or result.record_removed:
            logger.info("Deleted image %s (%s)", image_id, path)
            self._changed()
        return result

    async def delete_gallery(self, gallery_id: UUID) -> DeleteResult:
        """Объекты удаляются, пока записи (и значит пути) ещё существуют; затем запись галереи,
        каскад БД убирает images/comments/likes. Сбой удаления объектов не блокирует удаление записи."""
        images = await self.records.query("images", {"gallery_id": gallery_id}, ("created_at", "id"))
        paths = [img.file_path for img in images]

        result = DeleteResult(object_removed=True, record_removed=False, paths=paths)
        object_error: ObjectStoreError | None = None
        if paths:
            try:
                await self.objects.batch_delete(paths)
            except ObjectStoreError as e:
                object_error = e
                result.object_removed = False
                result.warnings.append(InconsistencyWarning(
                    PRESENT_OBJECT_ONLY, str(e), gallery_id=gallery_id, paths=e.paths or paths,
                ))

        try:
            deleted = await self.records.delete("galleries", {"id": gallery_id})
        except RecordStoreError as e:
            some_objects_gone = bool(paths) and (
                object_error is None or len(object_error.paths) < len(paths)
            )
            if not some_objects_gone:
                raise
            result.warnings.append(InconsistencyWarning(
                PRESENT_RECORD_ONLY, str(e), gallery_id=gallery_id, paths=paths,
            ))
            logger.warning("Gallery %s: objects removed but record delete failed: %s", gallery_id, e)
            self._changed()
            return result

        if deleted == 0:
            if not paths:
                raise GalleryNotFoundError(gallery_id)
            # Объекты удалены нами, а запись уже убрал параллельный запрос
            result.warnings.append(InconsistencyWarning(
                ALREADY_ABSENT, "gallery record was removed by another request", gallery_id=gallery_id, paths=paths,
            ))
            logger.warning("Gallery %s record already gone after deleting %d objects", gallery_id, len(paths))
            self._changed()
            return result
        result.record_removed = True
        if object_error is not None:
            logger.warning("Gallery %s deleted, orphan objects left: %s", gallery_id, object_error.paths)
        logger.info("Deleted gallery %s with %d images", gallery_id, len(paths))
        self._changed()
        return result

    async def audit_gallery(self, gallery_id: UUID) -> AuditReport:
        """Сверяет объекты под префиксом галереи с записями images. Только отчёт, без исправлений."""
        images = await self.records.query("images", {"gallery_id": gallery_id})
        recorded = {img.file_path for img in images}
        present = set(await self.objects.list_paths(f"{gallery_id}/"))
        report = AuditReport(
            gallery_id=gallery_id,
            orphan_objects=sorted(present - recorded),
            missing_objects=sorted(recorded - present),
        )
        if not report.consistent:
            logger.warning(
                "Gallery %s inconsistent: orphan objects %s, missing objects %s",
                gallery_id, report.orphan_objects, report.missing_objects,
            )
        return report


_manager: MediaLifecycleManager | None = None


def get_media_manager() -> MediaLifecycleManager:
    global _manager
    if _manager is None:
        _manager = MediaLifecycleManager(get_record_store(), get_object_store())
    return _manager
