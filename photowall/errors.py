"""Классификация ошибок жизненного цикла галерей.

Ошибки без побочных эффектов (валидация, первый insert галереи) пробрасываются.
Ошибки после хотя бы одного успешного шага понижаются до PartialUploadError /
InconsistencyWarning и возвращаются вызывающему как значения.
"""
from dataclasses import dataclass
from uuid import UUID

PRESENT_OBJECT_ONLY = "present-object-only"
PRESENT_RECORD_ONLY = "present-record-only"
# Запись исчезла между проверкой и удалением (параллельное удаление)
ALREADY_ABSENT = "already-absent"


class PhotowallError(Exception):
    pass


class ValidationError(PhotowallError, ValueError):
    """Некорректный ввод; отклоняется до любого сетевого вызова."""


class NotFoundError(ValidationError):
    pass


class GalleryNotFoundError(NotFoundError):
    def __init__(self, gallery_id: UUID):
        super().__init__(f"gallery {gallery_id} not found")
        self.gallery_id = gallery_id


class ImageNotFoundError(NotFoundError):
    def __init__(self, image_id: UUID):
        super().__init__(f"image {image_id} not found")
        self.image_id = image_id


class RecordStoreError(PhotowallError):
    pass


class ObjectStoreError(PhotowallError):
    def __init__(self, message: str, paths: list[str] | None = None):
        super().__init__(message)
        self.paths = list(paths or [])


@dataclass
class FileFailure:
    filename: str
    stage: str  # store | insert | skipped
    error: str
    path: str | None = None


class PartialUploadError(PhotowallError):
    def __init__(
        self,
        gallery_id: UUID,
        total: int,
        paired: int,
        stored: int,
        failures: list[FileFailure],
        orphan_paths: list[str] | None = None,
    ):
        super().__init__(f"{paired} of {total} files uploaded to gallery {gallery_id}")
        self.gallery_id = gallery_id
        self.total = total
        self.paired = paired
        self.stored = stored
        self.failures = failures
        self.orphan_paths = list(orphan_paths or [])


class InconsistencyWarning(UserWarning):
    """Операция прошла на одной стороне (объекты / записи), но не на другой."""

    def __init__(
        self,
        state: str,
        cause: str,
        *,
        image_id: UUID | None = None,
        gallery_id: UUID | None = None,
        paths: list[str] | None = None,
    ):
        super().__init__(f"{state}: {cause}")
        self.state = state
        self.cause = cause
        self.image_id = image_id
        self.gallery_id = gallery_id
        self.paths = list(paths or [])
