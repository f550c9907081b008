"""Лайки и комментарии к изображениям.

Лайк привязан к voter_token, случайной строке, которую клиент генерирует один раз
и хранит у себя. Это слабая идентичность: токен можно сбросить и лайкнуть снова,
подделать чужой тоже можно. Проверки «уже лайкал» на сервере нет.
"""
import logging
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from photowall.config import settings
from photowall.errors import ImageNotFoundError, ValidationError
from photowall.models import Comment, Like
from photowall.services.record_store import RecordStore, get_record_store

logger = logging.getLogger(__name__)


def _require_token(voter_token: str) -> str:
    token = (voter_token or "").strip()
    if not token:
        raise ValidationError("voter token is required")
    return token


class EngagementTracker:
    def __init__(self, records: RecordStore, anonymous_name: str | None = None):
        self.records = records
        self.anonymous_name = anonymous_name or settings.anonymous_name

    async def _require_image(self, image_id: UUID) -> None:
        """Неизвестное изображение: 404 до записи, а не нарушение внешнего ключа."""
        if not await self.records.count("images", {"id": image_id}):
            raise ImageNotFoundError(image_id)

    async def like(self, image_id: UUID, voter_token: str) -> Like:
        token = _require_token(voter_token)
        await self._require_image(image_id)
        return await self.records.insert("likes", {"image_id": image_id, "voter_token": token})

    async def unlike(self, image_id: UUID, voter_token: str) -> int:
        token = _require_token(voter_token)
        await self._require_image(image_id)
        return await self.records.delete("likes", {"image_id": image_id, "voter_token": token})

    async def count_likes(self, image_id: UUID) -> int:
        await self._require_image(image_id)
        return await self.records.count("likes", {"image_id": image_id})

    async def add_comment(
        self,
        image_id: UUID,
        comment_text: str,
        commenter_name: str | None = None,
        is_anonymous: bool = False,
    ) -> Comment:
        text = (comment_text or "").strip()
        if not text:
            raise ValidationError("comment text is required")
        name = (commenter_name or "").strip()
        if is_anonymous:
            name = self.anonymous_name
        elif not name:
            raise ValidationError("commenter name is required unless posting anonymously")
        await self._require_image(image_id)
        return await self.records.insert(
            "comments",
            {
                "image_id": image_id,
                "comment_text": text,
                "commenter_name": name,
                "is_anonymous": is_anonymous,
            },
        )

    async def list_comments(self, image_id: UUID) -> list[Comment]:
        await self._require_image(image_id)
        return await self.records.query("comments", {"image_id": image_id}, ("-created_at", "-id"))


@dataclass
class LikeState:
    liked: bool
    count: int


class LikeBackend(Protocol):
    """EngagementTracker в процессе или PhotowallClient поверх HTTP."""

    async def like(self, image_id: UUID, voter_token: str): ...

    async def unlike(self, image_id: UUID, voter_token: str): ...


@dataclass
class LikeSession:
    """Состояние «я лайкнул» живёт только в памяти сессии.

    После перезапуска клиента флаги теряются, хотя строки likes в БД остаются.
    """
    tracker: LikeBackend
    voter_token: str
    liked: dict[UUID, bool] = field(default_factory=dict)

    def has_liked(self, image_id: UUID) -> bool:
        return self.liked.get(image_id, False)

    async def toggle(self, image_id: UUID, current_count: int) -> LikeState:
        if self.has_liked(image_id):
            await self.tracker.unlike(image_id, self.voter_token)
            self.liked[image_id] = False
            return LikeState(liked=False, count=max(0, current_count - 1))
        await self.tracker.like(image_id, self.voter_token)
        self.liked[image_id] = True
        return LikeState(liked=True, count=current_count + 1)


_tracker: EngagementTracker | None = None


def get_engagement_tracker() -> EngagementTracker:
    global _tracker
    if _tracker is None:
        _tracker = EngagementTracker(get_record_store())
    return _tracker
