"""Pydantic schemas for API."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


# Galleries / images
class GalleryResponse(BaseModel):
    id: UUID
    uploader_name: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ImageResponse(BaseModel):
    id: UUID
    gallery_id: UUID
    image_url: str
    file_path: str
    created_at: datetime

    model_config = {"from_attributes": True}


class GalleryWithImagesResponse(GalleryResponse):
    images: list[ImageResponse] = []


class FeedResponse(BaseModel):
    version: int
    galleries: list[GalleryWithImagesResponse]


class FileFailureResponse(BaseModel):
    filename: str
    stage: str
    error: str
    path: str | None = None

    model_config = {"from_attributes": True}


class UploadResponse(BaseModel):
    gallery_id: UUID
    total: int
    paired: int
    complete: bool
    images: list[ImageResponse] = []
    failures: list[FileFailureResponse] = []
    orphan_paths: list[str] = []


class InconsistencyResponse(BaseModel):
    state: str
    cause: str
    image_id: UUID | None = None
    gallery_id: UUID | None = None
    paths: list[str] = []

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    object_removed: bool
    record_removed: bool
    paths: list[str] = []
    warnings: list[InconsistencyResponse] = []


class AuditResponse(BaseModel):
    gallery_id: UUID
    consistent: bool
    orphan_objects: list[str] = []
    missing_objects: list[str] = []


# Engagement
class LikeCountResponse(BaseModel):
    image_id: UUID
    likes: int


class CommentCreate(BaseModel):
    comment_text: str = Field(..., max_length=4000)
    commenter_name: str | None = Field(None, max_length=256)
    is_anonymous: bool = False


class CommentResponse(BaseModel):
    id: UUID
    image_id: UUID
    commenter_name: str
    comment_text: str
    is_anonymous: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str
    services: dict[str, str]
