"""Галереи: лента, создание с файлами, дозагрузка, удаление, сверка с хранилищем."""
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from photowall.schemas import (
    AuditResponse,
    DeleteResponse,
    FeedResponse,
    FileFailureResponse,
    GalleryWithImagesResponse,
    ImageResponse,
    InconsistencyResponse,
    UploadResponse,
)
from photowall.services.feed import FeedAssembler, FeedEntry, FeedView, get_feed_assembler, get_feed_view
from photowall.services.media_lifecycle import (
    DeleteResult,
    MediaFile,
    MediaLifecycleManager,
    UploadResult,
    get_media_manager,
)

router = APIRouter(prefix="/api/v1", tags=["galleries"])


def entry_to_response(entry: FeedEntry) -> GalleryWithImagesResponse:
    return GalleryWithImagesResponse(
        id=entry.gallery.id,
        uploader_name=entry.gallery.uploader_name,
        created_at=entry.gallery.created_at,
        images=[ImageResponse.model_validate(i) for i in entry.images],
    )


def upload_to_response(result: UploadResult) -> UploadResponse:
    return UploadResponse(
        gallery_id=result.gallery_id,
        total=result.total,
        paired=result.paired,
        complete=result.ok,
        images=[ImageResponse.model_validate(i) for i in result.images],
        failures=[FileFailureResponse.model_validate(f) for f in result.failures],
        orphan_paths=result.orphan_paths,
    )


def delete_to_response(result: DeleteResult) -> DeleteResponse:
    return DeleteResponse(
        object_removed=result.object_removed,
        record_removed=result.record_removed,
        paths=result.paths,
        warnings=[InconsistencyResponse.model_validate(w) for w in result.warnings],
    )


async def _read_files(files: list[UploadFile] | None) -> list[MediaFile]:
    out = []
    for f in files or []:
        content = await f.read()
        out.append(MediaFile(filename=f.filename or "image", data=content, content_type=f.content_type))
    return out


@router.get("/feed", response_model=FeedResponse)
async def get_feed(view: FeedView = Depends(get_feed_view)):
    entries = await view.refresh()
    return FeedResponse(
        version=view.applied_version,
        galleries=[entry_to_response(e) for e in entries],
    )


@router.post("/galleries", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery(
    response: Response,
    uploader_name: str = Form(""),
    files: list[UploadFile] | None = File(None),
    manager: MediaLifecycleManager = Depends(get_media_manager),
):
    """Частичная загрузка отдаётся со статусом 207 и списком сбоев."""
    result = await manager.create_gallery(uploader_name, await _read_files(files))
    if not result.ok:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return upload_to_response(result)


@router.get("/galleries/{gallery_id}", response_model=GalleryWithImagesResponse)
async def get_gallery(
    gallery_id: UUID,
    assembler: FeedAssembler = Depends(get_feed_assembler),
):
    return entry_to_response(await assembler.get_gallery(gallery_id))


@router.post("/galleries/{gallery_id}/images", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def append_images(
    gallery_id: UUID,
    response: Response,
    files: list[UploadFile] | None = File(None),
    manager: MediaLifecycleManager = Depends(get_media_manager),
):
    result = await manager.append_images(gallery_id, await _read_files(files))
    if not result.ok:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return upload_to_response(result)


@router.delete("/galleries/{gallery_id}", response_model=DeleteResponse)
async def delete_gallery(
    gallery_id: UUID,
    response: Response,
    manager: MediaLifecycleManager = Depends(get_media_manager),
):
    result = await manager.delete_gallery(gallery_id)
    if not result.ok:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return delete_to_response(result)


@router.get("/galleries/{gallery_id}/audit", response_model=AuditResponse)
async def audit_gallery(
    gallery_id: UUID,
    manager: MediaLifecycleManager = Depends(get_media_manager),
):
    report = await manager.audit_gallery(gallery_id)
    return AuditResponse(
        gallery_id=report.gallery_id,
        consistent=report.consistent,
        orphan_objects=report.orphan_objects,
        missing_objects=report.missing_objects,
    )


@router.delete("/images/{image_id}", response_model=DeleteResponse)
async def delete_image(
    image_id: UUID,
    response: Response,
    path: str = Query(..., min_length=1, description="Ключ объекта в бакете (file_path)"),
    manager: MediaLifecycleManager = Depends(get_media_manager),
):
    result = await manager.delete_image(image_id, path)
    if not result.ok:
        response.status_code = status.HTTP_207_MULTI_STATUS
    return delete_to_response(result)
