"""Лайки и комментарии. Голосующий определяется заголовком X-Voter-Token."""
from uuid import UUID

from fastapi import APIRouter, Depends, Header, status

from photowall.schemas import CommentCreate, CommentResponse, LikeCountResponse
from photowall.services.engagement import EngagementTracker, get_engagement_tracker

router = APIRouter(prefix="/api/v1/images", tags=["engagement"])


def get_voter_token(x_voter_token: str = Header(..., alias="X-Voter-Token")) -> str:
    """Клиентский токен, не аутентификация: его можно сбросить или подделать."""
    return x_voter_token


@router.get("/{image_id}/likes", response_model=LikeCountResponse)
async def get_likes(
    image_id: UUID,
    tracker: EngagementTracker = Depends(get_engagement_tracker),
):
    return LikeCountResponse(image_id=image_id, likes=await tracker.count_likes(image_id))


@router.post("/{image_id}/likes", response_model=LikeCountResponse, status_code=status.HTTP_201_CREATED)
async def like_image(
    image_id: UUID,
    voter_token: str = Depends(get_voter_token),
    tracker: EngagementTracker = Depends(get_engagement_tracker),
):
    await tracker.like(image_id, voter_token)
    return LikeCountResponse(image_id=image_id, likes=await tracker.count_likes(image_id))


@router.delete("/{image_id}/likes", response_model=LikeCountResponse)
async def unlike_image(
    image_id: UUID,
    voter_token: str = Depends(get_voter_token),
    tracker: EngagementTracker = Depends(get_engagement_tracker),
):
    await tracker.unlike(image_id, voter_token)
    return LikeCountResponse(image_id=image_id, likes=await tracker.count_likes(image_id))


@router.get("/{image_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    image_id: UUID,
    tracker: EngagementTracker = Depends(get_engagement_tracker),
):
    return [CommentResponse.model_validate(c) for c in await tracker.list_comments(image_id)]


@router.post("/{image_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    image_id: UUID,
    body: CommentCreate,
    tracker: EngagementTracker = Depends(get_engagement_tracker),
):
    comment = await tracker.add_comment(
        image_id,
        body.comment_text,
        commenter_name=body.commenter_name,
        is_anonymous=body.is_anonymous,
    )
    return CommentResponse.model_validate(comment)
