from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from ....application.services.comment_service import CommentService
from ....core.dependencies import get_comment_service
from ....domain.models import MAX_PAGE, User
from ...api.dependencies import get_current_user
from ...api.schemas.comment import CommentCreatePayload, CommentUpdatePayload
from ...api.serializers import serialize_comment, serialize_pagination

router = APIRouter(prefix="/api/comments", tags=["Comments"])


@router.get("/product/{product_id}")
async def list_product_comments(
    product_id: str,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=100),
    service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    result = service.list_for_product(product_id, page=page, limit=limit)
    return {
        "comments": [serialize_comment(view) for view in result.items],
        "pagination": serialize_pagination(result, "totalComments"),
    }


@router.get("/user/{user_id}")
async def list_user_comments(
    user_id: str,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=100),
    service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    result = service.list_by_user(user_id, page=page, limit=limit)
    return {
        "comments": [serialize_comment(view) for view in result.items],
        "pagination": serialize_pagination(result, "totalComments"),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_comment(
    payload: CommentCreatePayload,
    user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    view = service.create_comment(payload.product_id, payload.text, user.id, payload.parent_comment)
    return {"message": "Comment created successfully", "comment": serialize_comment(view)}


@router.put("/{comment_id}")
async def update_comment(
    comment_id: str,
    payload: CommentUpdatePayload,
    user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    view = service.update_comment(comment_id, payload.text, user.id)
    return {"message": "Comment updated successfully", "comment": serialize_comment(view)}


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    service.delete_comment(comment_id, user.id)
    return {"message": "Comment deleted successfully"}


@router.post("/{comment_id}/like")
async def toggle_like(
    comment_id: str,
    user: User = Depends(get_current_user),
    service: CommentService = Depends(get_comment_service),
) -> Dict[str, Any]:
    result = service.toggle_like(comment_id, user.id)
    return {
        "message": "Like added" if result.is_liked else "Like removed",
        "isLiked": result.is_liked,
        "likeCount": result.count,
    }
