"""JSON shapes returned by the HTTP routes."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ...domain.models import CommentView, Page, ProductView, User, UserSummary


def iso(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def serialize_pagination(page: Page[Any], total_key: str) -> Dict[str, Any]:
    return {
        "currentPage": page.page,
        "totalPages": page.total_pages,
        total_key: page.total,
        "hasNextPage": page.has_next,
        "hasPrevPage": page.has_prev,
    }


def serialize_user_summary(summary: Optional[UserSummary]) -> Optional[Dict[str, Any]]:
    if summary is None:
        return None
    return {
        "_id": summary.id,
        "name": summary.name,
        "email": summary.email,
        "avatar": summary.avatar,
    }


def serialize_auth_user(user: User, *, include_presence: bool = False) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "isEmailVerified": user.is_email_verified,
    }
    if include_presence:
        data["isOnline"] = user.is_online
        data["lastActivity"] = iso(user.last_activity)
    return data


def serialize_profile(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "role": user.role,
        "createdAt": iso(user.created_at),
    }


def serialize_public_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "createdAt": iso(user.created_at),
    }


def serialize_online_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "avatar": user.avatar,
        "isOnline": user.is_online,
        "lastActivity": iso(user.last_activity),
    }


def serialize_product(view: ProductView) -> Dict[str, Any]:
    product = view.product
    return {
        "_id": product.id,
        "title": product.title,
        "description": product.description,
        "price": product.price,
        "image": product.image,
        "category": product.category,
        "estimatedPurchaseDate": iso(product.estimated_purchase_date),
        "createdBy": serialize_user_summary(view.owner),
        "interestedUsers": [serialize_user_summary(summary) for summary in view.interested],
        "status": product.status,
        "minQuantity": product.min_quantity,
        "maxQuantity": product.max_quantity,
        "currentQuantity": product.current_quantity,
        "tags": list(product.tags),
        "location": product.location,
        "hasMinimumInterest": product.has_minimum_interest,
        "progressPercentage": product.progress_percentage,
        "createdAt": iso(product.created_at),
        "updatedAt": iso(product.updated_at),
    }


def serialize_comment(view: CommentView) -> Dict[str, Any]:
    comment = view.comment
    product: Any = comment.product_id
    if view.product_title is not None:
        product = {"_id": comment.product_id, "title": view.product_title}
    if view.replies_expanded:
        replies = [serialize_comment(reply) for reply in view.replies]
    else:
        replies = list(comment.replies)
    return {
        "_id": comment.id,
        "text": comment.text,
        "productId": product,
        "userId": serialize_user_summary(view.author),
        "parentComment": comment.parent_comment,
        "replies": replies,
        "likes": list(comment.likes),
        "likeCount": comment.like_count,
        "isEdited": comment.is_edited,
        "editedAt": iso(comment.edited_at),
        "createdAt": iso(comment.created_at),
        "updatedAt": iso(comment.updated_at),
    }
