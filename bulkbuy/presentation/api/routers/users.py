from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query

from ....application.services.product_service import ProductService
from ....application.services.user_service import UserService
from ....core.dependencies import get_product_service, get_user_service
from ....domain.models import MAX_PAGE, User
from ...api.dependencies import get_current_user
from ...api.schemas.user import ProfileUpdatePayload
from ...api.serializers import (
    iso,
    serialize_online_user,
    serialize_pagination,
    serialize_product,
    serialize_profile,
    serialize_public_user,
)

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.get("/profile")
async def get_profile(
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    return {"user": serialize_profile(service.get_profile(user.id))}


@router.put("/profile")
async def update_profile(
    payload: ProfileUpdatePayload,
    user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    updated = service.update_profile(user.id, name=payload.name, email=payload.email, avatar=payload.avatar)
    return {"message": "Profile updated successfully", "user": serialize_profile(updated)}


@router.get("")
async def list_users(
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=100),
    search: Optional[str] = Query(default=None),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    result = service.list_users(search=search, page=page, limit=limit)
    return {
        "users": [serialize_public_user(user) for user in result.items],
        "pagination": serialize_pagination(result, "totalUsers"),
    }


@router.get("/online")
async def list_online_users(
    limit: int = Query(default=50, ge=1, le=100),
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    users = service.list_online(limit)
    return {"users": [serialize_online_user(user) for user in users], "count": len(users)}


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    return {"user": serialize_public_user(service.get_public(user_id))}


@router.get("/{user_id}/stats")
async def get_user_stats(
    user_id: str,
    service: UserService = Depends(get_user_service),
) -> Dict[str, Any]:
    stats = service.get_stats(user_id)
    return {
        "user": {
            "id": stats.user.id,
            "name": stats.user.name,
            "avatar": stats.user.avatar,
            "createdAt": iso(stats.user.created_at),
        },
        "stats": {
            "totalProductsCreated": stats.total_products_created,
            "totalProductsInterested": stats.total_products_interested,
            "totalComments": stats.total_comments,
            "activeProducts": stats.active_products,
            "completedProducts": stats.completed_products,
        },
    }


@router.get("/{user_id}/products")
async def list_user_products(
    user_id: str,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=100),
    status: Optional[Literal["active", "completed", "cancelled"]] = Query(default=None),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    result = service.list_by_owner(user_id, status=status, page=page, limit=limit)
    return {
        "products": [serialize_product(view) for view in result.items],
        "pagination": serialize_pagination(result, "totalProducts"),
    }


@router.get("/{user_id}/interested")
async def list_interested_products(
    user_id: str,
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=100),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    result = service.list_interested(user_id, page=page, limit=limit)
    return {
        "products": [serialize_product(view) for view in result.items],
        "pagination": serialize_pagination(result, "totalProducts"),
    }
