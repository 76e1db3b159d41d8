from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, Query, status

from ....application.services.product_service import ProductService
from ....core.dependencies import get_product_service
from ....domain.models import MAX_PAGE, User
from ...api.dependencies import get_current_user
from ...api.schemas.product import ProductCreatePayload, ProductUpdatePayload
from ...api.serializers import serialize_pagination, serialize_product

router = APIRouter(prefix="/api/products", tags=["Products"])

SortOption = Literal["newest", "oldest", "price-low", "price-high"]


@router.get("")
async def list_products(
    page: int = Query(default=1, ge=1, le=MAX_PAGE),
    limit: int = Query(default=10, ge=1, le=100),
    category: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    sort: SortOption = Query(default="newest"),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    result = service.list_products(category=category, search=search, sort=sort, page=page, limit=limit)
    return {
        "products": [serialize_product(view) for view in result.items],
        "pagination": serialize_pagination(result, "totalProducts"),
    }


@router.get("/user/{user_id}")
async def list_user_products(
    user_id: str,
    service: ProductService = Depends(get_product_service),
) -> List[Dict[str, Any]]:
    result = service.list_by_owner(user_id, page=1, limit=100)
    return [serialize_product(view) for view in result.items]


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    return serialize_product(service.get_product(product_id))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreatePayload,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    view = service.create_product(
        user.id,
        title=payload.title,
        description=payload.description,
        price=payload.price,
        category=payload.category,
        estimated_purchase_date=payload.estimated_purchase_date,
        image=payload.image,
        min_quantity=payload.min_quantity,
        max_quantity=payload.max_quantity,
        tags=payload.tags,
        location=payload.location,
    )
    return {"message": "Product created successfully", "product": serialize_product(view)}


@router.put("/{product_id}")
async def update_product(
    product_id: str,
    payload: ProductUpdatePayload,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    view = service.update_product(product_id, user.id, payload.model_dump(exclude_unset=True))
    return {"message": "Product updated successfully", "product": serialize_product(view)}


@router.delete("/{product_id}")
async def delete_product(
    product_id: str,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    service.delete_product(product_id, user.id)
    return {"message": "Product deleted successfully"}


@router.post("/{product_id}/interest")
async def toggle_interest(
    product_id: str,
    user: User = Depends(get_current_user),
    service: ProductService = Depends(get_product_service),
) -> Dict[str, Any]:
    result = service.toggle_interest(product_id, user.id)
    return {
        "message": "Interest added" if result.is_interested else "Interest removed",
        "product": serialize_product(result.view),
        "isInterested": result.is_interested,
        "interestedCount": result.count,
    }
