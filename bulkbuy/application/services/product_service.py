from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional

from ...core.clock import Clock, utcnow
from ...domain.errors import Forbidden, NotFound, ValidationError
from ...domain.identifiers import ensure_object_id
from ...domain.models import (
    PRODUCT_CATEGORIES,
    PRODUCT_SORTS,
    InterestToggle,
    Page,
    Product,
    ProductQuery,
    ProductView,
)
from ...domain.ports.persistence import CommentRepository, ProductRepository, UserRepository

logger = logging.getLogger(__name__)

SEARCH_MAX_LENGTH = 100

_CATEGORY_LOOKUP = {category.lower(): category for category in PRODUCT_CATEGORIES}

_EDITABLE_FIELDS = {
    "title",
    "description",
    "price",
    "image",
    "category",
    "estimated_purchase_date",
    "status",
    "min_quantity",
    "max_quantity",
    "tags",
    "location",
}


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ProductService:
    """Group-buy listings: browsing, ownership-guarded edits and interest toggles."""

    def __init__(
        self,
        products: ProductRepository,
        users: UserRepository,
        comments: CommentRepository,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._products = products
        self._users = users
        self._comments = comments
        self._clock = clock

    def list_products(
        self,
        *,
        category: Optional[str] = None,
        search: Optional[str] = None,
        sort: str = "newest",
        page: int = 1,
        limit: int = 10,
    ) -> Page[ProductView]:
        query = ProductQuery(
            status="active",
            category=self._normalize_category(category),
            search=self._normalize_search(search),
            sort=sort if sort in PRODUCT_SORTS else "newest",
        )
        return self._page(query, page, limit)

    def get_product(self, product_id: str) -> ProductView:
        return self._expand([self._require(product_id)])[0]

    def create_product(
        self,
        owner_id: str,
        *,
        title: str,
        description: str,
        price: float,
        category: str,
        estimated_purchase_date: datetime,
        image: Optional[str] = None,
        min_quantity: Optional[int] = None,
        max_quantity: Optional[int] = None,
        tags: Optional[List[str]] = None,
        location: Optional[str] = None,
    ) -> ProductView:
        purchase_date = self._require_future(estimated_purchase_date)
        min_quantity = 2 if min_quantity is None else min_quantity
        max_quantity = 100 if max_quantity is None else max_quantity
        self._check_quantities(min_quantity, max_quantity)

        product = self._products.create_product(
            title=title.strip(),
            description=description.strip(),
            price=price,
            category=category,
            estimated_purchase_date=purchase_date,
            created_by=owner_id,
            image=image,
            min_quantity=min_quantity,
            max_quantity=max_quantity,
            tags=[tag.strip() for tag in tags or [] if tag and tag.strip()],
            location=location,
        )
        logger.info("User %s created product %s.", owner_id, product.id)
        return self._expand([product])[0]

    def update_product(self, product_id: str, caller_id: str, changes: Mapping[str, Any]) -> ProductView:
        """
        Apply a partial update on behalf of the product owner.

        ``created_by`` and ``interested_users`` are never taken from ``changes``.
        """
        product = self._require(product_id)
        if product.created_by != caller_id:
            raise Forbidden("Not authorized to update this product")

        updates = {key: value for key, value in changes.items() if key in _EDITABLE_FIELDS and value is not None}
        if "estimated_purchase_date" in updates:
            updates["estimated_purchase_date"] = self._require_future(updates["estimated_purchase_date"])
        for key in ("title", "description"):
            if key in updates:
                updates[key] = updates[key].strip()

        for key, value in updates.items():
            setattr(product, key, value)
        self._check_quantities(product.min_quantity, product.max_quantity)

        saved = self._products.save_product(product)
        return self._expand([saved])[0]

    def delete_product(self, product_id: str, caller_id: str) -> None:
        product = self._require(product_id)
        if product.created_by != caller_id:
            raise Forbidden("Not authorized to delete this product")

        removed = self._comments.delete_comments_for_product(product.id)
        self._products.delete_product(product.id)
        logger.info("Deleted product %s with %s comments.", product.id, removed)

    def toggle_interest(self, product_id: str, caller_id: str) -> InterestToggle:
        product = self._require(product_id)
        if caller_id in product.interested_users:
            product.interested_users = [uid for uid in product.interested_users if uid != caller_id]
            is_interested = False
        else:
            product.interested_users = [*product.interested_users, caller_id]
            is_interested = True

        saved = self._products.save_product(product)
        view = self._expand([saved])[0]
        return InterestToggle(view=view, is_interested=is_interested, count=len(saved.interested_users))

    def list_by_owner(
        self,
        user_id: str,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page[ProductView]:
        query = ProductQuery(status=status, created_by=ensure_object_id(user_id, "user ID"))
        return self._page(query, page, limit)

    def list_interested(self, user_id: str, *, page: int = 1, limit: int = 10) -> Page[ProductView]:
        query = ProductQuery(interested_user=ensure_object_id(user_id, "user ID"))
        return self._page(query, page, limit)

    def _page(self, query: ProductQuery, page: int, limit: int) -> Page[ProductView]:
        products = self._products.find_products(query, limit, Page.offset(page, limit))
        total = self._products.count_products(query)
        return Page(items=self._expand(products), page=page, limit=limit, total=total)

    def _require(self, product_id: str) -> Product:
        product = self._products.get_product(ensure_object_id(product_id, "product ID"))
        if not product:
            raise NotFound("Product not found")
        return product

    def _require_future(self, value: datetime) -> datetime:
        value = _as_utc(value)
        if value <= self._clock():
            raise ValidationError("Estimated purchase date must be in the future")
        return value

    @staticmethod
    def _check_quantities(min_quantity: int, max_quantity: int) -> None:
        if min_quantity > max_quantity:
            raise ValidationError("Minimum quantity cannot be greater than maximum quantity")

    @staticmethod
    def _normalize_category(category: Optional[str]) -> Optional[str]:
        if not category:
            return None
        return _CATEGORY_LOOKUP.get(category.strip().lower())

    @staticmethod
    def _normalize_search(search: Optional[str]) -> Optional[str]:
        if not search:
            return None
        trimmed = search.strip()[:SEARCH_MAX_LENGTH]
        return trimmed or None

    def _expand(self, products: Iterable[Product]) -> List[ProductView]:
        products = list(products)
        user_ids: List[str] = []
        for product in products:
            user_ids.append(product.created_by)
            user_ids.extend(product.interested_users)
        summaries = self._users.get_user_summaries(user_ids)
        views: List[ProductView] = []
        for product in products:
            interested = [summaries[uid] for uid in product.interested_users if uid in summaries]
            views.append(ProductView(product=product, owner=summaries.get(product.created_by), interested=interested))
        return views
