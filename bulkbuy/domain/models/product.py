"""Product domain model: an item a group intends to buy in bulk."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .user import UserSummary

DEFAULT_PRODUCT_IMAGE = "https://via.placeholder.com/400x300/E5E7EB/6B7280?text=Product+Image"

PRODUCT_CATEGORIES = (
    "Electronics",
    "Fashion",
    "Home & Garden",
    "Sports",
    "Books",
    "Health & Beauty",
    "Other",
)
PRODUCT_STATUSES = ("active", "completed", "cancelled")
PRODUCT_SORTS = ("newest", "oldest", "price-low", "price-high")


@dataclass(slots=True)
class Product:
    id: str
    title: str
    description: str
    price: float
    image: str
    category: str
    estimated_purchase_date: datetime
    created_by: str
    interested_users: List[str]
    status: str
    min_quantity: int
    max_quantity: int
    current_quantity: int
    tags: List[str]
    location: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def has_minimum_interest(self) -> bool:
        return len(self.interested_users) >= self.min_quantity

    @property
    def progress_percentage(self) -> float:
        if self.min_quantity <= 0:
            return 100.0
        return min(len(self.interested_users) / self.min_quantity * 100, 100.0)


@dataclass(slots=True)
class ProductQuery:
    """Filter applied by product listings and counters."""

    status: Optional[str] = None
    category: Optional[str] = None
    search: Optional[str] = None
    created_by: Optional[str] = None
    interested_user: Optional[str] = None
    sort: str = "newest"


@dataclass(slots=True)
class ProductView:
    """A product with its user references expanded."""

    product: Product
    owner: Optional[UserSummary]
    interested: List[UserSummary] = field(default_factory=list)


@dataclass(slots=True)
class InterestToggle:
    view: ProductView
    is_interested: bool
    count: int
