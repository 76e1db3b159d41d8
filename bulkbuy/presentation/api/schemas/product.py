from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from ....domain.models import PRODUCT_CATEGORIES
from .base import CamelModel


def _check_category(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in PRODUCT_CATEGORIES:
        raise ValueError("Invalid category")
    return value


class ProductCreatePayload(CamelModel):
    title: str = Field(min_length=3, max_length=100)
    description: str = Field(min_length=10, max_length=1000)
    price: float = Field(ge=0, allow_inf_nan=False)
    category: str
    estimated_purchase_date: datetime
    image: Optional[str] = None
    min_quantity: Optional[int] = Field(default=None, ge=1)
    max_quantity: Optional[int] = Field(default=None, ge=1)
    tags: Optional[List[str]] = None
    location: Optional[str] = Field(default=None, max_length=200)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return _check_category(value)


class ProductUpdatePayload(CamelModel):
    title: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    price: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    category: Optional[str] = None
    estimated_purchase_date: Optional[datetime] = None
    image: Optional[str] = None
    status: Optional[Literal["active", "completed", "cancelled"]] = None
    min_quantity: Optional[int] = Field(default=None, ge=1)
    max_quantity: Optional[int] = Field(default=None, ge=1)
    tags: Optional[List[str]] = None
    location: Optional[str] = Field(default=None, max_length=200)

    @field_validator("category")
    @classmethod
    def validate_category(cls, value: Optional[str]) -> Optional[str]:
        return _check_category(value)
