"""Domain models for the BulkBuy application."""

from .comment import COMMENT_MAX_LENGTH, Comment, CommentView, LikeToggle
from .pagination import MAX_PAGE, Page
from .product import (
    DEFAULT_PRODUCT_IMAGE,
    PRODUCT_CATEGORIES,
    PRODUCT_SORTS,
    PRODUCT_STATUSES,
    InterestToggle,
    Product,
    ProductQuery,
    ProductView,
)
from .user import DEFAULT_AVATAR, USER_ROLES, User, UserStats, UserSummary

__all__ = [
    "COMMENT_MAX_LENGTH",
    "Comment",
    "CommentView",
    "DEFAULT_AVATAR",
    "DEFAULT_PRODUCT_IMAGE",
    "InterestToggle",
    "LikeToggle",
    "PRODUCT_CATEGORIES",
    "PRODUCT_SORTS",
    "PRODUCT_STATUSES",
    "MAX_PAGE",
    "Page",
    "Product",
    "ProductQuery",
    "ProductView",
    "USER_ROLES",
    "User",
    "UserStats",
    "UserSummary",
]
