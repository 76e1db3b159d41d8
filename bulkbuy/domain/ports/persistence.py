from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Protocol

from ..models import Comment, Product, ProductQuery, User, UserSummary


class UserRepository(Protocol):
    """Persistence functions related to marketplace accounts."""

    def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        *,
        role: str = "user",
        is_email_verified: bool = False,
        email_verification_otp: Optional[str] = None,
        email_verification_otp_expires: Optional[datetime] = None,
    ) -> User:
        ...

    def get_user_by_id(self, user_id: str, *, include_secrets: bool = False) -> Optional[User]:
        ...

    def get_user_by_email(self, email: str, *, include_secrets: bool = False) -> Optional[User]:
        ...

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> Optional[User]:
        ...

    def delete_user(self, user_id: str) -> None:
        ...

    def get_user_summaries(self, user_ids: Iterable[str]) -> Dict[str, UserSummary]:
        ...

    def list_users(self, search: Optional[str], limit: int, offset: int) -> List[User]:
        ...

    def count_users(self, search: Optional[str] = None) -> int:
        ...

    def list_online_users(self, limit: int) -> List[User]:
        ...

    def touch_user_activity(self, user_id: str, now: datetime) -> None:
        ...

    def mark_inactive_users_offline(self, cutoff: datetime) -> int:
        ...


class ProductRepository(Protocol):
    """Persistence functions related to group-buy products."""

    def create_product(
        self,
        *,
        title: str,
        description: str,
        price: float,
        category: str,
        estimated_purchase_date: datetime,
        created_by: str,
        image: Optional[str] = None,
        min_quantity: int = 2,
        max_quantity: int = 100,
        tags: Optional[List[str]] = None,
        location: Optional[str] = None,
    ) -> Product:
        ...

    def get_product(self, product_id: str) -> Optional[Product]:
        ...

    def save_product(self, product: Product) -> Product:
        ...

    def delete_product(self, product_id: str) -> None:
        ...

    def find_products(self, query: ProductQuery, limit: int, offset: int) -> List[Product]:
        ...

    def count_products(self, query: ProductQuery) -> int:
        ...


class CommentRepository(Protocol):
    """Persistence functions related to product comments."""

    def create_comment(
        self,
        text: str,
        product_id: str,
        user_id: str,
        parent_comment: Optional[str] = None,
    ) -> Comment:
        ...

    def get_comment(self, comment_id: str) -> Optional[Comment]:
        ...

    def get_comments(self, comment_ids: Iterable[str]) -> List[Comment]:
        ...

    def save_comment(self, comment: Comment) -> Comment:
        ...

    def push_reply(self, parent_id: str, reply_id: str) -> None:
        ...

    def pull_reply(self, parent_id: str, reply_id: str) -> None:
        ...

    def delete_comment(self, comment_id: str) -> None:
        ...

    def delete_replies(self, parent_id: str) -> int:
        ...

    def delete_comments_for_product(self, product_id: str) -> int:
        ...

    def find_comments(
        self,
        *,
        product_id: Optional[str] = None,
        user_id: Optional[str] = None,
        top_level_only: bool = False,
        limit: int,
        offset: int,
    ) -> List[Comment]:
        ...

    def count_comments(
        self,
        *,
        product_id: Optional[str] = None,
        user_id: Optional[str] = None,
        top_level_only: bool = False,
    ) -> int:
        ...


class PersistenceGateway(
    UserRepository,
    ProductRepository,
    CommentRepository,
    Protocol,
):
    """Composite gateway combining every persistence concern used by the app."""

    def collection_counts(self) -> Dict[str, int]:
        ...

    def purge_all(self) -> None:
        ...

    def close(self) -> None:
        ...
