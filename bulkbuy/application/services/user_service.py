from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from ...domain.errors import DuplicateKey, NotFound, ValidationError
from ...domain.identifiers import ensure_object_id, normalize_email
from ...domain.models import Page, ProductQuery, User, UserStats
from ...domain.ports.persistence import CommentRepository, ProductRepository, UserRepository

ONLINE_USERS_LIMIT = 50


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class UserService:
    """Profiles, public lookups, presence listings and per-user statistics."""

    def __init__(
        self,
        users: UserRepository,
        products: ProductRepository,
        comments: CommentRepository,
    ) -> None:
        self._users = users
        self._products = products
        self._comments = comments

    def get_profile(self, caller_id: str) -> User:
        user = self._users.get_user_by_id(caller_id)
        if not user:
            raise NotFound("User not found")
        return user

    def update_profile(
        self,
        caller_id: str,
        *,
        name: Optional[str] = None,
        email: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> User:
        current = self.get_profile(caller_id)
        changes: Dict[str, Any] = {}

        if name is not None:
            changes["name"] = name.strip()
        if email is not None:
            email = normalize_email(email)
            if email != current.email:
                existing = self._users.get_user_by_email(email)
                if existing and existing.id != current.id:
                    raise DuplicateKey("Email already in use", field="email")
                changes["email"] = email
        if avatar is not None:
            if not _is_http_url(avatar):
                raise ValidationError(
                    "Validation failed",
                    errors=[{"field": "avatar", "message": "Avatar must be a valid URL"}],
                )
            changes["avatar"] = avatar

        updated = self._users.update_user(current.id, changes)
        if not updated:
            raise NotFound("User not found")
        return updated

    def get_public(self, user_id: str) -> User:
        user = self._users.get_user_by_id(ensure_object_id(user_id, "user ID"))
        if not user:
            raise NotFound("User not found")
        return user

    def list_users(self, *, search: Optional[str] = None, page: int = 1, limit: int = 10) -> Page[User]:
        search = (search or "").strip()[:100] or None
        users = self._users.list_users(search, limit, Page.offset(page, limit))
        total = self._users.count_users(search)
        return Page(items=users, page=page, limit=limit, total=total)

    def list_online(self, limit: int = ONLINE_USERS_LIMIT) -> List[User]:
        return self._users.list_online_users(limit)

    def get_stats(self, user_id: str) -> UserStats:
        user = self.get_public(user_id)
        return UserStats(
            user=user,
            total_products_created=self._products.count_products(ProductQuery(created_by=user.id)),
            total_products_interested=self._products.count_products(ProductQuery(interested_user=user.id)),
            total_comments=self._comments.count_comments(user_id=user.id),
            active_products=self._products.count_products(ProductQuery(created_by=user.id, status="active")),
            completed_products=self._products.count_products(ProductQuery(created_by=user.id, status="completed")),
        )
