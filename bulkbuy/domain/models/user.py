"""User domain model for marketplace accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DEFAULT_AVATAR = "https://via.placeholder.com/150/4A90E2/FFFFFF?text=User"
USER_ROLES = ("user", "admin")


@dataclass(slots=True, frozen=True)
class UserSummary:
    """Public shape used wherever another record references a user."""

    id: str
    name: str
    email: str
    avatar: str


@dataclass(slots=True)
class User:
    """
    User entity.

    The password hash and both OTP pairs are secrets: the persistence gateway
    only fills them when a read explicitly asks for them, otherwise they stay
    ``None``.
    """

    id: str
    name: str
    email: str
    avatar: str
    role: str
    is_active: bool
    is_email_verified: bool
    is_online: bool
    last_activity: Optional[datetime]
    last_login: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    password_hash: Optional[str] = None
    email_verification_otp: Optional[str] = None
    email_verification_otp_expires: Optional[datetime] = None
    password_reset_otp: Optional[str] = None
    password_reset_otp_expires: Optional[datetime] = None

    def summary(self) -> UserSummary:
        return UserSummary(id=self.id, name=self.name, email=self.email, avatar=self.avatar)

    def __repr__(self) -> str:
        return (
            f"<User id={self.id} email={self.email} active={self.is_active} "
            f"verified={self.is_email_verified} online={self.is_online}>"
        )


@dataclass(slots=True)
class UserStats:
    user: User
    total_products_created: int
    total_products_interested: int
    total_comments: int
    active_products: int
    completed_products: int
