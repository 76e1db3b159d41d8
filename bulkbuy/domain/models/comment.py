"""Comment domain model for product discussion threads."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from .user import UserSummary

COMMENT_MAX_LENGTH = 500


@dataclass(slots=True)
class Comment:
    id: str
    text: str
    product_id: str
    user_id: str
    parent_comment: Optional[str]
    replies: List[str]
    likes: List[str]
    is_edited: bool
    edited_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    @property
    def like_count(self) -> int:
        return len(self.likes)


@dataclass(slots=True)
class CommentView:
    comment: Comment
    author: Optional[UserSummary]
    replies: List["CommentView"] = field(default_factory=list)
    replies_expanded: bool = False
    product_title: Optional[str] = None


@dataclass(slots=True)
class LikeToggle:
    is_liked: bool
    count: int
