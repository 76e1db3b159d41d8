from typing import Optional

from pydantic import Field

from ....domain.models import COMMENT_MAX_LENGTH
from .base import CamelModel


class CommentCreatePayload(CamelModel):
    text: str = Field(min_length=1, max_length=COMMENT_MAX_LENGTH)
    product_id: str
    parent_comment: Optional[str] = None


class CommentUpdatePayload(CamelModel):
    text: str = Field(min_length=1, max_length=COMMENT_MAX_LENGTH)
