from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from ...core.clock import Clock, utcnow
from ...domain.errors import Forbidden, NotFound, ValidationError
from ...domain.identifiers import ensure_object_id
from ...domain.models import Comment, CommentView, LikeToggle, Page
from ...domain.ports.persistence import CommentRepository, ProductRepository, UserRepository

logger = logging.getLogger(__name__)


class CommentService:
    """Threaded product discussion with one level of replies."""

    def __init__(
        self,
        comments: CommentRepository,
        products: ProductRepository,
        users: UserRepository,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._comments = comments
        self._products = products
        self._users = users
        self._clock = clock

    def list_for_product(self, product_id: str, *, page: int = 1, limit: int = 10) -> Page[CommentView]:
        product_id = ensure_object_id(product_id, "product ID")
        comments = self._comments.find_comments(
            product_id=product_id,
            top_level_only=True,
            limit=limit,
            offset=Page.offset(page, limit),
        )
        total = self._comments.count_comments(product_id=product_id, top_level_only=True)
        return Page(items=self._expand(comments, with_replies=True), page=page, limit=limit, total=total)

    def list_by_user(self, user_id: str, *, page: int = 1, limit: int = 10) -> Page[CommentView]:
        user_id = ensure_object_id(user_id, "user ID")
        comments = self._comments.find_comments(user_id=user_id, limit=limit, offset=Page.offset(page, limit))
        total = self._comments.count_comments(user_id=user_id)
        views = self._expand(comments)
        titles = self._product_titles(comment.product_id for comment in comments)
        for view in views:
            view.product_title = titles.get(view.comment.product_id)
        return Page(items=views, page=page, limit=limit, total=total)

    def create_comment(
        self,
        product_id: str,
        text: str,
        author_id: str,
        parent_id: Optional[str] = None,
    ) -> CommentView:
        """
        Post a comment, or a reply when ``parent_id`` is given.

        Raises:
            NotFound: If the product or the parent comment does not exist
            ValidationError: If the parent belongs to a different product or is itself a reply
        """
        product_id = ensure_object_id(product_id, "product ID")
        if not self._products.get_product(product_id):
            raise NotFound("Product not found")

        if parent_id:
            parent = self._comments.get_comment(ensure_object_id(parent_id, "parent comment ID"))
            if not parent:
                raise NotFound("Parent comment not found")
            if parent.product_id != product_id:
                raise ValidationError("Parent comment does not belong to this product")
            if parent.parent_comment:
                raise ValidationError("Cannot reply to a reply")
            parent_id = parent.id

        comment = self._comments.create_comment(text.strip(), product_id, author_id, parent_id or None)
        if parent_id:
            self._comments.push_reply(parent_id, comment.id)
        return self._expand([comment])[0]

    def update_comment(self, comment_id: str, text: str, caller_id: str) -> CommentView:
        comment = self._require_authored(comment_id, caller_id, "Not authorized to update this comment")
        comment.text = text.strip()
        comment.is_edited = True
        comment.edited_at = self._clock()
        saved = self._comments.save_comment(comment)
        return self._expand([saved])[0]

    def delete_comment(self, comment_id: str, caller_id: str) -> None:
        comment = self._require_authored(comment_id, caller_id, "Not authorized to delete this comment")
        if comment.parent_comment:
            self._comments.pull_reply(comment.parent_comment, comment.id)
        removed = self._comments.delete_replies(comment.id)
        self._comments.delete_comment(comment.id)
        logger.debug("Deleted comment %s and %s replies.", comment.id, removed)

    def toggle_like(self, comment_id: str, caller_id: str) -> LikeToggle:
        comment = self._require(comment_id)
        if caller_id in comment.likes:
            comment.likes = [uid for uid in comment.likes if uid != caller_id]
            is_liked = False
        else:
            comment.likes = [*comment.likes, caller_id]
            is_liked = True
        saved = self._comments.save_comment(comment)
        return LikeToggle(is_liked=is_liked, count=saved.like_count)

    def _require(self, comment_id: str) -> Comment:
        comment = self._comments.get_comment(ensure_object_id(comment_id, "comment ID"))
        if not comment:
            raise NotFound("Comment not found")
        return comment

    def _require_authored(self, comment_id: str, caller_id: str, message: str) -> Comment:
        comment = self._require(comment_id)
        if comment.user_id != caller_id:
            raise Forbidden(message)
        return comment

    def _product_titles(self, product_ids: Iterable[str]) -> Dict[str, str]:
        titles: Dict[str, str] = {}
        for product_id in dict.fromkeys(product_ids):
            product = self._products.get_product(product_id)
            if product:
                titles[product_id] = product.title
        return titles

    def _expand(self, comments: List[Comment], *, with_replies: bool = False) -> List[CommentView]:
        replies: Dict[str, Comment] = {}
        if with_replies:
            reply_ids = [reply_id for comment in comments for reply_id in comment.replies]
            replies = {reply.id: reply for reply in self._comments.get_comments(reply_ids)}

        user_ids = [comment.user_id for comment in comments]
        user_ids.extend(reply.user_id for reply in replies.values())
        authors = self._users.get_user_summaries(user_ids)

        views: List[CommentView] = []
        for comment in comments:
            view = CommentView(comment=comment, author=authors.get(comment.user_id))
            if with_replies:
                view.replies_expanded = True
                view.replies = [
                    CommentView(comment=replies[reply_id], author=authors.get(replies[reply_id].user_id))
                    for reply_id in comment.replies
                    if reply_id in replies
                ]
            views.append(view)
        return views
