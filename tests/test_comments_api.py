from datetime import datetime, timezone

import pytest

from bulkbuy.domain.models import Comment, CommentView
from bulkbuy.presentation.api.serializers import serialize_comment


@pytest.fixture
def thread(client, make_user, create_product):
    alice = make_user()
    bob = make_user("Bob", "bob@example.com")
    product = create_product(alice)
    return {"alice": alice, "bob": bob, "product": product}


def _comment(client, author, product_id, text, parent=None):
    payload = {"text": text, "productId": product_id}
    if parent:
        payload["parentComment"] = parent
    return client.post("/api/comments", json=payload, headers=author["headers"])


def test_create_comment_and_reply(client, thread):
    product_id = thread["product"]["_id"]
    top = _comment(client, thread["bob"], product_id, "Count me in")
    assert top.status_code == 201
    top_comment = top.json()["comment"]
    assert top_comment["userId"]["_id"] == thread["bob"]["id"]
    assert top_comment["parentComment"] is None

    reply = _comment(client, thread["alice"], product_id, "Welcome aboard", parent=top_comment["_id"])
    assert reply.status_code == 201
    assert reply.json()["comment"]["parentComment"] == top_comment["_id"]

    listed = client.get(f"/api/comments/product/{product_id}").json()
    assert listed["pagination"]["totalComments"] == 1
    [entry] = listed["comments"]
    assert entry["_id"] == top_comment["_id"]
    assert [r["text"] for r in entry["replies"]] == ["Welcome aboard"]
    assert entry["replies"][0]["userId"]["name"] == "Alice"


def test_comment_requires_existing_product(client, thread):
    response = _comment(client, thread["bob"], "a" * 24, "Hello there")
    assert response.status_code == 404
    assert response.json()["message"] == "Product not found"


def test_reply_must_share_product(client, thread, create_product):
    other = create_product(thread["alice"], title="Another Product")
    parent = _comment(client, thread["bob"], thread["product"]["_id"], "On the first product").json()["comment"]

    response = _comment(client, thread["alice"], other["_id"], "Cross-posted", parent=parent["_id"])
    assert response.status_code == 400
    assert response.json()["message"] == "Parent comment does not belong to this product"

    missing = _comment(client, thread["alice"], thread["product"]["_id"], "Orphan", parent="b" * 24)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Parent comment not found"


def test_comment_text_is_validated(client, thread):
    product_id = thread["product"]["_id"]
    assert _comment(client, thread["bob"], product_id, "").status_code == 400
    assert _comment(client, thread["bob"], product_id, "x" * 501).status_code == 400
    assert _comment(client, thread["bob"], product_id, "x" * 500).status_code == 201


def test_only_author_can_edit_or_delete(client, thread):
    comment = _comment(client, thread["bob"], thread["product"]["_id"], "Original text").json()["comment"]
    url = f"/api/comments/{comment['_id']}"

    assert client.put(url, json={"text": "Hijacked"}, headers=thread["alice"]["headers"]).status_code == 403
    assert client.delete(url, headers=thread["alice"]["headers"]).status_code == 403

    edited = client.put(url, json={"text": "Edited text"}, headers=thread["bob"]["headers"])
    assert edited.status_code == 200
    body = edited.json()["comment"]
    assert body["text"] == "Edited text"
    assert body["isEdited"] is True
    assert body["editedAt"] is not None


def test_deleting_parent_removes_replies(client, thread, container):
    product_id = thread["product"]["_id"]
    parent = _comment(client, thread["bob"], product_id, "Parent").json()["comment"]
    reply = _comment(client, thread["alice"], product_id, "Child", parent=parent["_id"]).json()["comment"]

    response = client.delete(f"/api/comments/{parent['_id']}", headers=thread["bob"]["headers"])
    assert response.status_code == 200
    assert container.persistence.get_comment(reply["_id"]) is None
    assert client.get(f"/api/comments/product/{product_id}").json()["comments"] == []


def test_deleting_reply_detaches_from_parent(client, thread):
    product_id = thread["product"]["_id"]
    parent = _comment(client, thread["bob"], product_id, "Parent").json()["comment"]
    reply = _comment(client, thread["alice"], product_id, "Child", parent=parent["_id"]).json()["comment"]

    client.delete(f"/api/comments/{reply['_id']}", headers=thread["alice"]["headers"])

    [entry] = client.get(f"/api/comments/product/{product_id}").json()["comments"]
    assert entry["replies"] == []


def test_like_toggle(client, thread):
    comment = _comment(client, thread["bob"], thread["product"]["_id"], "Like me").json()["comment"]
    url = f"/api/comments/{comment['_id']}/like"

    liked = client.post(url, headers=thread["alice"]["headers"]).json()
    assert liked == {"message": "Like added", "isLiked": True, "likeCount": 1}
    unliked = client.post(url, headers=thread["alice"]["headers"]).json()
    assert unliked == {"message": "Like removed", "isLiked": False, "likeCount": 0}


def test_comments_by_user(client, thread):
    product_id = thread["product"]["_id"]
    _comment(client, thread["bob"], product_id, "First")
    _comment(client, thread["bob"], product_id, "Second")

    response = client.get(f"/api/comments/user/{thread['bob']['id']}").json()
    assert [c["text"] for c in response["comments"]] == ["Second", "First"]
    assert response["comments"][0]["productId"] == {"_id": product_id, "title": "Bulk Rice 50kg"}
    assert response["pagination"]["totalComments"] == 2


def test_invalid_comment_id(client, thread):
    response = client.post("/api/comments/xyz/like", headers=thread["bob"]["headers"])
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid comment ID"


def test_reply_to_reply_is_rejected(client, thread):
    product_id = thread["product"]["_id"]
    parent = _comment(client, thread["bob"], product_id, "Top level").json()["comment"]
    reply = _comment(client, thread["alice"], product_id, "First reply", parent=parent["_id"]).json()["comment"]

    nested = _comment(client, thread["bob"], product_id, "Nested reply", parent=reply["_id"])
    assert nested.status_code == 400
    assert nested.json()["message"] == "Cannot reply to a reply"

    [entry] = client.get(f"/api/comments/product/{product_id}").json()["comments"]
    assert [r["_id"] for r in entry["replies"]] == [reply["_id"]]


def test_reply_shapes_are_consistent(client, thread):
    product_id = thread["product"]["_id"]
    lonely = _comment(client, thread["bob"], product_id, "No replies yet").json()["comment"]

    [entry] = client.get(f"/api/comments/product/{product_id}").json()["comments"]
    assert entry["_id"] == lonely["_id"]
    assert entry["replies"] == []

    reply = _comment(client, thread["alice"], product_id, "Now one reply", parent=lonely["_id"]).json()["comment"]
    [entry] = client.get(f"/api/comments/product/{product_id}").json()["comments"]
    assert isinstance(entry["replies"][0], dict)
    assert entry["replies"][0]["_id"] == reply["_id"]
    assert entry["replies"][0]["userId"]["_id"] == thread["alice"]["id"]


def test_serialized_replies_follow_expansion_flag():
    now = datetime(2030, 1, 1, tzinfo=timezone.utc)
    comment = Comment(
        id="a" * 24,
        text="Top level",
        product_id="b" * 24,
        user_id="c" * 24,
        parent_comment=None,
        replies=["d" * 24],
        likes=[],
        is_edited=False,
        edited_at=None,
        created_at=now,
        updated_at=now,
    )

    # The reply record is gone; an expanded view must not fall back to raw ids.
    expanded = serialize_comment(CommentView(comment=comment, author=None, replies_expanded=True))
    assert expanded["replies"] == []

    flat = serialize_comment(CommentView(comment=comment, author=None))
    assert flat["replies"] == ["d" * 24]
