import json
from datetime import datetime, timedelta, timezone


def test_create_product_forces_owner(client, make_user, product_payload):
    alice = make_user()
    bob = make_user("Bob", "bob@example.com")
    payload = product_payload(createdBy=bob["id"])

    response = client.post("/api/products", json=payload, headers=alice["headers"])

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Product created successfully"
    product = body["product"]
    assert product["createdBy"]["_id"] == alice["id"]
    assert product["createdBy"]["name"] == "Alice"
    assert product["status"] == "active"
    assert product["minQuantity"] == 2
    assert product["maxQuantity"] == 100
    assert product["currentQuantity"] == 0
    assert product["image"].startswith("https://")


def test_create_product_requires_auth(client, product_payload):
    response = client.post("/api/products", json=product_payload())
    assert response.status_code == 401


def test_create_product_rejects_past_date(client, make_user, product_payload):
    alice = make_user()
    past = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    response = client.post("/api/products", json=product_payload(estimatedPurchaseDate=past), headers=alice["headers"])
    assert response.status_code == 400
    assert response.json()["message"] == "Estimated purchase date must be in the future"


def test_create_product_rejects_inverted_quantities(client, make_user, product_payload):
    alice = make_user()
    response = client.post(
        "/api/products",
        json=product_payload(minQuantity=10, maxQuantity=5),
        headers=alice["headers"],
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Minimum quantity cannot be greater than maximum quantity"


def test_create_product_validates_fields(client, make_user, product_payload):
    alice = make_user()
    response = client.post(
        "/api/products",
        json=product_payload(title="ab", price=-1, category="Toys"),
        headers=alice["headers"],
    )
    assert response.status_code == 400
    fields = {error["field"] for error in response.json()["errors"]}
    assert {"title", "price", "category"} <= fields


def test_list_products_filters_and_paginates(client, make_user, create_product):
    alice = make_user()
    create_product(alice, title="Cheap Headphones", category="Electronics", price=10)
    create_product(alice, title="Fancy Headphones", category="Electronics", price=300)
    create_product(alice, title="Running Shoes", category="Sports", price=80)

    by_category = client.get("/api/products", params={"category": "electronics"}).json()
    assert {p["title"] for p in by_category["products"]} == {"Cheap Headphones", "Fancy Headphones"}

    unknown_category = client.get("/api/products", params={"category": "Toys"}).json()
    assert unknown_category["pagination"]["totalProducts"] == 3

    searched = client.get("/api/products", params={"search": "headphones", "sort": "price-high"}).json()
    assert [p["title"] for p in searched["products"]] == ["Fancy Headphones", "Cheap Headphones"]

    paged = client.get("/api/products", params={"limit": 2, "page": 2}).json()
    assert len(paged["products"]) == 1
    assert paged["pagination"] == {
        "currentPage": 2,
        "totalPages": 2,
        "totalProducts": 3,
        "hasNextPage": False,
        "hasPrevPage": True,
    }


def test_list_products_only_shows_active(client, make_user, create_product):
    alice = make_user()
    done = create_product(alice, title="Finished Deal")
    create_product(alice, title="Open Deal")
    client.put(f"/api/products/{done['_id']}", json={"status": "completed"}, headers=alice["headers"])

    listed = client.get("/api/products", params={"status": "completed"}).json()
    assert [p["title"] for p in listed["products"]] == ["Open Deal"]


def test_list_products_rejects_bad_query(client):
    assert client.get("/api/products", params={"limit": 500}).status_code == 400
    assert client.get("/api/products", params={"sort": "random"}).status_code == 400


def test_get_product_by_id(client, make_user, create_product):
    alice = make_user()
    product = create_product(alice)
    response = client.get(f"/api/products/{product['_id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Bulk Rice 50kg"

    assert client.get("/api/products/not-an-id").status_code == 400
    missing = client.get("/api/products/" + "f" * 24)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Product not found"


def test_only_owner_can_update_or_delete(client, make_user, create_product):
    alice = make_user()
    bob = make_user("Bob", "bob@example.com")
    product = create_product(alice)

    forbidden = client.put(f"/api/products/{product['_id']}", json={"price": 1}, headers=bob["headers"])
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "Not authorized to update this product"
    assert client.delete(f"/api/products/{product['_id']}", headers=bob["headers"]).status_code == 403

    updated = client.put(
        f"/api/products/{product['_id']}",
        json={"price": 39.99, "title": "Bulk Rice 25kg"},
        headers=alice["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["product"]["price"] == 39.99
    assert updated.json()["product"]["title"] == "Bulk Rice 25kg"


def test_update_revalidates_date_and_quantities(client, make_user, create_product):
    alice = make_user()
    product = create_product(alice, minQuantity=3, maxQuantity=10)
    url = f"/api/products/{product['_id']}"

    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    assert client.put(url, json={"estimatedPurchaseDate": past}, headers=alice["headers"]).status_code == 400
    assert client.put(url, json={"minQuantity": 20}, headers=alice["headers"]).status_code == 400


def test_toggle_interest_is_a_flip(client, make_user, create_product):
    alice = make_user()
    bob = make_user("Bob", "bob@example.com")
    product = create_product(alice)
    url = f"/api/products/{product['_id']}/interest"

    first = client.post(url, headers=bob["headers"]).json()
    assert first["isInterested"] is True
    assert first["message"] == "Interest added"
    assert [u["_id"] for u in first["product"]["interestedUsers"]] == [bob["id"]]
    assert first["product"]["currentQuantity"] == 1

    second = client.post(url, headers=bob["headers"]).json()
    assert second["isInterested"] is False
    assert second["product"]["interestedUsers"] == []
    assert second["product"]["currentQuantity"] == 0

    third = client.post(url, headers=bob["headers"]).json()
    assert third["isInterested"] is True
    assert third["interestedCount"] == len(third["product"]["interestedUsers"]) == 1


def test_interest_is_not_capped_by_max_quantity(client, make_user, create_product):
    alice = make_user()
    bob = make_user("Bob", "bob@example.com")
    product = create_product(alice, minQuantity=1, maxQuantity=1)
    url = f"/api/products/{product['_id']}/interest"

    client.post(url, headers=alice["headers"])
    result = client.post(url, headers=bob["headers"]).json()
    assert result["product"]["currentQuantity"] == 2
    assert result["product"]["hasMinimumInterest"] is True
    assert result["product"]["progressPercentage"] == 100


def test_delete_product_cascades_comments(client, make_user, create_product, container):
    alice = make_user()
    product = create_product(alice)
    comment = client.post(
        "/api/comments",
        json={"text": "Count me in", "productId": product["_id"]},
        headers=alice["headers"],
    ).json()["comment"]

    response = client.delete(f"/api/products/{product['_id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["message"] == "Product deleted successfully"
    assert client.get(f"/api/products/{product['_id']}").status_code == 404
    assert container.persistence.get_comment(comment["_id"]) is None


def test_products_by_user_returns_list(client, make_user, create_product):
    alice = make_user()
    create_product(alice, title="First Listing")
    create_product(alice, title="Second Listing")
    response = client.get(f"/api/products/user/{alice['id']}")
    assert response.status_code == 200
    assert [p["title"] for p in response.json()] == ["Second Listing", "First Listing"]


def test_create_product_rejects_non_finite_price(client, make_user, product_payload):
    alice = make_user()
    body = json.dumps(product_payload(price=float("inf")))
    assert "Infinity" in body
    response = client.post(
        "/api/products",
        content=body,
        headers={**alice["headers"], "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "price"
    assert client.get("/api/products").json()["products"] == []


def test_update_product_rejects_nan_price(client, make_user, create_product):
    alice = make_user()
    product = create_product(alice)
    response = client.put(
        f"/api/products/{product['_id']}",
        content='{"price": NaN}',
        headers={**alice["headers"], "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert client.get(f"/api/products/{product['_id']}").json()["price"] == 45.5


def test_oversized_page_is_rejected(client, make_user):
    alice = make_user()
    urls = [
        "/api/products",
        "/api/users",
        f"/api/users/{alice['id']}/products",
        f"/api/users/{alice['id']}/interested",
        f"/api/comments/user/{alice['id']}",
        "/api/comments/product/" + "a" * 24,
    ]
    for url in urls:
        response = client.get(url, params={"page": 10**19})
        assert response.status_code == 400, url
        assert response.json()["errors"][0]["field"] == "page"
