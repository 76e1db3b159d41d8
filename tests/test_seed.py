import random
from datetime import datetime, timezone

from bulkbuy.domain.models import ProductQuery
from bulkbuy.infrastructure.persistence.sqlite import SQLitePersistence
from bulkbuy.services.security import PasswordHasher
from scripts.seed import SAMPLE_PASSWORD, seed_database


def test_seed_populates_and_replaces_data(tmp_path):
    persistence = SQLitePersistence(tmp_path / "seed.db")
    hasher = PasswordHasher(rounds=4)
    now = datetime(2030, 3, 1, tzinfo=timezone.utc)
    try:
        persistence.create_user("Stale", "stale@example.com", "hash")

        summary = seed_database(persistence, hasher, rng=random.Random(7), now=now)

        assert (summary.users, summary.products, summary.comments) == (4, 4, 4)
        assert persistence.collection_counts() == {"users": 4, "products": 4, "comments": 4}
        assert persistence.get_user_by_email("stale@example.com") is None

        admin = persistence.get_user_by_email("john@example.com", include_secrets=True)
        assert admin.role == "admin"
        assert admin.is_email_verified is True
        assert hasher.verify(SAMPLE_PASSWORD, admin.password_hash)

        for product in persistence.find_products(ProductQuery(), 10, 0):
            assert product.estimated_purchase_date > now
            assert product.created_by not in product.interested_users
            assert product.current_quantity == len(product.interested_users) >= 1

        seed_database(persistence, hasher, rng=random.Random(7), now=now)
        assert persistence.collection_counts() == {"users": 4, "products": 4, "comments": 4}
    finally:
        persistence.close()
