"""Populate a development database with sample users, products and comments."""

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from bulkbuy.core.config import Settings
from bulkbuy.core.logging import configure_logging
from bulkbuy.domain.ports.persistence import PersistenceGateway
from bulkbuy.infrastructure.persistence.sqlite import SQLitePersistence
from bulkbuy.services.security import PasswordHasher

logger = logging.getLogger("bulkbuy.seed")

SAMPLE_PASSWORD = "password123"

USERS: List[Dict[str, str]] = [
    {"name": "John Doe", "email": "john@example.com", "role": "admin"},
    {"name": "Jane Smith", "email": "jane@example.com", "role": "user"},
    {"name": "Bob Johnson", "email": "bob@example.com", "role": "user"},
    {"name": "Alice Brown", "email": "alice@example.com", "role": "user"},
]

PRODUCTS: List[Dict[str, object]] = [
    {
        "title": "Wireless Bluetooth Headphones",
        "description": "High-quality wireless headphones with noise cancellation. Perfect for music lovers and professionals.",
        "price": 149.99,
        "image": "https://images.pexels.com/photos/577769/pexels-photo-577769.jpeg?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1",
        "category": "Electronics",
        "min_quantity": 5,
        "max_quantity": 50,
        "tags": ["wireless", "bluetooth", "headphones", "audio"],
        "location": "New York, NY",
    },
    {
        "title": "Organic Cotton T-Shirts",
        "description": "Premium organic cotton t-shirts in various colors. Comfortable and eco-friendly.",
        "price": 29.99,
        "image": "https://images.pexels.com/photos/996329/pexels-photo-996329.jpeg?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1",
        "category": "Fashion",
        "min_quantity": 10,
        "max_quantity": 100,
        "tags": ["organic", "cotton", "tshirt", "clothing"],
        "location": "Los Angeles, CA",
    },
    {
        "title": "Smart Home Security Camera",
        "description": "1080p HD security camera with night vision and mobile app control.",
        "price": 89.99,
        "image": "https://images.pexels.com/photos/430208/pexels-photo-430208.jpeg?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1",
        "category": "Electronics",
        "min_quantity": 3,
        "max_quantity": 25,
        "tags": ["security", "camera", "smart-home", "surveillance"],
        "location": "Chicago, IL",
    },
    {
        "title": "Yoga Mat Set",
        "description": "Non-slip yoga mat with carrying strap and blocks. Perfect for home workouts.",
        "price": 49.99,
        "image": "https://images.pexels.com/photos/863988/pexels-photo-863988.jpeg?auto=compress&cs=tinysrgb&w=1260&h=750&dpr=1",
        "category": "Sports",
        "min_quantity": 8,
        "max_quantity": 40,
        "tags": ["yoga", "fitness", "exercise", "mat"],
        "location": "Austin, TX",
    },
]

# (product index, author index, text)
COMMENTS = [
    (0, 1, "Great product! I'm definitely interested in this bulk purchase."),
    (0, 2, "What's the quality like? Any reviews?"),
    (1, 0, "Love the organic cotton! When are we planning to order?"),
    (2, 3, "Perfect for my home office setup."),
]


@dataclass(slots=True)
class SeedSummary:
    users: int
    products: int
    comments: int


def seed_database(
    persistence: PersistenceGateway,
    hasher: PasswordHasher,
    *,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> SeedSummary:
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    persistence.purge_all()
    logger.info("Cleared existing data.")

    password_hash = hasher.hash(SAMPLE_PASSWORD)
    users = [
        persistence.create_user(
            entry["name"],
            entry["email"],
            password_hash,
            role=entry["role"],
            is_email_verified=True,
        )
        for entry in USERS
    ]
    logger.info("Created %s users.", len(users))

    products = []
    for index, entry in enumerate(PRODUCTS):
        creator = users[index % len(users)]
        product = persistence.create_product(
            created_by=creator.id,
            estimated_purchase_date=now + timedelta(days=rng.uniform(1, 30)),
            **entry,
        )
        others = [user.id for user in users if user.id != creator.id]
        product.interested_users = others[: rng.randint(1, 3)]
        products.append(persistence.save_product(product))
    logger.info("Created %s products.", len(products))

    comments = [
        persistence.create_comment(text, products[product_index].id, users[author_index].id)
        for product_index, author_index, text in COMMENTS
    ]
    logger.info("Created %s comments.", len(comments))

    return SeedSummary(users=len(users), products=len(products), comments=len(comments))


def main() -> None:
    configure_logging()
    settings = Settings()
    persistence = SQLitePersistence(settings.database_path)
    try:
        seed_database(persistence, PasswordHasher(rounds=settings.bcrypt_rounds))
    finally:
        persistence.close()

    print("Database seeded successfully!")
    print("Sample user credentials:")
    print(f"Admin: {USERS[0]['email']} / {SAMPLE_PASSWORD}")
    print(f"User: {USERS[1]['email']} / {SAMPLE_PASSWORD}")


if __name__ == "__main__":
    main()
