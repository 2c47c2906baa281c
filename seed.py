from typing import List

from pymongo.database import Database

import config
from database import create_document
from logger import get_logger
from schemas import Product as ProductSchema, User as UserSchema, UserRole
from security import hash_password

_logger = get_logger(__name__)


def _unsplash(photo: str) -> str:
    return f"https://images.unsplash.com/{photo}?w=600&h=600&fit=crop&auto=format"


DEMO_PRODUCTS: List[dict] = [
    {
        "name": "Minimalist Desk Lamp",
        "description": "Slim LED desk lamp with adjustable brightness and color temperature",
        "price": 79.99,
        "image_url": _unsplash("photo-1507003211169-0a1dd7228f2d"),
        "images": [_unsplash("photo-1507003211169-0a1dd7228f2d"), _unsplash("photo-1513475382585-d06e58bcb0e0")],
        "category": "Lighting",
        "stock": 25,
        "rating": 4.5,
        "review_count": 12,
        "features": ["Adjustable brightness", "USB charging port", "Touch control"],
    },
    {
        "name": "Ergonomic Office Chair",
        "description": "Mesh office chair with lumbar support and adjustable height",
        "price": 299.99,
        "image_url": _unsplash("photo-1586023492125-27b2c045efd7"),
        "images": [_unsplash("photo-1586023492125-27b2c045efd7"), _unsplash("photo-1541558869434-2840d308329a")],
        "category": "Furniture",
        "stock": 15,
        "rating": 4.8,
        "review_count": 28,
        "features": ["Lumbar support", "Breathable mesh", "360 degree swivel"],
    },
    {
        "name": "Standing Desk Converter",
        "description": "Turns any desk into a standing workstation",
        "price": 199.99,
        "image_url": _unsplash("photo-1587300003388-59208cc962cb"),
        "images": [_unsplash("photo-1587300003388-59208cc962cb")],
        "category": "Furniture",
        "stock": 12,
        "rating": 4.4,
        "review_count": 22,
        "features": ["Height adjustable", "Monitor shelf", "Keyboard tray"],
    },
    {
        "name": "Wireless Charging Pad",
        "description": "Qi wireless charger with LED indicator and non-slip base",
        "price": 24.99,
        "image_url": _unsplash("photo-1593359677879-a4bb92f829d1"),
        "images": [_unsplash("photo-1593359677879-a4bb92f829d1")],
        "category": "Electronics",
        "stock": 50,
        "rating": 4.2,
        "review_count": 45,
        "features": ["Fast charging", "LED indicator"],
    },
    {
        "name": "Mechanical Keyboard",
        "description": "RGB backlit mechanical keyboard with hot-swappable switches",
        "price": 129.99,
        "image_url": _unsplash("photo-1541140532154-b024d705b90a"),
        "images": [_unsplash("photo-1541140532154-b024d705b90a"), _unsplash("photo-1587829741301-dc798b83add3")],
        "category": "Electronics",
        "stock": 20,
        "rating": 4.7,
        "review_count": 35,
        "features": ["Mechanical switches", "RGB backlighting", "USB-C"],
    },
    {
        "name": "Smart Water Bottle",
        "description": "Insulated bottle that tracks hydration and glows as a reminder",
        "price": 49.99,
        "image_url": _unsplash("photo-1602143407151-7111542de6e8"),
        "images": [_unsplash("photo-1602143407151-7111542de6e8")],
        "category": "Health & Fitness",
        "stock": 30,
        "rating": 4.0,
        "review_count": 18,
        "features": ["Hydration tracking", "Insulated design"],
    },
    {
        "name": "Premium Coffee Maker",
        "description": "Coffee maker with built-in grinder and programmable timer",
        "price": 249.99,
        "image_url": _unsplash("photo-1495474472287-4d71bcdd2085"),
        "images": [_unsplash("photo-1495474472287-4d71bcdd2085"), _unsplash("photo-1514066558159-fc8c737ef259")],
        "category": "Kitchen & Dining",
        "stock": 18,
        "rating": 4.6,
        "review_count": 32,
        "features": ["Built-in grinder", "Thermal carafe", "Auto shut-off"],
    },
]


def seed_products_if_empty(db: Database) -> int:
    """Insert the demo catalog into an empty product collection."""
    if db["product"].count_documents({}) > 0:
        return 0
    for prod in DEMO_PRODUCTS:
        create_document(db, "product", ProductSchema(**prod))
    _logger.info(f"Seeded {len(DEMO_PRODUCTS)} demo products")
    return len(DEMO_PRODUCTS)


def seed_admin_if_no_users(db: Database) -> bool:
    if db["user"].count_documents({}) > 0:
        return False
    admin = UserSchema(
        email=config.ADMIN_EMAIL.lower(),
        password_hash=hash_password(config.ADMIN_PASSWORD),
        first_name="Admin",
        last_name="User",
        role=UserRole.ADMIN,
    )
    create_document(db, "user", admin)
    _logger.info(f"Seeded admin account {config.ADMIN_EMAIL}")
    return True
