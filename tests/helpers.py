import mongomock

from database import create_document, ensure_indexes
from schemas import Product, User, UserRole
from security import hash_password

SHIPPING = {
    "first_name": "Jane",
    "last_name": "Doe",
    "address1": "1 Main St",
    "city": "Springfield",
    "state": "IL",
    "zip_code": "62701",
    "country": "US",
}


def make_db():
    db = mongomock.MongoClient().get_database("storefront_test")
    ensure_indexes(db)
    return db


def add_product(db, name="Desk Lamp", price=29.99, category="Lighting", **fields) -> str:
    product = Product(name=name, price=price, category=category, **fields)
    return str(create_document(db, "product", product))


def add_user(db, email="jane@example.com", password="secret123", role=UserRole.USER) -> str:
    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name="Jane",
        last_name="Doe",
        role=role,
    )
    return str(create_document(db, "user", user))
