from typing import Any, Dict, List, Optional, TypeVar

from fastapi import Depends, FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel
from pymongo.database import Database
from pymongo.errors import PyMongoError

import config
from auth import AuthService
from cart import CartService
from catalog import CatalogService
from database import ensure_indexes, get_db
from errors import NotFoundError
from logger import get_logger
from orders import OrderService
from schemas import Address, OrderItem
from security import get_current_user, require_admin
from seed import seed_admin_if_no_users, seed_products_if_empty
from users import UserService

_logger = get_logger("storefront")

T = TypeVar("T")

app = FastAPI(title="Storefront API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request models (clients send camelCase, snake_case is accepted too)

class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterInput(RequestModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)


class LoginInput(RequestModel):
    email: EmailStr
    password: str


class RefreshInput(RequestModel):
    refresh_token: str


class AddToCartInput(RequestModel):
    product_id: str
    quantity: int = 1


class UpdateCartItemInput(RequestModel):
    item_id: str
    quantity: int


class OrderCreateInput(RequestModel):
    items: List[OrderItem]
    shipping_info: Address
    billing_info: Address


class OrderStatusInput(RequestModel):
    status: str


class ProfileUpdateInput(RequestModel):
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None


# Service dependencies

def get_auth_service(db: Database = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_catalog_service(db: Database = Depends(get_db)) -> CatalogService:
    return CatalogService(db)


def get_cart_service(db: Database = Depends(get_db)) -> CartService:
    return CartService(db)


def get_order_service(db: Database = Depends(get_db)) -> OrderService:
    return OrderService(db)


def get_user_service(db: Database = Depends(get_db)) -> UserService:
    return UserService(db)


def found(value: Optional[T], detail: str) -> T:
    if value is None:
        raise NotFoundError(detail)
    return value


# Lifecycle

@app.on_event("startup")
def prepare_database():
    db = get_db()
    try:
        ensure_indexes(db)
    except PyMongoError:
        _logger.exception("Creating indexes failed")
        return
    if config.SEED_DEMO_DATA:
        try:
            seed_products_if_empty(db)
            seed_admin_if_no_users(db)
        except Exception:
            _logger.exception("Seeding demo data failed")


# Routes
@app.get("/")
def read_root():
    return {"message": "Storefront API"}


@app.get("/test")
def test_database(db: Database = Depends(get_db)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    try:
        response["database_name"] = db.name
        response["collections"] = db.list_collection_names()
        response["database"] = "✅ Available"
        response["connection_status"] = "Connected"
    except Exception as e:
        _logger.warning(f"Database check failed: {e}")
        response["database"] = f"❌ Error: {str(e)[:80]}"
    return response


# Auth
@app.post("/auth/register", status_code=201)
def register(payload: RegisterInput, auth: AuthService = Depends(get_auth_service)):
    return auth.register(payload.email, payload.password, payload.first_name, payload.last_name)


@app.post("/auth/login")
def login(payload: LoginInput, auth: AuthService = Depends(get_auth_service)):
    return auth.login(payload.email, payload.password)


@app.post("/auth/refresh")
def refresh(payload: RefreshInput, auth: AuthService = Depends(get_auth_service)):
    return auth.refresh_tokens(payload.refresh_token)


@app.get("/auth/profile")
def auth_profile(
    current_user: dict = Depends(get_current_user),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.get_profile(current_user["id"])


# Products
@app.get("/products")
def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: Optional[str] = None,
    categories: Optional[str] = Query(None, description="Comma-separated list of categories"),
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    search: Optional[str] = None,
    catalog: CatalogService = Depends(get_catalog_service),
):
    category_list = None
    if categories:
        category_list = [c.strip() for c in categories.split(",") if c.strip()]
    return catalog.find_all(
        skip=(page - 1) * limit,
        take=limit,
        category=category,
        categories=category_list,
        min_price=min_price,
        max_price=max_price,
        search=search,
    )


@app.get("/products/categories")
def list_categories(catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.get_categories()


@app.get("/products/category/{category}")
def products_by_category(category: str, catalog: CatalogService = Depends(get_catalog_service)):
    return catalog.find_by_category(category)


@app.get("/products/{product_id}")
def get_product(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    return found(catalog.find_one(product_id), "Product not found")


@app.get("/products/{product_id}/related")
def related_products(
    product_id: str,
    limit: int = Query(4, ge=1, le=20),
    catalog: CatalogService = Depends(get_catalog_service),
):
    found(catalog.find_one(product_id), "Product not found")
    return catalog.find_related(product_id, limit)


# Cart
@app.get("/cart")
def get_cart(current_user: dict = Depends(get_current_user), carts: CartService = Depends(get_cart_service)):
    return carts.get_cart(current_user["id"])


@app.post("/cart/add")
def add_to_cart(
    item: AddToCartInput,
    current_user: dict = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    return carts.add_to_cart(current_user["id"], item.product_id, item.quantity)


@app.put("/cart/update")
def update_cart_item(
    item: UpdateCartItemInput,
    current_user: dict = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    return found(carts.update_cart_item(current_user["id"], item.item_id, item.quantity), "Cart item not found")


@app.delete("/cart/remove/{item_id}")
def remove_from_cart(
    item_id: str,
    current_user: dict = Depends(get_current_user),
    carts: CartService = Depends(get_cart_service),
):
    return found(carts.remove_from_cart(current_user["id"], item_id), "Cart item not found")


@app.delete("/cart/clear")
def clear_cart(current_user: dict = Depends(get_current_user), carts: CartService = Depends(get_cart_service)):
    cart = carts.clear_cart(current_user["id"])
    if cart is None:
        return carts.get_cart(current_user["id"])
    return cart


# Orders
@app.post("/orders", status_code=201)
def create_order(
    req: OrderCreateInput,
    current_user: dict = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    return orders.create_order(current_user["id"], req.items, req.shipping_info, req.billing_info)


@app.get("/orders")
def list_my_orders(current_user: dict = Depends(get_current_user), orders: OrderService = Depends(get_order_service)):
    return orders.get_user_orders(current_user["id"])


@app.get("/orders/admin/all")
def list_all_orders(admin: dict = Depends(require_admin), orders: OrderService = Depends(get_order_service)):
    return orders.get_all_orders()


@app.get("/orders/{order_id}")
def get_order(
    order_id: str,
    current_user: dict = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    return found(orders.get_order_by_id(order_id, current_user["id"]), "Order not found")


@app.put("/orders/{order_id}/status")
def update_order_status(
    order_id: str,
    req: OrderStatusInput,
    admin: dict = Depends(require_admin),
    orders: OrderService = Depends(get_order_service),
):
    return found(orders.update_order_status(order_id, req.status), "Order not found")


# Users
@app.get("/users/profile")
def get_user_profile(current_user: dict = Depends(get_current_user), users: UserService = Depends(get_user_service)):
    return found(users.find_by_id(current_user["id"]), "User not found")


@app.put("/users/profile")
def update_user_profile(
    data: ProfileUpdateInput,
    current_user: dict = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
):
    updates: Dict[str, Any] = data.model_dump(exclude_unset=True)
    return found(users.update_profile(current_user["id"], updates), "User not found")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
