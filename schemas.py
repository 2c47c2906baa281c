"""
Database Schemas

MongoDB collection schemas as Pydantic models.
Model name lowercased is the collection name.
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class User(BaseModel):
    email: EmailStr = Field(..., description="Email address, stored lowercase")
    password_hash: str = Field(..., description="BCrypt hashed password")
    first_name: str
    last_name: str
    role: UserRole = UserRole.USER


class Product(BaseModel):
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    image_url: str = ""
    images: List[str] = Field(default_factory=list)
    category: str
    stock: int = Field(0, ge=0)
    rating: float = Field(default=0, ge=0, le=5)
    review_count: int = Field(0, ge=0)
    features: List[str] = Field(default_factory=list)
    is_active: bool = True


class Address(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str
    last_name: str
    address1: str
    address2: Optional[str] = None
    city: str
    state: str
    zip_code: str
    country: str
    phone: Optional[str] = None


class OrderItem(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, description="Unit price at the time of order")


class Order(BaseModel):
    user_id: str
    items: List[OrderItem]
    shipping: Address
    billing: Address
    total_amount: float
    status: OrderStatus = OrderStatus.PENDING
