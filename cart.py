"""
Per-user shopping cart.

A cart document holds only its owner; line items live in the cart_item
collection keyed by (cart_id, product_id), which a unique index keeps to
one item per product. Adding a product that is already in the cart bumps
its quantity in a single upsert instead of a read followed by a write.
"""
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import now, serialize_doc, to_object_id
from errors import BadRequestError, NotFoundError
from logger import get_logger
from pricing import sum_lines

_logger = get_logger(__name__)


class CartService:
    def __init__(self, db: Database):
        self.carts = db["cart"]
        self.items = db["cart_item"]
        self.products = db["product"]

    # ---------------------------
    # Lookups
    # ---------------------------

    def _find_cart(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return self.carts.find_one({"user_id": oid})

    def _get_or_create_cart(self, user_id: str) -> Dict[str, Any]:
        oid = to_object_id(user_id)
        if oid is None:
            raise BadRequestError("Invalid user id")
        stamp = now()
        try:
            return self.carts.find_one_and_update(
                {"user_id": oid},
                {"$setOnInsert": {"created_at": stamp, "updated_at": stamp}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # another request created it between our filter and insert
            return self.carts.find_one({"user_id": oid})

    def _find_item(self, cart: Dict[str, Any], item_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(item_id)
        if oid is None:
            return None
        return self.items.find_one({"_id": oid, "cart_id": cart["_id"]})

    def _touch(self, cart: Dict[str, Any]) -> None:
        self.carts.update_one({"_id": cart["_id"]}, {"$set": {"updated_at": now()}})

    def _view(self, cart: Dict[str, Any]) -> Dict[str, Any]:
        items = list(self.items.find({"cart_id": cart["_id"]}).sort([("created_at", ASCENDING), ("_id", ASCENDING)]))
        product_ids: List[ObjectId] = [it["product_id"] for it in items]
        products = {p["_id"]: p for p in self.products.find({"_id": {"$in": product_ids}})}

        lines = []
        priced = []
        for it in items:
            product = products.get(it["product_id"])
            if product is not None:
                priced.append((product.get("price", 0), it["quantity"]))
            lines.append({**serialize_doc(it), "product": serialize_doc(product) if product else None})

        view = serialize_doc(cart)
        view["items"] = lines
        view["total_items"] = sum(int(it["quantity"]) for it in items)
        view["total_price"] = sum_lines(priced)
        return view

    # ---------------------------
    # Operations
    # ---------------------------

    def get_cart(self, user_id: str) -> Dict[str, Any]:
        return self._view(self._get_or_create_cart(user_id))

    def add_to_cart(self, user_id: str, product_id: str, quantity: int = 1) -> Dict[str, Any]:
        if quantity is None or int(quantity) < 1:
            raise BadRequestError("Quantity must be at least 1")
        product_oid = to_object_id(product_id)
        if product_oid is None or not self.products.find_one({"_id": product_oid}, {"_id": 1}):
            raise NotFoundError("Product not found")

        cart = self._get_or_create_cart(user_id)
        stamp = now()
        key = {"cart_id": cart["_id"], "product_id": product_oid}
        try:
            self.items.find_one_and_update(
                key,
                {
                    "$inc": {"quantity": int(quantity)},
                    "$set": {"updated_at": stamp},
                    "$setOnInsert": {"created_at": stamp},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # a concurrent add inserted the line first, increment it instead
            self.items.update_one(key, {"$inc": {"quantity": int(quantity)}, "$set": {"updated_at": stamp}})
        self._touch(cart)
        _logger.debug(f"Added {quantity} x {product_id} to cart {cart['_id']}")
        return self._view(cart)

    def update_cart_item(self, user_id: str, item_id: str, quantity: int) -> Optional[Dict[str, Any]]:
        cart = self._find_cart(user_id)
        if not cart:
            return None
        item = self._find_item(cart, item_id)
        if not item:
            return None

        if quantity <= 0:
            self.items.delete_one({"_id": item["_id"]})
        else:
            self.items.update_one(
                {"_id": item["_id"]},
                {"$set": {"quantity": int(quantity), "updated_at": now()}},
            )
        self._touch(cart)
        return self._view(cart)

    def remove_from_cart(self, user_id: str, item_id: str) -> Optional[Dict[str, Any]]:
        cart = self._find_cart(user_id)
        if not cart:
            return None
        item = self._find_item(cart, item_id)
        if not item:
            return None
        self.items.delete_one({"_id": item["_id"]})
        self._touch(cart)
        return self._view(cart)

    def clear_cart(self, user_id: str) -> Optional[Dict[str, Any]]:
        cart = self._find_cart(user_id)
        if not cart:
            return None
        result = self.items.delete_many({"cart_id": cart["_id"]})
        self._touch(cart)
        _logger.debug(f"Cleared {result.deleted_count} items from cart {cart['_id']}")
        return self._view(cart)
