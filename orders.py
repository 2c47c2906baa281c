"""
Orders are snapshots taken at checkout.

Address fields and line item prices are copied into the order document,
so later product edits never change an existing order or its total.
The order and its items are a single document and are written in one insert.
"""
from typing import Any, Dict, Iterable, List, Optional, Union

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

import config
from database import create_document, now, serialize_doc, to_object_id
from errors import BadRequestError
from logger import get_logger
from pricing import sum_lines
from schemas import Address, Order, OrderItem, OrderStatus

_logger = get_logger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]

# Allowed status changes when ENFORCE_ORDER_TRANSITIONS is on.
STATUS_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return current == requested or requested in STATUS_TRANSITIONS[current]


def _parse_status(status: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        allowed = ", ".join(s.value for s in OrderStatus)
        raise BadRequestError(f"Invalid status '{status}'. Expected one of: {allowed}")


class OrderService:
    def __init__(self, db: Database, enforce_transitions: Optional[bool] = None):
        self.db = db
        self.orders = db["order"]
        self.products = db["product"]
        if enforce_transitions is None:
            enforce_transitions = config.ENFORCE_ORDER_TRANSITIONS
        self.enforce_transitions = enforce_transitions

    def _views(self, orders: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        orders = list(orders)
        product_ids = {it["product_id"] for o in orders for it in o.get("items", [])}
        products = {p["_id"]: p for p in self.products.find({"_id": {"$in": list(product_ids)}})}
        views = []
        for order in orders:
            view = serialize_doc(order)
            view["items"] = [
                {**serialize_doc(it), "product": serialize_doc(products.get(it["product_id"]))}
                for it in order.get("items", [])
            ]
            views.append(view)
        return views

    def _view(self, order: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if not order:
            return None
        return self._views([order])[0]

    def create_order(
        self,
        user_id: str,
        items: List[OrderItem],
        shipping_info: Address,
        billing_info: Address,
    ) -> Dict[str, Any]:
        user_oid = to_object_id(user_id)
        if user_oid is None:
            raise BadRequestError("Invalid user id")
        if not items:
            raise BadRequestError("Order must contain at least one item")
        for item in items:
            if to_object_id(item.product_id) is None:
                raise BadRequestError(f"Invalid product id '{item.product_id}'")

        # Prices are the ones submitted at checkout, not the live catalog prices
        order_model = Order(
            user_id=str(user_oid),
            items=items,
            shipping=shipping_info,
            billing=billing_info,
            total_amount=sum_lines((item.price, item.quantity) for item in items),
            status=OrderStatus.PENDING,
        )
        doc = order_model.model_dump(mode="json")
        doc["user_id"] = user_oid
        doc["items"] = [
            {**it, "_id": ObjectId(), "product_id": ObjectId(it["product_id"])}
            for it in doc["items"]
        ]
        order_id = create_document(self.db, "order", doc)
        _logger.info(f"Created order {order_id} for user {user_id} total={order_model.total_amount}")
        return self._view(self.orders.find_one({"_id": order_id}))

    def get_user_orders(self, user_id: str) -> List[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return []
        return self._views(self.orders.find({"user_id": oid}).sort(NEWEST_FIRST))

    def get_order_by_id(self, order_id: str, user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        The order, or None when it doesn't exist or belongs to someone other
        than user_id. Both cases look the same to the caller.
        """
        oid = to_object_id(order_id)
        if oid is None:
            return None
        order = self.orders.find_one({"_id": oid})
        if not order:
            return None
        if user_id is not None and str(order["user_id"]) != str(user_id):
            return None
        return self._view(order)

    def update_order_status(self, order_id: str, status: Union[str, OrderStatus]) -> Optional[Dict[str, Any]]:
        requested = _parse_status(status)
        oid = to_object_id(order_id)
        if oid is None:
            return None

        query: Dict[str, Any] = {"_id": oid}
        if self.enforce_transitions:
            order = self.orders.find_one({"_id": oid}, {"status": 1})
            if not order:
                return None
            current = OrderStatus(order["status"])
            if not can_transition(current, requested):
                raise BadRequestError(f"Cannot change order status from {current.value} to {requested.value}")
            # only apply if nobody changed the status since we read it
            query["status"] = current.value

        updated = self.orders.find_one_and_update(
            query,
            {"$set": {"status": requested.value, "updated_at": now()}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None and self.enforce_transitions:
            raise BadRequestError("Order status changed concurrently, retry")
        if updated is not None:
            _logger.info(f"Order {order_id} status -> {requested.value}")
        return self._view(updated)

    def get_all_orders(self) -> List[Dict[str, Any]]:
        return self._views(self.orders.find().sort(NEWEST_FIRST))
