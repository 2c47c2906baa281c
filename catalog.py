import math
import re
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.database import Database

from database import serialize_doc, to_object_id
from logger import get_logger

_logger = get_logger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


class CatalogService:
    """Read access to the product collection. Only active products are listed."""

    def __init__(self, db: Database):
        self.products = db["product"]

    def find_all(
        self,
        skip: int = 0,
        take: int = 20,
        category: Optional[str] = None,
        categories: Optional[List[str]] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        skip = max(int(skip), 0)
        take = max(int(take), 1)

        query: Dict[str, Any] = {"is_active": True}
        if categories:
            query["category"] = {"$in": list(categories)}
        elif category:
            query["category"] = category

        price_filter: Dict[str, Any] = {}
        if min_price is not None:
            price_filter["$gte"] = float(min_price)
        if max_price is not None:
            price_filter["$lte"] = float(max_price)
        if price_filter:
            query["price"] = price_filter

        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"name": {"$regex": pattern, "$options": "i"}},
                {"description": {"$regex": pattern, "$options": "i"}},
            ]

        _logger.debug(f"Product query {query} skip={skip} take={take}")
        total = self.products.count_documents(query)
        cursor = self.products.find(query).sort(NEWEST_FIRST).skip(skip).limit(take)
        return {
            "data": [serialize_doc(p) for p in cursor],
            "total": total,
            "page": skip // take + 1,
            "limit": take,
            "total_pages": math.ceil(total / take),
        }

    def find_one(self, product_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(product_id)
        if oid is None:
            return None
        return serialize_doc(self.products.find_one({"_id": oid}))

    def find_by_category(self, category: str) -> List[Dict[str, Any]]:
        cursor = self.products.find({"category": category, "is_active": True}).sort(NEWEST_FIRST)
        return [serialize_doc(p) for p in cursor]

    def get_categories(self) -> List[Dict[str, Any]]:
        groups = self.products.aggregate([
            {"$match": {"is_active": True}},
            {"$group": {"_id": "$category", "count": {"$sum": 1}}},
            {"$sort": {"_id": 1}},
        ])
        return [{"name": g["_id"], "product_count": g["count"]} for g in groups]

    def find_related(self, product_id: str, limit: int = 4) -> List[Dict[str, Any]]:
        """Other active products in the same category, best rated first."""
        oid = to_object_id(product_id)
        product = self.products.find_one({"_id": oid}) if oid else None
        if not product:
            return []
        cursor = (
            self.products.find({
                "category": product.get("category"),
                "is_active": True,
                "_id": {"$ne": oid},
            })
            .sort([("rating", DESCENDING), ("_id", DESCENDING)])
            .limit(max(int(limit), 1))
        )
        return [serialize_doc(p) for p in cursor]
