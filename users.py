from typing import Any, Dict, Optional

from pymongo import ReturnDocument
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import now, to_object_id
from errors import ConflictError
from logger import get_logger
from security import sanitize_user

_logger = get_logger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "email")


class UserService:
    def __init__(self, db: Database):
        self.users = db["user"]

    def find_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return sanitize_user(self.users.find_one({"_id": oid}))

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return sanitize_user(self.users.find_one({"email": email.lower()}))

    def update_profile(self, user_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply the given profile fields; fields left out or None are untouched."""
        oid = to_object_id(user_id)
        if oid is None:
            return None
        updates = {k: v for k, v in update_data.items() if k in PROFILE_FIELDS and v is not None}
        if "email" in updates:
            updates["email"] = str(updates["email"]).lower()
            taken = self.users.find_one({"email": updates["email"], "_id": {"$ne": oid}}, {"_id": 1})
            if taken:
                raise ConflictError("Email already in use")
        if not updates:
            return self.find_by_id(user_id)

        updates["updated_at"] = now()
        try:
            user = self.users.find_one_and_update(
                {"_id": oid}, {"$set": updates}, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise ConflictError("Email already in use")
        if user:
            _logger.info(f"Updated profile of user {user_id}: {sorted(k for k in updates if k != 'updated_at')}")
        return sanitize_user(user)
