from typing import Any, Dict

from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from database import create_document, to_object_id
from errors import ConflictError, UnauthorizedError
from logger import get_logger
from schemas import User as UserSchema, UserRole
from security import (
    REFRESH,
    create_token_pair,
    decode_token,
    hash_password,
    sanitize_user,
    verify_password,
)

_logger = get_logger(__name__)


class AuthService:
    """Registration, login and token refresh against the user collection."""

    def __init__(self, db: Database):
        self.db = db
        self.users = db["user"]

    def _session(self, user: Dict[str, Any]) -> Dict[str, Any]:
        return {"user": sanitize_user(user), **create_token_pair(user)}

    def register(self, email: str, password: str, first_name: str, last_name: str) -> Dict[str, Any]:
        email = email.lower()
        if self.users.find_one({"email": email}):
            raise ConflictError("User with this email already exists")
        user_model = UserSchema(
            email=email,
            password_hash=hash_password(password),
            first_name=first_name,
            last_name=last_name,
            role=UserRole.USER,
        )
        try:
            user_id = create_document(self.db, "user", user_model)
        except DuplicateKeyError:
            raise ConflictError("User with this email already exists")
        _logger.info(f"Registered user {user_id}")
        return self._session(self.users.find_one({"_id": user_id}))

    def login(self, email: str, password: str) -> Dict[str, Any]:
        user = self.users.find_one({"email": email.lower()})
        if not user or not verify_password(password, user.get("password_hash", "")):
            _logger.debug("Rejected login attempt")
            raise UnauthorizedError("Invalid credentials")
        return self._session(user)

    def refresh_tokens(self, refresh_token: str) -> Dict[str, Any]:
        try:
            payload = decode_token(refresh_token, REFRESH)
        except UnauthorizedError:
            raise UnauthorizedError("Invalid refresh token")
        user_id = to_object_id(payload.get("sub"))
        user = self.users.find_one({"_id": user_id}) if user_id else None
        if not user:
            raise UnauthorizedError("Invalid refresh token")
        return self._session(user)

    def get_profile(self, user_id: str) -> Dict[str, Any]:
        oid = to_object_id(user_id)
        user = self.users.find_one({"_id": oid}) if oid else None
        if not user:
            raise UnauthorizedError("User not found")
        return sanitize_user(user)
