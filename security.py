from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Header
from jose import JWTError, jwt
from passlib.context import CryptContext
from pymongo.database import Database

import config
from database import get_db, serialize_doc, to_object_id
from errors import ForbiddenError, UnauthorizedError
from schemas import UserRole

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS
)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def _create_token(data: dict, token_type: str, secret: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode.update({"exp": expire, "type": token_type})
    return jwt.encode(to_encode, secret, algorithm=config.ALGORITHM)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        data,
        ACCESS,
        config.JWT_SECRET,
        expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    return _create_token(
        data,
        REFRESH,
        config.JWT_REFRESH_SECRET,
        expires_delta or timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def create_token_pair(user: Dict[str, Any]) -> Dict[str, str]:
    claims = {"sub": str(user["_id"]), "email": user.get("email")}
    return {
        "access_token": create_access_token(claims),
        "refresh_token": create_refresh_token(claims),
        "token_type": "bearer",
    }


def decode_token(token: str, token_type: str = ACCESS) -> dict:
    """Verify signature, expiry and token type; raise 401 otherwise."""
    secret = config.JWT_SECRET if token_type == ACCESS else config.JWT_REFRESH_SECRET
    try:
        payload = jwt.decode(token, secret, algorithms=[config.ALGORITHM])
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")
    if payload.get("type") != token_type:
        raise UnauthorizedError("Invalid token type")
    return payload


def sanitize_user(user: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not user:
        return None
    user = serialize_doc(user)
    # Never send password hash
    user.pop("password_hash", None)
    return user


# Dependency to get current user

def get_current_user(
    authorization: Optional[str] = Header(default=None),
    db: Database = Depends(get_db),
) -> Dict[str, Any]:
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    payload = decode_token(token, ACCESS)
    user_id = to_object_id(payload.get("sub"))
    if user_id is None:
        raise UnauthorizedError("Invalid token")
    user = db["user"].find_one({"_id": user_id})
    if not user:
        raise UnauthorizedError("User not found")
    return sanitize_user(user)


def require_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if current_user.get("role") != UserRole.ADMIN.value:
        raise ForbiddenError("Admins only")
    return current_user
