# auth.py — Credential management for Kanbex
# Features:
# - bcrypt password hashing with configurable cost
# - HS256 JWT access tokens carrying the user's external id as subject
# - Token verification that never leaks library exceptions

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
from jose import jwt, JWTError, ExpiredSignatureError

from config import settings

# ============================================================
# CONFIGURATION
# ============================================================

SECRET_KEY = settings.jwt_secret_key
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = settings.access_token_expire_minutes
BCRYPT_ROUNDS = settings.bcrypt_rounds
# bcrypt refuses longer secrets outright
MAX_PASSWORD_BYTES = 72


class InvalidToken(Exception):
    """Token is expired, tampered with, or not an access token"""


# ============================================================
# AUTH SERVICE
# ============================================================

class AuthService:
    """Password hashing and bearer token issue/verification"""

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: str) -> bool:
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # Malformed stored hash or over-long password
            return False

    @staticmethod
    def create_access_token(subject: str, expires_delta: Optional[timedelta] = None) -> str:
        now = datetime.now(timezone.utc)
        delta = expires_delta if expires_delta is not None else timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        to_encode: Dict[str, Any] = {
            "sub": subject,
            "iat": now,
            "exp": now + delta,
            "type": "access",
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> str:
        """Return the token subject or raise InvalidToken"""
        try:
            payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        except ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except JWTError:
            raise InvalidToken("Invalid token")

        if payload.get("type") != "access":
            raise InvalidToken("Invalid token type")

        subject = payload.get("sub")
        if not subject:
            raise InvalidToken("Token has no subject")
        return subject

    @staticmethod
    def token_lifetime_seconds() -> int:
        return ACCESS_TOKEN_EXPIRE_MINUTES * 60
