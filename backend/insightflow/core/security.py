"""
Password hashing and access tokens.

Passwords are stored as bcrypt hashes (12 rounds). Access tokens are
HS256 JWTs signed with ``settings.secret_key`` whose ``sub`` claim is the
username.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt
from pydantic import BaseModel

from insightflow.core.config import settings


ALGORITHM = "HS256"
BCRYPT_ROUNDS = 12

# bcrypt ignores everything past 72 bytes; newer releases reject it instead
BCRYPT_MAX_BYTES = 72


class TokenData(BaseModel):
    """Claims read back from a valid access token."""
    username: str
    exp: Optional[datetime] = None


def _encode_password(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(_encode_password(password), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | bytes) -> bool:
    """True when the password matches; a malformed stored hash never matches."""
    stored = hashed_password.encode("utf-8") if isinstance(hashed_password, str) else hashed_password
    try:
        return bcrypt.checkpw(_encode_password(plain_password), stored)
    except ValueError:
        return False


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a token carrying ``data`` plus an ``exp`` claim.

    Args:
        data: Claims, normally ``{"sub": username}``
        expires_delta: Lifetime; defaults to ``access_token_expire_minutes``

    Example:
        token = create_access_token({"sub": user.username})
    """
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    claims = {**data, "exp": datetime.utcnow() + lifetime}
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """
    Verify a token and read its subject.

    Returns:
        None for a bad signature, an expired token or a missing ``sub``
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None

    subject = claims.get("sub")
    if not subject:
        return None
    return TokenData(username=subject, exp=claims.get("exp"))
