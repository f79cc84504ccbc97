from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from ..core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ALGORITHM = "HS256"


def hash_password(p: str) -> str:
    # bcrypt only looks at the first 72 bytes
    p = p.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return pwd_context.hash(p)


def verify_password(p: str, hashed: str) -> bool:
    p = p.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return pwd_context.verify(p, hashed)


def create_access_token(sub: str, role: str, minutes: int | None = None) -> str:
    exp_min = minutes if minutes is not None else settings.ACCESS_TOKEN_MIN
    expire = datetime.now(timezone.utc) + timedelta(minutes=exp_min)
    payload = {"sub": sub, "role": role, "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Raises ``jwt.PyJWTError`` for a bad signature, malformed token or expiry."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
