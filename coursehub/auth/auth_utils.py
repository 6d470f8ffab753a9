# coursehub/auth/auth_utils.py
from datetime import datetime, timedelta
from typing import Optional

from jose import jwt, JWTError
from werkzeug.security import check_password_hash, generate_password_hash

from coursehub import config


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: str, role: str, expires_hours: int = None) -> str:
    hours = expires_hours if expires_hours is not None else config.TOKEN_EXPIRE_HOURS
    now = datetime.utcnow()
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decoded payload, or None for a bad, tampered or expired token"""
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        return None


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None
