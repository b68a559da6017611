from datetime import datetime, timedelta, timezone

import jwt

from ideaboard.core import config


def create_session_token(user_id: int, expires_days: int | None = None) -> str:
    expire_days = expires_days or config.SESSION_EXPIRES_DAYS
    now = datetime.now(timezone.utc)
    payload = {"sub": str(user_id), "iat": now, "exp": now + timedelta(days=expire_days)}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
