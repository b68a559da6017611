"""Session cookie helpers.

The session token travels only in an httpOnly cookie so browser scripts never
see it. The cookie lifetime matches the token lifetime.
"""

from fastapi import Response

from ideaboard.auth import jwt_handler
from ideaboard.core import config


def _cookie_secure() -> bool:
    # Browsers require Secure when SameSite=None.
    if config.SESSION_COOKIE_SAMESITE == "none":
        return True
    return config.SESSION_COOKIE_SECURE


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite=config.SESSION_COOKIE_SAMESITE,
        secure=_cookie_secure(),
        max_age=config.SESSION_EXPIRES_DAYS * 24 * 60 * 60,
        path="/",
    )


def issue_session(response: Response, user_id: int) -> str:
    token = jwt_handler.create_session_token(user_id)
    set_session_cookie(response, token)
    return token


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite=config.SESSION_COOKIE_SAMESITE,
        secure=_cookie_secure(),
    )
