import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from ideaboard.auth import jwt_handler
from ideaboard.core import config
from ideaboard.database import get_db
from ideaboard.models.user import Role, User

admin_logger = logging.getLogger("ideaboard.admin")


@dataclass(frozen=True)
class SessionIdentity:
    """Identity of the caller, resolved from the session and the user store."""

    user_id: int
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def get_session_user_id(request: Request) -> int:
    token = request.cookies.get(config.SESSION_COOKIE_NAME)
    if not token:
        raise _unauthorized("Authentification requise")

    try:
        payload = jwt_handler.decode_session_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Session expirée, veuillez vous reconnecter") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Token invalide") from exc

    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Token invalide") from exc


def get_current_user(
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Utilisateur non trouvé")
    return user


def require_admin(
    request: Request,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
) -> SessionIdentity:
    # The role is always re-read from the store; the token only carries the user id.
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Utilisateur non trouvé")

    if user.role != Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Accès refusé. Seuls les administrateurs peuvent accéder à cette ressource.",
        )

    admin_logger.info("Admin %s: %s %s", user.id, request.method, request.url.path)
    return SessionIdentity(user_id=user.id, role=user.role)
