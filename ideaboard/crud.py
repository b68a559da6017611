"""Credential store queries shared by the auth, user and admin routes."""

from datetime import date
from typing import Iterable

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from ideaboard.auth.security import hash_password
from ideaboard.models.user import Role, User
from ideaboard.schemas.user import normalize_email
from ideaboard.util.time import utcnow


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    normalized = normalize_email(email or "")
    if not normalized:
        return None
    return db.query(User).filter(User.email == normalized).first()


def email_taken(db: Session, email: str, exclude_user_id: int | None = None) -> bool:
    query = db.query(User.id).filter(User.email == normalize_email(email))
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def alias_taken(db: Session, alias: str, exclude_user_id: int | None = None) -> bool:
    # Aliases are unique case-sensitively.
    query = db.query(User.id).filter(User.alias == alias)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(
    db: Session,
    *,
    name: str,
    alias: str,
    email: str,
    date_of_birth: date,
    address: str,
    password: str,
    role: Role = Role.USER,
    is_verified: bool = False,
) -> User:
    now = utcnow()
    user = User(
        name=name,
        alias=alias,
        email=normalize_email(email),
        date_of_birth=date_of_birth,
        address=address,
        hashed_password=hash_password(password),
        role=role,
        is_verified=is_verified,
        last_login=now,
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.flush()
    return user


def touch_last_login(user: User) -> None:
    user.last_login = utcnow()


def non_admin_users(db: Session) -> Query:
    return db.query(User).filter(User.role != Role.ADMIN)


def apply_search(query: Query, search_term: str | None) -> Query:
    term = (search_term or "").strip()
    if not term:
        return query
    return query.filter(
        or_(
            User.name.icontains(term, autoescape=True),
            User.alias.icontains(term, autoescape=True),
            User.email.icontains(term, autoescape=True),
        )
    )


def user_stats(db: Session) -> dict:
    total_users = db.query(func.count(User.id)).scalar() or 0
    admin_count = db.query(func.count(User.id)).filter(User.role == Role.ADMIN).scalar() or 0
    verified_users = db.query(func.count(User.id)).filter(User.is_verified.is_(True)).scalar() or 0
    return {
        "total_users": total_users,
        "admin_count": admin_count,
        "verified_users": verified_users,
        "unverified_users": total_users - verified_users,
    }


def delete_user_account(db: Session, user: User) -> None:
    """Delete ``user`` with their ideas, keeping like counters of other ideas exact."""
    for idea in list(user.liked_ideas):
        idea.remove_liker(user)
    db.delete(user)


def delete_user_accounts(db: Session, users: Iterable[User]) -> int:
    deleted = 0
    for user in users:
        delete_user_account(db, user)
        deleted += 1
    return deleted
