"""User model definitions."""

import enum

from sqlalchemy import Boolean, Column, Date, DateTime, Enum, Integer, String, Text
from sqlalchemy.orm import relationship

from ideaboard.database import Base
from ideaboard.util.time import utcnow


class Role(str, enum.Enum):
    """Roles a user account can hold."""

    USER = "user"
    ADMIN = "admin"


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    alias = Column(String(30), unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    date_of_birth = Column(Date, nullable=False)
    address = Column(String, nullable=False)
    hashed_password = Column(String, nullable=False)
    profile_photo = Column(Text, nullable=True)
    role = Column(
        Enum(
            Role,
            name="user_role",
            native_enum=False,
            length=10,
            values_callable=lambda roles: [role.value for role in roles],
        ),
        nullable=False,
        default=Role.USER,
    )
    last_login = Column(DateTime, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    reset_password_token = Column(String, nullable=True)
    reset_password_expires_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    ideas = relationship(
        "Idea",
        back_populates="author",
        cascade="all, delete-orphan",
    )
    liked_ideas = relationship("Idea", secondary="idea_likes", back_populates="liked_by")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
