"""User request and response schemas."""

import re
from datetime import date, datetime
from typing import ClassVar

from pydantic import field_validator, model_validator

from ideaboard.models.user import Role
from ideaboard.schemas.base import CamelModel, MessageResponse

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_ALIAS_LENGTH = 3
MAX_ALIAS_LENGTH = 30


def is_valid_email(value: str | None) -> bool:
    return bool(value and EMAIL_PATTERN.match(value))


def normalize_email(value: str) -> str:
    return value.strip().lower()


class ProfileFieldsRequest(CamelModel):
    """Core profile fields shared by signup and profile updates."""

    required_fields: ClassVar[tuple[str, ...]] = ("name", "alias", "email", "date_of_birth", "address")

    name: str | None = None
    alias: str | None = None
    email: str | None = None
    date_of_birth: date | None = None
    address: str | None = None

    @field_validator("name", "alias", "address", mode="before")
    @classmethod
    def strip_text(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email_field(cls, value):
        if isinstance(value, str):
            return normalize_email(value)
        return value

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def blank_date_is_missing(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def check_fields(self) -> None:
        if any(not getattr(self, field_name) for field_name in self.required_fields):
            raise ValueError("Tous les champs sont obligatoires")

        if not is_valid_email(self.email):
            raise ValueError("Format d'email invalide")

        if not MIN_ALIAS_LENGTH <= len(self.alias) <= MAX_ALIAS_LENGTH:
            raise ValueError(
                f"L'alias doit contenir entre {MIN_ALIAS_LENGTH} et {MAX_ALIAS_LENGTH} caractères"
            )

    @model_validator(mode="after")
    def validate_fields(self):
        self.check_fields()
        return self


class UserResponse(CamelModel):
    """Sanitized projection of a user; never carries credentials or reset tokens."""

    id: int
    name: str
    alias: str
    email: str
    date_of_birth: date
    address: str
    profile_photo: str | None = None
    role: Role
    is_verified: bool
    last_login: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ActivityEntryResponse(CamelModel):
    id: int
    name: str
    alias: str
    email: str
    role: Role
    is_verified: bool
    last_login: datetime | None = None
    created_at: datetime | None = None


class UserEnvelope(MessageResponse):
    user: UserResponse


class DeletedUserEnvelope(MessageResponse):
    deleted_user: UserResponse


class UserListEnvelope(MessageResponse):
    users: list[UserResponse]
    count: int | None = None


class ActivityLogEnvelope(MessageResponse):
    users: list[ActivityEntryResponse]


class PaginationResponse(CamelModel):
    current_page: int
    total_pages: int
    total_users: int
    limit: int


class PaginatedUsersEnvelope(MessageResponse):
    users: list[UserResponse]
    pagination: PaginationResponse


class UserStatsResponse(CamelModel):
    total_users: int
    admin_count: int
    verified_users: int
    unverified_users: int


class UserStatsEnvelope(MessageResponse):
    stats: UserStatsResponse
