"""Idea response schemas."""

from datetime import datetime

from ideaboard.schemas.base import CamelModel, MessageResponse


class IdeaAuthorResponse(CamelModel):
    id: int
    name: str
    alias: str
    profile_photo: str | None = None


class AdminIdeaAuthorResponse(IdeaAuthorResponse):
    email: str


class IdeaResponse(CamelModel):
    id: int
    text: str
    image: str | None = None
    author: IdeaAuthorResponse | None = None
    liked_by: list[IdeaAuthorResponse] = []
    likes_count: int
    comments_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AdminIdeaResponse(IdeaResponse):
    author: AdminIdeaAuthorResponse | None = None
    liked_by: list[AdminIdeaAuthorResponse] = []


class IdeaEnvelope(MessageResponse):
    idea: IdeaResponse


class IdeaListEnvelope(MessageResponse):
    ideas: list[IdeaResponse]


class AdminIdeaListEnvelope(MessageResponse):
    ideas: list[AdminIdeaResponse]


class LikeToggleEnvelope(MessageResponse):
    liked: bool
    likes_count: int
    idea: IdeaResponse
