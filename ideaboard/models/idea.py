"""Idea model definitions."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table, Text
from sqlalchemy.orm import relationship

from ideaboard.database import Base
from ideaboard.util.time import utcnow

MIN_TEXT_LENGTH = 10
MAX_TEXT_LENGTH = 2000

# One row per (idea, user) pair; the composite key keeps the liked-by set unique.
idea_likes = Table(
    "idea_likes",
    Base.metadata,
    Column("idea_id", Integer, ForeignKey("ideas.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
)


class Idea(Base):
    """Represents a posted idea and the users who liked it."""
    __tablename__ = "ideas"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(Text, nullable=False)
    image = Column(Text, nullable=True)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    likes_count = Column(Integer, nullable=False, default=0)
    comments_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    author = relationship("User", back_populates="ideas")
    liked_by = relationship("User", secondary=idea_likes, back_populates="liked_ideas")

    def is_liked_by(self, user) -> bool:
        return any(liker.id == user.id for liker in self.liked_by)

    def sync_likes_count(self) -> None:
        self.likes_count = len(self.liked_by)

    def toggle_like(self, user) -> bool:
        """Add or remove ``user`` from the liked-by set and return the new liked state."""
        if self.is_liked_by(user):
            self.liked_by = [liker for liker in self.liked_by if liker.id != user.id]
            liked = False
        else:
            self.liked_by.append(user)
            liked = True

        self.sync_likes_count()
        return liked

    def remove_liker(self, user) -> None:
        if self.is_liked_by(user):
            self.liked_by = [liker for liker in self.liked_by if liker.id != user.id]
            self.sync_likes_count()
