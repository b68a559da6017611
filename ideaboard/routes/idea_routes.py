from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import Field, field_validator
from sqlalchemy.orm import Session, selectinload

from ideaboard.auth.dependencies import get_session_user_id
from ideaboard.database import get_db
from ideaboard.models.idea import MAX_TEXT_LENGTH, MIN_TEXT_LENGTH, Idea
from ideaboard.models.user import User
from ideaboard.schemas.base import CamelModel, MessageResponse
from ideaboard.schemas.idea import IdeaEnvelope, IdeaListEnvelope, IdeaResponse, LikeToggleEnvelope

router = APIRouter(tags=['ideas'])


def validate_idea_text(value: str | None) -> str:
    if value is None or len(value.strip()) < MIN_TEXT_LENGTH:
        raise ValueError(f'Le texte doit contenir au moins {MIN_TEXT_LENGTH} caractères')

    if len(value) > MAX_TEXT_LENGTH:
        raise ValueError(f'Le texte ne peut pas dépasser {MAX_TEXT_LENGTH} caractères')

    return value


class CreateIdeaRequest(CamelModel):
    text: str | None = Field(default=None, validate_default=True)
    image: str | None = None

    @field_validator('text', mode='after')
    @classmethod
    def validate_text(cls, value: str | None) -> str:
        return validate_idea_text(value)

    @field_validator('image')
    @classmethod
    def blank_image_is_none(cls, value: str | None) -> str | None:
        return value or None


class UpdateIdeaRequest(CamelModel):
    text: str | None = None
    image: str | None = None

    @field_validator('text')
    @classmethod
    def validate_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return validate_idea_text(value)

    def image_supplied(self) -> bool:
        # An explicit null clears the image; an absent field leaves it untouched.
        return 'image' in self.model_fields_set


def ideas_with_relations(db: Session):
    return db.query(Idea).options(selectinload(Idea.author), selectinload(Idea.liked_by))


def get_idea_or_404(db: Session, idea_id: int, for_update: bool = False) -> Idea:
    query = db.query(Idea).filter(Idea.id == idea_id)
    if for_update:
        query = query.with_for_update()

    idea = query.first()
    if idea is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Idée non trouvée')
    return idea


def ensure_author(idea: Idea, user_id: int, detail: str) -> None:
    if idea.author_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def load_caller(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Utilisateur non trouvé')
    return user


@router.get('', response_model=IdeaListEnvelope)
def list_ideas(db: Session = Depends(get_db)):
    ideas = ideas_with_relations(db).order_by(Idea.created_at.desc(), Idea.id.desc()).all()
    return IdeaListEnvelope(ideas=[IdeaResponse.model_validate(idea) for idea in ideas])


@router.post('', response_model=IdeaEnvelope, status_code=status.HTTP_201_CREATED)
def create_idea(
    data: CreateIdeaRequest,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    author = load_caller(db, user_id)

    idea = Idea(text=data.text, image=data.image, author=author, likes_count=0, comments_count=0)
    db.add(idea)
    db.commit()
    db.refresh(idea)

    return IdeaEnvelope(message='Idée publiée avec succès', idea=IdeaResponse.model_validate(idea))


@router.put('/{idea_id}', response_model=IdeaEnvelope)
def update_idea(
    idea_id: int,
    data: UpdateIdeaRequest,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    idea = get_idea_or_404(db, idea_id)
    ensure_author(idea, user_id, 'Vous ne pouvez pas modifier cette idée')

    if data.text is not None:
        idea.text = data.text

    if data.image_supplied():
        idea.image = data.image or None

    db.commit()
    db.refresh(idea)

    return IdeaEnvelope(message='Idée modifiée avec succès', idea=IdeaResponse.model_validate(idea))


@router.delete('/{idea_id}', response_model=MessageResponse)
def delete_idea(
    idea_id: int,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    idea = get_idea_or_404(db, idea_id)
    ensure_author(idea, user_id, 'Vous ne pouvez pas supprimer cette idée')

    db.delete(idea)
    db.commit()

    return MessageResponse(message='Idée supprimée avec succès')


@router.post('/{idea_id}/like', response_model=LikeToggleEnvelope)
def toggle_like(
    idea_id: int,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    liker = load_caller(db, user_id)

    # Row lock where the backend supports it; set and counter are committed together.
    idea = get_idea_or_404(db, idea_id, for_update=True)
    liked = idea.toggle_like(liker)
    db.commit()
    db.refresh(idea)

    return LikeToggleEnvelope(
        message='Idée likée' if liked else 'Like retiré',
        liked=liked,
        likes_count=idea.likes_count,
        idea=IdeaResponse.model_validate(idea),
    )
