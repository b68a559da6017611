import logging
from typing import ClassVar

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import field_validator
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ideaboard import crud
from ideaboard.auth import cookies
from ideaboard.auth.dependencies import get_current_user
from ideaboard.auth.security import MIN_PASSWORD_LENGTH, hash_password, verify_password
from ideaboard.database import get_db
from ideaboard.models.user import User
from ideaboard.schemas.base import CamelModel, MessageResponse
from ideaboard.schemas.user import (
    ProfileFieldsRequest,
    UserEnvelope,
    UserResponse,
    is_valid_email,
    normalize_email,
)

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

PROFILE_PHOTO_PREFIX = 'data:'


class SignupRequest(ProfileFieldsRequest):
    required_fields: ClassVar[tuple[str, ...]] = ProfileFieldsRequest.required_fields + ('password', 'confirm_password')

    password: str | None = None
    confirm_password: str | None = None

    def check_fields(self) -> None:
        super().check_fields()

        if self.password != self.confirm_password:
            raise ValueError('Les mots de passe ne correspondent pas')

        if len(self.password) < MIN_PASSWORD_LENGTH:
            raise ValueError(f'Le mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères')


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = normalize_email(value)
        if normalized and not is_valid_email(normalized):
            raise ValueError("Format d'email invalide")
        return normalized


class UpdateProfileRequest(ProfileFieldsRequest):
    profile_photo: str | None = None


class ChangePasswordRequest(CamelModel):
    old_password: str | None = None
    new_password: str | None = None


def identity_conflict(db: Session, email: str, alias: str, exclude_user_id: int | None = None) -> str | None:
    if crud.email_taken(db, email, exclude_user_id=exclude_user_id):
        return 'Un utilisateur avec cet email existe déjà' if exclude_user_id is None else 'Cet email est déjà utilisé'

    if crud.alias_taken(db, alias, exclude_user_id=exclude_user_id):
        return 'Cet alias est déjà utilisé'

    return None


def ensure_identity_available(db: Session, email: str, alias: str, exclude_user_id: int | None = None) -> None:
    detail = identity_conflict(db, email, alias, exclude_user_id=exclude_user_id)
    if detail is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def duplicate_identity_error(
    db: Session,
    email: str,
    alias: str,
    exclude_user_id: int | None = None,
) -> HTTPException:
    """Map a unique-constraint violation from a concurrent write to the usual 400."""
    db.rollback()
    detail = identity_conflict(db, email, alias, exclude_user_id=exclude_user_id)
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail or 'Cet email ou cet alias est déjà utilisé',
    )


def is_encoded_photo(value: object) -> bool:
    return isinstance(value, str) and value.startswith(PROFILE_PHOTO_PREFIX)


@router.post('/signup', response_model=UserEnvelope, status_code=status.HTTP_201_CREATED)
def signup(data: SignupRequest, response: Response, db: Session = Depends(get_db)):
    ensure_identity_available(db, data.email, data.alias)

    try:
        user = crud.create_user(
            db,
            name=data.name,
            alias=data.alias,
            email=data.email,
            date_of_birth=data.date_of_birth,
            address=data.address,
            password=data.password,
        )
        db.commit()
    except IntegrityError as exc:
        raise duplicate_identity_error(db, data.email, data.alias) from exc
    db.refresh(user)

    cookies.issue_session(response, user.id)
    logger.info('User %s signed up', user.id)

    return UserEnvelope(
        message='Utilisateur créé avec succès',
        user=UserResponse.model_validate(user),
    )


@router.post('/login', response_model=UserEnvelope)
def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    if not data.email or not data.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Tous les champs sont obligatoires')

    user = crud.get_user_by_email(db, data.email)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Utilisateur non trouvé')

    if not verify_password(data.password, user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail='Mot de passe incorrect')

    crud.touch_last_login(user)
    db.commit()
    db.refresh(user)

    cookies.issue_session(response, user.id)
    logger.info('User %s logged in', user.id)

    return UserEnvelope(message='Connexion réussie', user=UserResponse.model_validate(user))


@router.post('/logout', response_model=MessageResponse)
def logout(response: Response):
    cookies.clear_session_cookie(response)
    return MessageResponse(message='Déconnexion réussie')


@router.get('/me', response_model=UserEnvelope)
def me(current_user: User = Depends(get_current_user)):
    return UserEnvelope(message='Profil récupéré', user=UserResponse.model_validate(current_user))


@router.put('/update-profile', response_model=UserEnvelope)
def update_profile(
    data: UpdateProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_id = current_user.id
    ensure_identity_available(db, data.email, data.alias, exclude_user_id=user_id)

    current_user.name = data.name
    current_user.alias = data.alias
    current_user.email = data.email
    current_user.date_of_birth = data.date_of_birth
    current_user.address = data.address

    # Anything that is not an encoded image keeps the stored photo.
    if is_encoded_photo(data.profile_photo):
        current_user.profile_photo = data.profile_photo

    try:
        db.commit()
    except IntegrityError as exc:
        raise duplicate_identity_error(db, data.email, data.alias, exclude_user_id=user_id) from exc
    db.refresh(current_user)

    return UserEnvelope(
        message='Profil mis à jour avec succès',
        user=UserResponse.model_validate(current_user),
    )


@router.put('/change-password', response_model=MessageResponse)
def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not data.old_password or not data.new_password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="L'ancien et le nouveau mot de passe sont obligatoires",
        )

    if len(data.new_password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Le nouveau mot de passe doit contenir au moins {MIN_PASSWORD_LENGTH} caractères',
        )

    if not verify_password(data.old_password, current_user.hashed_password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="L'ancien mot de passe est incorrect")

    current_user.hashed_password = hash_password(data.new_password)
    db.commit()

    return MessageResponse(message='Mot de passe changé avec succès')
