import math

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ideaboard import crud
from ideaboard.auth.dependencies import SessionIdentity, get_current_user, get_session_user_id, require_admin
from ideaboard.database import get_db
from ideaboard.models.user import Role, User
from ideaboard.routes.auth_routes import duplicate_identity_error, ensure_identity_available
from ideaboard.schemas.user import (
    DeletedUserEnvelope,
    PaginatedUsersEnvelope,
    PaginationResponse,
    ProfileFieldsRequest,
    UserEnvelope,
    UserListEnvelope,
    UserResponse,
    UserStatsEnvelope,
    UserStatsResponse,
)

router = APIRouter(tags=['users'])

DEFAULT_PAGE_SIZE = 10


class UpdateUserRequest(ProfileFieldsRequest):
    role: str | None = None


def parse_role(value: str) -> Role:
    try:
        return Role(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Rôle invalide') from exc


def paginate(query, page: int, limit: int) -> tuple[list[User], PaginationResponse]:
    total_users = query.count()
    users = query.offset((page - 1) * limit).limit(limit).all()
    pagination = PaginationResponse(
        current_page=page,
        total_pages=math.ceil(total_users / limit),
        total_users=total_users,
        limit=limit,
    )
    return users, pagination


def as_user_list(users: list[User], message: str, with_count: bool = False) -> UserListEnvelope:
    return UserListEnvelope(
        message=message,
        users=[UserResponse.model_validate(user) for user in users],
        count=len(users) if with_count else None,
    )


def get_user_or_404(db: Session, user_id: int) -> User:
    user = crud.get_user_by_id(db, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Utilisateur non trouvé')
    return user


@router.get('/stats', response_model=UserStatsEnvelope)
def get_user_stats(db: Session = Depends(get_db)):
    return UserStatsEnvelope(stats=UserStatsResponse(**crud.user_stats(db)))


@router.get('', response_model=UserListEnvelope)
def list_users(
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    del user_id
    users = crud.non_admin_users(db).order_by(User.created_at.desc()).all()
    return as_user_list(users, 'Utilisateurs récupérés avec succès')


@router.get('/profile', response_model=UserEnvelope)
def get_profile(current_user: User = Depends(get_current_user)):
    return UserEnvelope(message='Profil récupéré', user=UserResponse.model_validate(current_user))


@router.get('/search', response_model=PaginatedUsersEnvelope)
def search_users(
    search_term: str | None = Query(default=None, alias='searchTerm'),
    is_verified: bool | None = Query(default=None, alias='isVerified'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    del user_id
    query = crud.apply_search(crud.non_admin_users(db), search_term)
    if is_verified is not None:
        query = query.filter(User.is_verified.is_(is_verified))

    users, pagination = paginate(query.order_by(User.id.asc()), page, limit)
    return PaginatedUsersEnvelope(
        message='Recherche effectuée',
        users=[UserResponse.model_validate(user) for user in users],
        pagination=pagination,
    )


@router.get('/verified', response_model=UserListEnvelope)
def list_verified_users(
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    del user_id
    users = crud.non_admin_users(db).filter(User.is_verified.is_(True)).all()
    return as_user_list(users, 'Utilisateurs vérifiés récupérés', with_count=True)


@router.get('/unverified', response_model=UserListEnvelope)
def list_unverified_users(
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    del user_id
    users = crud.non_admin_users(db).filter(User.is_verified.is_(False)).all()
    return as_user_list(users, 'Utilisateurs non vérifiés récupérés', with_count=True)


@router.get('/role/{role}', response_model=UserListEnvelope)
def list_users_by_role(
    role: str,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    del user_id
    parsed_role = parse_role(role)
    if parsed_role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Accès refusé')

    users = db.query(User).filter(User.role == parsed_role).all()
    return as_user_list(users, f'Utilisateurs avec le rôle {parsed_role.value} récupérés', with_count=True)


@router.get('/{target_id}', response_model=UserEnvelope)
def get_user(
    target_id: int,
    user_id: int = Depends(get_session_user_id),
    db: Session = Depends(get_db),
):
    del user_id
    user = get_user_or_404(db, target_id)
    if user.role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Accès refusé')

    return UserEnvelope(message='Utilisateur récupéré', user=UserResponse.model_validate(user))


@router.put('/{target_id}', response_model=UserEnvelope)
def update_user(
    target_id: int,
    data: UpdateUserRequest,
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    user = get_user_or_404(db, target_id)
    if user.role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Impossible de modifier un admin')

    user_id = user.id
    ensure_identity_available(db, data.email, data.alias, exclude_user_id=user_id)

    user.name = data.name
    user.alias = data.alias
    user.email = data.email
    user.date_of_birth = data.date_of_birth
    user.address = data.address

    # Unknown roles are ignored rather than rejected.
    if data.role in {role.value for role in Role}:
        user.role = Role(data.role)

    try:
        db.commit()
    except IntegrityError as exc:
        raise duplicate_identity_error(db, data.email, data.alias, exclude_user_id=user_id) from exc
    db.refresh(user)

    return UserEnvelope(message='Utilisateur mis à jour avec succès', user=UserResponse.model_validate(user))


@router.delete('/{target_id}', response_model=DeletedUserEnvelope)
def delete_user(
    target_id: int,
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if target_id == identity.user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Vous ne pouvez pas supprimer votre propre compte',
        )

    user = get_user_or_404(db, target_id)
    if user.role == Role.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Impossible de supprimer un admin')

    deleted_user = UserResponse.model_validate(user)
    crud.delete_user_account(db, user)
    db.commit()

    return DeletedUserEnvelope(message='Utilisateur supprimé avec succès', deleted_user=deleted_user)
