import csv
import io
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import field_validator
from sqlalchemy import func
from sqlalchemy.orm import Session

from ideaboard import crud
from ideaboard.auth.dependencies import SessionIdentity, require_admin
from ideaboard.database import get_db
from ideaboard.models.idea import Idea
from ideaboard.models.user import Role, User
from ideaboard.routes.idea_routes import get_idea_or_404, ideas_with_relations
from ideaboard.routes.user_routes import DEFAULT_PAGE_SIZE, get_user_or_404, paginate
from ideaboard.schemas.base import CamelModel, MessageResponse
from ideaboard.schemas.idea import AdminIdeaListEnvelope, AdminIdeaResponse
from ideaboard.schemas.user import (
    ActivityEntryResponse,
    ActivityLogEnvelope,
    PaginatedUsersEnvelope,
    UserEnvelope,
    UserResponse,
    UserStatsResponse,
)
from ideaboard.util.time import days_ago, short_date, start_of_month, utcnow

router = APIRouter(tags=['admin'])

logger = logging.getLogger(__name__)

ACTIVE_USER_WINDOW_DAYS = 7
ACTIVITY_LOG_LIMIT = 50
EXPORT_FILENAME = 'users_export.csv'
EXPORT_COLUMNS = ['Nom', 'Alias', 'Email', 'Rôle', 'Vérifié', 'Date Inscription', 'Dernière Connexion']
NEVER_LOGGED_IN = 'Jamais'
SORT_ORDERS = {
    'createdAt': User.created_at.desc(),
    'lastLogin': User.last_login.desc().nulls_last(),
    'name': User.name.asc(),
}
INVALID_ROLE_DETAIL = 'Rôle invalide. Les rôles autorisés sont: user, admin'
BULK_DELETE_IDS_DETAIL = 'Fournissez un tableau userIds non vide'


class DashboardStatsResponse(UserStatsResponse):
    active_users: int
    total_ideas: int
    ideas_this_month: int
    total_likes: int
    likes_this_month: int


class DashboardStatsEnvelope(MessageResponse):
    stats: DashboardStatsResponse


class ChangeRoleRequest(CamelModel):
    role: str | None = None

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str | None) -> str | None:
        if value is not None and value not in {role.value for role in Role}:
            raise ValueError(INVALID_ROLE_DETAIL)
        return value


class BulkDeleteRequest(CamelModel):
    user_ids: list[int] | None = None

    @field_validator('user_ids', mode='before')
    @classmethod
    def validate_user_ids(cls, value):
        if not isinstance(value, list) or not value:
            raise ValueError(BULK_DELETE_IDS_DETAIL)
        return value


class BulkDeleteEnvelope(MessageResponse):
    deleted_count: int


def build_users_csv(users: list[User]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow(EXPORT_COLUMNS)
    for user in users:
        writer.writerow([
            user.name,
            user.alias,
            user.email,
            user.role.value,
            'Oui' if user.is_verified else 'Non',
            short_date(user.created_at),
            short_date(user.last_login, placeholder=NEVER_LOGGED_IN),
        ])
    return buffer.getvalue()


@router.get('/dashboard-stats', response_model=DashboardStatsEnvelope)
def get_dashboard_stats(
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    now = utcnow()
    month_start = start_of_month(now)

    active_users = db.query(func.count(User.id)).filter(
        User.last_login >= days_ago(now, ACTIVE_USER_WINDOW_DAYS),
    ).scalar() or 0

    total_ideas = db.query(func.count(Idea.id)).scalar() or 0
    ideas_this_month = db.query(func.count(Idea.id)).filter(Idea.created_at >= month_start).scalar() or 0

    # Likes are summed from the per-idea counters, not recounted from the liked-by sets.
    total_likes = db.query(func.coalesce(func.sum(Idea.likes_count), 0)).scalar()
    likes_this_month = db.query(func.coalesce(func.sum(Idea.likes_count), 0)).filter(
        Idea.created_at >= month_start,
    ).scalar()

    return DashboardStatsEnvelope(
        stats=DashboardStatsResponse(
            **crud.user_stats(db),
            active_users=active_users,
            total_ideas=total_ideas,
            ideas_this_month=ideas_this_month,
            total_likes=total_likes,
            likes_this_month=likes_this_month,
        )
    )


@router.get('/activity-log', response_model=ActivityLogEnvelope)
def get_activity_log(
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    users = db.query(User).order_by(
        User.last_login.is_(None),
        User.last_login.desc(),
    ).limit(ACTIVITY_LOG_LIMIT).all()

    return ActivityLogEnvelope(
        message="Logs d'activité récupérés",
        users=[ActivityEntryResponse.model_validate(user) for user in users],
    )


@router.get('/users-filtered', response_model=PaginatedUsersEnvelope)
def get_users_filtered(
    role: str | None = Query(default=None),
    is_verified: bool | None = Query(default=None, alias='isVerified'),
    search_term: str | None = Query(default=None, alias='searchTerm'),
    sort_by: str | None = Query(default=None, alias='sortBy'),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1),
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    query = db.query(User)

    if role:
        try:
            query = query.filter(User.role == Role(role))
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_ROLE_DETAIL) from exc

    if is_verified is not None:
        query = query.filter(User.is_verified.is_(is_verified))

    query = crud.apply_search(query, search_term)
    order = SORT_ORDERS.get(sort_by or 'createdAt', SORT_ORDERS['createdAt'])
    users, pagination = paginate(query.order_by(order, User.id.desc()), page, limit)

    return PaginatedUsersEnvelope(
        message='Utilisateurs récupérés',
        users=[UserResponse.model_validate(user) for user in users],
        pagination=pagination,
    )


@router.put('/verify-user/{target_id}', response_model=UserEnvelope)
def verify_user(
    target_id: int,
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    user = get_user_or_404(db, target_id)
    user.is_verified = True
    db.commit()
    db.refresh(user)

    return UserEnvelope(message='Utilisateur vérifié avec succès', user=UserResponse.model_validate(user))


@router.put('/change-role/{target_id}', response_model=UserEnvelope)
def change_user_role(
    target_id: int,
    data: ChangeRoleRequest,
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if data.role is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_ROLE_DETAIL)

    new_role = Role(data.role)
    if target_id == identity.user_id and new_role == Role.USER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Vous ne pouvez pas retirer vos propres droits d'administrateur",
        )

    user = get_user_or_404(db, target_id)
    user.role = new_role
    db.commit()
    db.refresh(user)

    logger.info('Admin %s set role of user %s to %s', identity.user_id, user.id, new_role.value)
    return UserEnvelope(
        message=f"Rôle de l'utilisateur changé en {new_role.value}",
        user=UserResponse.model_validate(user),
    )


@router.get('/export-users')
def export_users(
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    users = db.query(User).order_by(User.id.asc()).all()
    return Response(
        content=build_users_csv(users),
        media_type='text/csv',
        headers={'Content-Disposition': f'attachment; filename={EXPORT_FILENAME}'},
    )


@router.delete('/bulk-delete', response_model=BulkDeleteEnvelope)
def bulk_delete_users(
    data: BulkDeleteRequest,
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if data.user_ids is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=BULK_DELETE_IDS_DETAIL)

    if identity.user_id in data.user_ids:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Vous ne pouvez pas supprimer votre propre compte',
        )

    users = db.query(User).filter(User.id.in_(set(data.user_ids))).all()
    if any(user.role == Role.ADMIN for user in users):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Impossible de supprimer un admin')

    deleted_count = crud.delete_user_accounts(db, users)
    db.commit()

    logger.info('Admin %s bulk-deleted %s user(s)', identity.user_id, deleted_count)
    return BulkDeleteEnvelope(
        message=f'{deleted_count} utilisateur(s) supprimé(s)',
        deleted_count=deleted_count,
    )


@router.get('/ideas', response_model=AdminIdeaListEnvelope)
def list_ideas_admin(
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    del identity
    ideas = ideas_with_relations(db).order_by(Idea.created_at.desc(), Idea.id.desc()).all()
    return AdminIdeaListEnvelope(ideas=[AdminIdeaResponse.model_validate(idea) for idea in ideas])


@router.delete('/ideas/{idea_id}', response_model=MessageResponse)
def delete_idea_admin(
    idea_id: int,
    identity: SessionIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
):
    idea = get_idea_or_404(db, idea_id)
    db.delete(idea)
    db.commit()

    logger.info('Admin %s deleted idea %s', identity.user_id, idea_id)
    return MessageResponse(message="Idée supprimée par l'administrateur")
