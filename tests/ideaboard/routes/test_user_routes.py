from datetime import date

import pytest
from fastapi import HTTPException

from ideaboard.models.idea import Idea
from ideaboard.models.user import Role, User
from ideaboard.routes import user_routes
from ideaboard.routes.user_routes import (
    UpdateUserRequest,
    delete_user,
    get_profile,
    get_user,
    get_user_stats,
    list_unverified_users,
    list_users,
    list_users_by_role,
    list_verified_users,
    search_users,
    update_user,
)


def _update_payload(**overrides) -> dict:
    payload = {
        'name': 'Renamed User',
        'alias': 'renamed',
        'email': 'renamed@example.com',
        'dateOfBirth': '1985-02-03',
        'address': '3 avenue Foch',
    }
    payload.update(overrides)
    return payload


def test_get_user_stats_counts_everyone(db, admin, make_user) -> None:
    make_user(is_verified=True)
    make_user()

    result = get_user_stats(db=db)

    assert result.stats.total_users == 3
    assert result.stats.admin_count == 1
    assert result.stats.verified_users == 1
    assert result.stats.unverified_users == 2


def test_list_users_excludes_admins(db, admin, make_user) -> None:
    first = make_user()
    second = make_user()

    result = list_users(user_id=first.id, db=db)

    assert {user.id for user in result.users} == {first.id, second.id}


def test_verified_and_unverified_lists_exclude_admins(db, make_user) -> None:
    make_user(role=Role.ADMIN, is_verified=True)
    verified = make_user(is_verified=True)
    unverified = make_user()

    verified_result = list_verified_users(user_id=verified.id, db=db)
    unverified_result = list_unverified_users(user_id=verified.id, db=db)

    assert [user.id for user in verified_result.users] == [verified.id]
    assert verified_result.count == 1
    assert [user.id for user in unverified_result.users] == [unverified.id]
    assert unverified_result.count == 1


def test_search_users_matches_case_insensitive_substring(db, admin, make_user) -> None:
    caller = make_user()
    match = make_user(name='Jean Dupont', alias='jdupont', email='jean@example.com')
    make_user(name='Marie Curie', alias='mcurie', email='marie@example.com')

    result = search_users(search_term='DUPO', is_verified=None, page=1, limit=10, user_id=caller.id, db=db)

    assert [user.id for user in result.users] == [match.id]
    assert result.pagination.total_users == 1
    assert result.pagination.total_pages == 1


def test_search_users_treats_wildcards_literally(db, make_user) -> None:
    caller = make_user(name='Plain Name')
    make_user(name='Other Name')

    result = search_users(search_term='%', is_verified=None, page=1, limit=10, user_id=caller.id, db=db)

    assert result.users == []


def test_search_users_paginates_and_filters_verification(db, make_user) -> None:
    caller = make_user()
    verified = [make_user(is_verified=True) for _ in range(5)]

    result = search_users(search_term=None, is_verified=True, page=2, limit=2, user_id=caller.id, db=db)

    assert [user.id for user in result.users] == [verified[2].id, verified[3].id]
    assert result.pagination.current_page == 2
    assert result.pagination.total_pages == 3
    assert result.pagination.total_users == 5
    assert result.pagination.limit == 2


def test_list_users_by_role_refuses_admin_role(db, make_user) -> None:
    caller = make_user()

    with pytest.raises(HTTPException) as exception_info:
        list_users_by_role(role='admin', user_id=caller.id, db=db)

    assert exception_info.value.status_code == 403


def test_list_users_by_role_rejects_unknown_role(db, make_user) -> None:
    caller = make_user()

    with pytest.raises(HTTPException) as exception_info:
        list_users_by_role(role='superuser', user_id=caller.id, db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Rôle invalide'


def test_list_users_by_role_returns_regular_users(db, admin, make_user) -> None:
    caller = make_user()

    result = list_users_by_role(role='user', user_id=caller.id, db=db)

    assert [user.id for user in result.users] == [caller.id]
    assert result.count == 1


def test_get_user_hides_admin_accounts(db, admin, make_user) -> None:
    caller = make_user()

    with pytest.raises(HTTPException) as exception_info:
        get_user(target_id=admin.id, user_id=caller.id, db=db)

    assert exception_info.value.status_code == 403
    assert get_user(target_id=caller.id, user_id=caller.id, db=db).user.id == caller.id


def test_get_user_unknown_id_returns_404(db, make_user) -> None:
    caller = make_user()

    with pytest.raises(HTTPException) as exception_info:
        get_user(target_id=999, user_id=caller.id, db=db)

    assert exception_info.value.status_code == 404


def test_update_user_rewrites_profile_and_valid_role(db, admin_identity, make_user) -> None:
    target = make_user()

    result = update_user(
        target_id=target.id,
        data=UpdateUserRequest.model_validate(_update_payload(role='admin')),
        identity=admin_identity,
        db=db,
    )

    assert result.user.alias == 'renamed'
    assert result.user.date_of_birth == date(1985, 2, 3)
    assert result.user.role == Role.ADMIN


def test_update_user_ignores_unknown_role(db, admin_identity, make_user) -> None:
    target = make_user()

    result = update_user(
        target_id=target.id,
        data=UpdateUserRequest.model_validate(_update_payload(role='superuser')),
        identity=admin_identity,
        db=db,
    )

    assert result.user.role == Role.USER


def test_update_user_maps_concurrent_duplicate_to_400(
    db,
    admin_identity,
    make_user,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    target = make_user()
    make_user(email='renamed@example.com')
    monkeypatch.setattr(user_routes, 'ensure_identity_available', lambda *args, **kwargs: None)

    with pytest.raises(HTTPException) as exception_info:
        update_user(
            target_id=target.id,
            data=UpdateUserRequest.model_validate(_update_payload()),
            identity=admin_identity,
            db=db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Cet email est déjà utilisé'


def test_update_user_cannot_touch_admin(db, admin, admin_identity) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_user(
            target_id=admin.id,
            data=UpdateUserRequest.model_validate(_update_payload()),
            identity=admin_identity,
            db=db,
        )

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Impossible de modifier un admin'


def test_delete_user_refuses_self_and_admins(db, admin_identity, make_user) -> None:
    other_admin = make_user(role=Role.ADMIN)

    with pytest.raises(HTTPException) as self_info:
        delete_user(target_id=admin_identity.user_id, identity=admin_identity, db=db)
    with pytest.raises(HTTPException) as admin_info:
        delete_user(target_id=other_admin.id, identity=admin_identity, db=db)

    assert self_info.value.status_code == 403
    assert self_info.value.detail == 'Vous ne pouvez pas supprimer votre propre compte'
    assert admin_info.value.status_code == 403
    assert admin_info.value.detail == 'Impossible de supprimer un admin'


def test_delete_user_removes_ideas_and_keeps_like_counts_exact(
    db,
    admin_identity,
    make_user,
    make_idea,
) -> None:
    target = make_user()
    author = make_user()
    liked_idea = make_idea(author)
    liked_idea.liked_by.append(target)
    liked_idea.liked_by.append(author)
    liked_idea.sync_likes_count()
    target_idea = make_idea(target)
    target_idea_id = target_idea.id
    target_id = target.id
    db.commit()

    result = delete_user(target_id=target_id, identity=admin_identity, db=db)

    assert result.deleted_user.id == target_id
    assert db.query(User).filter(User.id == target_id).first() is None
    assert db.query(Idea).filter(Idea.id == target_idea_id).first() is None
    db.refresh(liked_idea)
    assert liked_idea.likes_count == len(liked_idea.liked_by) == 1
    assert [user.id for user in liked_idea.liked_by] == [author.id]


def test_get_profile_returns_sanitized_caller(make_user) -> None:
    user = make_user()

    result = get_profile(current_user=user)

    assert result.user.id == user.id
    assert 'hashedPassword' not in result.user.model_dump(by_alias=True)
