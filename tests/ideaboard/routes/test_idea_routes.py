from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from ideaboard.models.idea import Idea
from ideaboard.routes.idea_routes import (
    CreateIdeaRequest,
    UpdateIdeaRequest,
    create_idea,
    delete_idea,
    list_ideas,
    toggle_like,
    update_idea,
)


@pytest.mark.parametrize('text', [None, '', 'too short', '         x         '])
def test_create_idea_request_rejects_short_text(text: str | None) -> None:
    with pytest.raises(ValidationError) as exception_info:
        CreateIdeaRequest(text=text)

    assert 'Le texte doit contenir au moins 10 caractères' in str(exception_info.value)


def test_create_idea_request_rejects_overlong_text() -> None:
    with pytest.raises(ValidationError) as exception_info:
        CreateIdeaRequest(text='x' * 2001)

    assert 'Le texte ne peut pas dépasser 2000 caractères' in str(exception_info.value)


def test_create_idea_starts_with_no_likes(db, make_user) -> None:
    author = make_user()

    result = create_idea(
        data=CreateIdeaRequest(text='Hello world ideas', image=''),
        user_id=author.id,
        db=db,
    )

    assert result.idea.text == 'Hello world ideas'
    assert result.idea.image is None
    assert result.idea.likes_count == 0
    assert result.idea.comments_count == 0
    assert result.idea.liked_by == []
    assert result.idea.author.id == author.id
    assert result.idea.author.alias == author.alias


def test_create_idea_for_deleted_account_returns_404(db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_idea(data=CreateIdeaRequest(text='Hello world ideas'), user_id=999, db=db)

    assert exception_info.value.status_code == 404


def test_list_ideas_returns_newest_first(db, make_user, make_idea) -> None:
    author = make_user()
    older = make_idea(author, text='An older idea here', created_at=datetime(2024, 1, 1))
    newer = make_idea(author, text='A newer idea here', created_at=datetime(2024, 6, 1))

    result = list_ideas(db=db)

    assert [idea.id for idea in result.ideas] == [newer.id, older.id]


def test_toggle_like_twice_restores_original_state(db, make_user, make_idea) -> None:
    author = make_user()
    liker = make_user()
    idea = make_idea(author)

    first = toggle_like(idea_id=idea.id, user_id=liker.id, db=db)
    second = toggle_like(idea_id=idea.id, user_id=liker.id, db=db)

    assert first.liked is True
    assert first.likes_count == 1
    assert first.message == 'Idée likée'
    assert [user.id for user in first.idea.liked_by] == [liker.id]
    assert second.liked is False
    assert second.likes_count == 0
    assert second.message == 'Like retiré'
    assert second.idea.liked_by == []


def test_likes_count_tracks_liked_by_set(db, make_user, make_idea) -> None:
    author = make_user()
    likers = [make_user() for _ in range(3)]
    idea = make_idea(author)

    for liker in likers:
        toggle_like(idea_id=idea.id, user_id=liker.id, db=db)
    toggle_like(idea_id=idea.id, user_id=likers[1].id, db=db)

    stored = db.get(Idea, idea.id)
    db.refresh(stored)
    assert stored.likes_count == len(stored.liked_by) == 2
    assert {user.id for user in stored.liked_by} == {likers[0].id, likers[2].id}


def test_toggle_like_unknown_idea_returns_404(db, make_user) -> None:
    user = make_user()

    with pytest.raises(HTTPException) as exception_info:
        toggle_like(idea_id=999, user_id=user.id, db=db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Idée non trouvée'


def test_create_like_unlike_scenario(db, make_user) -> None:
    author = make_user()
    other = make_user()

    created = create_idea(data=CreateIdeaRequest(text='This is long enough'), user_id=author.id, db=db)
    liked = toggle_like(idea_id=created.idea.id, user_id=other.id, db=db)
    unliked = toggle_like(idea_id=created.idea.id, user_id=other.id, db=db)

    assert created.idea.likes_count == 0
    assert (liked.liked, liked.likes_count) == (True, 1)
    assert (unliked.liked, unliked.likes_count) == (False, 0)


def test_update_idea_by_author_changes_text_only(db, make_user, make_idea) -> None:
    author = make_user()
    idea = make_idea(author, image='https://example.com/cat.png')

    result = update_idea(
        idea_id=idea.id,
        data=UpdateIdeaRequest(text='A better idea text'),
        user_id=author.id,
        db=db,
    )

    assert result.idea.text == 'A better idea text'
    assert result.idea.image == 'https://example.com/cat.png'


def test_update_idea_explicit_null_clears_image(db, make_user, make_idea) -> None:
    author = make_user()
    idea = make_idea(author, image='https://example.com/cat.png')

    result = update_idea(
        idea_id=idea.id,
        data=UpdateIdeaRequest.model_validate({'image': None}),
        user_id=author.id,
        db=db,
    )

    assert result.idea.image is None
    assert result.idea.text == 'A perfectly reasonable idea'


def test_update_idea_rejects_short_text() -> None:
    with pytest.raises(ValidationError):
        UpdateIdeaRequest(text='short')


def test_update_idea_by_other_user_is_forbidden(db, make_user, make_idea) -> None:
    author = make_user()
    other = make_user()
    idea = make_idea(author)

    with pytest.raises(HTTPException) as exception_info:
        update_idea(idea_id=idea.id, data=UpdateIdeaRequest(text='A hijacked idea'), user_id=other.id, db=db)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Vous ne pouvez pas modifier cette idée'
    db.refresh(idea)
    assert idea.text == 'A perfectly reasonable idea'


def test_delete_idea_by_other_user_is_forbidden(db, make_user, make_idea) -> None:
    author = make_user()
    other = make_user()
    idea = make_idea(author)

    with pytest.raises(HTTPException) as exception_info:
        delete_idea(idea_id=idea.id, user_id=other.id, db=db)

    assert exception_info.value.status_code == 403
    assert exception_info.value.detail == 'Vous ne pouvez pas supprimer cette idée'
    assert db.get(Idea, idea.id) is not None


def test_delete_idea_by_author_removes_it(db, make_user, make_idea) -> None:
    author = make_user()
    idea = make_idea(author)
    idea_id = idea.id

    result = delete_idea(idea_id=idea_id, user_id=author.id, db=db)

    assert result.success is True
    assert db.query(Idea).filter(Idea.id == idea_id).first() is None


def test_delete_unknown_idea_returns_404(db, make_user) -> None:
    user = make_user()

    with pytest.raises(HTTPException) as exception_info:
        delete_idea(idea_id=999, user_id=user.id, db=db)

    assert exception_info.value.status_code == 404
