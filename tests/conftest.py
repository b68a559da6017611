import itertools
import os
from datetime import date

os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from ideaboard import crud  # noqa: E402
from ideaboard.auth.dependencies import SessionIdentity  # noqa: E402
from ideaboard.database import Base  # noqa: E402
from ideaboard.models.idea import Idea  # noqa: E402
from ideaboard.models.user import Role  # noqa: E402

DEFAULT_PASSWORD = 'password1'


@pytest.fixture
def db():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def make_user(db):
    counter = itertools.count(1)

    def _make_user(
        *,
        name: str | None = None,
        alias: str | None = None,
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        role: Role = Role.USER,
        is_verified: bool = False,
    ):
        number = next(counter)
        user = crud.create_user(
            db,
            name=name or f'User {number}',
            alias=alias or f'user{number}',
            email=email or f'user{number}@example.com',
            date_of_birth=date(1990, 1, 1),
            address='1 rue de Paris',
            password=password,
            role=role,
            is_verified=is_verified,
        )
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_idea(db):
    def _make_idea(author, text: str = 'A perfectly reasonable idea', **fields):
        idea = Idea(text=text, author=author, likes_count=0, comments_count=0, **fields)
        db.add(idea)
        db.commit()
        db.refresh(idea)
        return idea

    return _make_idea


@pytest.fixture
def admin(make_user):
    return make_user(name='Admin', alias='admin', email='admin@example.com', role=Role.ADMIN)


@pytest.fixture
def admin_identity(admin):
    return SessionIdentity(user_id=admin.id, role=Role.ADMIN)

