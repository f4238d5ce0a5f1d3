import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from saveable.config import SaveableSettings
from saveable.core.db import Base
from saveable.core.registry import TypeRegistry
from saveable.services import AssociationStore, CollectionService, SaverQueries, SaveableQueries
import saveable.models  # noqa: F401

from entities import EntityBase, User, Team, Post, Comment


@pytest.fixture(scope="function")
def session_factory():
    # In-memory SQLite for fast unit testing
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    EntityBase.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return SaveableSettings(_env_file=None)


@pytest.fixture
def registry():
    registry = TypeRegistry()
    for model in (User, Team, Post, Comment):
        registry.register(model)
    return registry


@pytest.fixture
def store(db_session, registry, settings):
    return AssociationStore(db_session, registry, settings)


@pytest.fixture
def collections(db_session, registry):
    return CollectionService(db_session, registry)


@pytest.fixture
def saver_queries(db_session, registry, settings):
    return SaverQueries(db_session, registry, settings)


@pytest.fixture
def saveable_queries(db_session, registry, settings):
    return SaveableQueries(db_session, registry, settings)


@pytest.fixture
def make(db_session):
    """Persist an entity and return it"""
    def _make(model, **fields):
        entity = model(**fields)
        db_session.add(entity)
        db_session.commit()
        return entity
    return _make


@pytest.fixture
def user(make):
    return make(User, name="Ada", email="ada@example.com")


@pytest.fixture
def other_user(make):
    return make(User, name="Grace", email="grace@example.com")


@pytest.fixture
def team(make):
    return make(Team, name="Readers")


@pytest.fixture
def posts(make):
    return [make(Post, title=f"Post {i}", content=f"Body {i}") for i in range(1, 4)]


@pytest.fixture
def comment(make):
    return make(Comment, body="Nice post")
