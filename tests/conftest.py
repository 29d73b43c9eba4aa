from datetime import timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel

from taskboard.database import create_db_engine, get_db
from taskboard.main import create_app
from taskboard.timeutils import utcnow

from .helpers import auth_headers, make_user


@pytest.fixture()
def engine():
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture()
def app(engine):
    application = create_app()

    def override_get_db():
        db = Session(engine)
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def user(session):
    return make_user(session)


@pytest.fixture()
def other_user(session):
    return make_user(session, email="grace@example.com", name="Grace")


@pytest.fixture()
def headers(user):
    return auth_headers(user)


@pytest.fixture()
def yesterday():
    return utcnow() - timedelta(days=1)
