"""
Pytest configuration and fixtures for data-crud tests.
"""

import mongomock
import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from data_crud.main import create_app
from data_crud.routers import CrudRouter, CsvExporter
from data_crud.services.standard import SqlAlchemyCrudService
from shared.infrastructure.db import get_db
from tests.models import Base, Foo, FooInput, FooOutput, Owner


# =============================================================================
# Database
# =============================================================================


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
    bind=engine,
)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def seed_owner(db_session):
    owner = Owner(name="Ann")
    db_session.add(owner)
    db_session.commit()
    return owner


@pytest.fixture
def seed_foos(db_session, seed_owner):
    """Five foos; alpha and gamma belong to Ann, epsilon is inactive."""
    foos = [
        Foo(name="alpha", description="first letter", quantity=1, owner_id=seed_owner.id),
        Foo(name="beta", description="100% second", quantity=2),
        Foo(name="gamma", description=None, quantity=3, owner_id=seed_owner.id),
        Foo(name="delta", description="river mouth", quantity=4),
        Foo(name="epsilon", description="small", quantity=5, active=False),
    ]
    db_session.add_all(foos)
    db_session.commit()
    return foos


@pytest.fixture
def foo_service(db_session):
    return SqlAlchemyCrudService(db_session, Foo, FooInput)


# =============================================================================
# MongoDB
# =============================================================================


@pytest.fixture
def mongo_client():
    client = mongomock.MongoClient()
    yield client
    client.close()


@pytest.fixture
def bar_collection(mongo_client):
    return mongo_client["data_crud_test"]["bars"]


# =============================================================================
# HTTP
# =============================================================================


def get_foo_service(db: Session = Depends(get_db)) -> SqlAlchemyCrudService:
    return SqlAlchemyCrudService(db, Foo, FooInput)


def build_foo_router(**kwargs) -> CrudRouter:
    options = {
        "output_schema": FooOutput,
        "dto_schema": FooInput,
        "exporter": CsvExporter("foos"),
        "prefix": "/foos",
        "tags": ["foos"],
    }
    options.update(kwargs)
    return CrudRouter(get_foo_service, **options)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    app = create_app(build_foo_router().router)

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
