import os

# must be set before the app settings are imported
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from eth_account import Account
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from typing import Generator

from app.core.dependencies import get_auth_service
from app.core.jwt_utils import SessionCodec
from app.db.session import init_db
from app.services.wallet_auth import WalletAuthService
from app.services.wallet_store import InMemoryWalletStore, SqlWalletStore
from main import app
from tests.helpers.sign_message import ALICE_KEY, BOB_KEY

TEST_SECRET = "test-secret"


@pytest.fixture
def alice():
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def bob():
    return Account.from_key(BOB_KEY)


@pytest.fixture
def session_factory():
    """Create an in-memory SQLite database for testing"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def sql_store(session_factory) -> SqlWalletStore:
    return SqlWalletStore(session_factory)


@pytest.fixture
def memory_store() -> InMemoryWalletStore:
    return InMemoryWalletStore()


@pytest.fixture(params=["sql", "memory"])
def store(request):
    """Run a test against both store implementations"""
    if request.param == "sql":
        return request.getfixturevalue("sql_store")
    return request.getfixturevalue("memory_store")


@pytest.fixture
def codec() -> SessionCodec:
    return SessionCodec(secret=TEST_SECRET)


@pytest.fixture
def auth_service(sql_store, codec) -> WalletAuthService:
    return WalletAuthService(sql_store, codec)


@pytest.fixture
def client(auth_service) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application"""
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
