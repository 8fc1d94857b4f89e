import os

os.environ["ENV"] = "test"
os.environ["ENVIRONMENT"] = "test"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SESSION_STORE"] = "memory"
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from datetime import datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from fixtures_data import (  # noqa: E402
    COMPANY_ONE,
    COMPANY_ONE_ADMIN,
    COMPANY_ONE_TECH,
    COMPANY_TWO,
    COMPANY_TWO_ADMIN,
    COMPANY_TWO_TECH,
    SUPER_ADMIN,
)
from rankitpro.core.database import Base, get_db  # noqa: E402
from rankitpro.core.rate_limiter import FixedWindowRateLimiter  # noqa: E402
from rankitpro.main import create_app  # noqa: E402
from rankitpro.services.directory import Directory  # noqa: E402
from rankitpro.services.passwords import hash_password  # noqa: E402
from rankitpro.services.session_store import InMemorySessionStore  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


def _make_user(directory: Directory, data: dict, company_id):
    return directory.create_user(
        email=data["email"],
        username=data["username"],
        password_hash=hash_password(data["password"]),
        role=data["role"],
        company_id=company_id,
    )


def seed_tenants(db) -> SimpleNamespace:
    directory = Directory(db)
    company_one = directory.create_company(**COMPANY_ONE, is_active=True)
    company_two = directory.create_company(**COMPANY_TWO, is_active=True)

    super_admin = _make_user(directory, SUPER_ADMIN, None)
    admin_one = _make_user(directory, COMPANY_ONE_ADMIN, company_one.id)
    tech_user_one = _make_user(directory, COMPANY_ONE_TECH, company_one.id)
    admin_two = _make_user(directory, COMPANY_TWO_ADMIN, company_two.id)
    tech_user_two = _make_user(directory, COMPANY_TWO_TECH, company_two.id)

    technician_one = directory.create_technician(
        name="John Smith",
        email=COMPANY_ONE_TECH["email"],
        company_id=company_one.id,
        user_id=tech_user_one.id,
        active=True,
    )
    spare_technician_one = directory.create_technician(
        name="Alex Field",
        email="alex@testcompany.com",
        company_id=company_one.id,
        active=True,
    )
    technician_two = directory.create_technician(
        name="Maria Lopez",
        email=COMPANY_TWO_TECH["email"],
        company_id=company_two.id,
        user_id=tech_user_two.id,
        active=True,
    )
    directory.commit()

    return SimpleNamespace(
        company_one=company_one,
        company_two=company_two,
        super_admin=super_admin,
        admin_one=admin_one,
        tech_user_one=tech_user_one,
        admin_two=admin_two,
        tech_user_two=tech_user_two,
        technician_one=technician_one,
        spare_technician_one=spare_technician_one,
        technician_two=technician_two,
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db):
    return seed_tenants(db)


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def app(db, store):
    application = create_app(
        session_store=store,
        rate_limiter=FixedWindowRateLimiter(limit=10_000),
        auth_rate_limiter=FixedWindowRateLimiter(limit=10_000),
    )
    application.dependency_overrides[get_db] = lambda: db
    return application


def login(client: TestClient, credentials: dict, **extra) -> dict:
    response = client.post(
        "/api/auth/login",
        json={"email": credentials["email"], "password": credentials["password"], **extra},
    )
    assert response.status_code == 200, response.text
    return response.json()


@pytest.fixture
def client_for(app):
    """Fresh TestClient (own cookie jar), optionally logged in."""

    def _client(credentials: dict | None = None) -> TestClient:
        client = TestClient(app)
        if credentials is not None:
            login(client, credentials)
        return client

    return _client
