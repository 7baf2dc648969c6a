import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["EMAIL_SENDER_BACKEND"] = "console"
os.environ["SEED_DATA"] = "false"

import pytest
from fastapi.testclient import TestClient
from httpx import Client
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api_helpers import gated_course_payload
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models import User


RUN_INTEGRATION = os.getenv("RUN_INTEGRATION") == "1"
BASE_URL = os.getenv("BASE_URL", "http://localhost:5000/v1")


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def api(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(session_factory):
    counter = {"n": 0}

    def _make(role: str = "student", name: str = "Abebe Kebede") -> User:
        counter["n"] += 1
        with session_factory() as db:
            user = User(email=f"{role}{counter['n']}@tesbinn.org", name=name, role=role, status="active")
            db.add(user)
            db.commit()
            db.refresh(user)
            return user

    return _make


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return {"X-Admin-Key": os.environ["ADMIN_API_KEY"]}


@pytest.fixture()
def gated_course(api, admin_headers) -> dict:
    resp = api.post("/v1/admin/courses", headers=admin_headers, json=gated_course_payload())
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture(scope="session")
def base_url() -> str:
    return BASE_URL


@pytest.fixture(scope="session")
def live_client(base_url: str):
    with Client(base_url=base_url, timeout=20.0) as c:
        yield c


@pytest.fixture(scope="session")
def integration_enabled() -> bool:
    return RUN_INTEGRATION
