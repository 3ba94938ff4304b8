from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from vibe.app.core.config import settings
from vibe.app.core.rate_limiter import limiter
from vibe.app.core.security import issue_session_token
from vibe.app.directory import SERVER_TIMESTAMP, USERS, MemoryDirectory, SqlDirectory
from vibe.app.main import create_app
from vibe.app.models import Base


class FakeObject:
    def __init__(self, data: bytes, content_type: str) -> None:
        self.data = data
        self.content_type = content_type
        self.size = len(data)


class FakeMinio:
    def __init__(self) -> None:
        self._buckets: set[str] = set()
        self.objects: dict[tuple[str, str], FakeObject] = {}
        self.fail_put = False
        self.fail_remove = False

    def bucket_exists(self, name: str) -> bool:
        return name in self._buckets

    def make_bucket(self, name: str) -> None:
        self._buckets.add(name)

    def put_object(self, bucket: str, object_name: str, data, length: int, *, content_type: str = "application/octet-stream") -> None:
        if self.fail_put:
            raise ConnectionError("storage unavailable")
        payload = data.read() if hasattr(data, "read") else data
        assert len(payload) == length
        self.objects[(bucket, object_name)] = FakeObject(bytes(payload), content_type)

    def remove_object(self, bucket: str, object_name: str) -> None:
        if self.fail_remove:
            raise ConnectionError("storage unavailable")
        self.objects.pop((bucket, object_name), None)


@pytest.fixture()
def fake_minio() -> FakeMinio:
    return FakeMinio()


@pytest.fixture()
def engine() -> Iterator:
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _):  # pragma: no cover - sqlite setup
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, class_=Session)


@pytest.fixture()
def memory_directory() -> Iterator[MemoryDirectory]:
    directory = MemoryDirectory()
    yield directory
    directory.close()


@pytest.fixture()
def sql_directory(session_factory) -> Iterator[SqlDirectory]:
    directory = SqlDirectory(session_factory)
    yield directory
    directory.close()


@pytest.fixture(params=["memory", "sql"])
def directory(request: pytest.FixtureRequest):
    """Run a test once against each backend."""

    return request.getfixturevalue(f"{request.param}_directory")


async def _add_user(directory, user_id: str, display_name: str = "", **extra: Any) -> dict:
    return await directory.create_document(
        USERS,
        {
            "email": f"{user_id}@example.com",
            "displayName": display_name,
            "bio": "",
            "avatarUrl": None,
            "contentFilter": "off",
            "createdAt": SERVER_TIMESTAMP,
            "lastActive": SERVER_TIMESTAMP,
            **extra,
        },
        actor=None,
        document_id=user_id,
    )


@pytest.fixture()
def relay_token() -> str:
    return issue_session_token("relay-user")


@pytest.fixture()
def relay(monkeypatch: pytest.MonkeyPatch) -> Iterator[TestClient]:
    monkeypatch.setattr(settings, "RELAY_REQUIRE_SESSION", True)
    limiter.reset()
    with TestClient(create_app()) as client:
        yield client


@pytest.fixture()
def add_user():
    """Create a profile in the service context: ``await add_user(directory, "u1", "Alice")``."""

    return _add_user
