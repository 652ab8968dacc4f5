import os
import tempfile
from datetime import datetime, timedelta, timezone

# Point the app at a throwaway SQLite file before anything imports app.*
_DB_DIR = tempfile.mkdtemp(prefix="notemate-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR}/notemate.db"
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from app.auth import create_access_token
from app.dependencies import SessionLocal, engine
from app.main import app
from app.models import Base, Note, User


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client():
    return TestClient(app)


@pytest.fixture()
def make_user(db):
    def _make(email="alice@example.com"):
        user = User(email=email, name=email.split("@")[0])
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture()
def headers_for():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture()
def seed_notes(db):
    """Insert notes with explicit ranks, returning them keyed by title."""

    def _seed(user, titles, orders=None):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        orders = list(range(len(titles))) if orders is None else orders
        notes = {}
        for index, (title, order) in enumerate(zip(titles, orders)):
            note = Note(
                user_id=user.id,
                title=title,
                content=f"{title} body",
                order=order,
                created_at=base + timedelta(minutes=index),
            )
            db.add(note)
            notes[title] = note
        db.commit()
        return notes

    return _seed
