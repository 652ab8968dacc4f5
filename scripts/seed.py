from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app import ordering
from app.auth import create_access_token
from app.dependencies import SessionLocal
from app.models import DEFAULT_THEME, Note, User

logger = logging.getLogger(__name__)

DEMO_NOTES = [
    ("Welcome to NoteMate", "Drag cards around to reorder them.", {"backgroundColor": "#fff8e1"}),
    ("Groceries", "Milk, eggs, coffee", {"backgroundColor": "#e3f2fd"}),
    ("Ideas", "Gradient themes for pinned notes", {"useGradient": True, "gradientStart": "#ff9a9e", "gradientEnd": "#fad0c4"}),
]


def seed() -> None:
    """Populate the database with starter data."""

    db = SessionLocal()
    try:
        user = User(email="demo@example.com", name="Demo User")
        db.add(user)
        db.flush()

        for title, content, theme in DEMO_NOTES:
            note = Note(user_id=user.id, title=title, content=content, theme={**DEFAULT_THEME, **theme})
            ordering.append_note(db, note)

        db.commit()
        user_id = user.id
        logger.info("Database seeded successfully")
    except IntegrityError:
        db.rollback()
        logger.info("Seed data already present; skipping.")
        user_id = db.execute(select(User.id).where(User.email == "demo@example.com")).scalar_one()
    finally:
        db.close()

    print(f"Demo token: {create_access_token(user_id)}")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    seed()
