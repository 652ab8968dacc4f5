"""Per-owner note ranks.

Every note carries an integer ``order`` that is unique among its owner's
notes once an operation completes. Ranks start at 0. New notes are appended
after the current maximum, deletes leave gaps, and the two resequencers below
are the only code paths that move existing notes.

None of these helpers commit. Callers run one resequencing operation per
session transaction and commit it as a unit; on any exception the session is
rolled back and the owner's ranks are exactly what they were before.
"""

from __future__ import annotations

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.errors import InvalidOrderError, NoteNotFoundError, StaleNoteSetError
from app.models import Note

logger = logging.getLogger(__name__)


def _next_order_subquery(owner_id: UUID):
    return (
        select(func.coalesce(func.max(Note.order), -1) + 1)
        .where(Note.user_id == owner_id)
        .correlate(None)
        .scalar_subquery()
    )


def append_note(db: Session, note: Note) -> int:
    """Insert ``note`` at the end of its owner's order and return its rank.

    The maximum is read inside the INSERT itself, so there is no window
    between reading the max and writing the new row.
    """

    note.order = _next_order_subquery(note.user_id)
    db.add(note)
    db.flush([note])
    db.refresh(note)
    logger.info("Appended note %s for owner %s at rank %s", note.id, note.user_id, note.order)
    return note.order


def max_order(db: Session, owner_id: UUID) -> int:
    """Highest rank held by the owner, or -1 when they have no notes."""

    return db.execute(
        select(func.coalesce(func.max(Note.order), -1)).where(Note.user_id == owner_id)
    ).scalar_one()


def list_by_owner(db: Session, owner_id: UUID, *, status: str | None = None) -> list[Note]:
    stmt = select(Note).where(Note.user_id == owner_id)
    if status:
        stmt = stmt.where(Note.status == status)
    stmt = stmt.order_by(Note.order.asc(), Note.created_at.desc())
    return list(db.execute(stmt).scalars().all())


def get_owned_note(db: Session, owner_id: UUID, note_id: UUID, *, lock: bool = False) -> Note:
    stmt = select(Note).where(Note.id == note_id, Note.user_id == owner_id)
    if lock:
        stmt = stmt.with_for_update()
    note = db.execute(stmt).scalar_one_or_none()
    if note is None:
        raise NoteNotFoundError("Note not found")
    return note


def notes_in_range(
    db: Session,
    owner_id: UUID,
    low_exclusive: int,
    high_inclusive: int,
    *,
    lock: bool = False,
) -> list[Note]:
    """Owner's notes with ``low_exclusive < order <= high_inclusive``."""

    stmt = (
        select(Note)
        .where(
            Note.user_id == owner_id,
            Note.order > low_exclusive,
            Note.order <= high_inclusive,
        )
        .order_by(Note.order)
    )
    if lock:
        stmt = stmt.with_for_update()
    return list(db.execute(stmt).scalars().all())


def set_order(note: Note, new_order: int) -> None:
    """Plain single-field write. Collisions are the caller's problem."""

    note.order = new_order


def range_shift(
    db: Session,
    owner_id: UUID,
    low_exclusive: int,
    high_inclusive: int,
    delta: int,
    *,
    exclude_id: UUID | None = None,
) -> int:
    """Add ``delta`` to every rank in ``(low_exclusive, high_inclusive]``.

    Issued as a single UPDATE scoped to the owner. Returns the number of
    notes shifted.
    """

    if high_inclusive <= low_exclusive or delta == 0:
        return 0

    # Lock the rows first so a concurrent move for the same owner waits.
    affected = notes_in_range(db, owner_id, low_exclusive, high_inclusive, lock=True)
    if exclude_id is not None:
        affected = [note for note in affected if note.id != exclude_id]
    if not affected:
        return 0

    stmt = update(Note).where(
        Note.user_id == owner_id,
        Note.order > low_exclusive,
        Note.order <= high_inclusive,
    )
    if exclude_id is not None:
        stmt = stmt.where(Note.id != exclude_id)
    result = db.execute(
        stmt.values(order=Note.order + delta).execution_options(synchronize_session="fetch")
    )
    return result.rowcount


def clamp_order(db: Session, owner_id: UUID, requested: int) -> int:
    """Clamp a requested rank into ``[0, highest current rank]``."""

    upper = max(max_order(db, owner_id), 0)
    return min(max(requested, 0), upper)


def move_note(db: Session, owner_id: UUID, note_id: UUID, new_order: int) -> Note:
    """Move one note to ``new_order``, shifting the notes in between by one.

    Out-of-range targets are clamped, so moving past the end lands the note
    last and a negative target lands it first.
    """

    if isinstance(new_order, bool) or not isinstance(new_order, int):
        raise InvalidOrderError("newOrder must be an integer")

    note = get_owned_note(db, owner_id, note_id, lock=True)
    old_order = note.order
    target = clamp_order(db, owner_id, new_order)
    if target != new_order:
        logger.info("Clamped move of note %s from %s to %s", note_id, new_order, target)

    if target == old_order:
        return note

    if target > old_order:
        shifted = range_shift(db, owner_id, old_order, target, -1, exclude_id=note.id)
    else:
        shifted = range_shift(db, owner_id, target - 1, old_order - 1, 1, exclude_id=note.id)

    set_order(note, target)
    db.flush([note])
    logger.info(
        "Moved note %s for owner %s from %s to %s (%s shifted)",
        note_id,
        owner_id,
        old_order,
        target,
        shifted,
    )
    return note


def resequence(db: Session, owner_id: UUID, note_ids: Sequence[UUID]) -> list[Note]:
    """Assign ranks ``0..N-1`` following ``note_ids``.

    ``note_ids`` must name every note the owner has, each exactly once.
    Anything else is rejected before a single rank is written.
    """

    if len(set(note_ids)) != len(note_ids):
        raise InvalidOrderError("Reorder request contains duplicate note ids")

    notes = (
        db.execute(select(Note).where(Note.user_id == owner_id).with_for_update())
        .scalars()
        .all()
    )
    by_id = {note.id: note for note in notes}

    unknown = set(note_ids) - set(by_id)
    missing = set(by_id) - set(note_ids)
    if unknown or missing:
        logger.warning(
            "Rejected reorder for owner %s: %s unknown, %s missing",
            owner_id,
            len(unknown),
            len(missing),
        )
        raise StaleNoteSetError(
            "Note list does not match the current notes "
            f"({len(unknown)} unknown, {len(missing)} missing)"
        )

    for index, note_id in enumerate(note_ids):
        set_order(by_id[note_id], index)
    db.flush()

    logger.info("Resequenced %s notes for owner %s", len(note_ids), owner_id)
    return [by_id[note_id] for note_id in note_ids]
