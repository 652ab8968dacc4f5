"""Optimistic drag-and-drop reordering for a single client session.

The controller owns the displayed list and the last list the server
confirmed. A drop rewrites the displayed list at once and (re)arms one
debounce timer; only the arrangement current when the timer fires is sent.
A request that has been sent is never cancelled. Its answer is always
applied: success confirms it, failure triggers an authoritative refetch.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Generic, List, Optional, Protocol, Sequence, TypeVar
from uuid import UUID

from app.config import get_settings

logger = logging.getLogger(__name__)


class _HasId(Protocol):
    @property
    def id(self) -> UUID: ...


NoteT = TypeVar("NoteT", bound=_HasId)


class ReorderBackend(Protocol[NoteT]):
    async def list_notes(self) -> List[NoteT]: ...

    async def reorder(self, note_ids: Sequence[UUID]) -> List[NoteT]: ...


class ReorderState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RECONCILING = "reconciling"


def move_item(items: Sequence[NoteT], from_index: int, to_index: int) -> List[NoteT]:
    """Return a copy of ``items`` with one element moved to ``to_index``."""

    if not 0 <= from_index < len(items):
        raise IndexError(f"from_index {from_index} out of range")
    result = list(items)
    moved = result.pop(from_index)
    to_index = min(max(to_index, 0), len(result))
    result.insert(to_index, moved)
    return result


class ReorderController(Generic[NoteT]):
    def __init__(
        self,
        api: ReorderBackend[NoteT],
        notes: Sequence[NoteT] = (),
        *,
        debounce: float | None = None,
    ) -> None:
        self.api = api
        self.debounce = get_settings().reorder_debounce_seconds if debounce is None else debounce
        self.notes: List[NoteT] = list(notes)
        self.confirmed: List[NoteT] = list(notes)
        self.state = ReorderState.IDLE
        self.last_error: Optional[BaseException] = None

        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task] = set()
        # Bumped on every local gesture; an answer for an older generation
        # must not overwrite the displayed list.
        self._generation = 0
        # Generation of the answer currently held in `confirmed`; answers for
        # older generations arrive late and are not allowed to replace it.
        self._confirmed_generation = 0
        self._dispatched_generation = 0
        self._dispatched: List[NoteT] = list(notes)
        self._idle = asyncio.Event()
        self._idle.set()

    async def load(self) -> List[NoteT]:
        """Replace both lists with the server's current order."""

        notes = await self.api.list_notes()
        self.confirmed = list(notes)
        self._confirmed_generation = self._generation
        self._dispatched_generation = self._generation
        self._dispatched = list(notes)
        self.notes = list(notes)
        self._settle()
        return self.notes

    def drop(self, from_index: int, to_index: int) -> List[NoteT]:
        """Apply a finished drag gesture. Must run inside the event loop."""

        candidate = move_item(self.notes, from_index, to_index)
        if [note.id for note in candidate] == [note.id for note in self.notes]:
            return self.notes

        self.notes = candidate
        self._generation += 1
        self.state = ReorderState.PENDING
        self._idle.clear()
        self._schedule()
        return self.notes

    def _schedule(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce, self._dispatch)

    def _dispatch(self) -> None:
        self._timer = None
        sequence = list(self.notes)
        self._dispatched_generation = self._generation
        self._dispatched = sequence
        task = asyncio.get_running_loop().create_task(self._send(sequence, self._generation))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _send(self, sequence: List[NoteT], generation: int) -> None:
        note_ids = [note.id for note in sequence]
        logger.info("Dispatching reorder of %s notes (generation %s)", len(note_ids), generation)
        try:
            confirmed = await self.api.reorder(note_ids)
        except Exception as exc:
            logger.warning("Reorder rejected, refetching server order: %s", exc)
            self.last_error = exc
            await self._reconcile(generation)
            return

        self.last_error = None
        if generation >= self._confirmed_generation:
            self.confirmed = list(confirmed)
            self._confirmed_generation = generation
        if generation == self._generation:
            self.notes = list(self.confirmed)
        self._settle()

    async def _reconcile(self, generation: int) -> None:
        self.state = ReorderState.RECONCILING
        try:
            server_notes = await self.api.list_notes()
        except Exception as exc:
            logger.error("Refetch after failed reorder also failed: %s", exc)
            self.last_error = exc
        else:
            logger.info("Refetched %s notes after failed reorder", len(server_notes))
            if generation >= self._confirmed_generation:
                self.confirmed = list(server_notes)
                self._confirmed_generation = generation

        if generation == self._generation:
            self.notes = list(self.confirmed)
        self._settle()

    def _settle(self) -> None:
        current = asyncio.current_task()
        busy = self._timer is not None or any(
            task is not current and not task.done() for task in self._in_flight
        )
        if busy:
            self.state = ReorderState.PENDING
        else:
            self.state = ReorderState.IDLE
            self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until no timer is armed and no request is in flight."""

        await self._idle.wait()

    def close(self) -> None:
        """Drop an armed timer. Requests already sent still complete.

        The unsent arrangement is discarded. While a request is still in
        flight the display falls back to what was sent, and that request's
        answer then settles both lists.
        """

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._generation = self._dispatched_generation
            self.notes = list(self._dispatched)
        if not any(not task.done() for task in self._in_flight):
            self.notes = list(self.confirmed)
            self.state = ReorderState.IDLE
            self._idle.set()
