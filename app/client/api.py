from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List
from uuid import UUID

import httpx
from pydantic import BaseModel, ConfigDict

from app.config import get_settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Non-2xx answer from the notes API."""

    def __init__(self, status_code: int, message: str, code: str | None = None) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code


class RemoteNote(BaseModel):
    id: UUID
    title: str
    content: str
    status: str = "active"
    theme: Dict[str, Any] = {}
    order: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)


def _raise_for_error(response: httpx.Response) -> None:
    if response.is_success:
        return
    code = None
    try:
        body = response.json()
    except ValueError:
        message = response.text or response.reason_phrase
    else:
        detail = body.get("detail") if isinstance(body, dict) else body
        message = detail if isinstance(detail, str) else str(detail)
        code = body.get("code") if isinstance(body, dict) else None
    raise ApiError(response.status_code, message, code)


class NotesApiClient:
    """Thin async client for the ordering-related notes endpoints."""

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(
            base_url=base_url or get_settings().api_base_url, timeout=timeout
        )
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self) -> "NotesApiClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_notes(self) -> List[RemoteNote]:
        response = await self._client.get("/notes", headers=self._headers)
        _raise_for_error(response)
        return [RemoteNote.model_validate(item) for item in response.json()]

    async def move_note(self, note_id: UUID, new_order: int) -> RemoteNote:
        response = await self._client.patch(
            f"/notes/{note_id}/order", json={"newOrder": new_order}, headers=self._headers
        )
        _raise_for_error(response)
        return RemoteNote.model_validate(response.json())

    async def reorder(self, note_ids: Iterable[UUID]) -> List[RemoteNote]:
        ids = [str(note_id) for note_id in note_ids]
        logger.debug("Sending reorder of %s notes", len(ids))
        response = await self._client.put("/notes/order", json={"noteIds": ids}, headers=self._headers)
        _raise_for_error(response)
        return [RemoteNote.model_validate(item) for item in response.json()]
