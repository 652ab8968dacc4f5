from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from sqlalchemy.orm import Session

from app import ordering
from app.auth import get_current_owner
from app.dependencies import get_db
from app.errors import NoteNotFoundError
from app.models import DEFAULT_THEME, Note, User


router = APIRouter(prefix="/notes", tags=["notes"])

NoteStatus = Literal["active", "archived", "completed"]

_hex_color = re.compile(r"^#?([0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")


class ThemeIn(BaseModel):
    background_color: Optional[str] = Field(default=None, alias="backgroundColor")
    text_color: Optional[str] = Field(default=None, alias="textColor")
    use_gradient: Optional[bool] = Field(default=None, alias="useGradient")
    gradient_start: Optional[str] = Field(default=None, alias="gradientStart")
    gradient_end: Optional[str] = Field(default=None, alias="gradientEnd")
    border_radius: Optional[int] = Field(default=None, ge=0, alias="borderRadius")
    elevation: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("background_color", "text_color", "gradient_start", "gradient_end")
    @classmethod
    def check_hex_color(cls, value: str | None) -> str | None:
        if value is not None and not _hex_color.match(value):
            raise ValueError("Invalid hex color")
        return value

    def as_stored(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class NoteCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    status: NoteStatus = "active"
    theme: ThemeIn | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    status: Optional[NoteStatus] = None
    theme: Optional[ThemeIn] = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str | None) -> str | None:
        if value is None:
            return value
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


class MoveRequest(BaseModel):
    new_order: StrictInt = Field(alias="newOrder")

    model_config = ConfigDict(populate_by_name=True)


class ReorderRequest(BaseModel):
    note_ids: List[UUID] = Field(alias="noteIds")

    model_config = ConfigDict(populate_by_name=True)


class NoteRead(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    content: str
    status: str
    theme: Dict[str, Any]
    order: int
    updated_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


def _serialize_note(note: Note) -> dict[str, Any]:
    return {
        "id": note.id,
        "user_id": note.user_id,
        "title": note.title,
        "content": note.content,
        "status": note.status,
        "theme": note.theme or dict(DEFAULT_THEME),
        "order": note.order,
        "updated_at": note.updated_at,
        "created_at": note.created_at,
    }


def _fetch_note(db: Session, owner: User, note_id: UUID) -> Note:
    try:
        return ordering.get_owned_note(db, owner.id, note_id)
    except NoteNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")


@router.get("", response_model=List[NoteRead])
def list_notes(
    *,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
    note_status: NoteStatus | None = Query(default=None, alias="status"),
):
    notes = ordering.list_by_owner(db, owner.id, status=note_status)
    return [NoteRead.model_validate(_serialize_note(note)) for note in notes]


@router.post("", response_model=NoteRead, status_code=status.HTTP_201_CREATED)
def create_note(
    *,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
    payload: NoteCreate,
):
    theme = dict(DEFAULT_THEME)
    if payload.theme:
        theme.update(payload.theme.as_stored())

    note = Note(
        user_id=owner.id,
        title=payload.title,
        content=payload.content,
        status=payload.status,
        theme=theme,
    )
    ordering.append_note(db, note)

    db.commit()
    db.refresh(note)
    return NoteRead.model_validate(_serialize_note(note))


@router.put("/order", response_model=List[NoteRead])
def reorder_notes(
    *,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
    payload: ReorderRequest,
):
    notes = ordering.resequence(db, owner.id, payload.note_ids)
    db.commit()
    for note in notes:
        db.refresh(note)
    return [NoteRead.model_validate(_serialize_note(note)) for note in notes]


@router.get("/{note_id}", response_model=NoteRead)
def read_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
):
    note = _fetch_note(db, owner, note_id)
    return NoteRead.model_validate(_serialize_note(note))


@router.patch("/{note_id}", response_model=NoteRead)
def update_note(
    note_id: UUID,
    *,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
    payload: NoteUpdate,
):
    note = _fetch_note(db, owner, note_id)

    if payload.title is not None:
        note.title = payload.title
    if payload.content is not None:
        note.content = payload.content
    if payload.status is not None:
        note.status = payload.status
    if payload.theme is not None:
        note.theme = {**(note.theme or DEFAULT_THEME), **payload.theme.as_stored()}

    db.commit()
    db.refresh(note)
    return NoteRead.model_validate(_serialize_note(note))


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_note(
    note_id: UUID,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
) -> None:
    note = _fetch_note(db, owner, note_id)
    db.delete(note)
    db.commit()
    return None


@router.patch("/{note_id}/order", response_model=NoteRead)
def move_note(
    note_id: UUID,
    *,
    db: Session = Depends(get_db),
    owner: User = Depends(get_current_owner),
    payload: MoveRequest,
):
    note = ordering.move_note(db, owner.id, note_id, payload.new_order)
    db.commit()
    db.refresh(note)
    return NoteRead.model_validate(_serialize_note(note))
