"""Card records produced by the parser and consumed by the field mapper."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CardFormat(str, Enum):
    MULTI_LINE = 'multi_line'
    TABLE = 'table'
    FALLBACK = 'fallback'


class Card(BaseModel):
    question: str
    answer: str
    annotation: Optional[str] = None
    tags: Optional[List[str]] = None


class NoteResult(BaseModel):
    index: int
    note_id: Optional[int] = None
    fields: Optional[dict] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.note_id is not None


class AddNotesResult(BaseModel):
    deck_name: str
    model_name: str
    results: List[NoteResult] = Field(default_factory=list)
    success_count: int = 0
    total_count: int = 0
