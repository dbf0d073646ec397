from datetime import datetime
from typing import Optional

from .base import CamelModel

NOTE_TITLE_MAX_LENGTH = 80
NOTE_TITLE_PLACEHOLDER = "Untitled note"


class Note(CamelModel):
    id: int
    title: str
    content: str
    summary: Optional[str] = None
    created_at: datetime
    updated_at: datetime


def derive_title(content: Optional[str]) -> str:
    for line in (content or "").splitlines():
        line = line.strip()
        if line:
            return line[:NOTE_TITLE_MAX_LENGTH]
    return NOTE_TITLE_PLACEHOLDER


def resolve_title(title: Optional[str], content: Optional[str]) -> str:
    if title and title.strip():
        return title.strip()[:NOTE_TITLE_MAX_LENGTH]
    return derive_title(content)
