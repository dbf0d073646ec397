from pydantic import BaseModel
from typing import Optional


class NoteCreate(BaseModel):
    title: Optional[str] = None
    content: str = ""


class NoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
