from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from workbench.models import CamelModel


class ChatTurn(BaseModel):
    role: str
    content: str


class Attachment(CamelModel):
    name: str
    kind: Literal["text", "image"]
    mime_type: str = "application/octet-stream"
    text: Optional[str] = None
    data: Optional[str] = None  # base64, images only


class ChatRequest(CamelModel):
    messages: List[ChatTurn] = Field(default_factory=list)
    system_prompt: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)


class MessageCreate(BaseModel):
    role: Literal["user", "assistant"]
    content: str
