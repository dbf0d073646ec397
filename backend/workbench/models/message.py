from datetime import datetime
from typing import Literal

from .base import CamelModel

Role = Literal["user", "assistant"]


class ChatMessage(CamelModel):
    id: int
    role: Role
    content: str
    timestamp: datetime
