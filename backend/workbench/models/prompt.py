from datetime import datetime

from .base import CamelModel


class SystemPrompt(CamelModel):
    id: int
    name: str
    content: str
    created_at: datetime


DEFAULT_PROMPTS = [
    {
        "name": "Programming assistant",
        "content": "You are an experienced programmer who helps solve problems and explains code in plain language.",
    },
    {
        "name": "Translator",
        "content": "Translate texts into any language while preserving the meaning and style of the original.",
    },
    {
        "name": "Data analyst",
        "content": "Analyze data, build charts and draw conclusions based on statistics.",
    },
]
