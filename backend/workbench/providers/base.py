from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field

from workbench.models import ApiConfiguration
from workbench.schemas.chat import Attachment


class ProviderRequest(BaseModel):
    messages: List[Dict[str, Any]]
    system_prompt: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class ProviderResponse(BaseModel):
    body: Any
    total_tokens: Optional[int] = None
    status_code: int = 200


class ProviderError(Exception):
    """Upstream failure, rendered to the client as {message, details}."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: int = 500,
        endpoint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code
        self.endpoint = endpoint

    def to_json(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"message": self.message, "details": self.details}
        if self.endpoint:
            payload["endpoint"] = self.endpoint
        return payload


class LLMProvider(ABC):
    @classmethod
    def from_settings(cls, settings) -> "LLMProvider":
        return cls()

    @abstractmethod
    async def generate(self, config: ApiConfiguration, request: ProviderRequest) -> ProviderResponse:
        """
        Sends one completion request using the given configuration.

        Args:
            config: Configuration holding endpoint, token and model
            request: Provider-neutral messages, system prompt and limits

        Returns:
            ProviderResponse with the client-facing body and token usage

        Raises:
            ProviderError on network failure, non-2xx status or a malformed body
        """
        pass


def merge_text_attachments(content: str, attachments: List[Attachment]) -> str:
    blocks = [content] if content else []
    for att in attachments:
        if att.kind == "text" and att.text:
            blocks.append(f"[Attachment: {att.name}]\n{att.text}")
    return "\n\n".join(blocks)


def image_attachments(attachments: List[Attachment]) -> List[Attachment]:
    return [att for att in attachments if att.kind == "image" and att.data]


def last_user_index(messages: List[Dict[str, Any]]) -> Optional[int]:
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].get("role") == "user":
            return i
    return None
