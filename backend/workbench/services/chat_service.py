from typing import Any, Optional
import time

from workbench.core.config import Settings, get_settings
from workbench.core.storage import Storage
from workbench.models import ApiConfiguration, Namespace
from workbench.providers import ProviderFactory, ProviderRequest, ProviderResponse
from workbench.schemas.chat import ChatRequest
from workbench.utils.logger import get_logger
from workbench.utils.tokens import primary_key

logger = get_logger("chat_service")


class ConfigurationMissingError(Exception):
    def __init__(self, namespace: Namespace):
        super().__init__("API configuration not found")
        self.namespace = namespace


def extract_reply_text(body: Any) -> str:
    """choices[0].message.content of a chat completion body, or ''."""
    try:
        content = body["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content.strip() if isinstance(content, str) else ""


class ChatService:
    def __init__(self, storage: Storage, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()
        self.provider_factory = ProviderFactory(self.settings)

    def active_config(self, namespace: Namespace) -> ApiConfiguration:
        config = self.storage.get_active_config(namespace)
        if not config:
            raise ConfigurationMissingError(namespace)
        return config

    async def complete(self, namespace: Namespace, request: ProviderRequest) -> ProviderResponse:
        config = self.active_config(namespace)
        provider = self.provider_factory.get_provider(namespace)

        start_llm = time.time()
        response = await provider.generate(config, request)
        logger.info(
            f"{namespace.value} completion via config {config.id} ({config.model}) "
            f"took {time.time() - start_llm:.4f}s, tokens={response.total_tokens}"
        )

        self.storage.record_usage(primary_key(config.token), config, response.total_tokens)
        return response

    async def chat(self, namespace: Namespace, payload: ChatRequest) -> ProviderResponse:
        request = ProviderRequest(
            messages=[m.model_dump() for m in payload.messages],
            system_prompt=payload.system_prompt,
            attachments=payload.attachments,
            temperature=self.settings.CHAT_TEMPERATURE,
            max_tokens=self.settings.CHAT_MAX_TOKENS,
        )
        return await self.complete(namespace, request)

    async def test_connection(self, namespace: Namespace) -> ProviderResponse:
        request = ProviderRequest(
            messages=[{"role": "user", "content": "Hello"}],
            max_tokens=self.settings.TEST_MAX_TOKENS,
        )
        return await self.complete(namespace, request)
