from typing import Optional

from workbench.core.config import Settings, get_settings
from workbench.models import Namespace

from .base import LLMProvider, ProviderError, ProviderRequest, ProviderResponse
from .generic_provider import GenericProvider
from .gemini_provider import GeminiProvider

class ProviderFactory:
    _providers = {
        Namespace.GENERIC: GenericProvider,
        Namespace.GOOGLE: GeminiProvider,
    }

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._instances = {}

    def get_provider(self, namespace: Namespace) -> LLMProvider:
        if namespace not in self._instances:
            provider_class = self._providers.get(namespace)
            if not provider_class:
                raise ValueError(f"Provider {namespace} not found")
            self._instances[namespace] = provider_class.from_settings(self.settings)
        return self._instances[namespace]
