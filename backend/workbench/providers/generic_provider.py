from __future__ import annotations

import json
import time
from typing import Any, Dict, List

import httpx

from workbench.models import ApiConfiguration
from workbench.utils.logger import get_logger
from workbench.utils.tokens import optional_token_count, primary_key
from .base import (
    LLMProvider,
    ProviderError,
    ProviderRequest,
    ProviderResponse,
    image_attachments,
    last_user_index,
    merge_text_attachments,
)

logger = get_logger("generic_provider")

DEFAULT_TIMEOUT_SECONDS = 60.0


def extract_error_detail(error_text: str) -> str:
    """Prefer error.message, then message, else the raw body."""
    try:
        error_json = json.loads(error_text)
    except ValueError:
        return error_text
    if not isinstance(error_json, dict):
        return error_text

    error = error_json.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if error_json.get("message"):
        return str(error_json["message"])
    return error_text


class GenericProvider(LLMProvider):
    """Any OpenAI-compatible chat completions endpoint, called over plain HTTP."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "GenericProvider":
        return cls(timeout=settings.PROVIDER_TIMEOUT_SECONDS)

    def build_messages(self, request: ProviderRequest) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend({"role": m.get("role"), "content": m.get("content", "")} for m in request.messages)

        if not request.attachments:
            return messages

        idx = last_user_index(messages)
        if idx is None:
            messages.append({"role": "user", "content": ""})
            idx = len(messages) - 1

        text = merge_text_attachments(messages[idx]["content"], request.attachments)
        images = image_attachments(request.attachments)
        if images:
            parts: List[Dict[str, Any]] = [{"type": "text", "text": text}]
            for att in images:
                parts.append({
                    "type": "image_url",
                    "image_url": {"url": f"data:{att.mime_type};base64,{att.data}"},
                })
            messages[idx] = {"role": "user", "content": parts}
        else:
            messages[idx] = {"role": "user", "content": text}
        return messages

    def build_payload(self, config: ApiConfiguration, request: ProviderRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": config.model,
            "messages": self.build_messages(request),
            "stream": False,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        return payload

    async def generate(self, config: ApiConfiguration, request: ProviderRequest) -> ProviderResponse:
        payload = self.build_payload(config, request)
        logger.info(
            f"Sending request to LLM API: endpoint={config.endpoint} model={config.model} "
            f"messages={len(payload['messages'])}"
        )

        start = time.time()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    config.endpoint,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {primary_key(config.token)}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"LLM API request to {config.endpoint} failed: {type(e).__name__}: {e}")
            raise ProviderError(
                "Failed to reach LLM API",
                details=str(e) or type(e).__name__,
                endpoint=config.endpoint,
            )

        logger.info(f"LLM API response status: {response.status_code} in {time.time() - start:.4f}s")

        if not response.is_success:
            error_text = response.text
            logger.error(f"LLM API error response: {error_text[:500]}")
            raise ProviderError(
                f"LLM API Error: {response.status_code} {response.reason_phrase}",
                details=extract_error_detail(error_text),
                status_code=response.status_code,
                endpoint=config.endpoint,
            )

        try:
            data = response.json()
        except ValueError:
            raise ProviderError(
                "LLM API returned a malformed response",
                details=response.text[:500],
                endpoint=config.endpoint,
            )

        usage = data.get("usage") if isinstance(data, dict) else None
        total_tokens = optional_token_count(usage.get("total_tokens")) if isinstance(usage, dict) else None
        return ProviderResponse(body=data, total_tokens=total_tokens, status_code=response.status_code)
