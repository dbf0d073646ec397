import asyncio
import base64
import binascii
from typing import List, Dict, Any

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

logger = get_logger("gemini_provider")

SDK_PACKAGE = "google-generativeai"


def _load_genai():
    # Imported on demand so the generic path works without the Google SDK
    import google.generativeai as genai
    return genai


def _decode_image(data: str) -> bytes:
    if "," in data and data.startswith("data:"):
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data)
    except (binascii.Error, ValueError) as e:
        raise ProviderError("Invalid image attachment", details=str(e), status_code=400)


class GeminiProvider(LLMProvider):
    def convert_messages(self, request: ProviderRequest) -> List[Dict[str, Any]]:
        gemini_contents = []
        for m in request.messages:
            # Gemini only knows "user" and "model" turns
            role = "model" if m.get("role") == "assistant" else "user"
            gemini_contents.append({"role": role, "parts": [{"text": m.get("content", "")}]})

        if request.attachments:
            idx = last_user_index(gemini_contents)
            if idx is None:
                gemini_contents.append({"role": "user", "parts": [{"text": ""}]})
                idx = len(gemini_contents) - 1
            turn = gemini_contents[idx]
            parts = [{"text": merge_text_attachments(turn["parts"][0]["text"], request.attachments)}]
            for att in image_attachments(request.attachments):
                parts.append({"inline_data": {"mime_type": att.mime_type, "data": _decode_image(att.data)}})
            gemini_contents[idx] = {"role": "user", "parts": parts}

        # No separate system slot in this content shape: fold it into the first user turn
        if request.system_prompt:
            if gemini_contents and gemini_contents[0]["role"] == "user":
                first = gemini_contents[0]
                text = first["parts"][0]["text"]
                first["parts"][0] = {"text": f"{request.system_prompt}\n\n{text}"}
            else:
                gemini_contents.insert(0, {"role": "user", "parts": [{"text": request.system_prompt}]})

        return gemini_contents

    async def generate(self, config: ApiConfiguration, request: ProviderRequest) -> ProviderResponse:
        try:
            genai = _load_genai()
        except ImportError as e:
            raise ProviderError(
                f"Failed to load Google SDK. Ensure '{SDK_PACKAGE}' is installed",
                details=str(e),
            )

        contents = self.convert_messages(request)
        api_key = primary_key(config.token)

        def _generate_sync():
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(config.model)
            return model.generate_content(contents)

        try:
            response = await asyncio.to_thread(_generate_sync)
        except Exception as e:
            status = getattr(e, "code", None)
            status_code = status if isinstance(status, int) and 400 <= status < 600 else 500
            logger.error(f"Gemini request failed ({status_code}): {type(e).__name__}: {e}")
            raise ProviderError(f"Google API Error: {status_code}", details=str(e), status_code=status_code)

        try:
            text = response.text or ""
        except ValueError:
            # blocked or empty candidates
            text = ""

        total_tokens = None
        usage = getattr(response, "usage_metadata", None)
        if usage is not None:
            total_tokens = optional_token_count(getattr(usage, "total_token_count", None))

        body = {"choices": [{"message": {"role": "assistant", "content": text}}]}
        return ProviderResponse(body=body, total_tokens=total_tokens)
