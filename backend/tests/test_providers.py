import base64
import json

import httpx
import pytest
from pytest_httpx import HTTPXMock

from workbench.core.config import Settings
from workbench.models import ApiConfiguration, Namespace
from workbench.providers import ProviderError, ProviderFactory, ProviderRequest
from workbench.providers.gemini_provider import GeminiProvider
from workbench.providers.generic_provider import GenericProvider, extract_error_detail
from workbench.schemas.chat import Attachment

ENDPOINT = "https://llm.example.com/v1/chat/completions"


@pytest.fixture
def generic_config():
    return ApiConfiguration(id=1, name="Local", endpoint=ENDPOINT, token="sk-first\nsk-second", model="gpt-test")


@pytest.fixture
def google_config():
    return ApiConfiguration(id=1, name="Gemini", token="g-key", model="gemini-pro", use_google=True)


# ----------------------------
# Generic provider
# ----------------------------

def test_generic_payload_shape(generic_config):
    request = ProviderRequest(
        messages=[{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello"}],
        system_prompt="Be brief",
        temperature=0.7,
        max_tokens=2000,
    )
    payload = GenericProvider(timeout=5).build_payload(generic_config, request)

    assert payload == {
        "model": "gpt-test",
        "messages": [
            {"role": "system", "content": "Be brief"},
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
        ],
        "stream": False,
        "temperature": 0.7,
        "max_tokens": 2000,
    }


def test_generic_attachments_go_to_last_user_turn(generic_config):
    request = ProviderRequest(
        messages=[{"role": "user", "content": "Look"}],
        attachments=[
            Attachment(name="notes.txt", kind="text", text="file body"),
            Attachment(name="pic.png", kind="image", mime_type="image/png", data="aGVsbG8="),
        ],
    )
    messages = GenericProvider(timeout=5).build_messages(request)

    parts = messages[-1]["content"]
    assert parts[0] == {"type": "text", "text": "Look\n\n[Attachment: notes.txt]\nfile body"}
    assert parts[1]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="


@pytest.mark.asyncio
async def test_generic_generate_success(httpx_mock: HTTPXMock, generic_config):
    body = {"choices": [{"message": {"role": "assistant", "content": "Hi"}}], "usage": {"total_tokens": 12}}
    httpx_mock.add_response(url=ENDPOINT, method="POST", json=body)

    response = await GenericProvider(timeout=5).generate(
        generic_config, ProviderRequest(messages=[{"role": "user", "content": "Hello"}])
    )

    assert response.body == body
    assert response.total_tokens == 12
    sent = httpx_mock.get_request()
    assert sent.headers["Authorization"] == "Bearer sk-first"
    assert json.loads(sent.content)["model"] == "gpt-test"


@pytest.mark.asyncio
async def test_generic_generate_mirrors_upstream_status(httpx_mock: HTTPXMock, generic_config):
    httpx_mock.add_response(
        url=ENDPOINT, method="POST", status_code=429, json={"error": {"message": "Rate limit reached"}}
    )

    with pytest.raises(ProviderError) as exc_info:
        await GenericProvider(timeout=5).generate(
            generic_config, ProviderRequest(messages=[{"role": "user", "content": "Hello"}])
        )

    error = exc_info.value
    assert error.status_code == 429
    assert error.message == "LLM API Error: 429 Too Many Requests"
    assert error.details == "Rate limit reached"
    assert error.to_json()["endpoint"] == ENDPOINT


@pytest.mark.asyncio
async def test_generic_network_failure_is_500(httpx_mock: HTTPXMock, generic_config):
    httpx_mock.add_exception(httpx.ConnectError("connection refused"), url=ENDPOINT)

    with pytest.raises(ProviderError) as exc_info:
        await GenericProvider(timeout=5).generate(
            generic_config, ProviderRequest(messages=[{"role": "user", "content": "Hello"}])
        )

    error = exc_info.value
    assert error.status_code == 500
    assert error.message == "Failed to reach LLM API"
    assert error.details == "connection refused"


@pytest.mark.asyncio
async def test_generic_malformed_body_is_500(httpx_mock: HTTPXMock, generic_config):
    httpx_mock.add_response(url=ENDPOINT, method="POST", text="<html>gateway page</html>")

    with pytest.raises(ProviderError) as exc_info:
        await GenericProvider(timeout=5).generate(
            generic_config, ProviderRequest(messages=[{"role": "user", "content": "Hello"}])
        )

    error = exc_info.value
    assert error.status_code == 500
    assert error.details == "<html>gateway page</html>"


def test_factory_uses_given_timeout():
    factory = ProviderFactory(Settings(PROVIDER_TIMEOUT_SECONDS=1.5))

    provider = factory.get_provider(Namespace.GENERIC)
    assert provider.timeout == 1.5
    assert factory.get_provider(Namespace.GENERIC) is provider
    assert ProviderFactory(Settings(PROVIDER_TIMEOUT_SECONDS=9)).get_provider(Namespace.GENERIC).timeout == 9


def test_extract_error_detail():
    assert extract_error_detail('{"error": {"message": "bad key"}}') == "bad key"
    assert extract_error_detail('{"message": "nope"}') == "nope"
    assert extract_error_detail("upstream exploded") == "upstream exploded"
    assert extract_error_detail('["list"]') == '["list"]'


# ----------------------------
# Gemini provider
# ----------------------------

def test_gemini_role_translation_and_system_folding():
    request = ProviderRequest(
        messages=[
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello"},
            {"role": "user", "content": "How are you?"},
        ],
        system_prompt="Be brief",
    )
    contents = GeminiProvider().convert_messages(request)

    assert [c["role"] for c in contents] == ["user", "model", "user"]
    assert contents[0]["parts"] == [{"text": "Be brief\n\nHi"}]


def test_gemini_system_prompt_gets_synthetic_turn():
    request = ProviderRequest(messages=[{"role": "assistant", "content": "Welcome"}], system_prompt="Be brief")
    contents = GeminiProvider().convert_messages(request)

    assert contents[0] == {"role": "user", "parts": [{"text": "Be brief"}]}
    assert contents[1]["role"] == "model"


def test_gemini_attachments():
    image = base64.b64encode(b"png-bytes").decode()
    request = ProviderRequest(
        messages=[{"role": "user", "content": "Describe"}],
        attachments=[
            Attachment(name="a.txt", kind="text", text="text body"),
            Attachment(name="a.png", kind="image", mime_type="image/png", data=f"data:image/png;base64,{image}"),
        ],
    )
    parts = GeminiProvider().convert_messages(request)[-1]["parts"]

    assert parts[0] == {"text": "Describe\n\n[Attachment: a.txt]\ntext body"}
    assert parts[1] == {"inline_data": {"mime_type": "image/png", "data": b"png-bytes"}}


@pytest.mark.asyncio
async def test_gemini_generate(fake_genai, google_config):
    response = await GeminiProvider().generate(
        google_config, ProviderRequest(messages=[{"role": "user", "content": "Hello"}])
    )

    assert response.body == {"choices": [{"message": {"role": "assistant", "content": "Hi from Gemini"}}]}
    assert response.total_tokens == 42
    assert fake_genai.api_keys == ["g-key"]
    assert fake_genai.calls[0]["model"] == "gemini-pro"


@pytest.mark.asyncio
async def test_gemini_error_status(fake_genai, google_config):
    error = RuntimeError("quota exceeded")
    error.code = 429
    fake_genai.error = error

    with pytest.raises(ProviderError) as exc_info:
        await GeminiProvider().generate(google_config, ProviderRequest(messages=[{"role": "user", "content": "Hi"}]))

    assert exc_info.value.status_code == 429
    assert exc_info.value.details == "quota exceeded"


@pytest.mark.asyncio
async def test_gemini_error_without_code_is_500(fake_genai, google_config):
    fake_genai.error = RuntimeError("SDK blew up")

    with pytest.raises(ProviderError) as exc_info:
        await GeminiProvider().generate(google_config, ProviderRequest(messages=[{"role": "user", "content": "Hi"}]))

    assert exc_info.value.status_code == 500
    assert exc_info.value.details == "SDK blew up"
