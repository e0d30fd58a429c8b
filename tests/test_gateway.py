import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from deutschlern.config import Settings
from deutschlern.errors import ApiError, ApiKeyNotSetError, TransportError
from deutschlern.gateway import GENERIC_ERROR_MESSAGE, ChatGateway, parse_error

REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def fake_client(**create_kwargs):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


# ---------------------------------------------------------------------------
# parse_error: one test per branch, in priority order
# ---------------------------------------------------------------------------

def test_branch1_nested_error_message_wins():
    error = {"error": {"error": {"message": "bad key"}, "message": "outer"}, "message": "top"}
    assert parse_error(error) == "bad key"


def test_branch2_body_message():
    error = {"error": {"message": "Rate limit exceeded", "code": 429}, "message": "top"}
    assert parse_error(error) == "Rate limit exceeded"


def test_branch2_applies_when_nested_error_has_no_string_message():
    error = {"error": {"error": {"code": 500}, "message": "Upstream failed"}}
    assert parse_error(error) == "Upstream failed"


def test_branch3_body_is_plain_string():
    assert parse_error({"error": "plain string", "message": "top"}) == "plain string"


def test_branch4_top_level_message():
    assert parse_error({"message": "timeout"}) == "timeout"


def test_branch4_when_body_object_has_no_message():
    assert parse_error({"error": {"code": 502}, "message": "Bad gateway"}) == "Bad gateway"


def test_branch5_generic_message():
    assert parse_error({}) == GENERIC_ERROR_MESSAGE
    assert parse_error({"error": {"code": 1}}) == GENERIC_ERROR_MESSAGE
    assert parse_error(object()) == GENERIC_ERROR_MESSAGE


def test_exception_body_is_classified():
    response = httpx.Response(401, request=REQUEST)
    error = openai.APIStatusError("Error code: 401", response=response,
                                  body={"error": {"message": "No auth credentials found"}})
    assert parse_error(error) == "No auth credentials found"


def test_exception_without_body_uses_its_message():
    error = openai.APIConnectionError(message="timeout", request=REQUEST)
    assert parse_error(error) == "timeout"


def test_plain_exception_uses_str():
    assert parse_error(RuntimeError("socket closed")) == "socket closed"


# ---------------------------------------------------------------------------
# ChatGateway.complete
# ---------------------------------------------------------------------------

def test_missing_api_key_fails_before_any_network_call():
    client = fake_client(return_value=completion("unused"))
    gateway = ChatGateway(Settings(api_key=""), client=client)

    with pytest.raises(ApiKeyNotSetError):
        asyncio.run(gateway.complete([{"role": "user", "content": "Hallo"}]))

    client.chat.completions.create.assert_not_called()


def test_returns_first_choice_content_and_sends_model_settings(settings):
    client = fake_client(return_value=completion("Guten Tag!"))
    gateway = ChatGateway(settings, client=client)
    messages = [{"role": "user", "content": "Sag hallo"}]

    assert asyncio.run(gateway.complete(messages)) == "Guten Tag!"

    kwargs = client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == settings.model_id
    assert kwargs["messages"] == messages
    assert kwargs["temperature"] == settings.temperature
    assert "response_format" not in kwargs


def test_connection_failure_becomes_transport_error(settings):
    client = fake_client(side_effect=openai.APIConnectionError(message="Connection error.", request=REQUEST))
    gateway = ChatGateway(settings, client=client)

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(gateway.complete([{"role": "user", "content": "x"}]))
    assert excinfo.value.message == "Connection error."


def test_timeout_becomes_transport_error(settings):
    client = fake_client(side_effect=openai.APITimeoutError(request=REQUEST))
    gateway = ChatGateway(settings, client=client)

    with pytest.raises(TransportError):
        asyncio.run(gateway.complete([{"role": "user", "content": "x"}]))


def test_status_error_becomes_api_error_with_status(settings):
    response = httpx.Response(402, request=REQUEST)
    error = openai.APIStatusError("Error code: 402", response=response,
                                  body={"message": "Insufficient credits"})
    gateway = ChatGateway(settings, client=fake_client(side_effect=error))

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(gateway.complete([{"role": "user", "content": "x"}]))
    assert excinfo.value.message == "Insufficient credits"
    assert excinfo.value.status_code == 402


def test_error_object_in_success_body_is_api_error(settings):
    body = SimpleNamespace(choices=None, model_extra={"error": {"message": "Provider returned error", "code": 502}})
    gateway = ChatGateway(settings, client=fake_client(return_value=body))

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(gateway.complete([{"role": "user", "content": "x"}]))
    assert excinfo.value.message == "Provider returned error"


def test_malformed_body_is_api_error(settings):
    body = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))], model_extra={})
    gateway = ChatGateway(settings, client=fake_client(return_value=body))

    with pytest.raises(ApiError):
        asyncio.run(gateway.complete([{"role": "user", "content": "x"}]))


def test_update_settings_rebuilds_client(settings):
    gateway = ChatGateway(settings, client=fake_client(return_value=completion("a")))
    gateway.update_settings(settings.with_model("google/gemma-7b-it:free"))

    assert gateway._client is None
    assert gateway.settings.model_id == "google/gemma-7b-it:free"
