import types

import httpx
import openai
import pytest

from parser_app.agents.credentials import StaticCredentialProvider
from parser_app.agents.errors import (
    InvalidCredentialError,
    MalformedResponseError,
    NoCredentialError,
    RateLimitedError,
    ServiceError,
    TransportError,
)
from parser_app.agents.llm_utils import CompletionClient


_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _resp(content="{}", choices=True):
    message = types.SimpleNamespace(content=content, role="assistant", refusal=None)
    choice = types.SimpleNamespace(message=message, finish_reason="stop")
    usage = types.SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15)
    return types.SimpleNamespace(choices=[choice] if choices else [], model="gpt-4o-mini", usage=usage)


def _status_error(cls, code, body=None):
    return cls("error", response=httpx.Response(code, request=_REQUEST), body=body)


class DummyOpenAI:
    """Mimics ``client.chat.completions.create``."""

    def __init__(self, result):
        self.result = result
        self.calls = []
        self.chat = types.SimpleNamespace(completions=types.SimpleNamespace(create=self._create))

    def _create(self, **params):
        self.calls.append(params)
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


def _client(result, api_key="sk-test"):
    dummy = DummyOpenAI(result)
    created = []

    def factory(key, timeout):
        created.append((key, timeout))
        return dummy

    client = CompletionClient(StaticCredentialProvider(api_key), model="gpt-test", timeout=12, client_factory=factory)
    return client, dummy, created


def test_missing_key_fails_before_any_client_is_built():
    client, dummy, created = _client(_resp(), api_key="  ")
    with pytest.raises(NoCredentialError) as excinfo:
        client.complete("hi", system="sys")
    assert created == []
    assert dummy.calls == []
    assert "No API key found" in excinfo.value.message
    assert excinfo.value.retryable is False


def test_json_request_shape():
    client, dummy, created = _client(_resp('  {"workouts": []}  '))
    text = client.complete("parse this", system="You are a parser.", json_response=True, temperature=0.3)

    assert text == '{"workouts": []}'
    assert created == [("sk-test", 12)]
    params = dummy.calls[0]
    assert params["model"] == "gpt-test"
    assert params["messages"] == [
        {"role": "system", "content": "You are a parser."},
        {"role": "user", "content": "parse this"},
    ]
    assert params["response_format"] == {"type": "json_object"}
    assert params["temperature"] == 0.3
    assert "max_completion_tokens" not in params


def test_query_request_has_token_cap_and_no_json_mode():
    client, dummy, _ = _client(_resp("You trained three times."))
    client.complete("question", system="analyst", temperature=0.7, max_completion_tokens=500)
    params = dummy.calls[0]
    assert "response_format" not in params
    assert params["max_completion_tokens"] == 500
    assert "max_tokens" not in params


def test_client_reused_for_same_key():
    client, _, created = _client(_resp("ok"))
    client.complete("a", system="s")
    client.complete("b", system="s")
    assert len(created) == 1


@pytest.mark.parametrize(
    "error, expected",
    [
        (_status_error(openai.AuthenticationError, 401), InvalidCredentialError),
        (_status_error(openai.RateLimitError, 429), RateLimitedError),
        (openai.APIConnectionError(request=_REQUEST), TransportError),
        (openai.APITimeoutError(request=_REQUEST), TransportError),
        (_status_error(openai.InternalServerError, 500), ServiceError),
    ],
)
def test_sdk_errors_are_translated(error, expected):
    client, _, _ = _client(error)
    with pytest.raises(expected) as excinfo:
        client.complete("x", system="s")
    assert excinfo.value.__cause__ is error


def test_retryable_flags():
    assert RateLimitedError().retryable
    assert TransportError().retryable
    assert not InvalidCredentialError().retryable


def test_service_error_carries_api_message():
    error = _status_error(openai.BadRequestError, 400, body={"error": {"message": "model not found"}})
    client, _, _ = _client(error)
    with pytest.raises(ServiceError) as excinfo:
        client.complete("x", system="s")
    assert excinfo.value.message == "OpenAI API error: model not found"


def test_service_error_without_body_uses_status_code():
    client, _, _ = _client(_status_error(openai.InternalServerError, 503))
    with pytest.raises(ServiceError) as excinfo:
        client.complete("x", system="s")
    assert "HTTP 503" in excinfo.value.message


def test_no_choices_is_malformed():
    client, _, _ = _client(_resp(choices=False))
    with pytest.raises(MalformedResponseError):
        client.complete("x", system="s")


def test_empty_content_is_malformed():
    client, _, _ = _client(_resp(content=None))
    with pytest.raises(MalformedResponseError):
        client.complete("x", system="s")


def test_content_parts_are_joined():
    client, _, _ = _client(_resp(content=[{"type": "text", "text": "first"}, {"type": "text", "text": "second"}]))
    assert client.complete("x", system="s") == "first\nsecond"
