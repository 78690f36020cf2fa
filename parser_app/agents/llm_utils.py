from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

import openai
from langsmith.run_helpers import traceable
from openai import OpenAI

from parser_app.config.settings import settings
from parser_app.agents.credentials import CredentialProvider
from parser_app.agents.errors import (
    InvalidCredentialError,
    MalformedResponseError,
    NoCredentialError,
    RateLimitedError,
    ServiceError,
    TransportError,
)


logger = logging.getLogger(__name__)


def _extract_choice_fields(choice: Any) -> Dict[str, Any]:
    msg = getattr(choice, "message", None)
    return {
        "finish_reason": getattr(choice, "finish_reason", None),
        "role": getattr(msg, "role", None),
        "refusal": getattr(msg, "refusal", None),
    }


def _stringify_usage(usage: Any) -> Dict[str, Any]:
    if usage is None:
        return {}
    return {
        "prompt_tokens": getattr(usage, "prompt_tokens", None),
        "completion_tokens": getattr(usage, "completion_tokens", None),
        "total_tokens": getattr(usage, "total_tokens", None),
    }


def _extract_text_from_choice(choice: Any) -> str:
    msg = getattr(choice, "message", None)
    content = getattr(msg, "content", None)
    if isinstance(content, str):
        return content.strip()
    # Some models return an array of content parts
    if isinstance(content, list):
        parts: List[str] = []
        for part in content:
            if isinstance(part, dict):
                text = part.get("text") or part.get("value") or part.get("content")
            else:
                text = getattr(part, "text", None)
            if isinstance(text, str) and text:
                parts.append(text)
        return "\n".join(parts).strip()
    return ""


def _service_message(exc: openai.APIStatusError) -> str:
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and isinstance(inner.get("message"), str):
            return inner["message"]
    return f"HTTP {exc.status_code}"


def _default_client_factory(api_key: str, timeout: float) -> OpenAI:
    # Retries are the caller's decision, never this layer's
    return OpenAI(api_key=api_key, timeout=timeout, max_retries=0)


class CompletionClient:
    """One chat-completions call per ``complete()``; failures come back typed.

    The API key is looked up on every call so a key entered after start-up is
    picked up, and a missing key fails before any network traffic.
    """

    def __init__(
        self,
        credentials: CredentialProvider,
        model: str | None = None,
        timeout: float | None = None,
        client_factory: Callable[[str, float], Any] | None = None,
    ) -> None:
        self.credentials = credentials
        self.model = model or settings.openai_model
        self.timeout = timeout or settings.http_timeout_seconds
        self._client_factory = client_factory or _default_client_factory
        self._clients: Dict[str, Any] = {}

    def _client(self, api_key: str) -> Any:
        client = self._clients.get(api_key)
        if client is None:
            client = self._client_factory(api_key, self.timeout)
            self._clients = {api_key: client}
        return client

    @traceable(name="completion.complete", run_type="llm")
    def complete(
        self,
        prompt: str,
        *,
        system: str,
        json_response: bool = False,
        temperature: float | None = None,
        max_completion_tokens: int | None = None,
    ) -> str:
        """Send ``system`` + ``prompt`` and return the reply text.

        Raises NoCredentialError, InvalidCredentialError, RateLimitedError,
        TransportError, ServiceError or MalformedResponseError.
        """
        api_key = self.credentials.get_api_key()
        if not api_key:
            raise NoCredentialError()

        params: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        if json_response:
            params["response_format"] = {"type": "json_object"}
        if temperature is not None:
            params["temperature"] = temperature
        if max_completion_tokens is not None:
            params["max_completion_tokens"] = max_completion_tokens

        try:
            resp = self._client(api_key).chat.completions.create(**params)
        except openai.AuthenticationError as e:
            logger.warning("OpenAI rejected the API key")
            raise InvalidCredentialError() from e
        except openai.RateLimitError as e:
            logger.warning("OpenAI rate limit hit")
            raise RateLimitedError() from e
        except openai.APIConnectionError as e:
            logger.warning(f"OpenAI transport failure: {e}")
            raise TransportError(e) from e
        except openai.APIStatusError as e:
            message = _service_message(e)
            logger.error(f"OpenAI API error {e.status_code}: {message}")
            raise ServiceError(f"OpenAI API error: {message}") from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            logger.error(f"❌ Invalid response structure, no choices: {resp!r}")
            raise MalformedResponseError()

        content = _extract_text_from_choice(choices[0])
        diagnostics = {
            **_extract_choice_fields(choices[0]),
            "api_model": getattr(resp, "model", None),
            "usage": _stringify_usage(getattr(resp, "usage", None)),
        }
        logger.debug(f"completion.diag: {diagnostics}")

        if not content:
            logger.error(f"❌ Empty completion content | diag={diagnostics}")
            raise MalformedResponseError()
        return content
