from __future__ import annotations

from typing import Optional, Protocol

from parser_app.config.settings import ParserAppSettings, settings


class CredentialProvider(Protocol):
    def get_api_key(self) -> Optional[str]:
        ...


def _clean(key: Optional[str]) -> Optional[str]:
    key = (key or "").strip()
    return key or None


class SettingsCredentialProvider:
    """Reads the OpenAI key from PARSER_APP_OPENAI_API_KEY / .env."""

    def __init__(self, source: ParserAppSettings | None = None) -> None:
        self._source = source or settings

    def get_api_key(self) -> Optional[str]:
        return _clean(self._source.openai_api_key)


class StaticCredentialProvider:
    def __init__(self, api_key: Optional[str]) -> None:
        self._api_key = _clean(api_key)

    def get_api_key(self) -> Optional[str]:
        return self._api_key
