"""Locale lookup for user-facing alert texts."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any


class I18nService:
    def __init__(self, *, locales_path: str | Path | None = None, default_locale: str = "en") -> None:
        self.locales_path = Path(locales_path or Path(__file__).with_name("locales"))
        self.default_locale = default_locale.lower()
        self._tables: dict[str, dict[str, str]] = {}

    def gettext(self, key: str, *, locale: str | None = None, **kwargs: Any) -> str:
        text = None
        for candidate in self._fallback_chain(locale):
            text = self._table(candidate).get(key)
            if text is not None:
                break
        if text is None:
            text = key
        return text.format(**kwargs) if kwargs else text

    def _fallback_chain(self, locale: str | None) -> list[str]:
        # "pt-BR" -> ["pt-br", "pt", default]
        chain: list[str] = []
        if locale:
            normalized = locale.replace("_", "-").lower()
            chain.append(normalized)
            language = normalized.split("-", 1)[0]
            if language != normalized:
                chain.append(language)
        if self.default_locale not in chain:
            chain.append(self.default_locale)
        return chain

    def _table(self, locale: str) -> dict[str, str]:
        if locale not in self._tables:
            file_path = self.locales_path / f"{locale}.json"
            if file_path.exists():
                with file_path.open("r", encoding="utf-8") as fp:
                    self._tables[locale] = json.load(fp)
            else:
                self._tables[locale] = {}
        return self._tables[locale]


__all__ = ["I18nService"]
