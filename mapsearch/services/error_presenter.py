"""Turn service failures into alerts a UI layer can show as-is."""

from __future__ import annotations

from mapsearch.domain.models import Alert
from mapsearch.i18n import I18nService
from mapsearch.logging import logger
from mapsearch.services.exceptions import BackendUnavailable, NoResultFound, SceneUnavailable

DETAIL_CHAR_LIMIT = 300


class ErrorPresenter:
    def __init__(self, i18n: I18nService | None = None, *, locale: str | None = None) -> None:
        self._i18n = i18n or I18nService()
        self._locale = locale

    def present(self, exc: BaseException, **context) -> Alert:
        message = self._message_for(exc, context)
        logger.error(
            "error_presented",
            exception_type=exc.__class__.__name__,
            exception=str(exc),
            **context,
        )
        return Alert(
            title=self._text("alert.title"),
            message=message,
            dismiss_label=self._text("alert.dismiss"),
        )

    def _message_for(self, exc: BaseException, context: dict) -> str:
        if isinstance(exc, BackendUnavailable):
            return self._text("error.backend_unavailable")
        if isinstance(exc, NoResultFound):
            return self._text("error.no_result", query=context.get("query") or "")
        if isinstance(exc, SceneUnavailable):
            return self._text("error.scene_unavailable")
        return self._text("error.unexpected", detail=self._truncate(str(exc) or exc.__class__.__name__))

    def _text(self, key: str, **kwargs) -> str:
        return self._i18n.gettext(key, locale=self._locale, **kwargs)

    @staticmethod
    def _truncate(value: str) -> str:
        value = value.strip()
        if len(value) <= DETAIL_CHAR_LIMIT:
            return value
        return f"{value[: DETAIL_CHAR_LIMIT - 15].rstrip()}...[truncated]"


__all__ = ["ErrorPresenter"]
