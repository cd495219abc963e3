"""Tests for converting service failures into alerts."""

from __future__ import annotations

from mapsearch.services.error_presenter import ErrorPresenter
from mapsearch.services.exceptions import BackendUnavailable, NoResultFound, SceneUnavailable


def test_backend_failure_alert():
    alert = ErrorPresenter().present(BackendUnavailable("photon request failed (503)"))

    assert alert.title == "Something Went Wrong"
    assert alert.dismiss_label == "Ok"
    assert alert.message == "Search is unavailable right now. Please try again."


def test_no_result_alert_mentions_query():
    alert = ErrorPresenter().present(NoResultFound("none"), query="Atlantis")

    assert "Atlantis" in alert.message


def test_scene_alert():
    alert = ErrorPresenter().present(SceneUnavailable("no imagery"))

    assert alert.message == "Look Around is not available at this location."


def test_unexpected_error_detail_is_truncated():
    alert = ErrorPresenter().present(RuntimeError("x" * 1000))

    assert alert.message.startswith("An unexpected error occurred: ")
    assert alert.message.endswith("...[truncated]")
    assert len(alert.message) < 400
