"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from letterbox.core.settings import Settings


def test_defaults(monkeypatch):
    for name in ("LETTERBOX_APP_NAME", "LETTERBOX_DOC_FORMAT", "LETTERBOX_MONOTONIC_READ_MARKERS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.app_name == "letterbox"
    assert settings.path_root == "/letterbox"
    assert settings.doc_format == "es.4"
    assert settings.monotonic_read_markers is False


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("LETTERBOX_APP_NAME", "forum")
    monkeypatch.setenv("LETTERBOX_MONOTONIC_READ_MARKERS", "true")
    monkeypatch.setenv("LETTERBOX_DRAFT_ID_MAX_ATTEMPTS", "7")

    settings = Settings(_env_file=None)

    assert settings.path_root == "/forum"
    assert settings.monotonic_read_markers is True
    assert settings.draft_id_max_attempts == 7


def test_attempt_budget_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, draft_id_max_attempts=0)
