import pytest
from pydantic import ValidationError

from app.platform.config import DEFAULT_IGNORED_ANCHOR_CLASSES, Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("PORT", raising=False)
    settings = Settings(_env_file=None)

    assert settings.PORT == 8080
    assert settings.FETCH_CONCURRENCY == 1
    assert settings.FETCH_TIMEOUT_SECONDS > 0
    assert settings.IGNORED_ANCHOR_CLASSES == DEFAULT_IGNORED_ANCHOR_CLASSES
    assert "mp-share__toggle  breadcrumbs__tag" in settings.IGNORED_ANCHOR_CLASSES


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("PORT", "9000")
    monkeypatch.setenv("IGNORED_ANCHOR_CLASSES", '["cta", "menu-toggle"]')
    monkeypatch.setenv("fetch_concurrency", "4")

    settings = Settings(_env_file=None)

    assert settings.PORT == 9000
    assert settings.IGNORED_ANCHOR_CLASSES == ["cta", "menu-toggle"]
    assert settings.FETCH_CONCURRENCY == 4


def test_concurrency_must_be_positive(monkeypatch):
    monkeypatch.setenv("FETCH_CONCURRENCY", "0")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_report_name_needs_session_id(monkeypatch):
    monkeypatch.setenv("REPORT_FILENAME_TEMPLATE", "output.csv")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize(
    "template",
    ["report-{session_id}-{date}.csv", "report-{session_id}.txt", "reports/{session_id}.csv", "{session_id}{0}.csv"],
)
def test_report_name_must_be_downloadable(monkeypatch, template):
    monkeypatch.setenv("REPORT_FILENAME_TEMPLATE", template)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_report_retention_default(monkeypatch):
    monkeypatch.delenv("REPORT_RETENTION_HOURS", raising=False)

    assert Settings(_env_file=None).REPORT_RETENTION_HOURS == 24.0
