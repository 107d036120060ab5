"""Tests for environment-driven settings."""

import logging

import pytest

from core.exceptions import InvalidInputError
from core.settings import Settings, configure_logging, load_settings


ENV_VARS = [
    "DATABASE_URL",
    "POSTGRESQL_URL",
    "INSPECTION_SQLITE_PATH",
    "INSPECTION_LOCAL_STORE",
    "INSPECTION_PHOTO_DIR",
    "INSPECTION_GRADING_POLICY",
    "INSPECTION_REPORT_TIMEZONE",
    "INSPECTION_MAX_PHOTOS_PER_ITEM",
    "INSPECTION_MAX_PHOTO_BYTES",
    "INSPECTION_LOG_LEVEL",
    "INSPECTION_COMPANY_NAME",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.database_url is None
    assert settings.sqlite_path == "property_inspection.db"
    assert settings.grading_policy == "sixGrade"
    assert settings.max_photos_per_item == 2
    assert settings.max_photo_bytes == 5 * 1024 * 1024
    assert settings.company["name"] == "Solution Property"
    assert settings.tz.zone == "Asia/Muscat"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("POSTGRESQL_URL", "postgresql://u:p@db:5432/inspections")
    monkeypatch.setenv("INSPECTION_GRADING_POLICY", "fivePlusGrade")
    monkeypatch.setenv("INSPECTION_REPORT_TIMEZONE", "UTC")
    monkeypatch.setenv("INSPECTION_MAX_PHOTOS_PER_ITEM", "4")
    monkeypatch.setenv("INSPECTION_LOG_LEVEL", "debug")
    monkeypatch.setenv("INSPECTION_COMPANY_NAME", "Acme Inspections")

    settings = load_settings()
    assert settings.database_url == "postgresql://u:p@db:5432/inspections"
    assert settings.grading_policy == "fivePlusGrade"
    assert settings.report_timezone == "UTC"
    assert settings.max_photos_per_item == 4
    assert settings.log_level == "DEBUG"
    assert settings.company["name"] == "Acme Inspections"
    assert settings.company["email"] == "info@solutionproperty.om"


def test_database_url_preferred(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://primary")
    monkeypatch.setenv("POSTGRESQL_URL", "postgresql://secondary")
    assert load_settings().database_url == "postgresql://primary"


@pytest.mark.parametrize("name, value", [
    ("INSPECTION_GRADING_POLICY", "sevenGrade"),
    ("INSPECTION_REPORT_TIMEZONE", "Mars/Olympus"),
    ("INSPECTION_MAX_PHOTOS_PER_ITEM", "two"),
    ("INSPECTION_MAX_PHOTO_BYTES", "-5"),
])
def test_invalid_values_rejected(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(InvalidInputError):
        load_settings()


def test_configure_logging_uses_level(monkeypatch):
    calls = {}
    monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.update(kwargs))
    configure_logging(Settings(log_level="WARNING"))
    assert calls["level"] == logging.WARNING
