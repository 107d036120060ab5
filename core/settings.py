"""
Application Settings
====================
Configuration is read from environment variables. Nothing here is cached,
so tests can monkeypatch the environment between calls.

Variables:
- DATABASE_URL / POSTGRESQL_URL      hosted PostgreSQL backend (absent -> SQLite)
- INSPECTION_SQLITE_PATH             SQLite file used without a hosted backend
- INSPECTION_LOCAL_STORE             JSON file used as the offline fallback
- INSPECTION_PHOTO_DIR               directory for uploaded photos
- INSPECTION_GRADING_POLICY          default preset: sixGrade | fivePlusGrade
- INSPECTION_REPORT_TIMEZONE         timezone for report timestamps
- INSPECTION_MAX_PHOTOS_PER_ITEM     photos rendered per item in reports
- INSPECTION_MAX_PHOTO_BYTES         upload size limit for the local store
- INSPECTION_LOG_LEVEL               logging level
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import logging
import os

import pytz

from core.exceptions import InvalidInputError
from core.grading import POLICIES

DEFAULT_SQLITE_PATH = "property_inspection.db"
DEFAULT_LOCAL_STORE = "property_inspections.json"
DEFAULT_PHOTO_DIR = "uploads"
DEFAULT_TIMEZONE = "Asia/Muscat"
DEFAULT_MAX_PHOTO_BYTES = 5 * 1024 * 1024

COMPANY_DEFAULTS = {
    "name": "Solution Property",
    "address": "Muscat, Sultanate of Oman",
    "email": "info@solutionproperty.om",
    "website": "https://solutionproperty.om",
}


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise InvalidInputError(f"{name} must not be negative, got {value}")
    return value


@dataclass
class Settings:
    database_url: Optional[str] = None
    sqlite_path: str = DEFAULT_SQLITE_PATH
    local_store_path: str = DEFAULT_LOCAL_STORE
    photo_dir: str = DEFAULT_PHOTO_DIR
    grading_policy: str = "sixGrade"
    report_timezone: str = DEFAULT_TIMEZONE
    max_photos_per_item: int = 2
    max_photo_bytes: int = DEFAULT_MAX_PHOTO_BYTES
    log_level: str = "INFO"
    company: Dict[str, str] = field(default_factory=lambda: dict(COMPANY_DEFAULTS))

    def __post_init__(self):
        if self.grading_policy not in POLICIES:
            raise InvalidInputError(
                f"Unknown grading policy {self.grading_policy!r}; "
                f"expected one of {sorted(POLICIES)}"
            )
        if self.report_timezone not in pytz.all_timezones_set:
            raise InvalidInputError(f"Unknown timezone {self.report_timezone!r}")

    @property
    def tz(self):
        return pytz.timezone(self.report_timezone)


def load_settings() -> Settings:
    """Build settings from the current environment"""
    company = dict(COMPANY_DEFAULTS)
    for key in company:
        override = os.getenv(f"INSPECTION_COMPANY_{key.upper()}")
        if override:
            company[key] = override

    return Settings(
        database_url=os.getenv('DATABASE_URL') or os.getenv('POSTGRESQL_URL'),
        sqlite_path=os.getenv('INSPECTION_SQLITE_PATH', DEFAULT_SQLITE_PATH),
        local_store_path=os.getenv('INSPECTION_LOCAL_STORE', DEFAULT_LOCAL_STORE),
        photo_dir=os.getenv('INSPECTION_PHOTO_DIR', DEFAULT_PHOTO_DIR),
        grading_policy=os.getenv('INSPECTION_GRADING_POLICY', 'sixGrade'),
        report_timezone=os.getenv('INSPECTION_REPORT_TIMEZONE', DEFAULT_TIMEZONE),
        max_photos_per_item=_int_env('INSPECTION_MAX_PHOTOS_PER_ITEM', 2),
        max_photo_bytes=_int_env('INSPECTION_MAX_PHOTO_BYTES', DEFAULT_MAX_PHOTO_BYTES),
        log_level=os.getenv('INSPECTION_LOG_LEVEL', 'INFO').upper(),
        company=company,
    )


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
