from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Optional, Tuple


_API_KEY_ENV = "OPENWEATHERMAP_API_KEY"
_PROVIDER_URL_ENV = "OPENWEATHERMAP_BASE_URL"
_PROVIDER_TIMEOUT_ENV = "PROVIDER_TIMEOUT_SECONDS"
_CITIES_ENV = "WEATHER_CITIES"
_THRESHOLD_ENV = "ALERT_THRESHOLD_C"
_RECIPIENT_ENV = "ALERT_RECIPIENT"
_EMAIL_USER_ENV = "EMAIL_USER"
_EMAIL_PASS_ENV = "EMAIL_PASS"
_SMTP_HOST_ENV = "SMTP_HOST"
_SMTP_PORT_ENV = "SMTP_PORT"
_SMTP_TLS_ENV = "SMTP_USE_TLS"
_TABLE_NAME_ENV = "WEATHER_TABLE_NAME"
_TABLE_PATH_ENV = "WEATHER_TABLE_PERSISTENCE_PATH"
_WORKER_COUNT_ENV = "FETCH_WORKER_COUNT"
_INTERVAL_ENV = "SCHEDULE_INTERVAL_SECONDS"
_SCHEDULER_ENABLED_ENV = "SCHEDULER_ENABLED"
_OVERLAP_POLICY_ENV = "SCHEDULER_OVERLAP_POLICY"
_PORT_ENV = "PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

DEFAULT_CITIES: Tuple[str, ...] = (
    "Delhi",
    "Mumbai",
    "Chennai",
    "Bangalore",
    "Kolkata",
    "Hyderabad",
)
OVERLAP_POLICIES = ("skip", "allow")


@dataclass(frozen=True)
class Settings:
    api_key: str
    provider_base_url: str
    provider_timeout: float
    cities: Tuple[str, ...]
    alert_threshold_c: Decimal
    alert_recipient: str
    email_user: str
    email_password: str
    smtp_host: str
    smtp_port: int
    smtp_use_tls: bool
    table_name: str
    table_persistence_path: Optional[str]
    fetch_workers: int
    schedule_interval_seconds: float
    scheduler_enabled: bool
    overlap_policy: str
    port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_positive_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if candidate in {"1", "true", "yes", "on"}:
        return True
    if candidate in {"0", "false", "no", "off"}:
        return False
    return default


def _read_threshold(default: Decimal) -> Decimal:
    value = os.getenv(_THRESHOLD_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = Decimal(candidate)
    except InvalidOperation:
        return default
    return parsed if parsed.is_finite() else default


def _read_cities(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CITIES_ENV)
    if value is None:
        return default
    cities: list[str] = []
    for part in value.split(","):
        city = part.strip()
        if city and city not in cities:
            cities.append(city)
    return tuple(cities) or default


def _read_overlap_policy(default: str) -> str:
    value = os.getenv(_OVERLAP_POLICY_ENV)
    if value is None:
        return default
    candidate = value.strip().lower()
    return candidate if candidate in OVERLAP_POLICIES else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        api_key=_read_str_env(_API_KEY_ENV, ""),
        provider_base_url=_read_str_env(
            _PROVIDER_URL_ENV, "https://api.openweathermap.org/data/2.5/weather"
        ),
        provider_timeout=_read_positive_float(_PROVIDER_TIMEOUT_ENV, 10.0),
        cities=_read_cities(DEFAULT_CITIES),
        alert_threshold_c=_read_threshold(Decimal("25.0")),
        alert_recipient=_read_str_env(_RECIPIENT_ENV, "user@example.com"),
        email_user=_read_str_env(_EMAIL_USER_ENV, ""),
        email_password=_read_str_env(_EMAIL_PASS_ENV, ""),
        smtp_host=_read_str_env(_SMTP_HOST_ENV, "smtp.gmail.com"),
        smtp_port=_read_positive_int(_SMTP_PORT_ENV, 587),
        smtp_use_tls=_read_bool(_SMTP_TLS_ENV, True),
        table_name=_read_str_env(_TABLE_NAME_ENV, "weather_data"),
        table_persistence_path=_read_optional_env(_TABLE_PATH_ENV, "./tmp/weather_data.json"),
        fetch_workers=_read_positive_int(_WORKER_COUNT_ENV, 6),
        schedule_interval_seconds=_read_positive_float(_INTERVAL_ENV, 300.0),
        scheduler_enabled=_read_bool(_SCHEDULER_ENABLED_ENV, True),
        overlap_policy=_read_overlap_policy("skip"),
        port=_read_positive_int(_PORT_ENV, 5000),
        log_level=_read_log_level("INFO"),
    )
