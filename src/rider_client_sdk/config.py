from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from dotenv import load_dotenv
from platformdirs import user_data_dir

APP_NAME = "rider-client"
APP_AUTHOR = "RiderApp"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    timeout_seconds: float = 30.0
    retries: int = 0
    retry_backoff_seconds: float = 0.3
    verify_ssl: bool = True
    tracking_min_interval_seconds: float = 30.0
    tracking_min_distance_meters: float = 100.0
    data_dir: str | None = None

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()

    def resolved_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir)
        return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def _require(values: dict[str, str | None], required: Iterable[str]) -> None:
    missing = [key for key in required if not values.get(key)]
    if missing:
        raise ConfigError(f"Missing required config values: {', '.join(missing)}")


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _read_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected a number, got {raw!r}") from exc


def _read_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {name}: expected an integer, got {raw!r}") from exc


def _validate(condition: bool, message: str) -> None:
    if not condition:
        raise ConfigError(message)


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)

    env_name = (os.getenv("RIDER_ENV") or "dev").strip()
    env_key = env_name.upper()

    api_base_url = (
        (os.getenv(f"RIDER_API_BASE_URL_{env_key}") or "").strip()
        or (os.getenv("RIDER_API_BASE_URL") or "").strip()
    )

    timeout_seconds = _read_float("RIDER_TIMEOUT_SECONDS", "30")
    _validate(
        timeout_seconds > 0,
        f"Invalid RIDER_TIMEOUT_SECONDS: expected > 0, got {timeout_seconds}",
    )

    retries = _read_int("RIDER_RETRIES", "0")
    _validate(retries >= 0, f"Invalid RIDER_RETRIES: expected >= 0, got {retries}")

    retry_backoff_seconds = _read_float("RIDER_RETRY_BACKOFF_SECONDS", "0.3")
    _validate(
        retry_backoff_seconds >= 0,
        (
            "Invalid RIDER_RETRY_BACKOFF_SECONDS: "
            f"expected >= 0, got {retry_backoff_seconds}"
        ),
    )

    min_interval = _read_float("RIDER_TRACKING_MIN_INTERVAL_SECONDS", "30")
    _validate(
        min_interval >= 0,
        f"Invalid RIDER_TRACKING_MIN_INTERVAL_SECONDS: expected >= 0, got {min_interval}",
    )

    min_distance = _read_float("RIDER_TRACKING_MIN_DISTANCE_METERS", "100")
    _validate(
        min_distance >= 0,
        f"Invalid RIDER_TRACKING_MIN_DISTANCE_METERS: expected >= 0, got {min_distance}",
    )

    verify_ssl = _coerce_bool(os.getenv("RIDER_VERIFY_SSL"), True)
    data_dir = (os.getenv("RIDER_DATA_DIR") or "").strip() or None

    values = {"RIDER_API_BASE_URL": api_base_url}
    _require(values, ["RIDER_API_BASE_URL"])

    return ClientConfig(
        env_name=env_name,
        api_base_url=api_base_url.rstrip("/"),
        timeout_seconds=timeout_seconds,
        retries=retries,
        retry_backoff_seconds=retry_backoff_seconds,
        verify_ssl=verify_ssl,
        tracking_min_interval_seconds=min_interval,
        tracking_min_distance_meters=min_distance,
        data_dir=data_dir,
    )
