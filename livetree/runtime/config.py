"""Persistent JSON config helpers.

Stores watch timing, type-ahead timing, and hidden-file preference.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from pathlib import Path

from platformdirs import user_config_dir

APP_NAME = "livetree"
CONFIG_FILENAME = "config.json"
DEFAULT_CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
CONFIG_PATH = DEFAULT_CONFIG_PATH

DEFAULT_DEBOUNCE_MS = 1000
DEFAULT_RETRY_BACKOFF_MS = 1000
DEFAULT_TYPEAHEAD_TIMEOUT_MS = 400
DEFAULT_HEARTBEAT_SECONDS = 25.0
DEFAULT_SUBSCRIBER_QUEUE_SIZE = 64
DEFAULT_RECONNECT_DELAY_MS = 1000


@dataclass(frozen=True)
class LiveTreeSettings:
    """Effective runtime settings after config-file and CLI overrides."""

    debounce_ms: int = DEFAULT_DEBOUNCE_MS
    retry_backoff_ms: int = DEFAULT_RETRY_BACKOFF_MS
    typeahead_timeout_ms: int = DEFAULT_TYPEAHEAD_TIMEOUT_MS
    heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS
    subscriber_queue_size: int = DEFAULT_SUBSCRIBER_QUEUE_SIZE
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    show_hidden: bool = False

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @property
    def retry_backoff_seconds(self) -> float:
        return self.retry_backoff_ms / 1000.0

    @property
    def typeahead_timeout_seconds(self) -> float:
        return self.typeahead_timeout_ms / 1000.0

    @property
    def reconnect_delay_seconds(self) -> float:
        return self.reconnect_delay_ms / 1000.0

    def with_overrides(self, **overrides: object) -> LiveTreeSettings:
        """Return a copy with non-``None`` overrides applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


def load_config() -> dict[str, object]:
    """Load the persisted JSON config object.

    Returns an empty dict when the file is missing, unreadable, malformed, or
    does not decode to a top-level JSON object.
    """
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON.

    Any filesystem/serialization error is ignored to keep runtime behavior
    non-fatal when config cannot be written.
    """
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass


def _coerce_positive_int(value: object, default: int) -> int:
    """Accept strictly positive integers; booleans and other types fall back."""
    if isinstance(value, bool) or not isinstance(value, int):
        return default
    return value if value > 0 else default


def _coerce_positive_float(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value) if value > 0 else default


def load_settings() -> LiveTreeSettings:
    """Build ``LiveTreeSettings`` from the config file with strict validation."""
    data = load_config()
    show_hidden = data.get("show_hidden")
    return LiveTreeSettings(
        debounce_ms=_coerce_positive_int(data.get("debounce_ms"), DEFAULT_DEBOUNCE_MS),
        retry_backoff_ms=_coerce_positive_int(data.get("retry_backoff_ms"), DEFAULT_RETRY_BACKOFF_MS),
        typeahead_timeout_ms=_coerce_positive_int(
            data.get("typeahead_timeout_ms"),
            DEFAULT_TYPEAHEAD_TIMEOUT_MS,
        ),
        heartbeat_seconds=_coerce_positive_float(data.get("heartbeat_seconds"), DEFAULT_HEARTBEAT_SECONDS),
        subscriber_queue_size=_coerce_positive_int(
            data.get("subscriber_queue_size"),
            DEFAULT_SUBSCRIBER_QUEUE_SIZE,
        ),
        reconnect_delay_ms=_coerce_positive_int(data.get("reconnect_delay_ms"), DEFAULT_RECONNECT_DELAY_MS),
        show_hidden=show_hidden if isinstance(show_hidden, bool) else False,
    )


__all__ = [
    "LiveTreeSettings",
    "load_config",
    "save_config",
    "load_settings",
]
