"""Persistent JSON settings.

Stores query/update options, path style, and auto-update throttling.
All access is defensive: malformed or missing config falls back safely.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path

from platformdirs import user_config_dir

from .query.runner import DEFAULT_MIN_QUERY_LENGTH
from .query.types import PathStyle
from .update import DEFAULT_UPDATE_INTERVAL_SECONDS

APP_NAME = "tagnav"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME
DEFAULT_STYLE = "monokai"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    ignore_case: bool = False
    path_style: PathStyle = PathStyle.THROUGH
    auto_update: bool = True
    update_interval_seconds: int | None = DEFAULT_UPDATE_INTERVAL_SECONDS
    query_options: tuple[str, ...] = field(default_factory=tuple)
    update_options: tuple[str, ...] = field(default_factory=tuple)
    use_input_at_point: bool = True
    min_query_length: int = DEFAULT_MIN_QUERY_LENGTH
    style: str = DEFAULT_STYLE

    def to_json(self) -> dict[str, object]:
        data = asdict(self)
        data["path_style"] = self.path_style.value
        data["query_options"] = list(self.query_options)
        data["update_options"] = list(self.update_options)
        return data


def load_config(path: Path | None = None) -> dict[str, object]:
    """Read the settings file; anything but a JSON object reads as ``{}``."""
    path = CONFIG_PATH if path is None else path
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    if not isinstance(data, dict):
        logger.warning("ignoring %s: top level is not an object", path)
        return {}
    return data


def save_config(data: dict[str, object], path: Path | None = None) -> None:
    """Write the settings file; a failed write only logs a warning."""
    path = CONFIG_PATH if path is None else path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError) as exc:
        logger.warning("cannot write %s: %s", path, exc)


def _coerce_bool(value: object, default: bool) -> bool:
    """Only explicit booleans are accepted; anything else yields ``default``."""
    return value if isinstance(value, bool) else default


def _coerce_positive_int(value: object, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return default
    return value


def _coerce_interval(value: object) -> int | None:
    """``null`` or ``"always"`` means update on every save."""
    if value is None or value == "always":
        return None
    return _coerce_positive_int(value, DEFAULT_UPDATE_INTERVAL_SECONDS)


def _coerce_options(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str) and item)


def _coerce_path_style(value: object) -> PathStyle:
    if not isinstance(value, str):
        return PathStyle.THROUGH
    try:
        return PathStyle(value.strip())
    except ValueError:
        return PathStyle.THROUGH


def load_settings() -> Settings:
    """Load settings with per-field validation; invalid fields use defaults."""
    data = load_config()
    defaults = Settings()
    style = data.get("style")
    return Settings(
        ignore_case=_coerce_bool(data.get("ignore_case"), defaults.ignore_case),
        path_style=_coerce_path_style(data.get("path_style")),
        auto_update=_coerce_bool(data.get("auto_update"), defaults.auto_update),
        update_interval_seconds=_coerce_interval(
            data.get("update_interval_seconds", DEFAULT_UPDATE_INTERVAL_SECONDS)
        ),
        query_options=_coerce_options(data.get("query_options")),
        update_options=_coerce_options(data.get("update_options")),
        use_input_at_point=_coerce_bool(data.get("use_input_at_point"), defaults.use_input_at_point),
        min_query_length=_coerce_positive_int(data.get("min_query_length"), defaults.min_query_length),
        style=style.strip() if isinstance(style, str) and style.strip() else defaults.style,
    )


def save_settings(settings: Settings) -> None:
    config = load_config()
    config.update(settings.to_json())
    save_config(config)


def with_overrides(settings: Settings, **changes: object) -> Settings:
    """Return ``settings`` with non-``None`` command-line overrides applied."""
    return replace(settings, **{key: value for key, value in changes.items() if value is not None})
