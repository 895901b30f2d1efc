from dataclasses import dataclass
from datetime import timedelta
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from taskboard.domain.focus.models import FocusTimerSettings

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    db_path: Path
    timezone: str
    log_level: int
    seed_sample_data: bool
    snapshot_path: Optional[Path]
    focus: FocusTimerSettings


def _int(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise RuntimeError(f"{name} must be at least {minimum}, got {value}")
    return value


def _bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise RuntimeError(f"{name} must be a boolean (1/true/yes/on or 0/false/no/off), got {raw!r}")


def _log_level(name: str, default: str) -> int:
    raw = os.getenv(name, default).strip().upper()
    level = logging.getLevelName(raw)
    if not isinstance(level, int):
        raise RuntimeError(f"{name} is not a logging level: {raw!r}")
    return level


def load_settings() -> Settings:
    load_dotenv(find_dotenv(usecwd=True))

    db_raw = os.getenv("TASKBOARD_DB_PATH", "data/taskboard.db").strip()
    tz = os.getenv("TZ", "UTC").strip() or "UTC"
    snapshot_raw = os.getenv("TASKBOARD_SNAPSHOT_PATH", "").strip()

    if not db_raw:
        raise RuntimeError("TASKBOARD_DB_PATH is empty")

    focus = FocusTimerSettings(
        work_duration=timedelta(minutes=_int("FOCUS_WORK_MINUTES", 25, 1)),
        break_duration=timedelta(minutes=_int("FOCUS_SHORT_BREAK_MINUTES", 5, 0)),
        long_break_duration=timedelta(minutes=_int("FOCUS_LONG_BREAK_MINUTES", 15, 0)),
        sessions_until_long_break=_int("FOCUS_SESSIONS_UNTIL_LONG_BREAK", 4, 1),
        auto_start_break=_bool("FOCUS_AUTO_START_BREAK", True),
        auto_start_work=_bool("FOCUS_AUTO_START_WORK", False),
    )

    return Settings(
        db_path=Path(db_raw),
        timezone=tz,
        log_level=_log_level("LOG_LEVEL", "INFO"),
        seed_sample_data=_bool("TASKBOARD_SEED_SAMPLE_DATA", True),
        snapshot_path=Path(snapshot_raw) if snapshot_raw else None,
        focus=focus,
    )
