import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv(dotenv_path=".env")

# Accepted custom durations, in minutes (lower bound exclusive)
MAX_WORK_MINUTES = 120
MAX_BREAK_MINUTES = 60

WORK_PRESETS = (15, 25, 30, 45, 60)
BREAK_PRESETS = (5, 10, 15, 20)

DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_VOLUME = 50


def _int_env(name: str, default: int, low: int = 1, high: int = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < low or (high is not None and value > high):
        return default
    return value


@dataclass
class AppConfig:
    db_path: str
    log_level: str = "INFO"
    work_minutes: int = DEFAULT_WORK_MINUTES
    break_minutes: int = DEFAULT_BREAK_MINUTES
    history_limit: int = DEFAULT_HISTORY_LIMIT
    lang: str = "zh"


def load_config() -> AppConfig:
    lang = os.getenv("STUDY_DESKTOP_LANG", "zh")
    return AppConfig(
        db_path=os.getenv("STUDY_DESKTOP_DB") or os.path.join(os.getcwd(), "study_desktop.db"),
        log_level=os.getenv("STUDY_DESKTOP_LOG_LEVEL", "INFO").upper(),
        work_minutes=_int_env("STUDY_DESKTOP_WORK_MINUTES", DEFAULT_WORK_MINUTES, high=MAX_WORK_MINUTES),
        break_minutes=_int_env("STUDY_DESKTOP_BREAK_MINUTES", DEFAULT_BREAK_MINUTES, high=MAX_BREAK_MINUTES),
        history_limit=_int_env("STUDY_DESKTOP_HISTORY_LIMIT", DEFAULT_HISTORY_LIMIT),
        lang=lang if lang in ("zh", "en") else "zh",
    )
