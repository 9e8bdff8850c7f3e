"""Settings for analysis passes."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Final

from .env import env_int, env_str

DEFAULT_LOCK_NAME: Final[str] = "cleanse-analysis"
DEFAULT_LOCK_MINUTES: Final[int] = 5
DEFAULT_PROGRESS_INTERVAL: Final[int] = 100


@dataclass(frozen=True, slots=True)
class AnalysisConfig:
    lock_name: str = DEFAULT_LOCK_NAME
    lock_duration: timedelta = timedelta(minutes=DEFAULT_LOCK_MINUTES)
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL


def get_analysis_config() -> AnalysisConfig:
    """Read ``CLEANSE_LOCK_NAME``, ``CLEANSE_LOCK_MINUTES`` and ``CLEANSE_PROGRESS_INTERVAL``."""

    return AnalysisConfig(
        lock_name=env_str("CLEANSE_LOCK_NAME", DEFAULT_LOCK_NAME),
        lock_duration=timedelta(minutes=env_int("CLEANSE_LOCK_MINUTES", DEFAULT_LOCK_MINUTES)),
        progress_interval=env_int("CLEANSE_PROGRESS_INTERVAL", DEFAULT_PROGRESS_INTERVAL),
    )
