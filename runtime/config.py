import logging
import os
from dataclasses import dataclass
from typing import Optional

from skirmish.constants import BATTLE_TICK_MS, MAX_TICKS_PER_FRAME


@dataclass(frozen=True)
class RuntimeSettings:
    tick_ms: int = BATTLE_TICK_MS
    max_ticks_per_frame: int = MAX_TICKS_PER_FRAME
    speed: float = 1.0
    frame_ms: int = 16
    log_level: str = "INFO"


def _env(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def get_settings() -> RuntimeSettings:
    settings = RuntimeSettings(
        tick_ms=_env("SKIRMISH_TICK_MS", BATTLE_TICK_MS, int),
        max_ticks_per_frame=_env("SKIRMISH_MAX_TICKS_PER_FRAME", MAX_TICKS_PER_FRAME, int),
        speed=_env("SKIRMISH_SPEED", 1.0, float),
        frame_ms=_env("SKIRMISH_FRAME_MS", 16, int),
        log_level=_env("SKIRMISH_LOG_LEVEL", "INFO", str).upper(),
    )
    if settings.tick_ms <= 0:
        raise ValueError("SKIRMISH_TICK_MS must be positive")
    if settings.max_ticks_per_frame <= 0:
        raise ValueError("SKIRMISH_MAX_TICKS_PER_FRAME must be positive")
    return settings


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
