"""Application settings.

Values come from ``CLIPTRIM_*`` environment variables and are read once through
``get_settings()``. Tests build ``Settings`` directly instead of touching the
environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


def _path(value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    return Path(value).expanduser()


@dataclass(frozen=True)
class Settings:
    ffmpeg_binary: Optional[str] = None  # None -> moviepy's resolved binary
    output_stem: str = "trimmed-video"
    output_dir: Optional[Path] = None  # None -> next to the source video
    work_dir: Optional[Path] = None  # None -> system temp
    machine_progress: bool = True
    log_level: str = "INFO"
    screen_index: Optional[int] = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if env is None else env
        screen = env.get("CLIPTRIM_SCREEN_INDEX")
        try:
            screen_index = int(screen) if screen else None
        except ValueError:
            screen_index = None
        return cls(
            ffmpeg_binary=env.get("CLIPTRIM_FFMPEG") or None,
            output_stem=env.get("CLIPTRIM_OUTPUT_STEM") or cls.output_stem,
            output_dir=_path(env.get("CLIPTRIM_OUTPUT_DIR")),
            work_dir=_path(env.get("CLIPTRIM_WORK_DIR")),
            machine_progress=_flag(env.get("CLIPTRIM_PROGRESS"), True),
            log_level=(env.get("CLIPTRIM_LOG_LEVEL") or cls.log_level).upper(),
            screen_index=screen_index,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


__all__ = ["Settings", "get_settings"]
