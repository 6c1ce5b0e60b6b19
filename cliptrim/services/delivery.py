"""File delivery sink for finished exports."""

from __future__ import annotations

import logging
from pathlib import Path

log = logging.getLogger(__name__)


class FileSink:
    """Writes export bytes into ``directory``.

    An existing file is never overwritten: ``clip.mp4`` becomes
    ``clip (1).mp4``, ``clip (2).mp4`` and so on.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def target_for(self, filename: str) -> Path:
        candidate = self.directory / Path(filename).name
        stem, suffix = candidate.stem, candidate.suffix
        n = 1
        while candidate.exists():
            candidate = self.directory / f"{stem} ({n}){suffix}"
            n += 1
        return candidate

    def deliver(self, data: bytes, filename: str) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        target = self.target_for(filename)
        target.write_bytes(data)
        log.info("saved %d bytes to %s", len(data), target)
        return target


__all__ = ["FileSink"]
