"""Thread-safe wrapper around a MoviePy VideoFileClip.

Serves as the media metadata source: duration and fps come from here, and
frames are fetched under a mutex so the playback timer and any other reader do
not decode concurrently.
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

from moviepy import VideoFileClip

from PySide6.QtCore import QMutex, QMutexLocker

from ..errors import ErrCode, TrimError

log = logging.getLogger(__name__)

# Not in every platform's mime table.
mimetypes.add_type("video/x-matroska", ".mkv")
mimetypes.add_type("video/webm", ".webm")


def is_video_path(path: str | Path) -> bool:
    """True when the file name maps to a ``video/*`` mime type."""
    mime, _ = mimetypes.guess_type(str(path))
    return bool(mime) and mime.startswith("video/")


class ClipAdapter:
    def __init__(self, clip, source: str | None = None):
        self._clip = clip
        self._source = source
        self._mutex = QMutex()

    @property
    def clip(self):
        return self._clip

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def duration(self) -> float:
        return float(getattr(self._clip, "duration", 0.0) or 0.0)

    @property
    def fps(self) -> float:
        return float(getattr(self._clip, "fps", 0.0) or 0.0)

    def get_frame(self, t: float):
        with QMutexLocker(self._mutex):
            return self._clip.get_frame(t)

    def close(self) -> None:
        closer = getattr(self._clip, "close", None)
        if closer is None:
            return
        with QMutexLocker(self._mutex):
            try:
                closer()
            except OSError as e:  # pragma: no cover
                log.warning("closing %s failed: %s", self._source, e)

    @classmethod
    def from_path(cls, path: str | Path) -> "ClipAdapter":
        path = Path(path)
        if not path.is_file():
            raise TrimError(
                "file not found", code=ErrCode.INPUT_REJECTED, ctx={"path": str(path)}
            )
        try:
            clip = VideoFileClip(str(path), audio=False)
        except Exception as e:  # moviepy/ffmpeg reader errors are not uniform
            raise TrimError(
                f"unreadable video: {e}",
                code=ErrCode.INPUT_REJECTED,
                ctx={"path": str(path)},
            ) from e
        return cls(clip, source=str(path))

    @classmethod
    def from_clip(cls, clip) -> "ClipAdapter":
        return cls(clip)


__all__ = ["ClipAdapter", "is_video_path"]
