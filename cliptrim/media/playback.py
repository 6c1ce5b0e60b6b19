"""Playback collaborator and frame view.

MediaPlayback owns the playback cursor. It decodes frames through a
ClipAdapter on a QTimer and reports:

    clipLoaded(float)          # duration, the metadata signal
    positionChanged(float)     # every seek and every playback tick
    playbackEnded()            # natural end of media reached while playing
    stateChanged(str)          # 'stopped'|'playing'|'paused'
    frameReady(np.ndarray, float)

The preview loop only talks to it through ``seek``, ``play`` and ``pause`` and
these signals, so tests substitute a plain QObject with the same surface.

Pacing: each tick derives the target frame from wall-clock time since play
started. When rendering lags, intermediate frames are dropped so the cursor
keeps real time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Optional, Union

from PySide6.QtCore import QObject, QSize, Qt, QTimer, Signal
from PySide6.QtGui import QImage, QPixmap
from PySide6.QtWidgets import QLabel, QSizePolicy

from .clip_adapter import ClipAdapter

log = logging.getLogger(__name__)

DEFAULT_FPS = 24.0


@dataclass
class PlaybackState:
    playing: bool = False
    current_frame: int = 0
    total_frames: int = 0
    duration: float = 0.0
    fps: float = DEFAULT_FPS


class MediaPlayback(QObject):
    frameReady = Signal(object, float)
    positionChanged = Signal(float)
    playbackEnded = Signal()
    stateChanged = Signal(str)
    clipLoaded = Signal(float)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._adapter: Optional[ClipAdapter] = None
        self._state = PlaybackState()
        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.PreciseTimer)
        self._timer.timeout.connect(self._tick)
        self._play_origin: Optional[float] = None

    @property
    def loaded(self) -> bool:
        return self._adapter is not None

    @property
    def duration(self) -> float:
        return self._state.duration

    def load(self, source: Union[str, ClipAdapter]) -> None:
        """Open a path (or adopt an adapter) and announce its duration."""
        adapter = source if isinstance(source, ClipAdapter) else ClipAdapter.from_path(source)
        self.unload()
        self._adapter = adapter
        fps = adapter.fps or DEFAULT_FPS
        duration = adapter.duration
        self._state = PlaybackState(
            total_frames=int(round(fps * duration)) if duration > 0 else 0,
            duration=duration,
            fps=fps,
        )
        log.info("loaded %s (%.3fs @ %.2f fps)", adapter.source, duration, fps)
        self.clipLoaded.emit(duration)
        self.stateChanged.emit("stopped")
        self.seek(0.0)

    def unload(self) -> None:
        if self._adapter is None:
            return
        self._timer.stop()
        self._adapter.close()
        self._adapter = None
        self._state = PlaybackState()
        self.stateChanged.emit("stopped")

    def play(self) -> None:
        if self._adapter is None or self._state.total_frames <= 0:
            return
        if self._state.current_frame >= self._state.total_frames - 1:
            self._state.current_frame = 0
        fps = self._state.fps
        self._play_origin = perf_counter() - self._state.current_frame / fps
        if not self._timer.isActive():
            self._timer.start(max(1, int(1000 / fps)))
        self._state.playing = True
        self.stateChanged.emit("playing")

    def pause(self) -> None:
        self._timer.stop()
        self._state.playing = False
        self.stateChanged.emit("paused")

    def seek(self, t: float) -> None:
        if self._adapter is None:
            return
        last = max(0, self._state.total_frames - 1)
        self._state.current_frame = max(0, min(int(t * self._state.fps), last))
        if self._state.playing:
            # Re-anchor the wall clock so the next tick continues from here.
            self._play_origin = perf_counter() - self._state.current_frame / self._state.fps
        self._emit_frame()
        self.positionChanged.emit(self.position())

    def position(self) -> float:
        if self._adapter is None or self._state.total_frames <= 0:
            return 0.0
        return self._state.current_frame / self._state.fps

    def _emit_frame(self) -> None:
        t = self.position()
        self.frameReady.emit(self._adapter.get_frame(t), t)

    def _tick(self) -> None:
        if self._adapter is None:
            self._timer.stop()
            return
        target = self._state.current_frame + 1
        if self._play_origin is not None:
            desired = int((perf_counter() - self._play_origin) * self._state.fps)
            target = max(target, desired)
        if target >= self._state.total_frames:
            self.pause()
            self.playbackEnded.emit()
            return
        self._state.current_frame = target
        self._emit_frame()
        self.positionChanged.emit(self.position())


class FrameView(QLabel):
    """QLabel that shows the latest frame scaled to fit, keeping aspect."""

    def __init__(self, playback: MediaPlayback, parent=None):
        super().__init__(parent)
        self.setAlignment(Qt.AlignCenter)
        self.setStyleSheet("background:#111;color:#888;font-size:18px;")
        self.setText("Drop a video here")
        self._last_frame = None
        # Ignored policy lets layouts shrink the label below the last pixmap size.
        self.setSizePolicy(QSizePolicy.Ignored, QSizePolicy.Ignored)
        playback.frameReady.connect(self._onFrame)

    def sizeHint(self):  # type: ignore[override]
        return QSize(320, 180)

    def clearFrame(self) -> None:
        self._last_frame = None
        self.clear()
        self.setText("Drop a video here")

    def _render(self) -> None:
        frame = self._last_frame
        if frame is None or self.width() <= 0 or self.height() <= 0:
            return
        import numpy as np

        if frame.ndim == 2:
            frame = np.stack([frame] * 3, axis=-1)
        frame = np.ascontiguousarray(frame[:, :, :3], dtype=np.uint8)
        h, w = frame.shape[0], frame.shape[1]
        image = QImage(frame.data, w, h, w * 3, QImage.Format.Format_RGB888)
        scaled = image.scaled(
            self.width(), self.height(), Qt.KeepAspectRatio, Qt.FastTransformation
        )
        self.setPixmap(QPixmap.fromImage(scaled))

    def _onFrame(self, frame, t: float) -> None:
        if frame is None:
            return
        self._last_frame = frame
        self._render()

    def resizeEvent(self, event):  # noqa: D401 - Qt override
        self._render()
        super().resizeEvent(event)


__all__ = ["MediaPlayback", "FrameView", "PlaybackState"]
