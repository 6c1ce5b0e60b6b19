"""Preview loop constrained to the selection.

While previewing, any cursor position outside ``[start_time, end_time]`` sends
the player back to ``start_time``. That covers both playback running past the
end and the user scrubbing outside the range, and it loops without relying on
the player's own end-of-media handling. When the media itself ends during a
preview the loop restarts as if ``start()`` was called again.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from PySide6.QtCore import QObject, Signal

from .range_model import RangeModel

log = logging.getLogger(__name__)


class PreviewState(str, Enum):
    STOPPED = "stopped"
    PREVIEWING = "previewing"


class PreviewLoopController(QObject):
    stateChanged = Signal(str)

    def __init__(self, range_model: RangeModel, player, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._range = range_model
        self._player = player
        self._state = PreviewState.STOPPED
        # Set while our own seek is in flight: players echo it through
        # positionChanged, possibly quantized to a frame before start_time.
        self._seeking = False

    @property
    def state(self) -> PreviewState:
        return self._state

    @property
    def previewing(self) -> bool:
        return self._state is PreviewState.PREVIEWING

    def bind(self, player=None) -> None:
        """Subscribe to the player's position and end-of-media signals."""
        if player is not None:
            self._player = player
        self._player.positionChanged.connect(self.on_time_advance)
        self._player.playbackEnded.connect(self.on_playback_ended)

    def _setState(self, state: PreviewState) -> None:
        if state is self._state:
            return
        self._state = state
        self.stateChanged.emit(state.value)

    def _jump(self, t: float) -> None:
        self._seeking = True
        try:
            self._player.seek(t)
        finally:
            self._seeking = False

    def start(self) -> None:
        """Jump to the selection start and play. Raises TrimError if unresolved."""
        start, _ = self._range.absolute_range()
        self._jump(start)
        self._player.play()
        self._setState(PreviewState.PREVIEWING)

    def stop(self) -> None:
        if self._state is PreviewState.STOPPED:
            return
        self._player.pause()
        self._setState(PreviewState.STOPPED)

    def toggle(self) -> None:
        if self.previewing:
            self.stop()
        else:
            self.start()

    def on_time_advance(self, t: float) -> None:
        if self._seeking or not self.previewing:
            return
        start, end = self._range.start_time, self._range.end_time
        if t < start or t > end:
            log.debug("cursor %.3f outside [%.3f, %.3f], looping", t, start, end)
            self._jump(start)

    def on_range_changed(self) -> None:
        # Previewing: the next time advance re-clamps. Stopped: the cursor
        # follows the start bound so the frame under it is visible.
        if self.previewing or not self._range.is_actionable:
            return
        self._jump(self._range.start_time)

    def on_playback_ended(self) -> None:
        if self.previewing:
            self.start()


__all__ = ["PreviewState", "PreviewLoopController"]
