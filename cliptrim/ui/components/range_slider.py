"""Two-handle range slider on a 0-100 scale.

Emits ``boundMoved(which, fraction)`` while a handle is dragged; the owner
decides whether the move is accepted and pushes the result back with
``setRange`` so the widget never holds a selection the model rejected.
"""

from __future__ import annotations

from PySide6.QtCore import QRectF, QSize, Qt, Signal
from PySide6.QtGui import QColor, QPainter, QPen
from PySide6.QtWidgets import QWidget

HANDLE_W = 10
MARGIN = 8


class RangeSlider(QWidget):
    boundMoved = Signal(str, float)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._start = 0.0
        self._end = 100.0
        self._playhead: float | None = None
        self._dragging: str | None = None
        self.setMinimumHeight(32)
        self.setMouseTracking(True)

    def sizeHint(self):  # type: ignore[override]
        return QSize(400, 36)

    def values(self) -> tuple[float, float]:
        return self._start, self._end

    def setRange(self, start: float, end: float) -> None:
        self._start, self._end = start, end
        self.update()

    def setPlayhead(self, fraction: float | None) -> None:
        """Playhead marker position, or None to hide it."""
        self._playhead = fraction
        self.update()

    # Geometry helpers
    def _track(self) -> QRectF:
        return QRectF(MARGIN, self.height() / 2 - 6, self.width() - MARGIN * 2, 12)

    def _x_for(self, fraction: float) -> float:
        track = self._track()
        return track.x() + track.width() * fraction / 100.0

    def _fraction_at(self, x: float) -> float:
        track = self._track()
        if track.width() <= 0:
            return 0.0
        return max(0.0, min(100.0, (x - track.x()) / track.width() * 100.0))

    # Painting
    def paintEvent(self, event):  # type: ignore[override]
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing, True)
        track = self._track()
        p.setPen(Qt.NoPen)
        p.setBrush(QColor(40, 44, 52))
        p.drawRoundedRect(track, 6, 6)
        x1, x2 = self._x_for(self._start), self._x_for(self._end)
        p.setBrush(QColor(90, 100, 120))
        p.drawRoundedRect(QRectF(x1, track.y(), x2 - x1, track.height()), 6, 6)
        for x, color in ((x1, QColor(0, 200, 120)), (x2, QColor(220, 80, 120))):
            p.setPen(QPen(color, 2))
            p.setBrush(QColor(230, 230, 230))
            p.drawRoundedRect(
                QRectF(x - HANDLE_W / 2, track.y() - 6, HANDLE_W, track.height() + 12), 3, 3
            )
        if self._playhead is not None:
            xc = self._x_for(self._playhead)
            p.setPen(QPen(QColor(255, 255, 255), 1))
            p.drawLine(int(xc), 2, int(xc), self.height() - 2)
        p.end()

    # Interaction
    def mousePressEvent(self, event):  # type: ignore[override]
        x = event.position().x()
        near_start = abs(x - self._x_for(self._start))
        near_end = abs(x - self._x_for(self._end))
        self._dragging = "start" if near_start <= near_end else "end"
        self.boundMoved.emit(self._dragging, self._fraction_at(x))

    def mouseMoveEvent(self, event):  # type: ignore[override]
        if self._dragging is None:
            return
        self.boundMoved.emit(self._dragging, self._fraction_at(event.position().x()))

    def mouseReleaseEvent(self, event):  # type: ignore[override]
        self._dragging = None


__all__ = ["RangeSlider"]
