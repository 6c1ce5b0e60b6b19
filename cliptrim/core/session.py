"""Trim session: one loaded video, its selection, preview and export.

The session is what the window talks to. It owns the RangeModel, a
PreviewLoopController bound to the playback collaborator and an
ExportOrchestrator bound to the engine, and hands finished exports to a
FileSink.

Duration arrives from the player's ``clipLoaded`` signal; until then the
range stays at its non-actionable default and preview/export raise
``TrimError(DURATION_UNKNOWN)``.

Exports are stream copies. Cut points snap to keyframes, so the saved clip
can start slightly before the selected start time.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Signal

from ..config import Settings, get_settings
from ..engine.base import TranscodeEngine
from ..errors import ErrCode, TrimError
from ..media.clip_adapter import is_video_path
from ..services.delivery import FileSink
from .export import ExportJob, ExportOrchestrator, ExportResult
from .preview import PreviewLoopController
from .range_model import BoundLike, RangeModel

log = logging.getLogger(__name__)


class TrimSession(QObject):
    videoLoaded = Signal(float)
    videoCleared = Signal()
    rangeChanged = Signal(float, float)  # start_time, end_time
    delivered = Signal(str)
    deliveryFailed = Signal(str)

    def __init__(
        self,
        player,
        engine: TranscodeEngine,
        parent: Optional[QObject] = None,
        *,
        sink: Optional[FileSink] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__(parent)
        self._settings = settings or get_settings()
        self._sink = sink
        self._source: Optional[Path] = None
        self._duration_seen = False
        self.range = RangeModel()
        self.player = player
        self.preview = PreviewLoopController(self.range, player, self)
        self.preview.bind()
        self.exporter = ExportOrchestrator(engine, self, settings=self._settings)
        self.exporter.finished.connect(self._onExportFinished)
        player.clipLoaded.connect(self._onDurationLoaded)

    @property
    def source(self) -> Optional[Path]:
        return self._source

    @property
    def has_video(self) -> bool:
        return self._source is not None

    # --- Media intake ---
    def load_video(self, path: str | Path) -> None:
        path = Path(path)
        if not path.is_file():
            raise TrimError(
                "file not found", code=ErrCode.INPUT_REJECTED, ctx={"path": str(path)}
            )
        if not is_video_path(path):
            raise TrimError(
                "not a video file", code=ErrCode.INPUT_REJECTED, ctx={"path": str(path)}
            )
        self.preview.stop()
        # The player keeps its current clip when opening fails, and so does the
        # session.
        previous = self._source
        self._source = path
        self._duration_seen = False
        try:
            self.player.load(str(path))
        except TrimError:
            self._source = previous
            raise
        if not self._duration_seen:
            # Metadata still pending: unknown duration until clipLoaded.
            self.range.reset(clear=True)
            self.rangeChanged.emit(0.0, 0.0)
        log.info("session video %s", path)

    def clear(self) -> None:
        self.preview.stop()
        self.player.unload()
        self.range.reset(clear=True)
        self._source = None
        self.videoCleared.emit()
        self.rangeChanged.emit(0.0, 0.0)

    def _onDurationLoaded(self, duration: float):
        self._duration_seen = True
        self.range.reset()
        self.range.set_duration(duration)
        self.videoLoaded.emit(self.range.duration)
        self.rangeChanged.emit(self.range.start_time, self.range.end_time)

    # --- Selection ---
    def set_bound(self, which: BoundLike, fraction: float) -> bool:
        changed = self.range.set_bound(which, fraction)
        if changed:
            self._rangeUpdated()
        return changed

    def set_bound_by_time(self, which: BoundLike, text: str) -> bool:
        changed = self.range.set_bound_by_time(which, text)
        if changed:
            self._rangeUpdated()
        return changed

    def _rangeUpdated(self) -> None:
        self.preview.on_range_changed()
        self.rangeChanged.emit(self.range.start_time, self.range.end_time)

    # --- Preview ---
    def toggle_preview(self) -> None:
        self.preview.toggle()

    def stop_preview(self) -> None:
        self.preview.stop()

    # --- Export ---
    def trim(self, filename: Optional[str] = None) -> ExportJob:
        if self._source is None:
            raise TrimError("no video loaded", code=ErrCode.INPUT_REJECTED)
        return self.exporter.submit(self._source, self.range.absolute_range(), filename)

    def cancel_export(self) -> bool:
        return self.exporter.cancel()

    def _sinkFor(self, job_source: Path) -> FileSink:
        if self._sink is not None:
            return self._sink
        return FileSink(self._settings.output_dir or job_source.parent)

    def _onExportFinished(self, result: ExportResult):
        if not result.ok:
            return
        job = self.exporter.job
        try:
            path = self._sinkFor(job.source).deliver(result.data, result.filename)
        except OSError as e:
            log.error("could not save %s: %s", result.filename, e)
            self.deliveryFailed.emit(str(e))
            return
        self.delivered.emit(str(path))

    def shutdown(self) -> None:
        self.preview.stop()
        self.exporter.shutdown()
        self.player.unload()


__all__ = ["TrimSession"]
