"""Export orchestration: one lossless trim job at a time.

A job walks ``idle -> preparing -> encoding -> finalizing`` and ends in
``succeeded``, ``cancelled`` or ``failed``. Engine work happens on a QThread
(see ``engine.worker``); this object lives on the GUI thread, reacts to the
worker's signals and publishes:

    stateChanged(job_id, state)
    progressChanged(job_id, percent)
    finished(ExportResult)      # exactly once per job, on the terminal state
    readyChanged(bool)          # engine readiness gate opened
    engineFailed(TrimError)     # engine could not be loaded

Engine failures never propagate as exceptions: the job ends in ``failed``
with the TrimError attached to the result.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from PySide6.QtCore import QObject, QThread, Signal, Slot

from ..config import Settings, get_settings
from ..engine.base import EngineGate, TranscodeEngine
from ..engine.worker import EngineLoader, ExportWorker
from ..errors import ErrCode, TrimError
from .progress import ProgressTracker

log = logging.getLogger(__name__)

DEFAULT_SUFFIX = ".mp4"


class ExportState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    ENCODING = "encoding"
    FINALIZING = "finalizing"
    SUCCEEDED = "succeeded"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (ExportState.SUCCEEDED, ExportState.CANCELLED, ExportState.FAILED)

    @property
    def active(self) -> bool:
        return self in (ExportState.PREPARING, ExportState.ENCODING, ExportState.FINALIZING)


def _seconds(value: float) -> str:
    return f"{value:.3f}"


def build_trim_command(
    start: float,
    duration: float,
    input_name: str,
    output_name: str,
    progress: bool = True,
) -> List[str]:
    """Engine arguments for a stream-copy cut of ``duration`` seconds at ``start``.

    Seeking before ``-i`` with ``-c copy`` snaps the cut to the keyframe at or
    before ``start``, so the first frames of the output may precede the
    selection and its length may differ slightly from ``duration``. Cutting on
    exact frames would need a re-encode.
    """
    args = [
        "-ss",
        _seconds(start),
        "-i",
        input_name,
        "-t",
        _seconds(duration),
        "-c",
        "copy",
    ]
    if progress:
        args += ["-progress", "pipe:1"]
    args.append(output_name)
    return args


@dataclass
class ExportJob:
    source: Path
    start_time: float
    end_time: float
    filename: str
    input_name: str
    output_name: str
    command: List[str]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    state: ExportState = ExportState.IDLE
    progress: float = 0.0
    error: Optional[TrimError] = None
    output: Optional[bytes] = field(default=None, repr=False)

    @property
    def selection_duration(self) -> float:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class ExportResult:
    job_id: str
    state: ExportState
    filename: str
    data: Optional[bytes] = field(default=None, repr=False)
    error: Optional[TrimError] = None

    @property
    def ok(self) -> bool:
        return self.state is ExportState.SUCCEEDED


class ExportOrchestrator(QObject):
    stateChanged = Signal(str, str)
    progressChanged = Signal(str, float)
    finished = Signal(object)
    readyChanged = Signal(bool)
    engineFailed = Signal(object)  # TrimError(ENGINE_UNAVAILABLE)

    def __init__(
        self,
        engine: TranscodeEngine,
        parent: Optional[QObject] = None,
        *,
        settings: Optional[Settings] = None,
    ):
        super().__init__(parent)
        self._engine = engine
        self._settings = settings or get_settings()
        self.gate = EngineGate(self)
        self.gate.opened.connect(self._onGateOpened)
        self._job: Optional[ExportJob] = None
        self._tracker: Optional[ProgressTracker] = None
        self._workers: Dict[str, Tuple[QThread, ExportWorker]] = {}
        self._loader: Optional[Tuple[QThread, EngineLoader]] = None
        self.engine_error: Optional[TrimError] = None

    # --- Engine readiness ---
    @property
    def is_ready(self) -> bool:
        return self.gate.is_open()

    def load_engine(self) -> None:
        """Load the engine once on a worker thread; opens the gate on success."""
        if self.gate.is_open() or self._loader is not None:
            return
        loader = EngineLoader(self._engine)
        thread = QThread()
        loader.moveToThread(thread)
        thread.started.connect(loader.run)
        loader.loaded.connect(self._onEngineLoaded)
        loader.failed.connect(self._onEngineFailed)
        self._loader = (thread, loader)
        self.engine_error = None
        thread.start()

    def _finishLoader(self) -> None:
        if self._loader is None:
            return
        thread, _ = self._loader
        thread.quit()
        thread.wait()
        self._loader = None

    @Slot()
    def _onEngineLoaded(self):
        self._finishLoader()
        self.gate.open()

    @Slot(object)
    def _onEngineFailed(self, error: TrimError):
        self._finishLoader()
        log.error("engine %s unavailable: %s", self._engine.name, error)
        self.engine_error = error
        self.engineFailed.emit(error)

    def _onGateOpened(self):
        self.readyChanged.emit(True)

    # --- Jobs ---
    @property
    def job(self) -> Optional[ExportJob]:
        """Most recent job, active or finished."""
        return self._job

    @property
    def busy(self) -> bool:
        return self._job is not None and self._job.state.active

    @property
    def has_pending_work(self) -> bool:
        """True while any worker thread (including abandoned ones) still runs."""
        return bool(self._workers) or self._loader is not None

    def submit(
        self,
        source: str | Path,
        time_range: Tuple[float, float],
        filename: Optional[str] = None,
    ) -> ExportJob:
        if self.busy:
            raise TrimError(
                "an export is already running",
                code=ErrCode.BUSY,
                ctx={"job": self._job.id},
            )
        if not self.gate.is_open():
            raise TrimError("engine is not ready", code=ErrCode.ENGINE_UNAVAILABLE)
        start, end = float(time_range[0]), float(time_range[1])
        if start < 0 or end <= start:
            raise TrimError(
                "selection is empty",
                code=ErrCode.INVALID_RANGE,
                ctx={"start": start, "end": end},
            )
        source = Path(source)
        suffix = source.suffix or DEFAULT_SUFFIX
        input_name, output_name = f"input{suffix}", f"output{suffix}"
        job = ExportJob(
            source=source,
            start_time=start,
            end_time=end,
            filename=filename or f"{self._settings.output_stem}{suffix}",
            input_name=input_name,
            output_name=output_name,
            command=build_trim_command(
                start,
                end - start,
                input_name,
                output_name,
                progress=self._settings.machine_progress,
            ),
        )
        self._job = job
        self._tracker = ProgressTracker(job.selection_duration)
        log.info(
            "job %s: trim %s [%.3f, %.3f) -> %s", job.id, source, start, end, job.filename
        )
        log.info("job %s: command %s", job.id, " ".join(job.command))
        self._transition(job, ExportState.PREPARING)
        self._startWorker(job)
        return job

    def cancel(self) -> bool:
        """Abandon the active job if it is still preparing or encoding."""
        job = self._job
        if job is None or job.state not in (ExportState.PREPARING, ExportState.ENCODING):
            return False
        entry = self._workers.get(job.id)
        if entry is not None:
            entry[0].requestInterruption()
        self._transition(job, ExportState.CANCELLED)
        return True

    def shutdown(self, timeout_ms: int = 5000) -> None:
        """Cancel and wait for every worker thread; call before the app exits.

        A QThread must not be destroyed while running, so a worker that is
        still busy after ``timeout_ms`` (a long copy, a silent ffmpeg) is waited
        for without a limit. Interruption is already requested by then, and the
        worker releases its workspace on the way out.
        """
        self.cancel()
        for job_id, (thread, _) in list(self._workers.items()):
            thread.requestInterruption()
            thread.quit()
            if not thread.wait(timeout_ms):
                log.warning("job %s: worker still running, waiting for it to stop", job_id)
                thread.wait()
            self._workers.pop(job_id, None)
        self._finishLoader()

    def _startWorker(self, job: ExportJob) -> None:
        worker = ExportWorker(
            self._engine,
            job.id,
            job.source,
            job.input_name,
            job.output_name,
            job.command,
        )
        thread = QThread()
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.staged.connect(self._onStaged)
        worker.logLine.connect(self._onLogLine)
        worker.executed.connect(self._onExecuted)
        worker.retrieved.connect(self._onRetrieved)
        worker.failed.connect(self._onFailed)
        worker.done.connect(self._onWorkerDone)
        self._workers[job.id] = (thread, worker)
        thread.start()

    def _current(self, job_id: str, expected: ExportState) -> Optional[ExportJob]:
        job = self._job
        if job is None or job.id != job_id or job.state is not expected:
            return None
        return job

    def _setProgress(self, job: ExportJob, value: Optional[float]) -> None:
        if value is None or value <= job.progress:
            return
        job.progress = value
        self.progressChanged.emit(job.id, value)

    def _transition(self, job: ExportJob, state: ExportState) -> None:
        log.info("job %s: %s -> %s", job.id, job.state.value, state.value)
        job.state = state
        self.stateChanged.emit(job.id, state.value)
        if state.terminal:
            self._tracker = None
            self.finished.emit(
                ExportResult(
                    job_id=job.id,
                    state=state,
                    filename=job.filename,
                    data=job.output if state is ExportState.SUCCEEDED else None,
                    error=job.error,
                )
            )

    # --- Worker signal handlers (queued onto this thread) ---
    @Slot(str)
    def _onStaged(self, job_id: str):
        job = self._current(job_id, ExportState.PREPARING)
        if job is None:
            return
        self._setProgress(job, self._tracker.staged())
        self._transition(job, ExportState.ENCODING)

    @Slot(str, str)
    def _onLogLine(self, job_id: str, line: str):
        job = self._current(job_id, ExportState.ENCODING)
        if job is None:
            return
        log.debug("job %s: %s", job_id, line)
        self._setProgress(job, self._tracker.feed(line))

    @Slot(str)
    def _onExecuted(self, job_id: str):
        job = self._current(job_id, ExportState.ENCODING)
        if job is None:
            return
        self._setProgress(job, self._tracker.encoded())
        self._transition(job, ExportState.FINALIZING)
        self._setProgress(job, self._tracker.finalizing())

    @Slot(str, object)
    def _onRetrieved(self, job_id: str, data: bytes):
        job = self._current(job_id, ExportState.FINALIZING)
        if job is None:
            return
        job.output = bytes(data)
        self._setProgress(job, self._tracker.completed())
        log.info("job %s: %d bytes ready", job_id, len(job.output))
        self._transition(job, ExportState.SUCCEEDED)

    @Slot(str, object)
    def _onFailed(self, job_id: str, error: TrimError):
        job = self._job
        if job is None or job.id != job_id or not job.state.active:
            log.debug("job %s: dropping late failure %s", job_id, error)
            return
        log.error("job %s failed: %s", job_id, error)
        job.error = error
        self._transition(job, ExportState.FAILED)

    @Slot(str)
    def _onWorkerDone(self, job_id: str):
        entry = self._workers.pop(job_id, None)
        if entry is None:
            return
        thread, _ = entry
        thread.quit()
        thread.wait()


__all__ = [
    "ExportState",
    "ExportJob",
    "ExportResult",
    "ExportOrchestrator",
    "build_trim_command",
]
