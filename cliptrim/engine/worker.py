"""Engine workers run on a QThread and report back through signals.

Both workers carry the id of the job they belong to in every signal so the
receiver can drop results of a job it already gave up on. Interruption is
checked with ``QThread.isInterruptionRequested()`` between phases and, via the
engine, between log lines.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from PySide6.QtCore import QObject, QThread, Signal

from ..errors import ErrCode, TrimError
from .base import TranscodeEngine

log = logging.getLogger(__name__)


def _interrupted() -> bool:
    return QThread.currentThread().isInterruptionRequested()


class ExportWorker(QObject):
    staged = Signal(str)
    logLine = Signal(str, str)
    executed = Signal(str)
    retrieved = Signal(str, object)  # job id, bytes
    failed = Signal(str, object)  # job id, TrimError
    done = Signal(str)

    def __init__(
        self,
        engine: TranscodeEngine,
        job_id: str,
        source: Path,
        input_name: str,
        output_name: str,
        args: Sequence[str],
    ):
        super().__init__()
        self._engine = engine
        self._job = job_id
        self._source = source
        self._input_name = input_name
        self._output_name = output_name
        self._args = list(args)

    def run(self):  # executed in thread
        workspace = None
        phase = ErrCode.ENGINE_STAGING_FAILED
        try:
            workspace = self._engine.stage(self._source, self._input_name)
            if _interrupted():
                return
            self.staged.emit(self._job)

            phase = ErrCode.ENGINE_EXECUTION_FAILED
            self._engine.execute(
                workspace,
                self._args,
                lambda line: self.logLine.emit(self._job, line),
                _interrupted,
            )
            if _interrupted():
                return
            self.executed.emit(self._job)

            phase = ErrCode.ENGINE_RETRIEVAL_FAILED
            data = self._engine.read_output(workspace, self._output_name)
            if _interrupted():
                return
            self.retrieved.emit(self._job, data)
        except TrimError as e:
            if e.code is ErrCode.CANCELLED:
                log.debug("job %s stopped by cancel", self._job)
            else:
                self.failed.emit(self._job, e.with_context({"job": self._job}))
        except Exception as e:
            log.exception("job %s: unexpected engine error", self._job)
            self.failed.emit(
                self._job, TrimError(str(e), code=phase, ctx={"job": self._job})
            )
        finally:
            if workspace is not None:
                try:
                    self._engine.release(workspace)
                except OSError as e:
                    log.warning("job %s: cleanup failed: %s", self._job, e)
            self.done.emit(self._job)


class EngineLoader(QObject):
    loaded = Signal()
    failed = Signal(object)

    def __init__(self, engine: TranscodeEngine):
        super().__init__()
        self._engine = engine

    def run(self):
        try:
            self._engine.load()
        except TrimError as e:
            self.failed.emit(e)
        except Exception as e:
            self.failed.emit(TrimError(str(e), code=ErrCode.ENGINE_UNAVAILABLE))
        else:
            self.loaded.emit()


__all__ = ["ExportWorker", "EngineLoader"]
