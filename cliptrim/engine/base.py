"""Transcoding engine contract and readiness gate.

An engine stages input into a private workspace, runs an argument list against
it while streaming its log line by line, hands back the produced bytes and
finally releases the workspace. Every call except ``release`` may block; the
export worker runs them off the GUI thread.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional, Sequence

from PySide6.QtCore import QObject, Signal

LineCallback = Callable[[str], None]
CancelCheck = Callable[[], bool]


@dataclass
class EngineWorkspace:
    """Handle for engine-side state belonging to one export job."""

    root: Optional[Path] = None
    staged: list[str] = field(default_factory=list)


class TranscodeEngine:
    """Base class for engines; subclasses implement every method."""

    name = "engine"

    def load(self) -> None:
        """Prepare the engine once. Raises TrimError(ENGINE_UNAVAILABLE)."""
        raise NotImplementedError

    def stage(self, source: Path, name: str) -> EngineWorkspace:
        """Make ``source`` available to the engine as ``name``.

        Raises TrimError(ENGINE_STAGING_FAILED).
        """
        raise NotImplementedError

    def execute(
        self,
        workspace: EngineWorkspace,
        args: Sequence[str],
        on_line: LineCallback,
        is_cancelled: CancelCheck,
    ) -> None:
        """Run ``args``; feed each log line to ``on_line``.

        Should stop early once ``is_cancelled()`` turns true. Raises
        TrimError(ENGINE_EXECUTION_FAILED) on a failed run and
        TrimError(CANCELLED) when it stopped because of a cancel.
        """
        raise NotImplementedError

    def read_output(self, workspace: EngineWorkspace, name: str) -> bytes:
        """Return the bytes written to ``name``. Raises TrimError(ENGINE_RETRIEVAL_FAILED)."""
        raise NotImplementedError

    def release(self, workspace: EngineWorkspace) -> None:
        """Drop temporary engine state. Must not raise."""
        raise NotImplementedError


class EngineGate(QObject):
    """One-way readiness flag: closed until the engine has loaded once."""

    opened = Signal()

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._open = False

    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self._open:
            return
        self._open = True
        self.opened.emit()


__all__ = ["EngineWorkspace", "TranscodeEngine", "EngineGate", "LineCallback", "CancelCheck"]
