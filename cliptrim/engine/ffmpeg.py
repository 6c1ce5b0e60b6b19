"""ffmpeg subprocess engine.

Each job gets a temp directory holding a copy of the input and the output
file. The process runs with stdout and stderr merged so that both the
``-progress`` key/value stream and the regular ``time=`` status lines reach
the log callback.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
from collections import deque
from pathlib import Path
from typing import Optional, Sequence

from ..errors import ErrCode, TrimError
from .base import CancelCheck, EngineWorkspace, LineCallback, TranscodeEngine

log = logging.getLogger(__name__)

BASE_ARGS = ("-hide_banner", "-nostdin", "-y")
LOG_TAIL = 12


def default_ffmpeg_binary() -> str:
    """The binary MoviePy decodes with (honours ``FFMPEG_BINARY``)."""
    from moviepy.config import FFMPEG_BINARY

    return FFMPEG_BINARY


class FFmpegEngine(TranscodeEngine):
    name = "ffmpeg"

    def __init__(self, binary: Optional[str] = None, work_dir: Optional[Path] = None):
        self._binary = binary
        self._work_dir = work_dir

    @property
    def binary(self) -> str:
        if self._binary is None:
            self._binary = default_ffmpeg_binary()
        return self._binary

    def load(self) -> None:
        try:
            binary = self.binary
            proc = subprocess.run(
                [binary, "-version"],
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            raise TrimError(
                f"ffmpeg not usable: {e}",
                code=ErrCode.ENGINE_UNAVAILABLE,
                ctx={"binary": self._binary},
            ) from e
        first = proc.stdout.splitlines()[0] if proc.stdout else binary
        log.info("engine ready: %s", first)

    def stage(self, source: Path, name: str) -> EngineWorkspace:
        root = None
        try:
            if self._work_dir is not None:
                self._work_dir.mkdir(parents=True, exist_ok=True)
            root = Path(tempfile.mkdtemp(prefix="cliptrim-", dir=self._work_dir))
            shutil.copyfile(source, root / name)
        except OSError as e:
            if root is not None:
                shutil.rmtree(root, ignore_errors=True)
            raise TrimError(
                f"could not stage input: {e}",
                code=ErrCode.ENGINE_STAGING_FAILED,
                ctx={"source": str(source)},
            ) from e
        log.debug("staged %s as %s", source, root / name)
        return EngineWorkspace(root=root, staged=[name])

    def execute(
        self,
        workspace: EngineWorkspace,
        args: Sequence[str],
        on_line: LineCallback,
        is_cancelled: CancelCheck,
    ) -> None:
        cmd = [self.binary, *BASE_ARGS, *args]
        tail: deque[str] = deque(maxlen=LOG_TAIL)
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=workspace.root,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            raise TrimError(
                f"could not start ffmpeg: {e}", code=ErrCode.ENGINE_EXECUTION_FAILED
            ) from e
        cancelled = False
        try:
            for raw in proc.stdout:
                if is_cancelled():
                    cancelled = True
                    proc.kill()
                    break
                line = raw.rstrip()
                if not line:
                    continue
                tail.append(line)
                on_line(line)
        finally:
            proc.stdout.close()
            code = proc.wait()
        if cancelled or is_cancelled():
            raise TrimError("ffmpeg stopped on cancel", code=ErrCode.CANCELLED)
        if code != 0:
            raise TrimError(
                f"ffmpeg exited with status {code}",
                code=ErrCode.ENGINE_EXECUTION_FAILED,
                ctx={"returncode": code, "log": "\n".join(tail)},
            )

    def read_output(self, workspace: EngineWorkspace, name: str) -> bytes:
        if workspace.root is None:
            raise TrimError("workspace already released", code=ErrCode.ENGINE_RETRIEVAL_FAILED)
        path = workspace.root / name
        try:
            data = path.read_bytes()
        except OSError as e:
            raise TrimError(
                f"could not read output: {e}",
                code=ErrCode.ENGINE_RETRIEVAL_FAILED,
                ctx={"path": str(path)},
            ) from e
        if not data:
            raise TrimError(
                "engine produced an empty file",
                code=ErrCode.ENGINE_RETRIEVAL_FAILED,
                ctx={"path": str(path)},
            )
        return data

    def release(self, workspace: EngineWorkspace) -> None:
        if workspace.root is None:
            return
        shutil.rmtree(workspace.root, ignore_errors=True)
        log.debug("released workspace %s", workspace.root)
        workspace.root = None


__all__ = ["FFmpegEngine", "default_ffmpeg_binary"]
