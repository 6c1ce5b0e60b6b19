import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import threading
import time
from pathlib import Path

import pytest
from PySide6.QtCore import QCoreApplication, QEventLoop, QObject, Signal
from PySide6.QtWidgets import QApplication

from cliptrim.config import Settings
from cliptrim.core.export import ExportOrchestrator
from cliptrim.engine.base import EngineWorkspace, TranscodeEngine
from cliptrim.errors import ErrCode, TrimError


def spin_until(predicate, timeout=5.0):
    """Process Qt events until ``predicate()`` holds; False on timeout."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            return False
        QCoreApplication.processEvents(QEventLoop.ProcessEventsFlag.AllEvents, 20)
        time.sleep(0.005)
    return True


class FakePlayer(QObject):
    """Playback collaborator double: records commands, emits on request."""

    frameReady = Signal(object, float)
    positionChanged = Signal(float)
    playbackEnded = Signal()
    stateChanged = Signal(str)
    clipLoaded = Signal(float)

    def __init__(self, duration=30.0, fps=None, announce=True):
        super().__init__()
        self.duration = duration
        self.announce = announce  # False: metadata arrives later via clipLoaded
        self.load_error = False
        self.fps = fps  # set to echo seeks quantized to frames
        self.seeks = []
        self.plays = 0
        self.pauses = 0
        self.loaded = None
        self._pos = 0.0

    def load(self, source):
        if self.load_error:
            raise TrimError("unreadable video", code=ErrCode.INPUT_REJECTED)
        self.loaded = source
        if self.announce:
            self.clipLoaded.emit(self.duration)

    def unload(self):
        self.loaded = None

    def play(self):
        self.plays += 1

    def pause(self):
        self.pauses += 1

    def seek(self, t):
        self.seeks.append(t)
        self._pos = t
        if self.fps:
            self._pos = int(t * self.fps) / self.fps
            self.positionChanged.emit(self._pos)

    def position(self):
        return self._pos


class FakeEngine(TranscodeEngine):
    name = "fake"

    def __init__(
        self,
        lines=(),
        output=b"trimmed-bytes",
        fail=None,
        hold=False,
        load_error=False,
        stage_delay=0.0,
    ):
        self.lines = list(lines)
        self.output = output
        self.fail = fail  # "stage" | "execute" | "read"
        self.hold = threading.Event() if hold else None
        self.entered = threading.Event()
        self.load_error = load_error
        self.stage_delay = stage_delay  # seconds, simulates copying a large input
        self.staged = []
        self.commands = []
        self.released = []

    def load(self):
        if self.load_error:
            raise TrimError("no binary", code=ErrCode.ENGINE_UNAVAILABLE)

    def stage(self, source, name):
        self.staged.append((Path(source), name))
        if self.stage_delay:
            time.sleep(self.stage_delay)
        if self.fail == "stage":
            raise TrimError("disk full", code=ErrCode.ENGINE_STAGING_FAILED)
        return EngineWorkspace(staged=[name])

    def execute(self, workspace, args, on_line, is_cancelled):
        self.commands.append(list(args))
        self.entered.set()
        if self.hold is not None:
            self.hold.wait(5)
        for line in self.lines:
            on_line(line)
        if self.fail == "execute":
            raise TrimError("invalid data", code=ErrCode.ENGINE_EXECUTION_FAILED)

    def read_output(self, workspace, name):
        if self.fail == "read":
            raise TrimError("missing output", code=ErrCode.ENGINE_RETRIEVAL_FAILED)
        return self.output

    def release(self, workspace):
        self.released.append(workspace)


@pytest.fixture(scope="session")
def qapp():
    return QApplication.instance() or QApplication([])


@pytest.fixture
def spin(qapp):
    return spin_until


@pytest.fixture
def settings():
    return Settings(output_stem="trimmed-video", machine_progress=True)


@pytest.fixture
def make_orchestrator(qapp, settings):
    created = []

    def factory(engine, ready=True):
        orch = ExportOrchestrator(engine, settings=settings)
        if ready:
            orch.gate.open()
        created.append(orch)
        return orch

    yield factory
    for orch in created:
        engine = orch._engine
        if getattr(engine, "hold", None) is not None:
            engine.hold.set()
        orch.shutdown()


@pytest.fixture
def video_file(tmp_path):
    """A file that passes the video mime check; content is irrelevant to fakes."""
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return path
