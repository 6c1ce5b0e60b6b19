import gc

import pytest

from cliptrim.core.export import ExportState, build_trim_command
from cliptrim.errors import ErrCode, TrimError
from conftest import FakeEngine


def _record(orch):
    events = {"states": [], "progress": [], "finished": []}
    orch.stateChanged.connect(lambda job_id, s: events["states"].append(s))
    orch.progressChanged.connect(lambda job_id, p: events["progress"].append(p))
    orch.finished.connect(events["finished"].append)
    return events


def test_build_trim_command_exact():
    assert build_trim_command(3.0, 3.0, "input.mp4", "output.mp4") == [
        "-ss", "3.000", "-i", "input.mp4", "-t", "3.000",
        "-c", "copy", "-progress", "pipe:1", "output.mp4",
    ]
    assert build_trim_command(1.23456, 0.5, "in.mkv", "out.mkv", progress=False) == [
        "-ss", "1.235", "-i", "in.mkv", "-t", "0.500", "-c", "copy", "out.mkv",
    ]


def test_submit_requires_ready_engine(make_orchestrator, video_file):
    orch = make_orchestrator(FakeEngine(), ready=False)
    with pytest.raises(TrimError) as exc:
        orch.submit(video_file, (1.0, 2.0))
    assert exc.value.code is ErrCode.ENGINE_UNAVAILABLE
    assert orch.job is None


def test_submit_rejects_empty_selection(make_orchestrator, video_file):
    orch = make_orchestrator(FakeEngine())
    for bad in ((2.0, 2.0), (3.0, 1.0), (-1.0, 2.0)):
        with pytest.raises(TrimError) as exc:
            orch.submit(video_file, bad)
        assert exc.value.code is ErrCode.INVALID_RANGE


def test_successful_export(make_orchestrator, video_file, spin):
    engine = FakeEngine(lines=["time=00:00:01.50 bitrate=N/A", "out_time=00:00:03.000000"])
    orch = make_orchestrator(engine)
    events = _record(orch)

    job = orch.submit(video_file, (3.0, 6.0))
    assert job.filename == "trimmed-video.mp4"
    assert job.command[:6] == ["-ss", "3.000", "-i", "input.mp4", "-t", "3.000"]
    assert orch.busy

    assert spin(lambda: job.state.terminal)
    assert spin(lambda: not orch.has_pending_work)
    assert events["states"] == ["preparing", "encoding", "finalizing", "succeeded"]
    assert events["progress"] == pytest.approx([20.0, 50.0, 80.0, 90.0, 100.0])
    assert job.progress == 100.0
    (result,) = events["finished"]
    assert result.ok and result.data == b"trimmed-bytes"
    assert result.filename == "trimmed-video.mp4"
    assert engine.staged == [(video_file, "input.mp4")]
    assert engine.commands == [job.command]
    assert len(engine.released) == 1


def test_second_submit_is_busy_until_terminal(make_orchestrator, video_file, spin):
    engine = FakeEngine(hold=True)
    orch = make_orchestrator(engine)
    first = orch.submit(video_file, (0.0, 1.0))
    assert engine.entered.wait(5)
    with pytest.raises(TrimError) as exc:
        orch.submit(video_file, (1.0, 2.0))
    assert exc.value.code is ErrCode.BUSY
    assert orch.job is first

    engine.hold.set()
    assert spin(lambda: first.state is ExportState.SUCCEEDED)
    second = orch.submit(video_file, (1.0, 2.0))
    assert second.id != first.id
    assert spin(lambda: second.state.terminal)


def test_cancel_while_encoding(make_orchestrator, video_file, spin):
    engine = FakeEngine(lines=["time=00:00:00.50"], hold=True)
    orch = make_orchestrator(engine)
    events = _record(orch)
    job = orch.submit(video_file, (0.0, 1.0))
    assert engine.entered.wait(5)
    assert spin(lambda: job.state is ExportState.ENCODING)

    assert orch.cancel()
    assert job.state is ExportState.CANCELLED
    assert not orch.cancel()
    engine.hold.set()
    assert spin(lambda: not orch.has_pending_work)

    assert events["states"] == ["preparing", "encoding", "cancelled"]
    (result,) = events["finished"]
    assert result.state is ExportState.CANCELLED
    assert result.data is None
    assert job.progress < 100.0
    assert len(engine.released) == 1


def test_cancel_while_preparing(make_orchestrator, video_file, spin):
    engine = FakeEngine()
    orch = make_orchestrator(engine)
    events = _record(orch)
    job = orch.submit(video_file, (0.0, 1.0))
    assert orch.cancel()
    assert spin(lambda: not orch.has_pending_work)
    assert events["states"] == ["preparing", "cancelled"]
    assert len(events["finished"]) == 1
    assert events["finished"][0].data is None
    assert job.state is ExportState.CANCELLED


def test_cancel_without_job_is_noop(make_orchestrator):
    orch = make_orchestrator(FakeEngine())
    assert not orch.cancel()


@pytest.mark.parametrize(
    "phase, code, states",
    [
        ("stage", ErrCode.ENGINE_STAGING_FAILED, ["preparing", "failed"]),
        ("execute", ErrCode.ENGINE_EXECUTION_FAILED, ["preparing", "encoding", "failed"]),
        ("read", ErrCode.ENGINE_RETRIEVAL_FAILED, ["preparing", "encoding", "finalizing", "failed"]),
    ],
)
def test_engine_failures_end_in_failed(make_orchestrator, video_file, spin, phase, code, states):
    orch = make_orchestrator(FakeEngine(fail=phase))
    events = _record(orch)
    job = orch.submit(video_file, (0.0, 2.0))
    assert spin(lambda: job.state.terminal)
    assert events["states"] == states
    (result,) = events["finished"]
    assert result.state is ExportState.FAILED
    assert result.error.code is code
    assert result.error.ctx["job"] == job.id
    assert result.data is None
    assert job.progress < 100.0


def test_load_engine_opens_gate(make_orchestrator, spin):
    orch = make_orchestrator(FakeEngine(), ready=False)
    ready = []
    orch.readyChanged.connect(ready.append)
    orch.load_engine()
    assert spin(lambda: orch.is_ready)
    assert ready == [True]
    assert spin(lambda: not orch.has_pending_work)


def test_load_engine_failure_keeps_gate_closed(make_orchestrator, spin):
    orch = make_orchestrator(FakeEngine(load_error=True), ready=False)
    errors = []
    ready = []
    orch.engineFailed.connect(errors.append)
    orch.readyChanged.connect(ready.append)
    orch.load_engine()
    assert spin(lambda: bool(errors))
    assert spin(lambda: not orch.has_pending_work)
    assert not orch.is_ready
    assert ready == []
    (error,) = errors
    assert error.code is ErrCode.ENGINE_UNAVAILABLE
    assert orch.engine_error is error


def test_shutdown_waits_for_slow_stage(make_orchestrator, video_file, spin):
    engine = FakeEngine(stage_delay=0.5)
    orch = make_orchestrator(engine)
    job = orch.submit(video_file, (0.0, 1.0))
    assert spin(lambda: bool(engine.staged))  # worker is inside stage()

    orch.shutdown(timeout_ms=50)
    gc.collect()

    assert job.state is ExportState.CANCELLED
    assert not orch.has_pending_work
    # the worker ran to its finally block and released the workspace
    assert len(engine.released) == 1
    assert engine.commands == []
