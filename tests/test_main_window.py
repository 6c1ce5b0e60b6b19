from PySide6.QtCore import QPointF, Qt
from PySide6.QtGui import QMouseEvent
import pytest

from cliptrim.core.session import TrimSession
from cliptrim.services.delivery import FileSink
from cliptrim.ui.components.range_slider import RangeSlider
from cliptrim.ui.main_window import TrimWindow
from conftest import FakeEngine, FakePlayer


@pytest.fixture
def window(qapp, settings, tmp_path):
    session = TrimSession(
        FakePlayer(duration=30.0),
        FakeEngine(),
        sink=FileSink(tmp_path / "out"),
        settings=settings,
    )
    win = TrimWindow(session=session, settings=settings)
    yield win
    win.close()
    session.shutdown()


def test_controls_follow_session(window, video_file):
    assert window.trim_btn.text() == "Loading FFmpeg..."
    assert not window.preview_btn.isEnabled()
    window.session.exporter.gate.open()
    assert window.trim_btn.text() == "Trim Video"
    assert not window.trim_btn.isEnabled()

    assert window.loadVideo(str(video_file))
    assert window.trim_btn.isEnabled()
    assert window.start_edit.text() == "00:00.000"
    assert window.end_edit.text() == "00:30.000"


def test_typed_time_updates_range(window, video_file):
    window.loadVideo(str(video_file))
    window.start_edit.setText("0:03")
    window.start_edit.editingFinished.emit()
    assert window.session.range.start_fraction == pytest.approx(10.0)
    assert window.start_edit.text() == "00:03.000"
    assert window.range_slider.values()[0] == pytest.approx(10.0)
    # bad text is rejected and the field reverts
    window.start_edit.setText("soon")
    window.start_edit.editingFinished.emit()
    assert window.start_edit.text() == "00:03.000"


def test_preview_button_toggles_badge(window, video_file):
    window.loadVideo(str(video_file))
    window.preview_btn.click()
    assert window.preview_btn.text() == "Stop Preview"
    assert not window.preview_badge.isHidden()
    window.preview_btn.click()
    assert window.preview_btn.text() == "Preview Trim"
    assert window.preview_badge.isHidden()


def test_trim_runs_export(window, video_file, spin, tmp_path):
    window.session.exporter.gate.open()
    window.loadVideo(str(video_file))
    window.trim_btn.click()
    assert spin(lambda: (tmp_path / "out" / "trimmed-video.mp4").exists())
    assert window.export_dialog.bar.value() == 100
    assert spin(lambda: window.trim_btn.isEnabled())


def test_rejected_file_keeps_window_empty(window, tmp_path, monkeypatch):
    shown = []
    monkeypatch.setattr(window, "_error", lambda title, message: shown.append(title))
    notes = tmp_path / "notes.txt"
    notes.write_text("x")
    assert not window.loadVideo(str(notes))
    assert shown == ["Cannot open video"]
    assert not window.clear_btn.isEnabled()


def test_range_slider_drag_emits_bound(qapp):
    slider = RangeSlider()
    slider.resize(400, 40)
    moved = []
    slider.boundMoved.connect(lambda which, f: moved.append((which, f)))
    y = slider.height() / 2
    press = QMouseEvent(
        QMouseEvent.Type.MouseButtonPress,
        QPointF(slider._x_for(100.0), y),
        QPointF(slider._x_for(100.0), y),
        Qt.LeftButton,
        Qt.LeftButton,
        Qt.NoModifier,
    )
    slider.mousePressEvent(press)
    move = QMouseEvent(
        QMouseEvent.Type.MouseMove,
        QPointF(slider._x_for(50.0), y),
        QPointF(slider._x_for(50.0), y),
        Qt.NoButton,
        Qt.LeftButton,
        Qt.NoModifier,
    )
    slider.mouseMoveEvent(move)
    assert moved
    which, fraction = moved[-1]
    assert which == "end"
    assert fraction == pytest.approx(50.0, abs=1.0)


def test_engine_failure_is_reported(qapp, settings, spin, monkeypatch):
    session = TrimSession(FakePlayer(), FakeEngine(load_error=True), settings=settings)
    win = TrimWindow(session=session, settings=settings)
    shown = []
    monkeypatch.setattr(win, "_error", lambda title, message: shown.append((title, message)))
    try:
        session.exporter.load_engine()
        assert spin(lambda: bool(shown))
        assert win.trim_btn.text() == "FFmpeg unavailable"
        assert not win.trim_btn.isEnabled()
        assert "ENGINE_UNAVAILABLE" in win.trim_btn.toolTip()
        title, message = shown[0]
        assert title == "FFmpeg unavailable"
        assert "no binary" in message
    finally:
        win.close()
        session.shutdown()


def test_range_slider_release_ends_drag(qapp):
    slider = RangeSlider()
    slider.resize(400, 40)
    moved = []
    slider.boundMoved.connect(lambda which, f: moved.append(which))
    y = slider.height() / 2

    def event(kind, fraction, button, buttons):
        pos = QPointF(slider._x_for(fraction), y)
        return QMouseEvent(kind, pos, pos, button, buttons, Qt.NoModifier)

    slider.mousePressEvent(
        event(QMouseEvent.Type.MouseButtonPress, 0.0, Qt.LeftButton, Qt.LeftButton)
    )
    slider.mouseReleaseEvent(
        event(QMouseEvent.Type.MouseButtonRelease, 0.0, Qt.LeftButton, Qt.NoButton)
    )
    slider.mouseMoveEvent(event(QMouseEvent.Type.MouseMove, 30.0, Qt.NoButton, Qt.NoButton))
    assert moved == ["start"]
