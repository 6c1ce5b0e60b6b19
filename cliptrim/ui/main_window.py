"""Main application window (UI layer).

Thin view over a TrimSession: widgets forward user edits to the session and
redraw from its signals. No selection or export state lives here.
"""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QGuiApplication, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QFileDialog,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QStatusBar,
    QVBoxLayout,
    QWidget,
)

from ..config import Settings, get_settings
from ..core.export import ExportResult, ExportState
from ..core.range_model import Bound
from ..core.session import TrimSession
from ..engine.ffmpeg import FFmpegEngine
from ..errors import TrimError
from ..media.clip_adapter import is_video_path
from ..media.playback import FrameView, MediaPlayback
from .components.export_dialog import ExportDialog
from .components.range_slider import RangeSlider

log = logging.getLogger(__name__)


class TrimWindow(QMainWindow):
    def __init__(
        self,
        session: Optional[TrimSession] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__()
        self._settings = settings or get_settings()
        if session is None:
            engine = FFmpegEngine(self._settings.ffmpeg_binary, self._settings.work_dir)
            session = TrimSession(MediaPlayback(self), engine, self, settings=self._settings)
        self.session = session
        self.setWindowTitle("Cliptrim")
        self.setGeometry(100, 100, 900, 680)
        self.setAcceptDrops(True)
        self.setStatusBar(QStatusBar())
        self._createMenuBar()
        self._createLayout()
        self._wire()
        self._refreshControls()

    def centerOnPreferredScreen(self):
        """Center on ``settings.screen_index`` if valid, else the primary screen."""
        screens = QGuiApplication.screens()
        if not screens:
            return
        idx = self._settings.screen_index
        if idx is not None and 0 <= idx < len(screens):
            screen = screens[idx]
        else:
            screen = QGuiApplication.primaryScreen() or screens[0]
        win_geo = self.frameGeometry()
        win_geo.moveCenter(screen.availableGeometry().center())
        self.move(win_geo.topLeft())

    def _createMenuBar(self):
        file_menu = self.menuBar().addMenu("File")
        open_action = QAction("Open Video...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._openVideo)
        file_menu.addAction(open_action)
        clear_action = QAction("Clear", self)
        clear_action.triggered.connect(self._clear)
        file_menu.addAction(clear_action)
        exit_action = QAction("Exit", self)
        exit_action.triggered.connect(self.close)
        file_menu.addAction(exit_action)

    def _createLayout(self):
        central = QWidget()
        root = QVBoxLayout()

        self.frame_view = FrameView(self.session.player)
        self.preview_badge = QLabel("Preview Mode", self.frame_view)
        self.preview_badge.setStyleSheet(
            "background:rgba(0,0,0,200);color:#fff;padding:3px 10px;border-radius:9px;"
        )
        self.preview_badge.move(12, 12)
        self.preview_badge.setVisible(False)
        root.addWidget(self.frame_view, stretch=1)

        times = QGridLayout()
        times.addWidget(QLabel("Start Time"), 0, 0)
        times.addWidget(QLabel("End Time"), 0, 2, alignment=Qt.AlignRight)
        self.start_edit = QLineEdit()
        self.end_edit = QLineEdit()
        for edit in (self.start_edit, self.end_edit):
            edit.setFixedWidth(150)
            edit.setPlaceholderText("0:00.000")
        times.addWidget(self.start_edit, 1, 0)
        times.addWidget(self.end_edit, 1, 2, alignment=Qt.AlignRight)
        times.setColumnStretch(1, 1)
        root.addLayout(times)

        self.range_slider = RangeSlider()
        root.addWidget(self.range_slider)

        buttons = QHBoxLayout()
        self.preview_btn = QPushButton("Preview Trim")
        self.clear_btn = QPushButton("Clear")
        self.trim_btn = QPushButton("Loading FFmpeg...")
        buttons.addWidget(self.preview_btn)
        buttons.addStretch(1)
        buttons.addWidget(self.clear_btn)
        buttons.addWidget(self.trim_btn)
        root.addLayout(buttons)

        central.setLayout(root)
        self.setCentralWidget(central)
        self.export_dialog = ExportDialog(self)

    def _wire(self):
        s = self.session
        s.videoLoaded.connect(lambda _d: self._refreshControls())
        s.videoCleared.connect(self._onCleared)
        s.rangeChanged.connect(self._onRangeChanged)
        s.delivered.connect(lambda path: self._status(f"Saved {path}"))
        s.deliveryFailed.connect(lambda msg: self._error("Save failed", msg))
        s.preview.stateChanged.connect(self._onPreviewState)
        s.player.positionChanged.connect(self._onPosition)
        s.exporter.readyChanged.connect(lambda _r: self._refreshControls())
        s.exporter.engineFailed.connect(self._onEngineFailed)
        s.exporter.progressChanged.connect(lambda _id, p: self.export_dialog.setProgress(p))
        s.exporter.stateChanged.connect(self._onExportState)
        s.exporter.finished.connect(self._onExportFinished)

        self.range_slider.boundMoved.connect(self._onBoundMoved)
        self.start_edit.editingFinished.connect(lambda: self._onTimeEdited(Bound.START))
        self.end_edit.editingFinished.connect(lambda: self._onTimeEdited(Bound.END))
        self.preview_btn.clicked.connect(self._togglePreview)
        self.clear_btn.clicked.connect(self._clear)
        self.trim_btn.clicked.connect(self._trim)
        self.export_dialog.cancelRequested.connect(s.cancel_export)

        # I / O mark the bound at the playhead.
        QShortcut(QKeySequence("I"), self, activated=lambda: self._markAtPlayhead(Bound.START))
        QShortcut(QKeySequence("O"), self, activated=lambda: self._markAtPlayhead(Bound.END))
        QShortcut(QKeySequence("Space"), self, activated=self._togglePreview)

    # --- Helpers ---
    def _status(self, message: str):
        self.statusBar().showMessage(message, 5000)

    def _error(self, title: str, message: str):
        log.warning("%s: %s", title, message)
        QMessageBox.warning(self, title, message)

    def _refreshControls(self):
        s = self.session
        actionable = s.has_video and s.range.is_actionable
        for w in (self.start_edit, self.end_edit, self.range_slider, self.preview_btn):
            w.setEnabled(actionable)
        self.clear_btn.setEnabled(s.has_video)
        error = s.exporter.engine_error
        self.trim_btn.setToolTip(str(error) if error is not None else "")
        if not s.exporter.is_ready:
            self.trim_btn.setText("FFmpeg unavailable" if error is not None else "Loading FFmpeg...")
        elif s.exporter.busy:
            self.trim_btn.setText("Processing...")
        else:
            self.trim_btn.setText("Trim Video")
        self.trim_btn.setEnabled(actionable and s.exporter.is_ready and not s.exporter.busy)

    def _onEngineFailed(self, error: TrimError):
        self._refreshControls()
        self._error("FFmpeg unavailable", f"Videos can be previewed but not trimmed.\n\n{error}")

    # --- Media intake ---
    def _openVideo(self):
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Video", "", "Video Files (*.mp4 *.mov *.mkv *.webm *.avi)"
        )
        if path:
            self.loadVideo(path)

    def loadVideo(self, path: str) -> bool:
        try:
            self.session.load_video(path)
        except TrimError as e:
            self._error("Cannot open video", str(e))
            return False
        self._status(f"Loaded {path}")
        return True

    def _clear(self):
        self.session.clear()

    def _onCleared(self):
        self.frame_view.clearFrame()
        self.range_slider.setPlayhead(None)
        self._refreshControls()

    def dragEnterEvent(self, event):  # type: ignore[override]
        urls = event.mimeData().urls()
        if urls and is_video_path(urls[0].toLocalFile()):
            event.acceptProposedAction()

    def dropEvent(self, event):  # type: ignore[override]
        urls = event.mimeData().urls()
        if urls:
            self.loadVideo(urls[0].toLocalFile())
            event.acceptProposedAction()

    # --- Selection ---
    def _onRangeChanged(self, start_t: float, end_t: float):
        r = self.session.range
        self.range_slider.setRange(r.start_fraction, r.end_fraction)
        if r.is_actionable:
            self.start_edit.setText(r.bound_text(Bound.START))
            self.end_edit.setText(r.bound_text(Bound.END))
        else:
            self.start_edit.clear()
            self.end_edit.clear()
        self._refreshControls()

    def _onBoundMoved(self, which: str, fraction: float):
        if self.session.range.is_actionable:
            self.session.set_bound(which, fraction)

    def _onTimeEdited(self, which: Bound):
        edit = self.start_edit if which is Bound.START else self.end_edit
        try:
            if not self.session.set_bound_by_time(which, edit.text()):
                self._status(f"{which.value} time rejected: range must stay non-empty")
        except TrimError as e:
            self._status(f"Invalid {which.value} time: {e}")
        if self.session.range.is_actionable:
            edit.setText(self.session.range.bound_text(which))

    def _markAtPlayhead(self, which: Bound):
        r = self.session.range
        if not r.is_actionable:
            return
        self.session.set_bound(which, r.fraction_for(self.session.player.position()))

    # --- Preview ---
    def _togglePreview(self):
        try:
            self.session.toggle_preview()
        except TrimError as e:
            self._status(str(e))

    def _onPreviewState(self, state: str):
        previewing = state == "previewing"
        self.preview_btn.setText("Stop Preview" if previewing else "Preview Trim")
        self.preview_badge.setVisible(previewing)

    def _onPosition(self, t: float):
        r = self.session.range
        if r.is_actionable:
            self.range_slider.setPlayhead(r.fraction_for(t))

    # --- Export ---
    def _trim(self):
        try:
            self.session.trim()
        except TrimError as e:
            self._error("Cannot trim", str(e))
            return
        self.export_dialog.begin()
        self._refreshControls()

    def _onExportState(self, job_id: str, state: str):
        self.export_dialog.setPhase(state)
        self._refreshControls()

    def _onExportFinished(self, result: ExportResult):
        self._refreshControls()
        if result.state is ExportState.SUCCEEDED:
            self.export_dialog.finish("Done")
        elif result.state is ExportState.FAILED:
            self.export_dialog.finish("Export failed")
            self._status(f"Export failed: {result.error}")
        else:
            self.export_dialog.hide()
            self._status("Export cancelled")

    def closeEvent(self, event):  # type: ignore[override]
        self.session.shutdown()
        super().closeEvent(event)


__all__ = ["TrimWindow"]
