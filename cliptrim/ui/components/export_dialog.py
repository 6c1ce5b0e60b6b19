"""Modal progress dialog shown while an export runs.

Closing the dialog (Esc, window close or the Cancel button) cancels the job.
"""

from __future__ import annotations

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtWidgets import QDialog, QLabel, QProgressBar, QPushButton, QVBoxLayout

# Keep the final percentage visible briefly before closing.
CLOSE_DELAY_MS = 1000


class ExportDialog(QDialog):
    cancelRequested = Signal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Processing Video")
        self.setModal(True)
        self._finished = False
        self.bar = QProgressBar()
        self.bar.setRange(0, 100)
        self.bar.setFormat("%p%")
        self.status = QLabel("This might take a few moments...")
        self.status.setAlignment(Qt.AlignCenter)
        self.cancel_btn = QPushButton("Cancel")
        self.cancel_btn.clicked.connect(self.reject)
        layout = QVBoxLayout()
        layout.addWidget(self.bar)
        layout.addWidget(self.status)
        layout.addWidget(self.cancel_btn)
        self.setLayout(layout)

    def begin(self) -> None:
        self._finished = False
        self.bar.setValue(0)
        self.status.setText("Preparing...")
        self.cancel_btn.setEnabled(True)
        self.show()

    def setProgress(self, percent: float) -> None:
        self.bar.setValue(int(round(percent)))

    def setPhase(self, state: str) -> None:
        labels = {
            "preparing": "Preparing...",
            "encoding": "Trimming...",
            "finalizing": "Saving...",
        }
        if state in labels:
            self.status.setText(labels[state])
        # Retrieval can no longer be cancelled.
        self.cancel_btn.setEnabled(state in ("preparing", "encoding"))

    def finish(self, message: str) -> None:
        self._finished = True
        self.status.setText(message)
        self.cancel_btn.setEnabled(False)
        QTimer.singleShot(CLOSE_DELAY_MS, self.accept)

    def reject(self):  # type: ignore[override]
        if not self._finished:
            if not self.cancel_btn.isEnabled():
                return
            self.cancelRequested.emit()
        super().reject()


__all__ = ["ExportDialog"]
