"""Application launcher: ``cliptrim [VIDEO]``."""

from __future__ import annotations

import sys

from PySide6.QtWidgets import QApplication

from .config import get_settings
from .ui.main_window import TrimWindow
from .utils.logs import configure_logging


def run(argv: list[str] | None = None):
    argv = sys.argv if argv is None else argv
    settings = get_settings()
    configure_logging(settings.log_level)
    app = QApplication(argv)
    window = TrimWindow(settings=settings)
    window.session.exporter.load_engine()
    window.show()
    window.centerOnPreferredScreen()
    if len(argv) > 1:
        window.loadVideo(argv[1])
    sys.exit(app.exec())


if __name__ == "__main__":
    run()
