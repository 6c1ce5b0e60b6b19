"""Lossless video trimmer.

Public API surface (keep minimal):
 - TrimSession (selection + preview + export for one video)
 - RangeModel, PreviewLoopController, ExportOrchestrator (session parts)
 - format_time, parse_time
 - TrimError, ErrCode

The Qt window lives in ``cliptrim.ui.main_window`` and is not imported here.
"""

from .errors import ErrCode, TrimError  # noqa: F401
from .utils.timefmt import format_time, parse_time  # noqa: F401
from .core.range_model import Bound, RangeModel  # noqa: F401
from .core.preview import PreviewLoopController, PreviewState  # noqa: F401
from .core.export import (  # noqa: F401
    ExportJob,
    ExportOrchestrator,
    ExportResult,
    ExportState,
    build_trim_command,
)
from .core.session import TrimSession  # noqa: F401

__version__ = "0.1.0"

__all__ = [
    "ErrCode",
    "TrimError",
    "format_time",
    "parse_time",
    "Bound",
    "RangeModel",
    "PreviewLoopController",
    "PreviewState",
    "ExportJob",
    "ExportOrchestrator",
    "ExportResult",
    "ExportState",
    "build_trim_command",
    "TrimSession",
]
