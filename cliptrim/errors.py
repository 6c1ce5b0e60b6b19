"""Error taxonomy shared by the range model, preview loop and export pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any


class ErrCode(str, Enum):
    INPUT_REJECTED = "INPUT_REJECTED"
    DURATION_UNKNOWN = "DURATION_UNKNOWN"
    INVALID_RANGE = "INVALID_RANGE"
    ENGINE_UNAVAILABLE = "ENGINE_UNAVAILABLE"
    ENGINE_STAGING_FAILED = "ENGINE_STAGING_FAILED"
    ENGINE_EXECUTION_FAILED = "ENGINE_EXECUTION_FAILED"
    ENGINE_RETRIEVAL_FAILED = "ENGINE_RETRIEVAL_FAILED"
    BUSY = "BUSY"
    # Not a failure: terminal outcome of a user cancel.
    CANCELLED = "CANCELLED"


class TrimError(RuntimeError):
    """Domain error with a code and structured context for logs."""

    __slots__ = ("code", "ctx")

    def __init__(
        self, message: str, *, code: ErrCode, ctx: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.ctx: dict[str, Any] = dict(ctx or {})

    def with_context(self, extra: Mapping[str, Any]) -> "TrimError":
        for k, v in extra.items():
            self.ctx.setdefault(k, v)
        return self

    def __str__(self) -> str:
        return f"{self.code.value}: {super().__str__()}"


__all__ = ["ErrCode", "TrimError"]
