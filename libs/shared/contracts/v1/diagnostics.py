from __future__ import annotations

import time
from typing import Literal

from pydantic import BaseModel, Field


class DiagnosticEvent(BaseModel):
    api: Literal["v1"] = "v1"
    kind: Literal[
        "frame-unavailable",
        "recognition-failure",
        "recognition-timeout",
        "capture-failure",
        "lens-switch-failure",
    ]
    frame_id: int | None = None
    detail: str | None = None
    ts: float = Field(default_factory=time.monotonic)
