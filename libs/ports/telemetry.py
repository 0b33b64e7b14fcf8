from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal, Protocol

# Keep this in ports so it's shared (no domain dependency)
DiagnosticKind = Literal[
    "frame-unavailable",
    "recognition-failure",
    "recognition-timeout",
    "capture-failure",
    "lens-switch-failure",
]


class DiagnosticRecord(Protocol):
    kind: DiagnosticKind
    frame_id: int | None
    detail: str | None
    ts: float


class DiagnosticsPort(ABC):
    """Sink for non-fatal per-frame failures."""

    @abstractmethod
    def report(self, event: DiagnosticRecord) -> None: ...


class MetricsPort(ABC):
    @abstractmethod
    def observe(self, name: str, value: float, **labels: str) -> None: ...
