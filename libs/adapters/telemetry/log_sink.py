from __future__ import annotations

import logging
from typing import Final

from ports.telemetry import DiagnosticRecord, DiagnosticsPort, MetricsPort

LOG: Final = logging.getLogger("textlens.diagnostics")
METRICS_LOG: Final = logging.getLogger("textlens.metrics")


class LoggingDiagnosticsPort(DiagnosticsPort):
    """Diagnostics sink that writes one WARNING line per event."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or LOG

    def report(self, event: DiagnosticRecord) -> None:
        self._log.warning(
            "%s frame=%s detail=%s", event.kind, event.frame_id, event.detail or "-"
        )


class LoggingMetricsPort(MetricsPort):
    """Keeps running totals and logs each sample at DEBUG."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._log = logger or METRICS_LOG
        self.totals: dict[str, float] = {}

    def observe(self, name: str, value: float, **labels: str) -> None:
        self.totals[name] = self.totals.get(name, 0.0) + float(value)
        if self._log.isEnabledFor(logging.DEBUG):
            extra = " ".join(f"{k}={v}" for k, v in sorted(labels.items()))
            self._log.debug("%s=%.3f %s", name, value, extra)
