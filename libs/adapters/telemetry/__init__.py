from .fakes import FakeDiagnosticsPort, FakeMetricsPort
from .log_sink import LoggingDiagnosticsPort, LoggingMetricsPort

__all__ = [
    "FakeDiagnosticsPort",
    "FakeMetricsPort",
    "LoggingDiagnosticsPort",
    "LoggingMetricsPort",
]
