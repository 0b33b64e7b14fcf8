from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable

from ports.telemetry import DiagnosticsPort, MetricsPort


@runtime_checkable
class _ModelDumpLike(Protocol):
    def model_dump(self) -> Mapping[str, Any]: ...


class FakeDiagnosticsPort(DiagnosticsPort):
    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []

    def report(self, event: Any) -> None:
        # Accept Pydantic models (v2) or plain mappings.
        if isinstance(event, Mapping):
            self.records.append(dict(event))
        elif isinstance(event, _ModelDumpLike):
            self.records.append(dict(event.model_dump()))
        else:
            raise TypeError(
                "FakeDiagnosticsPort.report expects a Mapping or an object with model_dump(). "
                f"Got: {type(event)!r}"
            )

    def kinds(self) -> list[str]:
        return [r["kind"] for r in self.records]


class FakeMetricsPort(MetricsPort):
    def __init__(self) -> None:
        self.samples: list[tuple[str, float, dict[str, str]]] = []

    def observe(self, name: str, value: float, **labels: str) -> None:
        self.samples.append((name, float(value), labels))

    def total(self, name: str) -> float:
        return sum(v for n, v, _ in self.samples if n == name)
