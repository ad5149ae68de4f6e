"""Shared dataclasses describing metric identities and observations."""

from __future__ import annotations

from dataclasses import dataclass, field

GAUGE = "gauge"
COUNTER = "counter"


@dataclass(frozen=True, slots=True)
class MetricIdentity:
    """Name, help text and label dimensions of a metric family."""

    name: str
    documentation: str
    label_names: tuple[str, ...] = ()
    kind: str = GAUGE


@dataclass(frozen=True, slots=True)
class Observation:
    """Single numeric sample streamed to a sink."""

    identity: MetricIdentity
    value: float
    label_values: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if len(self.label_values) != len(self.identity.label_names):
            raise ValueError(
                f"Metric '{self.identity.name}' expects labels {self.identity.label_names}, "
                f"got {self.label_values}"
            )


@dataclass(frozen=True, slots=True)
class ExporterMetrics:
    """Meta-metric identities emitted by the orchestrator, built once per namespace."""

    duration: MetricIdentity
    success: MetricIdentity

    @classmethod
    def for_namespace(cls, namespace: str) -> ExporterMetrics:
        prefix = f"{namespace}_exporter" if namespace else "exporter"
        return cls(
            duration=MetricIdentity(
                name=f"{prefix}_collector_duration_seconds",
                documentation="Collector time duration.",
                label_names=("collector",),
            ),
            success=MetricIdentity(
                name=f"{prefix}_collector_success",
                documentation="Whether a collector succeeded.",
                label_names=("collector",),
            ),
        )


__all__ = ["COUNTER", "ExporterMetrics", "GAUGE", "MetricIdentity", "Observation"]
