"""Write-only destinations for observations produced during a cycle."""

from __future__ import annotations

import threading
from typing import Protocol, runtime_checkable

from .models import MetricIdentity, Observation


class SinkClosedError(RuntimeError):
    """Raised when an observation is emitted after the sink was finalized."""


@runtime_checkable
class MetricSink(Protocol):
    """Protocol implemented by observation sinks."""

    def emit(self, observation: Observation) -> None:
        """Append an observation; safe to call from concurrent producers."""

    def close(self) -> None:
        """Finalize the sink. Only the orchestrator calls this."""


class CollectingSink:
    """In-memory sink that keeps observations in emission order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._observations: list[Observation] = []
        self._closed = False

    def emit(self, observation: Observation) -> None:
        with self._lock:
            if self._closed:
                raise SinkClosedError(f"Sink closed; dropped '{observation.identity.name}'")
            self._observations.append(observation)

    def close(self) -> None:
        with self._lock:
            self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def observations(self) -> tuple[Observation, ...]:
        with self._lock:
            return tuple(self._observations)

    def find(self, identity: MetricIdentity, *label_values: str) -> list[Observation]:
        """Return observations for an identity, optionally matching label values."""

        return [
            obs
            for obs in self.observations
            if obs.identity.name == identity.name
            and (not label_values or obs.label_values == label_values)
        ]


__all__ = ["CollectingSink", "MetricSink", "SinkClosedError"]
