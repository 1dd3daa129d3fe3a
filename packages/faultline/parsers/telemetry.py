"""OpenTelemetry instruments for classification outcomes.

Without an SDK configured the OpenTelemetry API hands out no-op instruments,
so recording is always safe.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Protocol

from opentelemetry import metrics as otel_metrics

from ..logging import fields

if TYPE_CHECKING:
    from ..config.models import TelemetrySettings

DEFAULT_METER_NAME = "faultline.classification"
DEFAULT_METRIC_CLASSIFICATIONS_TOTAL = "faultline_classifications_total"
DEFAULT_METRIC_CLASSIFICATION_DURATION_MS = "faultline_classification_duration_ms"

OUTCOME_MATCHED = "matched"
OUTCOME_MISS = "miss"
OUTCOME_FAILED = "failed"
OUTCOME_CANCELLED = "cancelled"


class _CounterLike(Protocol):
    """Minimal counter interface used by the metrics concern."""

    def add(self, amount: int | float, attributes: Mapping[str, str]) -> None:
        """Increment the counter."""


class _HistogramLike(Protocol):
    """Minimal histogram interface used by the metrics concern."""

    def record(self, amount: float, attributes: Mapping[str, str]) -> None:
        """Record one observation."""


@dataclass(frozen=True)
class ClassificationMetrics:
    """Counter and histogram pair fed by the parser registry."""

    classifications_total: _CounterLike
    classification_duration_ms: _HistogramLike

    def record(self, *, parser: str, outcome: str, duration_ms: float) -> None:
        """Emit one classification attempt."""
        self.classifications_total.add(1, attributes={fields.PARSER: parser, fields.OUTCOME: outcome})
        self.classification_duration_ms.record(duration_ms, attributes={fields.PARSER: parser})


def _configured_name(value: str | None, default: str) -> str:
    """Return a non-blank configured name, otherwise ``default``."""
    if value is None or not value.strip():
        return default
    return value.strip()


def create_classification_metrics(settings: TelemetrySettings | None = None) -> ClassificationMetrics:
    """Create instruments on the global meter provider."""
    meter = otel_metrics.get_meter(
        _configured_name(settings.meter_name if settings else None, DEFAULT_METER_NAME)
    )
    return ClassificationMetrics(
        classifications_total=meter.create_counter(
            name=_configured_name(
                settings.metric_classifications_total if settings else None,
                DEFAULT_METRIC_CLASSIFICATIONS_TOTAL,
            ),
            description="Count of error classification attempts by parser and outcome.",
            unit="1",
        ),
        classification_duration_ms=meter.create_histogram(
            name=_configured_name(
                settings.metric_classification_duration_ms if settings else None,
                DEFAULT_METRIC_CLASSIFICATION_DURATION_MS,
            ),
            description="Latency of error classification by parser.",
            unit="ms",
        ),
    )
