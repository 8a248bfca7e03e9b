"""Process-wide flow metrics in a bounded ring buffer.

Each completed driver run and each flow run records one FlowSample. The
buffer has an explicit lifecycle: ``init_metrics()`` creates it empty,
``get_metrics()`` returns it (initializing from settings on first use),
``FlowMetrics.clear()`` empties it. Oldest samples drop first once the
buffer is full.
"""

from __future__ import annotations

import math
from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime

from dataspace_client.config import get_settings
from dataspace_client.domain.enums import FlowPhase
from dataspace_client.domain.models import utcnow
from dataspace_client.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FlowSample:
    """One finished operation."""

    phase: FlowPhase
    outcome: str
    duration_ms: int
    poll_count: int = 0
    error_code: str | None = None
    recorded_at: datetime = field(default_factory=utcnow)


def _percentile(data: list[int], p: float) -> int:
    """Nearest-rank percentile on sorted data."""
    if not data:
        return 0
    ordered = sorted(data)
    k = max(1, math.ceil(p * len(ordered)))
    return ordered[k - 1]


class FlowMetrics:
    """Bounded, append-only sample buffer."""

    def __init__(self, max_samples: int = 500) -> None:
        if max_samples < 1:
            raise ValueError("max_samples must be >= 1")
        self._samples: deque[FlowSample] = deque(maxlen=max_samples)

    @property
    def max_samples(self) -> int:
        return self._samples.maxlen or 0

    def __len__(self) -> int:
        return len(self._samples)

    def record(self, sample: FlowSample) -> None:
        self._samples.append(sample)

    def snapshot(self, phase: FlowPhase | None = None) -> list[FlowSample]:
        """Return a copy of the buffered samples, oldest first."""
        if phase is None:
            return list(self._samples)
        return [s for s in self._samples if s.phase is phase]

    def summary(self, phase: FlowPhase | None = None) -> dict:
        """Aggregate counts and latency percentiles."""
        samples = self.snapshot(phase)
        outcomes = Counter(s.outcome for s in samples)
        durations = [s.duration_ms for s in samples]
        return {
            "count": len(samples),
            "outcomes": dict(outcomes),
            "p50_ms": _percentile(durations, 0.50),
            "p95_ms": _percentile(durations, 0.95),
            "max_polls": max((s.poll_count for s in samples), default=0),
        }

    def clear(self) -> None:
        self._samples.clear()


_metrics: FlowMetrics | None = None


def init_metrics(max_samples: int | None = None) -> FlowMetrics:
    """Create (or replace) the process-wide buffer, empty."""
    global _metrics
    size = max_samples or get_settings().metrics_buffer_size
    _metrics = FlowMetrics(max_samples=size)
    logger.debug("metrics.initialized", max_samples=size)
    return _metrics


def get_metrics() -> FlowMetrics:
    """Return the process-wide buffer, creating it on first use."""
    if _metrics is None:
        return init_metrics()
    return _metrics
