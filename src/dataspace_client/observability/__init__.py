"""Client-side observability: flow metrics."""

from dataspace_client.observability.metrics import (
    FlowMetrics,
    FlowSample,
    get_metrics,
    init_metrics,
)

__all__ = ["FlowMetrics", "FlowSample", "get_metrics", "init_metrics"]
