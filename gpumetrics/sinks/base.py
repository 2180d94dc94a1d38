from typing import Protocol

from gpumetrics.models.metrics import GPUMetrics


class Sink(Protocol):
    def emit(self, metrics: GPUMetrics) -> None: ...
