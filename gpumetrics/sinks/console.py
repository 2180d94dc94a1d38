import sys
from typing import Literal, TextIO

from gpumetrics.models.metrics import GPUMetrics


class ConsoleSink:
    """Writes one line per record: JSON object or comma-delimited string."""

    def __init__(self, stream: TextIO | None = None, output_format: Literal["json", "csv"] = "json") -> None:
        if output_format not in ("json", "csv"):
            raise ValueError(f"Unknown output format: {output_format}")
        self.stream = stream or sys.stdout
        self.output_format = output_format

    def emit(self, metrics: GPUMetrics) -> None:
        line = metrics.to_json() if self.output_format == "json" else str(metrics)
        self.stream.write(line + "\n")
        self.stream.flush()
