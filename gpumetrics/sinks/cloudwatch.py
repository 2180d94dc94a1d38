from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gpumetrics.core.config import Settings
from gpumetrics.core.errors import PublishError
from gpumetrics.core.logging import get_logger
from gpumetrics.models.metrics import GPUMetrics, InstanceIdentity

log = get_logger()

# (metric name, unit, record field)
METRICS = (
    ("GPU Usage", "Percent", "gpu_usage"),
    ("Memory Used", "Gigabytes", "memory_used"),
    ("Temperature (C)", "None", "temperature"),
    ("Power (W)", "None", "power"),
)


def build_cloudwatch_client(settings: Settings):
    # one attempt only: a failed publish is fatal to the loop
    config = Config(
        retries={"total_max_attempts": 1, "mode": "standard"},
        connect_timeout=settings.aws_timeout_seconds,
        read_timeout=settings.aws_timeout_seconds,
    )
    return boto3.client("cloudwatch", region_name=settings.aws_region, config=config)


class CloudWatchSink:
    def __init__(
        self,
        client,
        namespace: str,
        identity: InstanceIdentity,
        storage_resolution: int = 60,
    ) -> None:
        if storage_resolution not in (1, 60):
            raise ValueError(f"Storage resolution must be 1 or 60, got {storage_resolution}")
        self.client = client
        self.namespace = namespace
        self.identity = identity
        self.storage_resolution = storage_resolution

    def metric_data(self, metrics: GPUMetrics) -> list[dict[str, Any]]:
        dimensions = self.identity.dimensions()
        return [
            {
                "MetricName": name,
                "Dimensions": dimensions,
                "Unit": unit,
                "StorageResolution": self.storage_resolution,
                "Value": float(getattr(metrics, field)),
            }
            for name, unit, field in METRICS
        ]

    def emit(self, metrics: GPUMetrics) -> None:
        try:
            self.client.put_metric_data(Namespace=self.namespace, MetricData=self.metric_data(metrics))
        except (BotoCoreError, ClientError) as err:
            raise PublishError(f"Unable to publish metrics to CloudWatch: {err}") from err

        log.debug("sink.cloudwatch.published", namespace=self.namespace, instance_id=self.identity.instance_id)
