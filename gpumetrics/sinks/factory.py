from gpumetrics.core.config import Settings
from gpumetrics.models.metrics import InstanceIdentity
from gpumetrics.sinks.base import Sink
from gpumetrics.sinks.cloudwatch import CloudWatchSink, build_cloudwatch_client
from gpumetrics.sinks.console import ConsoleSink


def build_sink(settings: Settings, identity: InstanceIdentity | None = None) -> Sink:
    if settings.sink == "console":
        return ConsoleSink(output_format=settings.output_format)

    if settings.sink == "cloudwatch":
        if identity is None:
            raise ValueError("CloudWatch sink requires an instance identity")
        return CloudWatchSink(
            client=build_cloudwatch_client(settings),
            namespace=settings.cloudwatch_namespace,
            identity=identity,
            storage_resolution=settings.cloudwatch_storage_resolution,
        )

    raise ValueError(f"Unknown sink: {settings.sink}")
