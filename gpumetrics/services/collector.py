import asyncio
import signal
import sys
import threading
from collections.abc import Callable
from typing import Any

from gpumetrics.core.config import Settings, settings as default_settings
from gpumetrics.core.logging import configure_logging, get_logger
from gpumetrics.devices.nvml import Device, nvml_session
from gpumetrics.models.metrics import GPUMetrics
from gpumetrics.services.instance_identity import resolve_instance_identity
from gpumetrics.sinks.base import Sink
from gpumetrics.sinks.factory import build_sink

log = get_logger()

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def _in_daemon_thread(fn: Callable[..., Any], *args: Any) -> Any:
    """
    Run a blocking NVML/boto3 call off the event loop.
    Daemon thread, not the default executor: asyncio.run joins executor threads on exit.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def _resolve(result: Any, exc: BaseException | None) -> None:
        if future.done():  # cancelled while the call was running
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def _target() -> None:
        result, exc = None, None
        try:
            result = fn(*args)
        except BaseException as e:
            exc = e
        if not loop.is_closed():
            loop.call_soon_threadsafe(_resolve, result, exc)

    threading.Thread(target=_target, name="gpumetrics-tick", daemon=True).start()
    return await future


class Collector:
    """Samples one device and hands every record to one sink, at a fixed rate."""

    def __init__(self, device: Device, sink: Sink, interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got {interval_seconds}")
        self.device = device
        self.sink = sink
        self.interval_seconds = interval_seconds

    def collect_once(self) -> GPUMetrics:
        metrics = self.device.sample()
        self.sink.emit(metrics)
        return metrics

    async def run(self, max_ticks: int | None = None) -> int:
        """Run until cancelled (or for max_ticks ticks). Any error propagates."""
        loop = asyncio.get_running_loop()
        log.info("collector.start", device=self.device.index, interval_seconds=self.interval_seconds)

        ticks = 0
        next_tick = loop.time()
        while max_ticks is None or ticks < max_ticks:
            # two hops: a stop during the read means the record is never emitted
            metrics = await _in_daemon_thread(self.device.sample)
            await _in_daemon_thread(self.sink.emit, metrics)
            ticks += 1
            log.debug("collector.tick", tick=ticks, **metrics.model_dump())

            if max_ticks is not None and ticks >= max_ticks:
                break

            next_tick += self.interval_seconds
            delay = next_tick - loop.time()
            if delay < 0:
                # overran the period; restart the schedule from now
                next_tick = loop.time()
                delay = 0.0
            await asyncio.sleep(delay)

        return ticks


def _install_signal_handlers(task: asyncio.Task) -> None:
    loop = asyncio.get_running_loop()
    installed = []
    try:
        for sig in _STOP_SIGNALS:
            loop.add_signal_handler(sig, task.cancel)
            installed.append(sig)
    except (NotImplementedError, RuntimeError, ValueError):
        # off the main thread, or an event loop without signal support
        for sig in installed:
            loop.remove_signal_handler(sig)
        raise


def _remove_signal_handlers() -> None:
    loop = asyncio.get_running_loop()
    for sig in _STOP_SIGNALS:
        loop.remove_signal_handler(sig)


async def run_forever(settings: Settings | None = None) -> int:
    """Wire settings, NVML, device and sink together; return the process exit status."""
    settings = settings or default_settings
    installed = False

    try:
        _install_signal_handlers(asyncio.current_task())
        installed = True

        identity = None
        if settings.sink == "cloudwatch":
            identity = await resolve_instance_identity(settings)
        sink = build_sink(settings, identity)

        with nvml_session():
            device = Device.open(settings.device_index)
            collector = Collector(device, sink, settings.metrics_interval_seconds)
            await collector.run()
    except asyncio.CancelledError:
        log.info("collector.stop", reason="signal")
        return 0
    except Exception:
        log.exception("collector.fatal")
        return 1
    finally:
        if installed:
            _remove_signal_handlers()

    return 0


def main() -> None:
    configure_logging()
    sys.exit(asyncio.run(run_forever()))


if __name__ == "__main__":
    main()
