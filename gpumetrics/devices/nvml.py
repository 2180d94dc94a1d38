from collections.abc import Iterator
from contextlib import contextmanager

import pynvml

from gpumetrics.core.errors import DeviceError, DeviceIndexError, NVMLLibraryError
from gpumetrics.core.logging import get_logger
from gpumetrics.models.metrics import GPUMetrics

log = get_logger()

_GIB = 1 << 30


def _text(value: str | bytes) -> str:
    # older nvidia-ml-py releases hand back bytes
    return value.decode() if isinstance(value, bytes) else value


@contextmanager
def nvml_session() -> Iterator[None]:
    """Initialize NVML once, and shut it down exactly once on the way out."""
    try:
        pynvml.nvmlInit()
    except pynvml.NVMLError as err:
        raise NVMLLibraryError(f"Unable to initialize NVML: {err}") from err
    log.info("nvml.init", driver=_driver_version())

    try:
        yield
    finally:
        try:
            pynvml.nvmlShutdown()
        except pynvml.NVMLError as err:
            raise NVMLLibraryError(f"Unable to shutdown NVML: {err}") from err
        log.info("nvml.shutdown")


def _driver_version() -> str | None:
    try:
        return _text(pynvml.nvmlSystemGetDriverVersion())
    except pynvml.NVMLError:
        return None


class Device:
    """Read-only accessor over a single NVML device handle."""

    def __init__(self, index: int, uuid: str, handle, name: str | None = None) -> None:
        self.index = index
        self.uuid = uuid
        self.handle = handle
        self.name = name

    @classmethod
    def open(cls, index: int) -> "Device":
        try:
            count = pynvml.nvmlDeviceGetCount()
        except pynvml.NVMLError as err:
            raise DeviceError(f"Unable to get device count: {err}", err.value) from err

        if index < 0 or index >= count:
            raise DeviceIndexError(f"Device index {index} out of range (found {count} devices)")

        try:
            handle = pynvml.nvmlDeviceGetHandleByIndex(index)
        except pynvml.NVMLError as err:
            raise DeviceError(f"Unable to get device at index {index}: {err}", err.value) from err

        try:
            uuid = _text(pynvml.nvmlDeviceGetUUID(handle))
        except pynvml.NVMLError as err:
            raise DeviceError(f"Unable to get uuid of device at index {index}: {err}", err.value) from err

        try:
            name = _text(pynvml.nvmlDeviceGetName(handle))
        except pynvml.NVMLError:
            name = None

        log.info("device.opened", index=index, uuid=uuid, name=name, device_count=count)
        return cls(index=index, uuid=uuid, handle=handle, name=name)

    def temperature(self) -> int:
        try:
            return int(pynvml.nvmlDeviceGetTemperature(self.handle, pynvml.NVML_TEMPERATURE_GPU))
        except pynvml.NVMLError as err:
            raise DeviceError(str(err), err.value) from err

    def power(self) -> float:
        try:
            milliwatts = pynvml.nvmlDeviceGetPowerUsage(self.handle)
        except pynvml.NVMLError as err:
            raise DeviceError(str(err), err.value) from err
        return milliwatts / 1000.0

    def utilization(self) -> int:
        try:
            rates = pynvml.nvmlDeviceGetUtilizationRates(self.handle)
        except pynvml.NVMLError as err:
            raise DeviceError(str(err), err.value) from err
        return int(rates.gpu)

    def memory(self) -> tuple[float, float]:
        """Return (total, used) in GiB."""
        try:
            info = pynvml.nvmlDeviceGetMemoryInfo(self.handle)
        except pynvml.NVMLError as err:
            raise DeviceError(str(err), err.value) from err
        return info.total / _GIB, info.used / _GIB

    def sample(self) -> GPUMetrics:
        temperature = self.temperature()
        power = self.power()
        memory_total, memory_used = self.memory()
        gpu_usage = self.utilization()

        return GPUMetrics(
            temperature=temperature,
            power=power,
            gpu_usage=gpu_usage,
            memory_total=memory_total,
            memory_used=memory_used,
        )

    def __repr__(self) -> str:
        return f"Device(index={self.index}, uuid={self.uuid!r}, name={self.name!r})"
