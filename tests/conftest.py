"""
Shared fixtures: a fake NVML library patched onto the pynvml module.
"""

from types import SimpleNamespace

import pynvml
import pytest

from gpumetrics.core.config import Settings
from gpumetrics.core.logging import configure_logging
from gpumetrics.models.metrics import GPUMetrics, InstanceIdentity

GIB = 1 << 30


@pytest.fixture(autouse=True, scope="session")
def _logging():
    # route structlog through stdlib/stderr so stdout only carries records
    configure_logging(Settings(_env_file=None, log_level="DEBUG"))


class FakeNVML:
    """Stands in for the native library; every call is recorded in `calls`."""

    def __init__(self) -> None:
        self.device_count = 1
        self.temperature = 54
        self.power_mw = 128000
        self.gpu_util = 37
        self.memory_total = 16 * GIB
        self.memory_used = 4 * GIB
        self.uuid = "GPU-ef6ef310-f8e2-cef9-036e-8f12d59b5ffc"
        self.name = "NVIDIA A10G"
        self.fail: dict[str, int] = {}
        self.calls: list[str] = []

    def _call(self, name: str, value=None):
        self.calls.append(name)
        if name in self.fail:
            raise pynvml.NVMLError(self.fail[name])
        return value

    def install(self, monkeypatch: pytest.MonkeyPatch) -> None:
        patches = {
            "nvmlInit": lambda: self._call("nvmlInit"),
            "nvmlShutdown": lambda: self._call("nvmlShutdown"),
            "nvmlSystemGetDriverVersion": lambda: self._call("nvmlSystemGetDriverVersion", "535.104.05"),
            "nvmlDeviceGetCount": lambda: self._call("nvmlDeviceGetCount", self.device_count),
            "nvmlDeviceGetHandleByIndex": lambda i: self._call("nvmlDeviceGetHandleByIndex", f"handle-{i}"),
            "nvmlDeviceGetUUID": lambda h: self._call("nvmlDeviceGetUUID", self.uuid),
            "nvmlDeviceGetName": lambda h: self._call("nvmlDeviceGetName", self.name),
            "nvmlDeviceGetTemperature": lambda h, sensor: self._call("nvmlDeviceGetTemperature", self.temperature),
            "nvmlDeviceGetPowerUsage": lambda h: self._call("nvmlDeviceGetPowerUsage", self.power_mw),
            "nvmlDeviceGetUtilizationRates": lambda h: self._call(
                "nvmlDeviceGetUtilizationRates", SimpleNamespace(gpu=self.gpu_util, memory=12)
            ),
            "nvmlDeviceGetMemoryInfo": lambda h: self._call(
                "nvmlDeviceGetMemoryInfo",
                SimpleNamespace(
                    total=self.memory_total,
                    used=self.memory_used,
                    free=self.memory_total - self.memory_used,
                ),
            ),
        }
        for name, fn in patches.items():
            monkeypatch.setattr(pynvml, name, fn)

    @property
    def reads(self) -> list[str]:
        return [
            c
            for c in self.calls
            if c
            in {
                "nvmlDeviceGetTemperature",
                "nvmlDeviceGetPowerUsage",
                "nvmlDeviceGetUtilizationRates",
                "nvmlDeviceGetMemoryInfo",
            }
        ]


@pytest.fixture
def fake_nvml(monkeypatch):
    nvml = FakeNVML()
    nvml.install(monkeypatch)
    return nvml


@pytest.fixture
def sample_metrics():
    return GPUMetrics(
        temperature=54,
        power=128.0,
        gpu_usage=37,
        memory_total=16.0,
        memory_used=4.0,
    )


@pytest.fixture
def identity():
    return InstanceIdentity(instance_id="i-0abc123def4567890", instance_type="g5.xlarge")


@pytest.fixture
def settings():
    # _env_file=None keeps a developer's .env out of the tests
    return Settings(_env_file=None)
