import json

import pytest
from pydantic import ValidationError

from gpumetrics.models.metrics import GPUMetrics, InstanceIdentity


def test_json_fields(sample_metrics):
    data = json.loads(sample_metrics.to_json())

    assert data == {
        "temperature": 54,
        "power": 128.0,
        "gpu_usage": 37,
        "memory_total": 16.0,
        "memory_used": 4.0,
    }


def test_json_is_single_line(sample_metrics):
    assert "\n" not in sample_metrics.to_json()


def test_delimited_string():
    metrics = GPUMetrics(temperature=61, power=71.234, gpu_usage=99, memory_total=22.49, memory_used=3.14159)

    assert str(metrics) == "61,71.23,99,22.5,3.14"


def test_frozen(sample_metrics):
    with pytest.raises(ValidationError):
        sample_metrics.temperature = 10


@pytest.mark.parametrize("gpu_usage", [-1, 101])
def test_gpu_usage_bounds(gpu_usage):
    with pytest.raises(ValidationError):
        GPUMetrics(temperature=40, power=1.0, gpu_usage=gpu_usage, memory_total=1.0, memory_used=0.5)


def test_identity_dimensions(identity):
    assert identity.dimensions() == [
        {"Name": "InstanceId", "Value": "i-0abc123def4567890"},
        {"Name": "InstanceType", "Value": "g5.xlarge"},
    ]
