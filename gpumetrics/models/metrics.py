from pydantic import BaseModel, ConfigDict, Field


class GPUMetrics(BaseModel):
    """Snapshot of one device at one sampling tick."""

    model_config = ConfigDict(frozen=True)

    temperature: int  # C
    power: float  # W
    gpu_usage: int = Field(ge=0, le=100)  # %
    memory_total: float  # GiB
    memory_used: float  # GiB

    def to_json(self) -> str:
        return self.model_dump_json()

    def __str__(self) -> str:
        return (
            f"{self.temperature},{self.power:.2f},{self.gpu_usage},"
            f"{self.memory_total:.1f},{self.memory_used:.2f}"
        )


class InstanceIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    instance_id: str
    instance_type: str

    def dimensions(self) -> list[dict[str, str]]:
        return [
            {"Name": "InstanceId", "Value": self.instance_id},
            {"Name": "InstanceType", "Value": self.instance_type},
        ]
