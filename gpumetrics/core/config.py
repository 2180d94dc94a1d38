from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="GPUMETRICS_", env_file=".env", extra="ignore")

    # Device / loop
    device_index: int = Field(default=0, ge=0)
    metrics_interval_seconds: float = Field(default=5.0, gt=0)

    # Sink
    sink: Literal["console", "cloudwatch"] = "console"
    output_format: Literal["json", "csv"] = "json"

    # CloudWatch
    cloudwatch_namespace: str = "GPU"
    cloudwatch_storage_resolution: int = 60
    aws_region: str | None = None
    aws_timeout_seconds: float = 5.0

    # Instance identity (IMDSv2 lookup when missing)
    instance_id: str | None = None
    instance_type: str | None = None
    imds_base_url: str = "http://169.254.169.254"
    imds_timeout_seconds: float = 2.0

    log_level: str = "INFO"
    log_dir: str | None = None

    @field_validator("cloudwatch_storage_resolution")
    @classmethod
    def _standard_or_high_resolution(cls, v: int) -> int:
        if v not in (1, 60):
            raise ValueError("must be 1 (high resolution) or 60 (standard)")
        return v


settings = Settings()
