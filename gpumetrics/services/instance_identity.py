import httpx

from gpumetrics.core.config import Settings
from gpumetrics.core.errors import InstanceIdentityError
from gpumetrics.core.logging import get_logger
from gpumetrics.models.metrics import InstanceIdentity

log = get_logger()

TOKEN_PATH = "/latest/api/token"
TOKEN_TTL_SECONDS = 21600


async def _fetch_from_imds(settings: Settings, transport: httpx.AsyncBaseTransport | None) -> dict[str, str]:
    async with httpx.AsyncClient(
        base_url=settings.imds_base_url,
        timeout=settings.imds_timeout_seconds,
        transport=transport,
    ) as client:
        # IMDSv2: session token first, then the metadata reads
        r = await client.put(TOKEN_PATH, headers={"X-aws-ec2-metadata-token-ttl-seconds": str(TOKEN_TTL_SECONDS)})
        r.raise_for_status()
        headers = {"X-aws-ec2-metadata-token": r.text.strip()}

        values: dict[str, str] = {}
        for key in ("instance-id", "instance-type"):
            r = await client.get(f"/latest/meta-data/{key}", headers=headers)
            r.raise_for_status()
            values[key] = r.text.strip()
        return values


async def resolve_instance_identity(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> InstanceIdentity:
    """
    Instance id/type for the CloudWatch dimensions.
    Configured values win; whatever is missing comes from the EC2 metadata service.
    """
    if settings.instance_id and settings.instance_type:
        return InstanceIdentity(instance_id=settings.instance_id, instance_type=settings.instance_type)

    try:
        values = await _fetch_from_imds(settings, transport)
    except httpx.HTTPError as err:
        raise InstanceIdentityError(f"Unable to read instance metadata: {err}") from err

    identity = InstanceIdentity(
        instance_id=settings.instance_id or values["instance-id"],
        instance_type=settings.instance_type or values["instance-type"],
    )
    log.info("identity.resolved", source="imds", instance_id=identity.instance_id, instance_type=identity.instance_type)
    return identity
