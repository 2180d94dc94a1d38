class ExporterError(Exception):
    """Base class for every fatal exporter failure."""


class NVMLLibraryError(ExporterError):
    """NVML could not be initialized or shut down."""


class DeviceError(ExporterError):
    """A query against the NVML device handle failed."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class DeviceIndexError(DeviceError):
    pass


class PublishError(ExporterError):
    pass


class InstanceIdentityError(ExporterError):
    pass
