"""Exception hierarchy for the IoTaWatt panel."""

from __future__ import annotations


class IotaWattError(Exception):
    """Base class for every error raised by the panel."""


class ModuleStartError(IotaWattError):
    """The module could not be constructed and never started."""


class ConfigurationError(ModuleStartError):
    """Configuration values cannot be turned into a device query."""


class AssetError(ModuleStartError):
    """Panel assets could not be read or loaded into the display surface."""


class PollError(IotaWattError):
    """A single request to the device failed."""


class TransportError(PollError):
    """The request never produced a response."""


class UnexpectedStatusError(PollError):
    """The device answered with something other than HTTP 200."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"unexpected status code {status_code}")
        self.status_code = status_code


class DecodeError(PollError):
    """The response body is not a JSON array of numeric rows."""


class AggregationError(IotaWattError):
    """Raw rows could not be turned into a reading."""


class RowShapeError(AggregationError):
    """A row does not have one value per selected channel."""

    def __init__(self, row_index: int, expected: int, actual: int) -> None:
        super().__init__(
            f"row {row_index} has {actual} values, expected {expected}"
        )
        self.row_index = row_index
        self.expected = expected
        self.actual = actual


class EncodeError(AggregationError):
    """The series collection could not be encoded for the display surface."""
