"""Error taxonomy shared by the identity, pagination, and storage layers."""


class CargoHoldError(Exception):
    """Base class for all service errors."""


class ConfigError(CargoHoldError, ValueError):
    """Invalid worker/datacenter configuration. Raised at construction, fatal to startup."""


class ClockRegressionError(CargoHoldError):
    """The wall clock moved backwards relative to the last issued id."""

    def __init__(self, last_timestamp: int, current_timestamp: int) -> None:
        self.last_timestamp = last_timestamp
        self.current_timestamp = current_timestamp
        super().__init__(
            f"Clock moved backwards: refusing to generate id for {last_timestamp - current_timestamp}ms"
        )


class InvalidCursorError(CargoHoldError):
    """An ``after``/``before`` cursor does not resolve to an existing entity."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} id")


class StorageError(CargoHoldError):
    """The object store rejected or failed a request."""
