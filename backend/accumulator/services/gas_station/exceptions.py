class GasStationError(Exception):
    """Base exception for gas station errors."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GasStationResponseError(GasStationError):
    """Response did not contain a usable price."""

    pass
