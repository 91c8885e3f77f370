"""Custom exception hierarchy for the elastic IP controller."""


class EIPControllerError(Exception):
    """Base exception for all controller errors."""


class ConfigError(EIPControllerError):
    """Invalid or missing configuration."""


class AddressNotFoundError(ConfigError):
    """A configured elastic IP does not exist in the cloud account."""

    def __init__(self, public_ip: str):
        super().__init__(f"address not found: {public_ip!r}")
        self.public_ip = public_ip


class CloudGatewayError(EIPControllerError):
    """Error talking to the cloud provider API."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation
