"""Error hierarchy for gcp-labkit.

Every fatal condition raised by a lab step derives from LabkitError so the CLI
can report it uniformly and exit with status 1. Advisory conditions are not
exceptions; they are logged as warnings and the run continues.
"""


class LabkitError(Exception):
    """Base class for all fatal lab errors."""
    pass


class ConfigError(LabkitError):
    """Configuration file is unreadable or invalid."""
    pass


class ConfigurationMissingError(LabkitError):
    """No active GCP project could be determined."""
    pass


class ConnectivityError(LabkitError):
    """A service could not be reached."""
    pass


class ReadinessTimeoutError(ConnectivityError):
    """A started server never answered its health probe."""

    def __init__(self, url: str, attempts: int, hint: str = ""):
        self.url = url
        self.attempts = attempts
        message = f"{url} did not become ready after {attempts} attempts"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)


class AuthExhaustedError(LabkitError):
    """Token validation failed on every allowed attempt."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Failed to validate token after {attempts} attempts")


class ResourceCreationError(LabkitError):
    """Creating an external resource failed."""

    def __init__(self, kind: str, identifier: str, cause: Exception):
        self.kind = kind
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"Failed to create {kind} '{identifier}': {cause}")


class VaultOperationError(LabkitError):
    """A Vault read or write failed."""
    pass


class InstallError(LabkitError):
    """A required tool is missing and could not be installed."""
    pass
