"""Errors raised while running a Fargate login session.

AWS errors are normalised into a `PlatformError` at the boto boundary so the
rest of the package never inspects raw botocore error codes.
"""

from dataclasses import dataclass
from enum import Enum

from botocore.exceptions import ClientError


class PlatformErrorKind(str, Enum):
    """Classes of ECS API errors."""

    SERVER = "ServerException"
    CLIENT = "ClientException"
    INVALID_PARAMETER = "InvalidParameterException"
    OTHER = "Other"


@dataclass(frozen=True)
class PlatformError:
    """An AWS API error reduced to what the CLI reports."""

    kind: PlatformErrorKind
    code: str
    message: str

    def __str__(self) -> str:
        if self.kind is PlatformErrorKind.OTHER:
            return f"{self.code}: {self.message}" if self.code else self.message
        return f"{self.kind.value} {self.message}"


def platform_error_from(exc: ClientError) -> PlatformError:
    """Classify a botocore client error.

    Args:
        exc: Error raised by a boto3 client call.

    Returns:
        The classified platform error.
    """
    error = exc.response.get("Error", {})
    code = str(error.get("Code", ""))
    message = str(error.get("Message", "")) or str(exc)
    kinds = {
        PlatformErrorKind.SERVER.value: PlatformErrorKind.SERVER,
        PlatformErrorKind.CLIENT.value: PlatformErrorKind.CLIENT,
        PlatformErrorKind.INVALID_PARAMETER.value: PlatformErrorKind.INVALID_PARAMETER,
    }
    kind = kinds.get(code, PlatformErrorKind.OTHER)
    return PlatformError(kind=kind, code=code, message=message)


class FargateLoginError(RuntimeError):
    """Base class for login session failures."""


class ConfigError(FargateLoginError):
    """Required configuration is missing or invalid."""


class KeyGenerationError(FargateLoginError):
    """The SSH key pair could not be generated."""


class PlatformCallError(FargateLoginError):
    """A failure carrying the platform error that caused it."""

    def __init__(self, message: str, platform_error: PlatformError | None = None) -> None:
        self.platform_error = platform_error
        if platform_error is not None:
            message = f"{message}: {platform_error}"
        super().__init__(message)


class LaunchError(PlatformCallError):
    """ECS refused to run the task."""


class QueryError(PlatformCallError):
    """A status or address query failed."""


class NotReadyError(FargateLoginError):
    """The task did not reach RUNNING within the polling budget."""

    def __init__(self, diagnostic: str) -> None:
        self.diagnostic = diagnostic
        super().__init__(diagnostic)


class AddressResolutionError(FargateLoginError):
    """The task's IP address could not be determined."""


class ForceStopError(PlatformCallError):
    """The task could not be forcibly stopped."""


class ShellError(FargateLoginError):
    """The SSH client could not be started."""
