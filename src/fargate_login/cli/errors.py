"""Error rendering for the CLI."""

from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    NoRegionError,
    ProfileNotFound,
)
from rich.markup import escape

from fargate_login.cli.ui import err_console
from fargate_login.core.errors import NotReadyError


def report_error(exc: Exception) -> None:
    """Render a login failure with actionable guidance.

    Args:
        exc: Raised exception from a login phase.
    """
    if is_aws_auth_error(exc):
        err_console.print(
            "[red]AWS authentication failed. Your credentials are missing, invalid, "
            "or expired.[/red]"
        )
        err_console.print(
            "[dim]If using AWS profile/SSO, run: aws sso login --profile <profile>. "
            "If using temporary keys, refresh AWS_SESSION_TOKEN and retry.[/dim]"
        )
        return

    if is_aws_endpoint_error(exc):
        err_console.print("[red]Could not reach AWS endpoint from this environment.[/red]")
        err_console.print("[dim]Check network connectivity and AWS region configuration.[/dim]")
        return

    if any(isinstance(item, NoRegionError) for item in exception_chain(exc)):
        err_console.print("[red]No AWS region configured.[/red]")
        err_console.print("[dim]Pass --region or set AWS_REGION / AWS_DEFAULT_REGION.[/dim]")
        return

    if isinstance(exc, NotReadyError):
        err_console.print("[red]Task did not start:[/red]")
        err_console.print(escape(exc.diagnostic))
        return

    err_console.print(f"[red]{escape(str(exc))}[/red]")


def is_aws_auth_error(exc: Exception) -> bool:
    """Return true when an exception chain indicates AWS auth issues.

    Args:
        exc: Raised exception.

    Returns:
        True when the chain contains an auth-related error.
    """
    auth_codes = {
        "ExpiredToken",
        "ExpiredTokenException",
        # spellchecker:ignore-next-line
        "UnrecognizedClientException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
    }
    for item in exception_chain(exc):
        if isinstance(item, (NoCredentialsError, ProfileNotFound)):
            return True
        if isinstance(item, ClientError):
            code = str(item.response.get("Error", {}).get("Code", ""))
            if code in auth_codes:
                return True
        text = str(item)
        if "security token included in the request is expired" in text.lower():
            return True
    return False


def is_aws_endpoint_error(exc: Exception) -> bool:
    """Return true when an exception chain indicates endpoint/network errors."""
    return any(isinstance(item, EndpointConnectionError) for item in exception_chain(exc))


def exception_chain(exc: BaseException) -> list[BaseException]:
    """Return exceptions in cause/context chain.

    Args:
        exc: Root exception.

    Returns:
        Ordered exception chain from root to cause/context.
    """
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        chain.append(current)
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return chain
