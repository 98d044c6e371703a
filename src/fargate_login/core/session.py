"""AWS session helpers.

The profile and region come from `LoginSettings.aws_profile` and
`LoginSettings.aws_region`, that is the `--profile` and `--region` flags or
the `FARGATE_LOGIN_AWS_PROFILE` and `FARGATE_LOGIN_AWS_REGION` settings.
The standard `AWS_PROFILE` and `AWS_REGION` variables are not read here;
boto3 applies them itself when neither setting is given.
"""

import boto3
from botocore.exceptions import ClientError

from fargate_login.core.errors import QueryError, platform_error_from
from fargate_login.core.settings import LoginSettings


def create_session(settings: LoginSettings) -> boto3.session.Session:
    """Create a boto3 session.

    Args:
        settings: Login settings; `aws_profile` and `aws_region` are set from
            `--profile`/`--region` or `FARGATE_LOGIN_AWS_PROFILE`/
            `FARGATE_LOGIN_AWS_REGION`.

    Returns:
        A session for the selected profile and region. When either is unset,
        boto3's usual resolution applies (`AWS_PROFILE`, `AWS_REGION`,
        `AWS_DEFAULT_REGION` and the shared config files).
    """
    if settings.aws_profile:
        return boto3.session.Session(
            profile_name=settings.aws_profile,
            region_name=settings.aws_region,
        )

    return boto3.session.Session(region_name=settings.aws_region)


def get_identity(session: boto3.session.Session) -> dict[str, str]:
    """Fetch the current AWS identity."""
    client = session.client("sts")
    try:
        response = client.get_caller_identity()
    except ClientError as exc:
        raise QueryError("Failed to read AWS identity", platform_error_from(exc)) from exc

    return {
        "Account": str(response.get("Account", "")),
        "Arn": str(response.get("Arn", "")),
        "UserId": str(response.get("UserId", "")),
    }
