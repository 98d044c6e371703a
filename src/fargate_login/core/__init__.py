"""Fargate login session helpers."""

from fargate_login.core.ecs_tasks import (
    cleanup_task,
    describe_task,
    describe_task_diagnostics,
    launch_task,
    resolve_task_address,
    stop_task,
    wait_for_task_running,
)
from fargate_login.core.errors import (
    AddressResolutionError,
    ConfigError,
    FargateLoginError,
    ForceStopError,
    KeyGenerationError,
    LaunchError,
    NotReadyError,
    PlatformError,
    PlatformErrorKind,
    QueryError,
    ShellError,
)
from fargate_login.core.keys import generate_key_pair
from fargate_login.core.login import launched_task, run_login
from fargate_login.core.models import (
    AddressKind,
    KeyPair,
    PollPolicy,
    TaskAddress,
    TaskConfiguration,
    TaskHandle,
)
from fargate_login.core.session import create_session, get_identity
from fargate_login.core.settings import LoginSettings, get_settings

__all__ = [
    "AddressKind",
    "AddressResolutionError",
    "ConfigError",
    "FargateLoginError",
    "ForceStopError",
    "KeyGenerationError",
    "KeyPair",
    "LaunchError",
    "LoginSettings",
    "NotReadyError",
    "PlatformError",
    "PlatformErrorKind",
    "PollPolicy",
    "QueryError",
    "ShellError",
    "TaskAddress",
    "TaskConfiguration",
    "TaskHandle",
    "cleanup_task",
    "create_session",
    "describe_task",
    "describe_task_diagnostics",
    "generate_key_pair",
    "get_identity",
    "get_settings",
    "launch_task",
    "launched_task",
    "resolve_task_address",
    "run_login",
    "stop_task",
    "wait_for_task_running",
]
