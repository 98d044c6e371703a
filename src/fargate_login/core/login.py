"""Login session controller.

Phases run strictly in order on the calling thread: launch, wait for
RUNNING, resolve the address, run ssh, then wait for the task to stop.
Once a task is launched its clean-up runs on every exit path.
"""

import logging
import signal
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from types import FrameType
from typing import Any

from fargate_login.core.ecs_tasks import (
    cleanup_task,
    launch_task,
    resolve_task_address,
    wait_for_task_running,
)
from fargate_login.core.keys import generate_key_pair
from fargate_login.core.models import KeyPair, TaskConfiguration, TaskHandle
from fargate_login.core.session import create_session, get_identity
from fargate_login.core.settings import LoginSettings
from fargate_login.core.ssh import open_shell, private_key_file

logger = logging.getLogger(__name__)

TERMINATION_SIGNALS = tuple(
    sig for sig in (getattr(signal, "SIGTERM", None), getattr(signal, "SIGHUP", None)) if sig
)


@contextmanager
def launched_task(
    session: Any,
    config: TaskConfiguration,
    key_pair: KeyPair,
    settings: LoginSettings,
    reporter: Callable[[str], None],
) -> Iterator[TaskHandle]:
    """Launch the login task and clean it up when the context exits.

    No clean-up is registered when the launch itself fails. When the session
    fails, a clean-up failure is logged and the session's own error is raised;
    otherwise a clean-up failure is raised.

    Args:
        session: boto3 session.
        config: Task configuration.
        key_pair: Key pair for the session.
        settings: Login settings.
        reporter: Callback for user-facing progress messages.

    Yields:
        Handle of the launched task.
    """
    handle = launch_task(session, config, key_pair)
    reporter(f"Started task with ARN: {handle.task_arn}")
    try:
        yield handle
    except BaseException:
        try:
            _stop_launched_task(session, config, handle, settings, reporter)
        except Exception as exc:
            logger.error(f"Clean-up of task {handle.task_arn} failed: {exc}")
        raise
    else:
        _stop_launched_task(session, config, handle, settings, reporter)


def _stop_launched_task(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
    settings: LoginSettings,
    reporter: Callable[[str], None],
) -> None:
    reporter("Waiting for the task to stop")
    with ignore_termination_signals():
        cleanup_task(session, config, handle, reporter, settings.stop_policy)


@contextmanager
def exit_on_termination_signals() -> Iterator[None]:
    """Turn SIGTERM and SIGHUP into SystemExit so clean-up code runs."""

    def _raise_exit(signum: int, _frame: FrameType | None) -> None:
        logger.warning(f"Received signal {signum}; cleaning up")
        sys.exit(128 + signum)

    with _signal_handlers(_raise_exit):
        yield


@contextmanager
def ignore_termination_signals() -> Iterator[None]:
    """Ignore SIGTERM and SIGHUP so a clean-up in progress is not cut short."""
    with _signal_handlers(signal.SIG_IGN):
        yield


@contextmanager
def _signal_handlers(handler: Any) -> Iterator[None]:
    previous = {sig: signal.signal(sig, handler) for sig in TERMINATION_SIGNALS}
    try:
        yield
    finally:
        for sig, old_handler in previous.items():
            signal.signal(sig, old_handler)


def run_login(
    config: TaskConfiguration,
    settings: LoginSettings,
    reporter: Callable[[str], None],
) -> int:
    """Run a full login session.

    Args:
        config: Task configuration.
        settings: Login settings.
        reporter: Callback for user-facing progress messages.

    Returns:
        The ssh exit status.
    """
    key_pair = generate_key_pair()
    session = create_session(settings)
    if logger.isEnabledFor(logging.DEBUG):
        identity = get_identity(session)
        logger.debug(f"Using AWS account {identity['Account']} ({identity['Arn']})")

    with exit_on_termination_signals():
        with launched_task(session, config, key_pair, settings, reporter) as handle:
            reporter(f"Waiting for task to start (up to {settings.ready_policy.total_seconds:g}s)")
            wait_for_task_running(session, config, handle, settings.ready_policy)

            address = resolve_task_address(session, config, handle)
            reporter(
                f"Task {handle.task_arn} is running at {address.ip_address} "
                f"({address.kind.value})!"
            )

            with private_key_file(key_pair) as key_path:
                return open_shell(key_path, address, settings)
