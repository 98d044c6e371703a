"""Tests for the login session controller."""

import logging
import signal
from collections.abc import Iterator
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest

from fargate_login.core.errors import LaunchError, NotReadyError, QueryError, ShellError
from fargate_login.core.login import exit_on_termination_signals, launched_task, run_login
from fargate_login.core.models import AddressKind, KeyPair, TaskAddress, TaskConfiguration
from fargate_login.core.settings import LoginSettings

from aws_fakes import TASK_ARN, attached_task, client_error, task_response


@pytest.fixture
def controller(session: MagicMock, key_pair: KeyPair) -> Iterator[MagicMock]:
    """Patch key generation, session creation and the ssh client."""
    with (
        patch("fargate_login.core.login.generate_key_pair", return_value=key_pair),
        patch("fargate_login.core.login.create_session", return_value=session),
        patch("fargate_login.core.login.open_shell", return_value=0) as open_shell,
    ):
        yield open_shell


def test_run_login_runs_phases_in_order(
    controller: MagicMock,
    ecs_client: MagicMock,
    private_config: TaskConfiguration,
    login_settings: LoginSettings,
    sleep: MagicMock,
) -> None:
    """Launch, wait, resolve, ssh, then wait for the task to stop."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}
    running = attached_task(details=[{"name": "privateIPv4Address", "value": "10.0.0.5"}])
    ecs_client.describe_tasks.side_effect = [running, running, task_response("STOPPED")]
    messages: list[str] = []

    exit_code = run_login(private_config, login_settings, messages.append)

    assert exit_code == 0
    key_path, address, settings = controller.call_args.args
    assert isinstance(key_path, Path)
    assert not key_path.exists()
    assert address == TaskAddress(ip_address="10.0.0.5", kind=AddressKind.PRIVATE)
    assert settings is login_settings
    ecs_client.stop_task.assert_not_called()
    assert messages[0] == f"Started task with ARN: {TASK_ARN}"
    assert f"Task {TASK_ARN} is running at 10.0.0.5 (private)!" in messages


def test_run_login_cleans_up_when_shell_fails(
    controller: MagicMock,
    ecs_client: MagicMock,
    private_config: TaskConfiguration,
    login_settings: LoginSettings,
    sleep: MagicMock,
) -> None:
    """An ssh failure still stops the task."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}
    running = attached_task(details=[{"name": "privateIPv4Address", "value": "10.0.0.5"}])
    ecs_client.describe_tasks.return_value = running
    controller.side_effect = ShellError("SSH client 'ssh' not found on PATH.")

    with pytest.raises(ShellError):
        run_login(private_config, login_settings, MagicMock())

    ecs_client.stop_task.assert_called_once()


def test_run_login_cleans_up_when_task_never_runs(
    controller: MagicMock,
    ecs_client: MagicMock,
    config: TaskConfiguration,
    login_settings: LoginSettings,
    sleep: MagicMock,
) -> None:
    """A readiness failure runs the clean-up exactly once."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}
    ecs_client.describe_tasks.side_effect = [
        task_response("PENDING"),
        task_response("PENDING"),
        task_response("PENDING"),  # diagnostic
        task_response("STOPPED"),  # clean-up poll
    ]

    with pytest.raises(NotReadyError):
        run_login(config, login_settings, MagicMock())

    controller.assert_not_called()
    ecs_client.stop_task.assert_not_called()
    assert ecs_client.describe_tasks.call_count == 4


def test_cleanup_failure_does_not_replace_session_error(
    controller: MagicMock,
    ecs_client: MagicMock,
    config: TaskConfiguration,
    login_settings: LoginSettings,
    sleep: MagicMock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """When the task never runs and clean-up also fails, the readiness error wins."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}
    ecs_client.describe_tasks.side_effect = [
        task_response("PENDING"),
        task_response("PENDING"),
        task_response("PENDING"),  # diagnostic
        client_error("ServerException", "service unavailable", "DescribeTasks"),
    ]

    with caplog.at_level(logging.ERROR, logger="fargate_login.core.login"):
        with pytest.raises(NotReadyError):
            run_login(config, login_settings, MagicMock())

    ecs_client.stop_task.assert_not_called()
    assert f"Clean-up of task {TASK_ARN} failed" in caplog.text


def test_cleanup_failure_after_successful_session_is_raised(
    controller: MagicMock,
    ecs_client: MagicMock,
    private_config: TaskConfiguration,
    login_settings: LoginSettings,
    sleep: MagicMock,
) -> None:
    """With no earlier error, a failing clean-up query is reported."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}
    running = attached_task(details=[{"name": "privateIPv4Address", "value": "10.0.0.5"}])
    ecs_client.describe_tasks.side_effect = [
        running,
        running,
        client_error("ServerException", "service unavailable", "DescribeTasks"),
    ]

    with pytest.raises(QueryError):
        run_login(private_config, login_settings, MagicMock())

    controller.assert_called_once()


def test_run_login_skips_cleanup_when_launch_fails(
    controller: MagicMock,
    ecs_client: MagicMock,
    config: TaskConfiguration,
    login_settings: LoginSettings,
) -> None:
    """Without a launched task there is nothing to clean up."""
    ecs_client.run_task.side_effect = client_error("ClientException", "no such task definition")

    with pytest.raises(LaunchError):
        run_login(config, login_settings, MagicMock())

    ecs_client.describe_tasks.assert_not_called()
    ecs_client.stop_task.assert_not_called()


def test_launched_task_cleans_up_on_interrupt(
    session: MagicMock,
    ecs_client: MagicMock,
    config: TaskConfiguration,
    key_pair: KeyPair,
    login_settings: LoginSettings,
    sleep: MagicMock,
) -> None:
    """A keyboard interrupt inside the session still triggers clean-up."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}
    ecs_client.describe_tasks.return_value = task_response("STOPPED")

    with pytest.raises(KeyboardInterrupt):
        with launched_task(session, config, key_pair, login_settings, MagicMock()):
            raise KeyboardInterrupt

    ecs_client.describe_tasks.assert_called_once()


def test_termination_signal_becomes_system_exit() -> None:
    """SIGTERM unwinds the stack so clean-up code runs."""
    previous = signal.getsignal(signal.SIGTERM)

    with pytest.raises(SystemExit) as exc_info:
        with exit_on_termination_signals():
            signal.raise_signal(signal.SIGTERM)

    assert exc_info.value.code == 128 + signal.SIGTERM
    assert signal.getsignal(signal.SIGTERM) == previous


def test_second_termination_signal_does_not_abort_cleanup(
    session: MagicMock,
    ecs_client: MagicMock,
    config: TaskConfiguration,
    key_pair: KeyPair,
    login_settings: LoginSettings,
    sleep: MagicMock,
) -> None:
    """A SIGTERM arriving while the task is being stopped leaves the forced stop in place."""
    ecs_client.run_task.return_value = {"tasks": [{"taskArn": TASK_ARN}]}

    def still_running(**_kwargs: Any) -> dict[str, Any]:
        signal.raise_signal(signal.SIGTERM)
        return task_response("RUNNING")

    ecs_client.describe_tasks.side_effect = still_running
    previous = signal.getsignal(signal.SIGTERM)

    with pytest.raises(SystemExit) as exc_info:
        with exit_on_termination_signals():
            with launched_task(session, config, key_pair, login_settings, MagicMock()):
                signal.raise_signal(signal.SIGTERM)

    assert exc_info.value.code == 128 + signal.SIGTERM
    assert ecs_client.describe_tasks.call_count == 2
    ecs_client.stop_task.assert_called_once()
    assert signal.getsignal(signal.SIGTERM) == previous
