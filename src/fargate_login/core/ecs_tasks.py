"""ECS task lifecycle for a login session: launch, wait, locate, stop."""

import logging
import time
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any, cast

from botocore.exceptions import ClientError

from fargate_login.core.errors import (
    AddressResolutionError,
    ForceStopError,
    LaunchError,
    NotReadyError,
    QueryError,
    platform_error_from,
)
from fargate_login.core.models import (
    READY_POLL_POLICY,
    STOP_POLL_POLICY,
    AddressKind,
    KeyPair,
    PollPolicy,
    TaskAddress,
    TaskConfiguration,
    TaskHandle,
)

logger = logging.getLogger(__name__)

STARTED_BY = "ecs-fargate-login"
LAUNCH_TYPE = "FARGATE"
PUBLIC_KEY_ENV_VAR = "_AUTHORIZED_PUBLIC_KEY"
STOP_REASON = "Stopped by ecs-fargate-login"

PRIVATE_IP_DETAIL = "privateIPv4Address"
NETWORK_INTERFACE_DETAIL = "networkInterfaceId"

STATUS_RUNNING = "RUNNING"
STATUS_STOPPED = "STOPPED"
FAILURE_MISSING = "MISSING"


class PollOutcome(Enum):
    """Result of evaluating one task status response."""

    DONE = "done"
    FAILED = "failed"
    PENDING = "pending"


def launch_task(session: Any, config: TaskConfiguration, key_pair: KeyPair) -> TaskHandle:
    """Run one Fargate task with the public key injected.

    Args:
        session: boto3 session.
        config: Task configuration.
        key_pair: Key pair whose public half authorises the SSH login.

    Returns:
        Handle of the started task.

    Raises:
        LaunchError: When ECS rejects the request or starts no task.
    """
    ecs = session.client("ecs")
    request: dict[str, Any] = {
        "cluster": config.cluster_name,
        "taskDefinition": config.task_definition_name,
        "launchType": LAUNCH_TYPE,
        "count": 1,
        "startedBy": STARTED_BY,
        "overrides": {
            "containerOverrides": [
                {
                    "name": config.container_name,
                    "environment": [
                        {"name": PUBLIC_KEY_ENV_VAR, "value": key_pair.public_key_authorized},
                    ],
                }
            ]
        },
        "networkConfiguration": {
            "awsvpcConfiguration": {
                "assignPublicIp": "ENABLED" if config.assign_public_ip else "DISABLED",
                "securityGroups": list(config.security_groups),
                "subnets": list(config.subnets),
            }
        },
    }

    try:
        response = ecs.run_task(**request)
    except ClientError as exc:
        raise LaunchError("Failed to run ECS task", platform_error_from(exc)) from exc

    tasks = response.get("tasks", [])
    if not tasks:
        failures = response.get("failures", [])
        raise LaunchError(f"Failed to run task: {failures}")

    task_arn = cast(str, tasks[0]["taskArn"])
    logger.info(f"Launched task {task_arn} on cluster {config.cluster_name}")
    return TaskHandle(task_arn=task_arn)


def describe_task(session: Any, config: TaskConfiguration, handle: TaskHandle) -> dict[str, Any]:
    """Fetch the raw describe_tasks response for one task.

    Raises:
        QueryError: When the ECS call fails.
    """
    ecs = session.client("ecs")
    try:
        return cast(
            dict[str, Any],
            ecs.describe_tasks(cluster=config.cluster_name, tasks=[handle.task_arn]),
        )
    except ClientError as exc:
        raise QueryError(
            f"Failed to describe task {handle.task_arn}", platform_error_from(exc)
        ) from exc


def wait_for_task_running(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
    policy: PollPolicy = READY_POLL_POLICY,
) -> None:
    """Block until the task reports RUNNING.

    A task that stops or disappears while starting fails the wait early.

    Args:
        session: boto3 session.
        config: Task configuration.
        handle: Task to wait for.
        policy: Polling interval and attempt budget.

    Raises:
        NotReadyError: When the task is not running within the budget.
        QueryError: When a status query fails.
    """
    outcome = _poll_task(session, config, handle, policy, _running_outcome)
    if outcome is PollOutcome.DONE:
        logger.info(f"Task {handle.task_arn} is running")
        return

    fallback = (
        f"Task {handle.task_arn} did not reach {STATUS_RUNNING} "
        f"after {policy.max_attempts} status checks."
    )
    raise NotReadyError(_fetch_diagnostic(session, config, handle, fallback))


def resolve_task_address(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
) -> TaskAddress:
    """Determine the IP address to connect to.

    ECS exposes only the private address of an awsvpc task. For a public
    address the attachment's network interface is looked up in EC2.

    Lookups by container name, attachment ID and detail name keep the first
    match when the response holds duplicates.

    Args:
        session: boto3 session.
        config: Task configuration.
        handle: Running task.

    Returns:
        The task address.

    Raises:
        AddressResolutionError: When the attachment or address is missing.
        QueryError: When an ECS or EC2 call fails.
    """
    response = describe_task(session, config, handle)
    task = _single_task(response, handle)

    containers = index_first(task.get("containers", []), "name")
    container = containers.get(config.container_name)
    if container is None:
        raise AddressResolutionError(
            f"Container '{config.container_name}' not found in task {handle.task_arn}."
        )

    interfaces = container.get("networkInterfaces", [])
    attachment_id = interfaces[0].get("attachmentId") if interfaces else None
    if not attachment_id:
        raise AddressResolutionError(
            f"Container '{config.container_name}' has no network attachment."
        )

    attachment = index_first(task.get("attachments", []), "id").get(attachment_id)
    if attachment is None:
        raise AddressResolutionError(f"Attachment {attachment_id} not found in task details.")

    detail_name = NETWORK_INTERFACE_DETAIL if config.assign_public_ip else PRIVATE_IP_DETAIL
    value = detail_values(attachment.get("details", [])).get(detail_name)
    if not value:
        raise AddressResolutionError(
            f"Attachment {attachment_id} has no '{detail_name}' detail."
        )

    if not config.assign_public_ip:
        return TaskAddress(ip_address=value, kind=AddressKind.PRIVATE)

    return TaskAddress(ip_address=_public_ip_for_interface(session, value), kind=AddressKind.PUBLIC)


def cleanup_task(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
    reporter: Callable[[str], None],
    policy: PollPolicy = STOP_POLL_POLICY,
) -> None:
    """Wait for the task to stop, forcibly stopping it if it does not.

    Args:
        session: boto3 session.
        config: Task configuration.
        handle: Task to clean up.
        reporter: Callback for user-facing progress messages.
        policy: Polling interval and attempt budget.

    Raises:
        ForceStopError: When the forced stop request fails.
        QueryError: When a status query fails.
    """
    outcome = _poll_task(session, config, handle, policy, _stopped_outcome)
    if outcome is PollOutcome.DONE:
        logger.info(f"Task {handle.task_arn} stopped")
        return

    reporter(
        f"Task hasn't stopped within {policy.total_seconds:g} seconds; "
        "forcibly stopping task..."
    )
    stop_task(session, config, handle)
    reporter("Task stopped.")


def stop_task(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
    reason: str = STOP_REASON,
) -> None:
    """Request ECS to stop the task without waiting for it to stop.

    Raises:
        ForceStopError: When the stop request fails.
    """
    ecs = session.client("ecs")
    try:
        ecs.stop_task(cluster=config.cluster_name, task=handle.task_arn, reason=reason)
    except ClientError as exc:
        raise ForceStopError(
            f"Failed to stop task {handle.task_arn}", platform_error_from(exc)
        ) from exc


def describe_task_diagnostics(task: dict[str, Any]) -> str:
    """Summarise task and container status for an error message."""
    status = str(task.get("lastStatus", "UNKNOWN"))
    lines = [f"Task in status {status}"]
    if status == STATUS_STOPPED:
        lines.append(f"Stopped reason: {task.get('stoppedReason', 'unknown')}")
    for container in task.get("containers", []):
        name = container.get("name", "?")
        lines.append(f"[{name}] Status: {container.get('lastStatus', 'UNKNOWN')}")
        lines.append(f"[{name}] Status reason: {container.get('reason', 'none')}")
    return "\n".join(lines)


def index_first(items: Iterable[dict[str, Any]], key: str) -> dict[str, dict[str, Any]]:
    """Index items by a key, keeping the first item for each value."""
    index: dict[str, dict[str, Any]] = {}
    for item in items:
        value = item.get(key)
        if value is not None:
            index.setdefault(str(value), item)
    return index


def detail_values(details: Iterable[dict[str, Any]]) -> dict[str, str]:
    """Map attachment detail names to values, keeping the first of each name."""
    return {name: str(item.get("value", "")) for name, item in index_first(details, "name").items()}


def _poll_task(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
    policy: PollPolicy,
    evaluate: Callable[[dict[str, Any]], PollOutcome],
) -> PollOutcome:
    """Query the task until `evaluate` settles or the budget runs out."""
    for attempt in range(1, policy.max_attempts + 1):
        outcome = evaluate(describe_task(session, config, handle))
        logger.debug(
            f"Task {handle.task_arn} poll {attempt}/{policy.max_attempts}: {outcome.value}"
        )
        if outcome is not PollOutcome.PENDING:
            return outcome
        if attempt < policy.max_attempts:
            time.sleep(policy.interval_seconds)
    return PollOutcome.PENDING


def _running_outcome(response: dict[str, Any]) -> PollOutcome:
    if _is_missing(response):
        return PollOutcome.FAILED
    statuses = _task_statuses(response)
    if STATUS_STOPPED in statuses:
        return PollOutcome.FAILED
    if statuses and all(status == STATUS_RUNNING for status in statuses):
        return PollOutcome.DONE
    return PollOutcome.PENDING


def _stopped_outcome(response: dict[str, Any]) -> PollOutcome:
    if _is_missing(response):
        return PollOutcome.DONE
    statuses = _task_statuses(response)
    if statuses and all(status == STATUS_STOPPED for status in statuses):
        return PollOutcome.DONE
    return PollOutcome.PENDING


def _task_statuses(response: dict[str, Any]) -> list[str]:
    return [str(task.get("lastStatus", "")) for task in response.get("tasks", [])]


def _is_missing(response: dict[str, Any]) -> bool:
    return any(
        failure.get("reason") == FAILURE_MISSING for failure in response.get("failures", [])
    )


def _single_task(response: dict[str, Any], handle: TaskHandle) -> dict[str, Any]:
    tasks = response.get("tasks", [])
    if not tasks:
        failures = response.get("failures", [])
        raise AddressResolutionError(f"Task {handle.task_arn} not found: {failures}")
    return cast(dict[str, Any], tasks[0])


def _fetch_diagnostic(
    session: Any,
    config: TaskConfiguration,
    handle: TaskHandle,
    fallback: str,
) -> str:
    """Describe why the task is not running, falling back when that fails too."""
    try:
        response = describe_task(session, config, handle)
    except QueryError as exc:
        logger.warning(f"Could not fetch task diagnostics: {exc}")
        return fallback

    tasks = response.get("tasks", [])
    if not tasks:
        return f"{fallback}\nTask not found: {response.get('failures', [])}"
    return describe_task_diagnostics(tasks[0])


def _public_ip_for_interface(session: Any, interface_id: str) -> str:
    """Look up the public IP associated with a network interface."""
    ec2 = session.client("ec2")
    try:
        response = ec2.describe_network_interfaces(NetworkInterfaceIds=[interface_id])
    except ClientError as exc:
        raise QueryError(
            f"Failed to describe network interface {interface_id}", platform_error_from(exc)
        ) from exc

    interfaces = response.get("NetworkInterfaces", [])
    if len(interfaces) != 1:
        raise AddressResolutionError(
            f"Expected one network interface for {interface_id}, found {len(interfaces)}."
        )

    public_ip = interfaces[0].get("Association", {}).get("PublicIp")
    if not public_ip:
        raise AddressResolutionError(
            f"Network interface {interface_id} has no public IP association."
        )
    return str(public_ip)
