"""Data models for a Fargate login session."""

from dataclasses import dataclass
from enum import Enum

from fargate_login.core.errors import ConfigError

DEFAULT_CLUSTER_NAME = "default"
DEFAULT_CONTAINER_NAME = "cli"


@dataclass(frozen=True)
class TaskConfiguration:
    """Where and how the login task is run."""

    task_definition_name: str
    security_groups: tuple[str, ...]
    subnets: tuple[str, ...]
    cluster_name: str = DEFAULT_CLUSTER_NAME
    container_name: str = DEFAULT_CONTAINER_NAME
    assign_public_ip: bool = True

    @classmethod
    def from_options(
        cls,
        task_definition_name: str | None,
        security_groups: str | None,
        subnets: str | None,
        cluster_name: str = DEFAULT_CLUSTER_NAME,
        container_name: str = DEFAULT_CONTAINER_NAME,
        assign_public_ip: bool = True,
    ) -> "TaskConfiguration":
        """Build a configuration from raw option values.

        Args:
            task_definition_name: Task definition family, family:revision or ARN.
            security_groups: Comma-delimited security group IDs.
            subnets: Comma-delimited subnet IDs.
            cluster_name: ECS cluster name.
            container_name: Container running the SSH server.
            assign_public_ip: Whether the task gets a public IP.

        Returns:
            The parsed configuration.

        Raises:
            ConfigError: When a required value is missing or empty.
        """
        name = (task_definition_name or "").strip()
        group_ids = split_ids(security_groups)
        subnet_ids = split_ids(subnets)

        missing = [
            label
            for label, value in (
                ("task definition", name),
                ("security groups", group_ids),
                ("subnets", subnet_ids),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}.")

        return cls(
            task_definition_name=name,
            security_groups=group_ids,
            subnets=subnet_ids,
            cluster_name=cluster_name.strip() or DEFAULT_CLUSTER_NAME,
            container_name=container_name.strip() or DEFAULT_CONTAINER_NAME,
            assign_public_ip=assign_public_ip,
        )


def split_ids(value: str | None) -> tuple[str, ...]:
    """Split a comma-delimited list of IDs, keeping order and dropping blanks."""
    if not value:
        return ()
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class KeyPair:
    """An SSH key pair in string form."""

    private_key_pem: str
    public_key_authorized: str

    def __repr__(self) -> str:
        return f"KeyPair(public_key_authorized={self.public_key_authorized!r})"


@dataclass(frozen=True)
class TaskHandle:
    """A launched ECS task."""

    task_arn: str


class AddressKind(str, Enum):
    """Which network address of a task is used."""

    PRIVATE = "private"
    PUBLIC = "public"


@dataclass(frozen=True)
class TaskAddress:
    """The address an SSH session connects to."""

    ip_address: str
    kind: AddressKind


@dataclass(frozen=True)
class PollPolicy:
    """Fixed-interval polling budget."""

    interval_seconds: float
    max_attempts: int

    @property
    def total_seconds(self) -> float:
        """Return the longest time a wait with this policy sleeps."""
        return self.interval_seconds * self.max_attempts


# 5 seconds * 60 = 5 minutes
READY_POLL_POLICY = PollPolicy(interval_seconds=5, max_attempts=60)
# 5 seconds * 12 = 1 minute
STOP_POLL_POLICY = PollPolicy(interval_seconds=5, max_attempts=12)
