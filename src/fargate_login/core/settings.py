"""Runtime settings for Fargate login sessions."""

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from fargate_login.config.paths import env_path
from fargate_login.core.errors import ConfigError
from fargate_login.core.models import READY_POLL_POLICY, STOP_POLL_POLICY, PollPolicy

ENV_FILE_PATH = str(env_path())


class LoginSettings(BaseSettings):
    """Settings that are not part of the task configuration.

    Values come from `FARGATE_LOGIN_*` environment variables or the user env
    file; command line flags take precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="FARGATE_LOGIN_",
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    ssh_port: int = Field(default=22, ge=1, le=65535, description="SSH port on the task")
    ssh_user: str = Field(default="root", min_length=1, description="SSH login user")
    ssh_binary: str = Field(default="ssh", description="SSH client executable")

    aws_region: str | None = Field(default=None, description="AWS region for ECS and EC2")
    aws_profile: str | None = Field(default=None, description="AWS shared config profile")

    ready_poll_interval: float = Field(default=READY_POLL_POLICY.interval_seconds, gt=0)
    ready_poll_attempts: int = Field(default=READY_POLL_POLICY.max_attempts, ge=1)
    stop_poll_interval: float = Field(default=STOP_POLL_POLICY.interval_seconds, gt=0)
    stop_poll_attempts: int = Field(default=STOP_POLL_POLICY.max_attempts, ge=1)

    @property
    def ready_policy(self) -> PollPolicy:
        """Return the polling budget for the task to start."""
        return PollPolicy(self.ready_poll_interval, self.ready_poll_attempts)

    @property
    def stop_policy(self) -> PollPolicy:
        """Return the polling budget for the task to stop."""
        return PollPolicy(self.stop_poll_interval, self.stop_poll_attempts)


def get_settings(**overrides: object) -> LoginSettings:
    """Load settings, applying any non-None overrides.

    Args:
        overrides: Values taken from command line flags.

    Returns:
        The loaded settings.

    Raises:
        ConfigError: When a setting has an invalid value.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return LoginSettings(**values)  # type: ignore[arg-type]
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc
