"""SSH client invocation for a running task."""

import logging
import os
import shutil
import subprocess  # nosec B404
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from fargate_login.core.errors import ShellError
from fargate_login.core.models import KeyPair, TaskAddress
from fargate_login.core.settings import LoginSettings

logger = logging.getLogger(__name__)

KEY_FILE_PREFIX = "tmpsshkey"


@contextmanager
def private_key_file(key_pair: KeyPair) -> Iterator[Path]:
    """Write the private key to a scratch file readable only by the user.

    `mkstemp` creates the file with mode 0600. The file is removed when the
    context exits, however it exits.

    Args:
        key_pair: Key pair holding the private key.

    Yields:
        Path of the key file.
    """
    fd, name = tempfile.mkstemp(prefix=KEY_FILE_PREFIX)
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="ascii") as handle:
            handle.write(key_pair.private_key_pem)
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug(f"Removed private key file {path}")


def build_ssh_command(
    key_path: Path,
    address: TaskAddress,
    settings: LoginSettings,
) -> list[str]:
    """Build the ssh command line.

    Host keys are not checked or recorded: every task is a new host.

    Args:
        key_path: Private key file.
        address: Task address.
        settings: Login settings with port, user and client binary.

    Returns:
        The command and its arguments.
    """
    return [
        settings.ssh_binary,
        "-p",
        str(settings.ssh_port),
        "-i",
        str(key_path),
        "-o",
        "UserKnownHostsFile=/dev/null",
        "-o",
        "StrictHostKeyChecking=no",
        f"{settings.ssh_user}@{address.ip_address}",
    ]


def open_shell(key_path: Path, address: TaskAddress, settings: LoginSettings) -> int:
    """Run an interactive ssh session attached to this terminal.

    Args:
        key_path: Private key file.
        address: Task address.
        settings: Login settings.

    Returns:
        The ssh exit status.

    Raises:
        ShellError: When the ssh client cannot be found or started.
    """
    resolved = shutil.which(settings.ssh_binary)
    if resolved is None:
        raise ShellError(f"SSH client '{settings.ssh_binary}' not found on PATH.")

    command = build_ssh_command(key_path, address, settings)
    command[0] = resolved
    logger.debug(f"Running {' '.join(command)}")
    try:
        result = subprocess.run(command, check=False)  # nosec B603
    except OSError as exc:
        raise ShellError(f"Failed to start SSH client: {exc}") from exc
    return result.returncode
