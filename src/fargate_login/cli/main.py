"""CLI entrypoint for ecs-fargate-login."""

import logging

import click
from botocore.exceptions import BotoCoreError

from fargate_login.cli.errors import report_error
from fargate_login.cli.ui import report_step
from fargate_login.core import FargateLoginError, TaskConfiguration, get_settings, run_login


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-n",
    "--task-definition",
    "task_definition",
    required=True,
    help="[Required] The name of the task definition this script will run an instance of.",
)
@click.option(
    "--sg",
    "--security-groups",
    "security_groups",
    required=True,
    help="[Required] A comma-delimited list of security groups the booted task should be assigned.",
)
@click.option(
    "--sn",
    "--subnets",
    "subnets",
    required=True,
    help="[Required] A comma-delimited list of subnets the task should consider when booting.",
)
@click.option(
    "--public/--no-public",
    "assign_public_ip",
    default=True,
    show_default=True,
    help="Whether the ECS task should be assigned a public IP.",
)
@click.option("--cluster", default="default", show_default=True, help="The ECS cluster name.")
@click.option(
    "--cli-container-name",
    "container_name",
    default="cli",
    show_default=True,
    help="The container in the task definition that runs the SSH server.",
)
@click.option("--ssh-port", type=click.IntRange(1, 65535), help="SSH port (default 22).")
@click.option("--ssh-user", help="SSH login user (default root).")
@click.option("--region", help="AWS region to use.")
@click.option("--profile", help="AWS shared config profile to use.")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.pass_context
def cli(
    ctx: click.Context,
    task_definition: str,
    security_groups: str,
    subnets: str,
    assign_public_ip: bool,
    cluster: str,
    container_name: str,
    ssh_port: int | None,
    ssh_user: str | None,
    region: str | None,
    profile: str | None,
    verbose: bool,
) -> None:
    """Start an ECS Fargate task and open an SSH session into it.

    The task is given a freshly generated public key and is stopped when the
    session ends.
    """
    configure_logging(verbose)
    try:
        config = TaskConfiguration.from_options(
            task_definition_name=task_definition,
            security_groups=security_groups,
            subnets=subnets,
            cluster_name=cluster,
            container_name=container_name,
            assign_public_ip=assign_public_ip,
        )
        settings = get_settings(
            ssh_port=ssh_port,
            ssh_user=ssh_user,
            aws_region=region,
            aws_profile=profile,
        )
        exit_code = run_login(config, settings, report_step)
    except (FargateLoginError, BotoCoreError) as exc:
        report_error(exc)
        ctx.exit(1)
    ctx.exit(process_exit_code(exit_code))


def process_exit_code(ssh_status: int) -> int:
    """Map an ssh return code to a process exit status.

    A negative return code means ssh was killed by that signal; it maps to
    the shell convention of 128 plus the signal number.
    """
    if ssh_status < 0:
        return 128 - ssh_status
    return ssh_status


def configure_logging(verbose: bool) -> None:
    """Configure root logging for the CLI.

    Args:
        verbose: Whether to log debug messages.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if verbose:
        # botocore debug output includes request bodies.
        logging.getLogger("botocore").setLevel(logging.INFO)
        logging.getLogger("urllib3").setLevel(logging.INFO)


def main() -> None:
    """Run the CLI."""
    cli()
