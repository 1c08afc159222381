"""Deploy command."""

import os
import sys
from typing import Any

import click

from codedeployctl.core.cancel import (
    CancellationToken,
    install_signal_handlers,
    restore_signal_handlers,
)
from codedeployctl.core.context import CodeDeployCtlContext, pass_context
from codedeployctl.core.macros import parse_env_assignments
from codedeployctl.deploy.models import DeploymentMethod, PollState
from codedeployctl.deploy.pipeline import DeploymentPipeline


def build_overrides(**options: Any) -> dict[str, Any]:
    """Turn command-line options into a nested config override mapping."""
    polling = {
        "wait_for_completion": options.pop("wait", None),
        "timeout_seconds": options.pop("timeout", None),
        "interval_seconds": options.pop("interval", None),
    }
    overrides = {k: v for k, v in options.items() if v is not None}
    polling = {k: v for k, v in polling.items() if v is not None}
    if polling:
        overrides["polling"] = polling
    return overrides


@click.command("deploy")
@click.option(
    "-w",
    "--workspace",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="Build workspace to package",
)
@click.option(
    "-e",
    "--env",
    "env_vars",
    multiple=True,
    metavar="KEY=VALUE",
    help="Extra variables for ${VAR} substitution (repeatable)",
)
@click.option("--bucket", help="S3 bucket for the revision")
@click.option("--prefix", help="S3 key prefix")
@click.option("--application", "application_name", help="CodeDeploy application name")
@click.option("--deployment-group", "deployment_group_name", help="CodeDeploy deployment group")
@click.option("--deployment-config", "deployment_config_name", help="CodeDeploy deployment config")
@click.option("--region", help="AWS region")
@click.option("--subdirectory", help="Workspace subdirectory to package")
@click.option("--includes", help="Comma separated include patterns")
@click.option("--excludes", help="Comma separated exclude patterns")
@click.option("--version-file", "version_file_name", help="File whose content names the archive")
@click.option("--build-name", help="Archive name prefix (defaults to $JOB_NAME or the application)")
@click.option(
    "--method",
    "deployment_method",
    type=click.Choice([m.value for m in DeploymentMethod]),
    help="Create and wait for a deployment, or only register the revision",
)
@click.option(
    "--appspec-per-group/--no-appspec-per-group",
    "deployment_group_appspec",
    default=None,
    help="Use appspec.<group>.yml as appspec.yml",
)
@click.option("--wait/--no-wait", default=None, help="Wait for the deployment to finish")
@click.option("--timeout", type=click.IntRange(min=1), help="Polling timeout in seconds")
@click.option("--interval", type=click.IntRange(min=1), help="Polling interval in seconds")
@pass_context
def deploy(
    ctx: CodeDeployCtlContext,
    workspace: str,
    env_vars: tuple[str, ...],
    **options: Any,
) -> None:
    """Package the workspace, upload it and deploy it with CodeDeploy.

    Exits with status 0 when the deployment succeeds and 1 otherwise.

    \b
    Examples:
        codedeployctl deploy
        codedeployctl -p staging deploy --workspace build/ -e VERSION=1.2.3
        codedeployctl deploy --method register-only
        codedeployctl deploy --no-wait
    """
    try:
        environ = {**os.environ, **parse_env_assignments(env_vars)}
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--env")

    publisher = ctx.publisher_config(build_overrides(**options))

    token = CancellationToken()
    previous = install_signal_handlers(token)
    pipeline = DeploymentPipeline(publisher, workspace, environ, token=token)
    try:
        success = pipeline.run()
    finally:
        restore_signal_handlers(previous)

    outcome = pipeline.outcome
    if outcome.revision is not None:
        ctx.output.print_summary(outcome.to_dict())

    if success:
        if outcome.state == PollState.SKIPPED:
            ctx.output.print_warning(
                f"Not waiting for deployment {outcome.deployment_id}; its result is unknown"
            )
        ctx.output.print_success("CodeDeploy step completed")
        return

    if outcome.error:
        ctx.output.print_error(f"CodeDeploy step failed: {outcome.error}")
    else:
        ctx.output.print_error("CodeDeploy step failed")
    sys.exit(1)
