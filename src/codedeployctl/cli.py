"""Main CLI entry point for codedeployctl."""

import sys
from typing import Any

import click
from rich.console import Console

from codedeployctl import __version__
from codedeployctl.config import load_config
from codedeployctl.core.context import CodeDeployCtlContext
from codedeployctl.core.exceptions import CodeDeployCtlError, ConfigError
from codedeployctl.core.output import OutputFormat


CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "max_content_width": 120,
}


class OutputFormatType(click.ParamType):
    """Custom Click parameter type for output format."""

    name = "format"

    def convert(
        self,
        value: Any,
        param: click.Parameter | None,
        ctx: click.Context | None,
    ) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        try:
            return OutputFormat(value.lower())
        except ValueError:
            self.fail(
                f"Invalid format '{value}'. Choose from: table, json, yaml, raw",
                param,
                ctx,
            )


OUTPUT_FORMAT = OutputFormatType()


def print_version(ctx: click.Context, param: click.Parameter, value: bool) -> None:
    """Print version and exit."""
    if not value or ctx.resilient_parsing:
        return
    console = Console()
    console.print(f"codedeployctl version {__version__}")
    ctx.exit()


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-p",
    "--profile",
    metavar="NAME",
    envvar="CODEDEPLOYCTL_PROFILE",
    help="Configuration profile to use",
)
@click.option(
    "-o",
    "--output",
    "output_format",
    type=OUTPUT_FORMAT,
    metavar="FORMAT",
    help="Output format: table, json, yaml, raw",
)
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Increase verbosity (-v for info, -vv for debug)",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    help="Suppress non-essential output",
)
@click.option(
    "--no-color",
    is_flag=True,
    help="Disable colored output",
)
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True),
    metavar="FILE",
    envvar="CODEDEPLOYCTL_CONFIG",
    help="Path to config file",
)
@click.option(
    "--version",
    is_flag=True,
    callback=print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit",
)
@click.pass_context
def cli(
    ctx: click.Context,
    profile: str | None,
    output_format: OutputFormat | None,
    verbose: int,
    quiet: bool,
    no_color: bool,
    config_file: str | None,
) -> None:
    """codedeployctl - ship a build to AWS CodeDeploy.

    Packages a workspace, uploads it to S3, registers it as a CodeDeploy
    revision and optionally deploys it, waiting for the result.

    \b
    Examples:
        codedeployctl deploy
        codedeployctl -p production deploy -e BUILD_NUMBER=42
        codedeployctl test-connection
        codedeployctl regions

    \b
    Configuration:
        ~/.codedeployctl/config.yaml    User configuration
        ./codedeployctl.yaml            Project configuration
        CODEDEPLOYCTL_*                 Environment variables
    """
    try:
        config = load_config(config_file)

        ctx.obj = CodeDeployCtlContext(
            config=config,
            profile=profile,
            output_format=output_format,
            verbose=verbose,
            quiet=quiet,
            color=not no_color,
        )

    except ConfigError as e:
        console = Console(stderr=True)
        console.print(f"[red]Configuration error:[/red] {e}")
        sys.exit(1)


def register_commands() -> None:
    """Register all commands."""
    from codedeployctl.commands.aws import connection_test, regions, whoami
    from codedeployctl.commands.deploy import deploy

    cli.add_command(deploy)
    cli.add_command(connection_test)
    cli.add_command(whoami)
    cli.add_command(regions)


register_commands()


@cli.command()
@click.pass_context
def config(ctx: click.Context) -> None:
    """Show the active deployment profile with secrets masked."""
    cdctx: CodeDeployCtlContext = ctx.obj
    publisher = cdctx.publisher_config()
    data = {
        "profile": cdctx.profile_name,
        "output_format": cdctx.output_format.value,
        "verbose": cdctx.verbose,
        **publisher.masked_dict(),
        "resolved_region": publisher.get_region(),
    }
    cdctx.output.print_data(data, title="Current Configuration")


def main() -> None:
    """Main entry point."""
    try:
        cli()
    except CodeDeployCtlError as e:
        console = Console(stderr=True)
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)


if __name__ == "__main__":
    main()
