"""AWS account and connectivity commands."""

import sys

import click

from codedeployctl.clients.aws import (
    ClientBundle,
    ClientFactory,
    CredentialResolver,
    check_connection,
    get_caller_identity,
    supported_regions,
)
from codedeployctl.config import PublisherConfig
from codedeployctl.core.context import CodeDeployCtlContext, pass_context
from codedeployctl.core.exceptions import CodeDeployCtlError, ConfigError


def build_bundle(publisher: PublisherConfig) -> ClientBundle:
    """Resolve credentials and create clients for a publisher config."""
    region = publisher.get_region()
    if not region:
        raise ConfigError("No AWS region configured")
    proxy = publisher.proxy.to_settings()
    credential = CredentialResolver(region=region, proxy=proxy).resolve(publisher.auth_strategy())
    return ClientFactory().build(region, credential, proxy)


@click.command("test-connection")
@click.option("--region", help="AWS region")
@pass_context
def connection_test(ctx: CodeDeployCtlContext, region: str | None) -> None:
    """Check the bucket is writable and the application exists.

    Writes an empty tmp-<uuid>.txt object to the configured bucket.
    """
    publisher = ctx.publisher_config({"region": region})
    try:
        bundle = build_bundle(publisher)
        check_connection(bundle, publisher.bucket, publisher.application_name)
    except CodeDeployCtlError as e:
        ctx.output.print_error(f"Connection test failed with error: {e}")
        sys.exit(1)
    ctx.output.print_success("Connection test passed.")


@click.command("whoami")
@click.option("--region", help="AWS region")
@pass_context
def whoami(ctx: CodeDeployCtlContext, region: str | None) -> None:
    """Show the account and identity the configured credentials resolve to."""
    publisher = ctx.publisher_config({"region": region})
    identity = get_caller_identity(build_bundle(publisher))
    ctx.output.print_data(identity, title="Caller Identity")


@click.command("regions")
@pass_context
def regions(ctx: CodeDeployCtlContext) -> None:
    """List regions CodeDeploy is available in."""
    data = [{"Region": name} for name in sorted(supported_regions())]
    ctx.output.print_data(data, headers=["Region"], title=f"CodeDeploy Regions ({len(data)})")
