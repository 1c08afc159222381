"""AWS credential resolution and client factory using boto3."""

import uuid
from dataclasses import dataclass, field
from functools import lru_cache, wraps
from typing import Any, Callable

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from codedeployctl.core.exceptions import (
    AWSError,
    AssumeRoleError,
    ConfigError,
    MissingKeysError,
    UnknownRegionError,
)
from codedeployctl.core.logging import StructuredLogger, mask_value
from codedeployctl.deploy.models import (
    AMBIENT_CREDENTIAL,
    AmbientChain,
    AssumedRole,
    AuthStrategy,
    Credential,
    DirectKeys,
    PollingPolicy,
    ProxySettings,
)

logger = StructuredLogger(__name__)

MIN_SESSION_DURATION_SECONDS = 900
MAX_SESSION_DURATION_SECONDS = 3600

SessionFactory = Callable[..., boto3.Session]


def session_duration_seconds(policy: PollingPolicy) -> int:
    """Session length requested when assuming a role.

    Multiplies the polling timeout by the polling interval, capped at one
    hour and raised to the STS minimum of 15 minutes.
    """
    # TODO: decide whether this should be timeout_seconds alone; the product
    # of two durations has no meaningful unit
    duration = policy.timeout_seconds * policy.interval_seconds
    return max(MIN_SESSION_DURATION_SECONDS, min(duration, MAX_SESSION_DURATION_SECONDS))


@lru_cache(maxsize=1)
def supported_regions() -> frozenset[str]:
    """All regions botocore knows CodeDeploy endpoints for, across partitions."""
    session = boto3.Session()
    regions: set[str] = set()
    for partition in session.get_available_partitions():
        regions.update(session.get_available_regions("codedeploy", partition_name=partition))
    return frozenset(regions)


def client_config(proxy: ProxySettings | None = None) -> BotoConfig:
    """Client configuration shared by every client in a bundle.

    Automatic retries are disabled; a failed call fails the stage.
    """
    kwargs: dict[str, Any] = {
        "retries": {"total_max_attempts": 1, "mode": "standard"},
        "connect_timeout": 10,
        "read_timeout": 60,
    }
    if proxy is not None and proxy.enabled:
        kwargs["proxies"] = {"http": proxy.url, "https": proxy.url}
    return BotoConfig(**kwargs)


class CredentialResolver:
    """Turns an AuthStrategy into a Credential."""

    def __init__(
        self,
        region: str | None = None,
        proxy: ProxySettings | None = None,
        session_factory: SessionFactory = boto3.Session,
    ):
        self._region = region
        self._proxy = proxy
        self._session_factory = session_factory

    def resolve(self, strategy: AuthStrategy) -> Credential:
        """Resolve credentials for the given strategy.

        Args:
            strategy: DirectKeys, AmbientChain or AssumedRole

        Returns:
            Credential; AMBIENT_CREDENTIAL for the default chain

        Raises:
            MissingKeysError: DirectKeys without a complete key pair
            AssumeRoleError: STS rejected the role assumption
        """
        if isinstance(strategy, DirectKeys):
            return self._from_keys(strategy)
        if isinstance(strategy, AmbientChain):
            logger.debug("Using the default credential chain")
            return AMBIENT_CREDENTIAL
        if isinstance(strategy, AssumedRole):
            return self._assume_role(strategy)
        raise ConfigError(f"Unsupported authentication strategy: {type(strategy).__name__}")

    def _from_keys(self, strategy: DirectKeys) -> Credential:
        if not strategy.access_key_id and not strategy.secret_access_key:
            raise MissingKeysError("Access key authentication selected but no keys were provided")
        if not strategy.access_key_id or not strategy.secret_access_key:
            raise MissingKeysError("Both an access key id and a secret access key are required")
        logger.debug("Using static access keys", access_key_id=mask_value(strategy.access_key_id))
        return Credential(
            access_key_id=strategy.access_key_id,
            secret_access_key=strategy.secret_access_key,
        )

    def _assume_role(self, strategy: AssumedRole) -> Credential:
        params: dict[str, Any] = {
            "RoleArn": strategy.role_arn,
            "RoleSessionName": strategy.session_name,
            "DurationSeconds": strategy.duration_seconds,
        }
        if strategy.external_id:
            params["ExternalId"] = strategy.external_id

        logger.info(
            "Assuming role",
            role_arn=strategy.role_arn,
            duration_seconds=strategy.duration_seconds,
        )
        try:
            session = self._session_factory(region_name=self._region)
            sts = session.client("sts", config=client_config(self._proxy))
            response = sts.assume_role(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            raise AssumeRoleError(
                f"Failed to assume role {strategy.role_arn}: {error.get('Message', str(e))}",
                role_arn=strategy.role_arn,
                error_code=error.get("Code"),
            )
        except BotoCoreError as e:
            raise AssumeRoleError(
                f"Failed to assume role {strategy.role_arn}: {e}",
                role_arn=strategy.role_arn,
            )

        creds = response["Credentials"]
        return Credential(
            access_key_id=creds["AccessKeyId"],
            secret_access_key=creds["SecretAccessKey"],
            session_token=creds["SessionToken"],
        )


@dataclass(frozen=True)
class ClientBundle:
    """S3 and CodeDeploy clients bound to one region and proxy."""

    s3: Any = field(repr=False)
    codedeploy: Any = field(repr=False)
    region: str
    proxy: ProxySettings | None = None
    session: Any = field(default=None, repr=False)

    def client(self, service_name: str) -> Any:
        """Create another client from the same session and settings."""
        if self.session is None:
            raise AWSError("Client bundle has no session", service=service_name)
        return self.session.client(service_name, config=client_config(self.proxy))


class ClientFactory:
    """Builds region-bound, optionally proxied, S3 and CodeDeploy clients."""

    def __init__(self, session_factory: SessionFactory = boto3.Session):
        self._session_factory = session_factory

    def build(
        self,
        region: str,
        credential: Credential,
        proxy: ProxySettings | None = None,
    ) -> ClientBundle:
        """Create the client bundle for one run.

        Raises:
            UnknownRegionError: If CodeDeploy is not available in region
            AWSError: If botocore cannot create the session or clients
        """
        if region not in supported_regions():
            raise UnknownRegionError(region)

        config = client_config(proxy)
        try:
            session = self._session_factory(region_name=region, **credential.session_kwargs())
            s3 = session.client("s3", config=config)
            codedeploy = session.client("codedeploy", config=config)
        except BotoCoreError as e:
            raise AWSError(f"Failed to create AWS clients: {e}")

        logger.debug(
            "Created AWS clients",
            region=region,
            proxy=proxy.url if proxy is not None and proxy.enabled else None,
            ambient=credential.is_ambient,
        )
        return ClientBundle(s3=s3, codedeploy=codedeploy, region=region, proxy=proxy, session=session)


def handle_aws_error(func: Any) -> Any:
    """Decorator to handle AWS errors consistently."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            error_message = e.response.get("Error", {}).get("Message", str(e))
            raise AWSError(
                f"{error_code}: {error_message}",
                operation=getattr(e, "operation_name", None),
            )
        except BotoCoreError as e:
            raise AWSError(str(e))

    return wrapper


def paginate(client: Any, method: str, key: str, **kwargs: Any) -> list[Any]:
    """Helper to paginate through AWS API results.

    Args:
        client: boto3 client
        method: Method name to call
        key: Key in response containing items
        **kwargs: Arguments to pass to the method

    Returns:
        List of all items across all pages
    """
    paginator = client.get_paginator(method)
    items = []

    for page in paginator.paginate(**kwargs):
        items.extend(page.get(key, []))

    return items


@handle_aws_error
def get_caller_identity(bundle: ClientBundle) -> dict[str, str]:
    """Return account id and ARN of the credentials behind the bundle."""
    identity = bundle.client("sts").get_caller_identity()
    return {"account": identity["Account"], "arn": identity["Arn"]}


@handle_aws_error
def check_connection(bundle: ClientBundle, bucket: str, application_name: str) -> None:
    """Check that the bucket is writable and the application is visible.

    Puts an empty tmp-<uuid>.txt object into the bucket, then looks up the
    CodeDeploy application.
    """
    test_key = f"tmp-{uuid.uuid4()}.txt"
    bundle.s3.put_object(Bucket=bucket, Key=test_key, Body=b"")
    logger.info("Wrote test object", bucket=bucket, key=test_key)

    bundle.codedeploy.get_application(applicationName=application_name)
    logger.info("Found CodeDeploy application", application=application_name)
