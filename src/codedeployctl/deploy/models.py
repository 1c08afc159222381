"""Deployment data models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

from codedeployctl.core.exceptions import ConfigError

SUCCEEDED_STATUS = "Succeeded"
TERMINAL_STATUSES = frozenset({"Succeeded", "Failed", "Stopped"})


class AuthMethod(str, Enum):
    """How AWS credentials are obtained."""

    ACCESS_KEYS = "access-keys"
    DEFAULT_CHAIN = "default-chain"
    ASSUME_ROLE = "assume-role"


class DeploymentMethod(str, Enum):
    """What happens after the revision is registered."""

    CREATE_AND_WAIT = "create-and-wait"
    REGISTER_ONLY = "register-only"


class PollState(str, Enum):
    """Deployment poller states."""

    UNKNOWN = "unknown"
    IN_PROGRESS = "in-progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed-out"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DirectKeys:
    """Static access key pair."""

    access_key_id: str
    secret_access_key: str = field(repr=False)


@dataclass(frozen=True)
class AmbientChain:
    """Use boto3's default credential discovery."""


@dataclass(frozen=True)
class AssumedRole:
    """Temporary credentials from sts:AssumeRole."""

    role_arn: str
    external_id: str | None
    session_name: str
    duration_seconds: int


AuthStrategy = Union[DirectKeys, AmbientChain, AssumedRole]


@dataclass(frozen=True)
class Credential:
    """Resolved AWS credentials. All fields None means ambient discovery."""

    access_key_id: str | None = None
    secret_access_key: str | None = field(default=None, repr=False)
    session_token: str | None = field(default=None, repr=False)

    @property
    def is_ambient(self) -> bool:
        return self.access_key_id is None

    def session_kwargs(self) -> dict[str, str]:
        """Keyword arguments for boto3.Session."""
        if self.is_ambient:
            return {}
        kwargs = {
            "aws_access_key_id": self.access_key_id,
            "aws_secret_access_key": self.secret_access_key or "",
        }
        if self.session_token:
            kwargs["aws_session_token"] = self.session_token
        return kwargs


AMBIENT_CREDENTIAL = Credential()


@dataclass(frozen=True)
class ProxySettings:
    """HTTP(S) proxy endpoint."""

    host: str | None = None
    port: int = 0

    @property
    def enabled(self) -> bool:
        return bool(self.host) and self.port != 0

    @property
    def url(self) -> str | None:
        if not self.enabled:
            return None
        return f"http://{self.host}:{self.port}"


@dataclass(frozen=True)
class RevisionLocator:
    """Location of an uploaded revision bundle in S3."""

    bucket: str
    key: str
    etag: str | None = None
    bundle_type: str = "zip"

    @property
    def uri(self) -> str:
        return f"s3://{self.bucket}/{self.key}"

    def to_revision(self) -> dict[str, Any]:
        """Convert to the CodeDeploy RevisionLocation structure."""
        s3_location: dict[str, Any] = {
            "bucket": self.bucket,
            "key": self.key,
            "bundleType": self.bundle_type,
        }
        if self.etag:
            s3_location["eTag"] = self.etag
        return {"revisionType": "S3", "s3Location": s3_location}


@dataclass(frozen=True)
class DeploymentTarget:
    """Application and deployment group a revision is deployed to."""

    application_name: str
    deployment_group_name: str
    deployment_config_name: str | None = None


@dataclass(frozen=True)
class PollingPolicy:
    """How long and how often to poll a deployment."""

    timeout_seconds: int
    interval_seconds: int
    wait_for_completion: bool = True

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ConfigError(f"Polling timeout must be positive, got {self.timeout_seconds}")
        if self.interval_seconds <= 0:
            raise ConfigError(f"Polling interval must be positive, got {self.interval_seconds}")


@dataclass
class DeploymentRun:
    """Snapshot of a CodeDeploy deployment as returned by get_deployment."""

    deployment_id: str
    status: str | None = None
    start_time: datetime | None = None
    complete_time: datetime | None = None
    overview: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_response(cls, response: dict[str, Any]) -> "DeploymentRun | None":
        """Create from a get_deployment response. Returns None if empty."""
        info = response.get("deploymentInfo")
        if not info:
            return None
        return cls(
            deployment_id=info.get("deploymentId", ""),
            status=info.get("status"),
            start_time=info.get("startTime") or info.get("createTime"),
            complete_time=info.get("completeTime"),
            overview=dict(info.get("deploymentOverview") or {}),
        )

    @property
    def is_terminal(self) -> bool:
        return self.complete_time is not None or self.status in TERMINAL_STATUSES

    @property
    def succeeded(self) -> bool:
        return self.status == SUCCEEDED_STATUS

    def overview_str(self) -> str:
        if not self.overview:
            return "{}"
        return ", ".join(f"{k}: {v}" for k, v in self.overview.items())

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "deployment_id": self.deployment_id,
            "status": self.status,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "complete_time": self.complete_time.isoformat() if self.complete_time else None,
            "overview": self.overview,
        }


@dataclass
class PollResult:
    """Outcome of waiting for a deployment."""

    state: PollState
    run: DeploymentRun | None = None
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.state in (PollState.SUCCEEDED, PollState.SKIPPED)
