"""Deployment pipeline: package, upload, register, deploy, wait."""

from codedeployctl.deploy.models import (
    AMBIENT_CREDENTIAL,
    AmbientChain,
    AssumedRole,
    AuthMethod,
    AuthStrategy,
    Credential,
    DeploymentMethod,
    DeploymentRun,
    DeploymentTarget,
    DirectKeys,
    PollingPolicy,
    PollResult,
    PollState,
    ProxySettings,
    RevisionLocator,
)

__all__ = [
    "AMBIENT_CREDENTIAL",
    "AmbientChain",
    "AssumedRole",
    "AuthMethod",
    "AuthStrategy",
    "Credential",
    "DeploymentMethod",
    "DeploymentRun",
    "DeploymentTarget",
    "DirectKeys",
    "PollingPolicy",
    "PollResult",
    "PollState",
    "ProxySettings",
    "RevisionLocator",
]
