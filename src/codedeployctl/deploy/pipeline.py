"""End-to-end deployment pipeline producing a single success verdict."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from codedeployctl.clients.aws import ClientBundle, ClientFactory, CredentialResolver
from codedeployctl.config import PublisherConfig
from codedeployctl.core.cancel import CancellationToken
from codedeployctl.core.exceptions import (
    CodeDeployCtlError,
    ConfigError,
    InterruptedRunError,
    TimeoutError,
)
from codedeployctl.core.logging import StructuredLogger
from codedeployctl.core.output import format_duration
from codedeployctl.deploy.archive import ArchiveBuilder
from codedeployctl.deploy.models import DeploymentMethod, PollState, RevisionLocator
from codedeployctl.deploy.orchestrator import DeploymentOrchestrator
from codedeployctl.deploy.poller import Clock, DeploymentPoller
from codedeployctl.deploy.revision import RevisionRegistrar, Uploader
from codedeployctl.deploy.source import SourceResolver

logger = StructuredLogger(__name__)


@dataclass
class PipelineOutcome:
    """What a run achieved, for reporting once it ends."""

    revision: RevisionLocator | None = None
    deployment_id: str | None = None
    state: PollState | None = None
    status: str | None = None
    overview: dict[str, int] = field(default_factory=dict)
    elapsed_seconds: float | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "revision": self.revision.uri if self.revision else None,
            "deployment_id": self.deployment_id,
            "state": self.state.value if self.state else None,
            "status": self.status,
            "instances": self.overview,
            "elapsed": (
                format_duration(self.elapsed_seconds) if self.elapsed_seconds is not None else None
            ),
            "error": self.error,
        }


class DeploymentPipeline:
    """Runs one deployment from credentials to final status.

    Stages run in order and the first failure stops the run. ``run()``
    never raises for a failed stage; it logs the cause and returns False.
    """

    def __init__(
        self,
        config: PublisherConfig,
        workspace: str | Path,
        environ: Mapping[str, str] | None = None,
        token: CancellationToken | None = None,
        client_factory: ClientFactory | None = None,
        credential_resolver: CredentialResolver | None = None,
        archive_dir: str | Path | None = None,
        clock: Clock | None = None,
    ):
        self._raw_config = config
        self._workspace = Path(workspace)
        self._environ = dict(os.environ if environ is None else environ)
        self._token = token or CancellationToken()
        self._client_factory = client_factory or ClientFactory()
        self._credential_resolver = credential_resolver
        self._archive_dir = archive_dir
        self._clock = clock
        self._outcome = PipelineOutcome()

    @property
    def outcome(self) -> PipelineOutcome:
        """Revision, deployment and final state of the last run."""
        return self._outcome

    def run(self) -> bool:
        """Execute the pipeline.

        Returns:
            True if the revision was registered (register-only) or the
            deployment succeeded (or waiting is disabled); False otherwise
        """
        self._outcome = PipelineOutcome()
        try:
            return self._execute()
        except (InterruptedRunError, KeyboardInterrupt) as e:
            self._outcome.error = str(e) or "interrupted"
            logger.warning("Deployment run interrupted before completion", reason=str(e) or "interrupt")
        except CodeDeployCtlError as e:
            self._outcome.error = str(e)
            logger.error("Failed CodeDeploy step; exception follows.", exc_info=True, error=str(e))
        except Exception as e:
            self._outcome.error = f"{type(e).__name__}: {e}"
            logger.exception("Unexpected failure in CodeDeploy step", error=str(e))
        return False

    def _execute(self) -> bool:
        config = self._raw_config.expand(self._environ)
        target = config.target()
        policy = config.polling_policy()

        region = config.get_region()
        if not region:
            raise ConfigError("No AWS region configured")

        proxy = config.proxy.to_settings()
        resolver = self._credential_resolver or CredentialResolver(region=region, proxy=proxy)
        credential = resolver.resolve(config.auth_strategy())
        bundle = self._client_factory.build(region, credential, proxy)
        self._token.raise_if_cancelled()

        orchestrator = DeploymentOrchestrator(bundle.codedeploy)
        orchestrator.verify(target.application_name, target.deployment_group_name)
        self._token.raise_if_cancelled()

        source = SourceResolver().resolve(self._workspace, config.subdirectory)
        locator = self._package_and_upload(config, bundle, source)
        self._outcome.revision = locator
        self._token.raise_if_cancelled()

        RevisionRegistrar(bundle.codedeploy).register(target.application_name, locator)

        if config.deployment_method == DeploymentMethod.REGISTER_ONLY:
            logger.info("Revision registered; deployment creation skipped", revision=locator.uri)
            return True

        self._token.raise_if_cancelled()
        deployment_id = orchestrator.create_deployment(target, locator)
        self._outcome.deployment_id = deployment_id

        poller = DeploymentPoller(bundle.codedeploy, policy, token=self._token, clock=self._clock)
        result = poller.wait(deployment_id)
        self._outcome.state = result.state
        if result.run is not None:
            self._outcome.status = result.run.status
            self._outcome.overview = result.run.overview
        if result.state != PollState.SKIPPED:
            self._outcome.elapsed_seconds = result.elapsed_seconds

        if result.state == PollState.TIMED_OUT:
            raise TimeoutError(
                f"Deployment {deployment_id} did not finish within {policy.timeout_seconds} seconds",
                timeout_seconds=policy.timeout_seconds,
            )
        if result.state == PollState.SKIPPED:
            return True
        if result.succeeded:
            logger.info(
                "Deployment succeeded",
                deployment_id=deployment_id,
                duration=format_duration(result.elapsed_seconds),
            )
            return True

        logger.error(
            "Deployment failed",
            deployment_id=deployment_id,
            status=result.run.status if result.run else None,
        )
        return False

    def _package_and_upload(
        self,
        config: PublisherConfig,
        bundle: ClientBundle,
        source: Path,
    ) -> RevisionLocator:
        builder = ArchiveBuilder(config.includes, config.excludes, output_dir=self._archive_dir)
        build_name = config.build_name or self._environ.get("JOB_NAME") or config.application_name
        with builder.packaged(
            source,
            build_name,
            version_file_name=config.version_file_name,
            deployment_group_appspec=config.deployment_group_appspec,
            deployment_group_name=config.deployment_group_name,
        ) as archive:
            self._token.raise_if_cancelled()
            return Uploader(bundle.s3).upload(config.bucket, config.prefix, archive)
