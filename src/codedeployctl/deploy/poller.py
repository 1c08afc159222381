"""Deployment completion polling."""

from datetime import datetime, timezone
from typing import Any, Callable

from botocore.exceptions import BotoCoreError, ClientError

from codedeployctl.core.cancel import CancellationToken
from codedeployctl.core.logging import StructuredLogger
from codedeployctl.deploy.models import DeploymentRun, PollingPolicy, PollResult, PollState

logger = StructuredLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DeploymentPoller:
    """Polls get_deployment until the deployment finishes or time runs out.

    CodeDeploy has no push notifications, so completion is detected at the
    granularity of the polling interval. Read failures are treated as an
    unknown status for that round; they never end the wait on their own.
    """

    def __init__(
        self,
        codedeploy_client: Any,
        policy: PollingPolicy,
        token: CancellationToken | None = None,
        clock: Clock | None = None,
    ):
        self._codedeploy = codedeploy_client
        self._policy = policy
        self._token = token or CancellationToken()
        self._clock = clock or utc_now

    def wait(self, deployment_id: str) -> PollResult:
        """Wait for deployment_id to reach a terminal status.

        Returns:
            PollResult with state SUCCEEDED, FAILED, TIMED_OUT, or SKIPPED
            when waiting is disabled

        Raises:
            InterruptedRunError: If the token is cancelled while waiting
        """
        if not self._policy.wait_for_completion:
            logger.info("Not waiting for deployment to complete", deployment_id=deployment_id)
            return PollResult(state=PollState.SKIPPED)

        log = logger.bind(deployment_id=deployment_id)
        log.info("Monitoring deployment")

        run = self._fetch(deployment_id, log)
        if run is not None and run.start_time is not None:
            start = _as_utc(run.start_time)
        else:
            start = self._clock()

        last_known = run
        state = PollState.UNKNOWN

        while True:
            if run is None:
                log.info("Deployment status: unknown.")
            else:
                last_known = run
                state = PollState.IN_PROGRESS
                log.info(f"Deployment status: {run.status}; instances: {run.overview_str()}")

            if last_known is not None and last_known.is_terminal:
                state = PollState.SUCCEEDED if last_known.succeeded else PollState.FAILED
                break

            elapsed = (self._clock() - start).total_seconds()
            if elapsed >= self._policy.timeout_seconds:
                log.warning(
                    f"Exceeded maximum polling time of {self._policy.timeout_seconds} seconds."
                )
                state = PollState.TIMED_OUT
                break

            self._token.sleep(self._policy.interval_seconds)
            run = self._fetch(deployment_id, log)

        elapsed = (self._clock() - start).total_seconds()
        if state == PollState.FAILED and last_known is not None:
            log.warning(f"Deployment did not succeed. Final status: {last_known.status}")
        return PollResult(state=state, run=last_known, elapsed_seconds=elapsed)

    def _fetch(self, deployment_id: str, log: StructuredLogger) -> DeploymentRun | None:
        try:
            response = self._codedeploy.get_deployment(deploymentId=deployment_id)
        except (ClientError, BotoCoreError) as e:
            log.debug("Status read failed", error=str(e))
            return None
        return DeploymentRun.from_response(response)
