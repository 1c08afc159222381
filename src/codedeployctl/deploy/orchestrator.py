"""CodeDeploy application checks and deployment creation."""

from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from codedeployctl.clients.aws import handle_aws_error, paginate
from codedeployctl.core.exceptions import NotFoundError, ServiceError
from codedeployctl.core.logging import StructuredLogger
from codedeployctl.deploy.models import DeploymentTarget, RevisionLocator

logger = StructuredLogger(__name__)

DEFAULT_DEPLOYMENT_DESCRIPTION = "Deployment created by codedeployctl"


class DeploymentOrchestrator:
    """Verifies the deployment target and creates deployments."""

    def __init__(self, codedeploy_client: Any):
        self._codedeploy = codedeploy_client

    @handle_aws_error
    def list_applications(self) -> list[str]:
        return paginate(self._codedeploy, "list_applications", "applications")

    @handle_aws_error
    def list_deployment_groups(self, application_name: str) -> list[str]:
        return paginate(
            self._codedeploy,
            "list_deployment_groups",
            "deploymentGroups",
            applicationName=application_name,
        )

    def verify(self, application_name: str, deployment_group_name: str) -> None:
        """Check the application and deployment group exist.

        Raises:
            NotFoundError: If either is missing
            AWSError: If listing fails
        """
        if application_name not in self.list_applications():
            raise NotFoundError(
                f"Cannot find application named '{application_name}'",
                resource_type="application",
                name=application_name,
            )

        if deployment_group_name not in self.list_deployment_groups(application_name):
            raise NotFoundError(
                f"Cannot find deployment group named '{deployment_group_name}'",
                resource_type="deployment-group",
                name=deployment_group_name,
            )

        logger.debug(
            "Verified deployment target",
            application=application_name,
            deployment_group=deployment_group_name,
        )

    def create_deployment(
        self,
        target: DeploymentTarget,
        locator: RevisionLocator,
        description: str = DEFAULT_DEPLOYMENT_DESCRIPTION,
    ) -> str:
        """Create a deployment of locator to target.

        Returns:
            The new deployment id

        Raises:
            ServiceError: If CodeDeploy rejects the request
        """
        params: dict[str, Any] = {
            "applicationName": target.application_name,
            "deploymentGroupName": target.deployment_group_name,
            "revision": locator.to_revision(),
            "description": description,
        }
        if target.deployment_config_name:
            params["deploymentConfigName"] = target.deployment_config_name

        logger.info(f"Creating deployment with revision at {locator.uri}")
        try:
            response = self._codedeploy.create_deployment(**params)
        except ClientError as e:
            error = e.response.get("Error", {})
            raise ServiceError(
                f"Failed to create deployment: {error.get('Code', 'Unknown')}: "
                f"{error.get('Message', str(e))}"
            )
        except BotoCoreError as e:
            raise ServiceError(f"Failed to create deployment: {e}")

        deployment_id = response["deploymentId"]
        logger.info("Created deployment", deployment_id=deployment_id)
        return deployment_id
