"""Custom exceptions for codedeployctl."""

from typing import Any


class CodeDeployCtlError(Exception):
    """Base exception for all codedeployctl errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message


class ConfigError(CodeDeployCtlError):
    """Configuration-related errors."""

    pass


class UnknownRegionError(ConfigError):
    """Region is not one CodeDeploy is available in."""

    def __init__(self, region: str, details: dict[str, Any] | None = None):
        super().__init__(f"Unknown or unsupported region: '{region}'", details)
        self.region = region


class AWSError(CodeDeployCtlError):
    """AWS API errors."""

    def __init__(
        self,
        message: str,
        service: str | None = None,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.service = service
        self.operation = operation


class AuthError(CodeDeployCtlError):
    """Credential resolution errors."""

    pass


class MissingKeysError(AuthError):
    """Access keys were expected but not provided."""

    pass


class AssumeRoleError(AuthError):
    """STS refused or failed to assume the configured role."""

    def __init__(
        self,
        message: str,
        role_arn: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.role_arn = role_arn
        self.error_code = error_code


class PathError(CodeDeployCtlError):
    """Source directory resolution errors."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        workspace: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.path = path
        self.workspace = workspace


class SourceNotFoundError(PathError):
    """Resolved source path is not a directory."""

    pass


class PathEscapesError(PathError):
    """Resolved source path lies outside the workspace."""

    pass


class PackagingError(CodeDeployCtlError):
    """Archive creation errors."""

    pass


class ManifestMissingError(PackagingError):
    """Per-deployment-group appspec file does not exist."""

    def __init__(self, manifest: str, details: dict[str, Any] | None = None):
        super().__init__(f"{manifest} file does not exist", details)
        self.manifest = manifest


class UploadError(AWSError):
    """S3 upload errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, service="s3", operation="PutObject", details=details)


class InvalidBucketError(UploadError):
    """Bucket name encodes a sub path."""

    pass


class RegistrationError(AWSError):
    """Application revision registration errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            service="codedeploy",
            operation="RegisterApplicationRevision",
            details=details,
        )


class NotFoundError(CodeDeployCtlError):
    """CodeDeploy application or deployment group does not exist."""

    def __init__(
        self,
        message: str,
        resource_type: str | None = None,
        name: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.resource_type = resource_type
        self.name = name


class ServiceError(AWSError):
    """Deployment creation errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(
            message,
            service="codedeploy",
            operation="CreateDeployment",
            details=details,
        )


class TimeoutError(CodeDeployCtlError):
    """Operation timeout errors."""

    def __init__(
        self,
        message: str,
        timeout_seconds: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.timeout_seconds = timeout_seconds


class InterruptedRunError(CodeDeployCtlError):
    """The run was cancelled before it completed."""

    pass
