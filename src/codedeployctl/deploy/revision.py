"""Upload revision bundles to S3 and register them with CodeDeploy."""

from pathlib import Path
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from codedeployctl.core.exceptions import InvalidBucketError, RegistrationError, UploadError
from codedeployctl.core.logging import StructuredLogger
from codedeployctl.deploy.models import RevisionLocator

logger = StructuredLogger(__name__)

DEFAULT_REVISION_DESCRIPTION = "Application revision registered via codedeployctl"


def compute_key(prefix: str | None, archive_name: str) -> str:
    """Object key for an archive under an optional prefix.

    >>> compute_key("releases/", "app.zip")
    'releases/app.zip'
    >>> compute_key("releases", "app.zip")
    'releases/app.zip'
    >>> compute_key("", "app.zip")
    'app.zip'
    """
    if not prefix or prefix == "/":
        return archive_name
    if prefix.endswith("/"):
        return prefix + archive_name
    return f"{prefix}/{archive_name}"


def validate_bucket(bucket: str) -> str:
    """Reject bucket names that try to encode a path."""
    if not bucket:
        raise InvalidBucketError("S3 bucket name must not be empty")
    if "/" in bucket:
        raise InvalidBucketError(
            "S3 bucket field cannot contain any subdirectories. Bucket name only!",
            details={"bucket": bucket},
        )
    return bucket


def _error_message(e: Exception) -> str:
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        return f"{error.get('Code', 'Unknown')}: {error.get('Message', str(e))}"
    return str(e)


class Uploader:
    """Uploads an archive to S3."""

    def __init__(self, s3_client: Any):
        self._s3 = s3_client

    def upload(self, bucket: str, prefix: str | None, archive: Path) -> RevisionLocator:
        """Upload archive to s3://bucket/prefix/archive-name.

        Raises:
            InvalidBucketError: If bucket contains a path separator
            UploadError: If S3 rejects the upload
        """
        validate_bucket(bucket)
        key = compute_key(prefix, archive.name)

        logger.info(f"Uploading zip to s3://{bucket}/{key}")
        try:
            with open(archive, "rb") as body:
                response = self._s3.put_object(Bucket=bucket, Key=key, Body=body)
        except (ClientError, BotoCoreError) as e:
            raise UploadError(f"Failed to upload to s3://{bucket}/{key}: {_error_message(e)}")
        except OSError as e:
            raise UploadError(f"Cannot read archive {archive}: {e}")

        etag = (response.get("ETag") or "").strip('"') or None
        return RevisionLocator(bucket=bucket, key=key, etag=etag)


class RevisionRegistrar:
    """Registers uploaded revisions with a CodeDeploy application."""

    def __init__(self, codedeploy_client: Any):
        self._codedeploy = codedeploy_client

    def register(
        self,
        application_name: str,
        locator: RevisionLocator,
        description: str = DEFAULT_REVISION_DESCRIPTION,
    ) -> None:
        """Register locator as a revision of application_name.

        Raises:
            RegistrationError: If CodeDeploy rejects the registration
        """
        logger.info(f"Registering revision for application '{application_name}'")
        try:
            self._codedeploy.register_application_revision(
                applicationName=application_name,
                revision=locator.to_revision(),
                description=description,
            )
        except (ClientError, BotoCoreError) as e:
            raise RegistrationError(
                f"Failed to register revision {locator.uri}: {_error_message(e)}"
            )
