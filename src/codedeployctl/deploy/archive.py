"""Revision bundle creation."""

import os
import re
import shutil
import tempfile
import zipfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from codedeployctl.core.exceptions import ManifestMissingError, PackagingError
from codedeployctl.core.logging import StructuredLogger
from codedeployctl.core.output import format_bytes
from codedeployctl.deploy.globs import GlobFilter

logger = StructuredLogger(__name__)

APPSPEC_FILENAME = "appspec.yml"


def group_appspec_filename(deployment_group_name: str) -> str:
    """Name of the per-deployment-group appspec file."""
    return f"appspec.{deployment_group_name}.yml"


def _safe_name(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "-", value).strip("-") or "revision"


class ArchiveBuilder:
    """Zips a source directory through an include/exclude filter."""

    def __init__(
        self,
        includes: str | Iterable[str] | None = "**",
        excludes: str | Iterable[str] | None = "",
        use_default_excludes: bool = True,
        output_dir: str | Path | None = None,
    ):
        self._filter = GlobFilter(includes, excludes, use_default_excludes)
        self._output_dir = Path(os.path.abspath(output_dir or tempfile.gettempdir()))

    def build(
        self,
        source: Path,
        build_name: str,
        version_file_name: str | None = None,
        deployment_group_appspec: bool = False,
        deployment_group_name: str | None = None,
    ) -> Path:
        """Create the zip archive for source.

        Args:
            source: Directory to package
            build_name: Archive name prefix
            version_file_name: File in source whose content names the archive
            deployment_group_appspec: Use appspec.<group>.yml as appspec.yml
            deployment_group_name: Group whose appspec is selected

        Returns:
            Path of the new archive; the caller owns and must delete it

        Raises:
            ManifestMissingError: The per-group appspec does not exist
            PackagingError: The archive could not be written
        """
        if deployment_group_appspec:
            self._select_group_appspec(source, deployment_group_name)

        archive_path = self._archive_path(source, build_name, version_file_name)
        logger.info("Zipping files", archive=str(archive_path), source=str(source))

        count = 0
        try:
            # Modification times before 1980 are clamped to the zip minimum
            with zipfile.ZipFile(
                archive_path,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                strict_timestamps=False,
            ) as archive:
                for file_path, relative in self._filter.scan(source):
                    if file_path.resolve() == archive_path.resolve():
                        continue
                    archive.write(file_path, arcname=relative)
                    count += 1
        except (OSError, zipfile.LargeZipFile) as e:
            self._discard(archive_path)
            raise PackagingError(f"Failed to create archive {archive_path}: {e}")
        except BaseException:
            self._discard(archive_path)
            raise

        if count == 0:
            logger.warning("No files matched the include/exclude patterns", source=str(source))
        logger.info(
            "Created archive",
            files=count,
            size=format_bytes(archive_path.stat().st_size),
        )
        return archive_path

    @contextmanager
    def packaged(
        self,
        source: Path,
        build_name: str,
        version_file_name: str | None = None,
        deployment_group_appspec: bool = False,
        deployment_group_name: str | None = None,
    ) -> Iterator[Path]:
        """Build the archive and delete it when the block exits, however it exits."""
        archive_path = self.build(
            source,
            build_name,
            version_file_name=version_file_name,
            deployment_group_appspec=deployment_group_appspec,
            deployment_group_name=deployment_group_name,
        )
        try:
            yield archive_path
        finally:
            self._discard(archive_path)

    def _select_group_appspec(self, source: Path, deployment_group_name: str | None) -> None:
        if not deployment_group_name:
            raise PackagingError("A deployment group name is required to select its appspec")
        filename = group_appspec_filename(deployment_group_name)
        group_appspec = source / filename
        if not group_appspec.is_file():
            raise ManifestMissingError(filename)
        try:
            shutil.copyfile(group_appspec, source / APPSPEC_FILENAME)
        except OSError as e:
            raise PackagingError(f"Failed to copy {filename} to {APPSPEC_FILENAME}: {e}")
        logger.info(f"Use {filename}")

    def _archive_path(self, source: Path, build_name: str, version_file_name: str | None) -> Path:
        """Reserve the archive path inside a directory owned by this build alone."""
        name = _safe_name(build_name)
        version = self._read_version(source, version_file_name)
        try:
            self._output_dir.mkdir(parents=True, exist_ok=True)
            run_dir = Path(tempfile.mkdtemp(prefix=f"{name}-", dir=self._output_dir))
            if version:
                return run_dir / f"{name}-{_safe_name(version)}.zip"
            fd, temp_name = tempfile.mkstemp(prefix=f"{name}-", suffix=".zip", dir=run_dir)
            os.close(fd)
        except OSError as e:
            raise PackagingError(f"Cannot create archive in {self._output_dir}: {e}")
        return Path(temp_name)

    def _read_version(self, source: Path, version_file_name: str | None) -> str | None:
        if not version_file_name:
            return None
        version_file = source / version_file_name
        try:
            version = version_file.read_text(encoding="utf-8", errors="replace").strip()
        except OSError as e:
            logger.warning("Cannot read version file", path=str(version_file), error=str(e))
            return None
        return version or None

    def _discard(self, path: Path) -> None:
        """Remove an archive together with its per-build directory."""
        run_dir = path.parent
        try:
            path.unlink(missing_ok=True)
            if run_dir.parent == self._output_dir:
                shutil.rmtree(run_dir)
        except OSError as e:
            logger.warning("Failed to clean up file", path=str(path), error=str(e))
