"""Resolve the directory that gets packaged into the revision."""

from pathlib import Path

from codedeployctl.core.exceptions import PathEscapesError, SourceNotFoundError
from codedeployctl.core.logging import StructuredLogger

logger = StructuredLogger(__name__)


class SourceResolver:
    """Resolves a workspace subdirectory and keeps it inside the workspace."""

    def resolve(self, workspace_root: str | Path, subdirectory: str | None = None) -> Path:
        """Resolve subdirectory against workspace_root.

        Args:
            workspace_root: Build workspace
            subdirectory: Path relative to the workspace, may be empty

        Returns:
            Absolute, normalised source directory

        Raises:
            PathEscapesError: If the result is outside the workspace
            SourceNotFoundError: If the result is not a directory
        """
        root = Path(workspace_root).resolve()

        subdir = (subdirectory or "").strip()
        if subdir and not subdir.startswith("/"):
            subdir = "/" + subdir

        candidate = Path(str(root) + subdir).resolve()

        if not self.is_subdirectory(root, candidate):
            raise PathEscapesError(
                f"Provided path (resolved as '{candidate}') is not a subdirectory "
                f"of the workspace (resolved as '{root}')",
                path=str(candidate),
                workspace=str(root),
            )

        if not candidate.is_dir():
            raise SourceNotFoundError(
                f"Provided path (resolved as '{candidate}') is not a directory",
                path=str(candidate),
                workspace=str(root),
            )

        logger.debug("Resolved source directory", path=str(candidate))
        return candidate

    @staticmethod
    def is_subdirectory(parent: Path, child: Path) -> bool:
        """Walk child's parent chain looking for parent."""
        current = child
        while True:
            if current == parent:
                return True
            if current.parent == current:
                return False
            current = current.parent
