"""Tests for source directory resolution."""

import os

import pytest

from codedeployctl.core.exceptions import PathEscapesError, SourceNotFoundError
from codedeployctl.deploy.source import SourceResolver


@pytest.fixture
def resolver() -> SourceResolver:
    return SourceResolver()


class TestSourceResolver:
    """Tests for SourceResolver.resolve."""

    @pytest.mark.parametrize("subdirectory", [None, "", "   ", "/"])
    def test_empty_means_workspace(self, resolver, workspace, subdirectory):
        assert resolver.resolve(workspace, subdirectory) == workspace.resolve()

    @pytest.mark.parametrize("subdirectory", ["src", "/src", "src/", " src ", "src/pkg/.."])
    def test_subdirectory(self, resolver, workspace, subdirectory):
        assert resolver.resolve(workspace, subdirectory) == (workspace / "src").resolve()

    def test_nested(self, resolver, workspace):
        assert resolver.resolve(workspace, "src/pkg") == (workspace / "src" / "pkg").resolve()

    def test_parent_traversal_rejected(self, resolver, workspace):
        with pytest.raises(PathEscapesError) as exc_info:
            resolver.resolve(workspace, "../../etc")
        assert exc_info.value.workspace == str(workspace.resolve())

    def test_existing_sibling_rejected(self, resolver, workspace):
        sibling = workspace.parent / "sibling"
        sibling.mkdir()
        with pytest.raises(PathEscapesError):
            resolver.resolve(workspace, "../sibling")

    def test_prefix_sibling_rejected(self, resolver, workspace):
        # "workspace2" shares a string prefix with "workspace"
        (workspace.parent / "workspace2").mkdir()
        with pytest.raises(PathEscapesError):
            resolver.resolve(workspace, "../workspace2")

    def test_symlink_escape_rejected(self, resolver, workspace, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        os.symlink(outside, workspace / "link")
        with pytest.raises(PathEscapesError):
            resolver.resolve(workspace, "link")

    def test_missing_directory(self, resolver, workspace):
        with pytest.raises(SourceNotFoundError, match="not a directory"):
            resolver.resolve(workspace, "missing")

    def test_file_is_not_a_directory(self, resolver, workspace):
        with pytest.raises(SourceNotFoundError):
            resolver.resolve(workspace, "README.txt")

    def test_relative_workspace(self, resolver, workspace, monkeypatch):
        monkeypatch.chdir(workspace.parent)
        assert resolver.resolve("workspace", "scripts") == (workspace / "scripts").resolve()


class TestIsSubdirectory:
    """Tests for the parent chain walk."""

    def test_self(self, tmp_path):
        assert SourceResolver.is_subdirectory(tmp_path, tmp_path)

    def test_child(self, tmp_path):
        assert SourceResolver.is_subdirectory(tmp_path, tmp_path / "a" / "b")

    def test_parent(self, tmp_path):
        assert not SourceResolver.is_subdirectory(tmp_path / "a", tmp_path)
