"""Tests for revision archive creation."""

import os
import zipfile

import pytest

from codedeployctl.core.exceptions import ManifestMissingError, PackagingError
from codedeployctl.deploy.archive import APPSPEC_FILENAME, ArchiveBuilder, group_appspec_filename


def archive_names(path) -> list[str]:
    with zipfile.ZipFile(path) as archive:
        return sorted(archive.namelist())


class TestArchiveBuilder:
    """Tests for ArchiveBuilder.build."""

    def test_includes_everything_but_vcs(self, workspace, tmp_path):
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        archive = builder.build(workspace, "app1")

        assert archive.parent.parent == tmp_path / "out"
        assert archive.name.startswith("app1-")
        assert archive.suffix == ".zip"
        assert archive_names(archive) == [
            "README.txt",
            "appspec.yml",
            "scripts/start.sh",
            "src/app.py",
            "src/pkg/util.py",
        ]

    def test_include_and_exclude_patterns(self, workspace, tmp_path):
        builder = ArchiveBuilder("**/*.py, appspec.yml", "src/pkg/**", output_dir=tmp_path / "out")
        archive = builder.build(workspace, "app1")
        assert archive_names(archive) == ["appspec.yml", "src/app.py"]

    def test_entries_are_deflated(self, workspace, tmp_path):
        archive = ArchiveBuilder(output_dir=tmp_path / "out").build(workspace, "app1")
        with zipfile.ZipFile(archive) as zf:
            assert all(info.compress_type == zipfile.ZIP_DEFLATED for info in zf.infolist())
            assert zf.read("src/app.py") == b"print('hello')\n"

    def test_no_matches_still_builds(self, workspace, tmp_path):
        archive = ArchiveBuilder("*.nothing", output_dir=tmp_path / "out").build(workspace, "app1")
        assert archive.exists()
        assert archive_names(archive) == []

    def test_unique_names_without_version(self, workspace, tmp_path):
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        first = builder.build(workspace, "app1")
        second = builder.build(workspace, "app1")
        assert first != second

    def test_version_file_names_archive(self, workspace, tmp_path):
        (workspace / "VERSION").write_text("1.4.2\n")
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        archive = builder.build(workspace, "my app", version_file_name="VERSION")
        assert archive.name == "my-app-1.4.2.zip"

    def test_same_version_builds_do_not_collide(self, workspace, tmp_path):
        (workspace / "VERSION").write_text("2.0")
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        first = builder.build(workspace, "app1", version_file_name="VERSION")
        second = builder.build(workspace, "app1", version_file_name="VERSION")
        assert first.name == second.name == "app1-2.0.zip"
        assert first != second
        assert archive_names(first) == archive_names(second)

    def test_undecodable_version_file(self, workspace, tmp_path):
        (workspace / "VERSION").write_bytes(b"1.0-caf\xe9\n")
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        archive = builder.build(workspace, "app1", version_file_name="VERSION")
        assert archive.name == "app1-1.0-caf.zip"

    def test_files_older_than_1980(self, workspace, tmp_path):
        os.utime(workspace / "src" / "app.py", (0, 0))
        archive = ArchiveBuilder(output_dir=tmp_path / "out").build(workspace, "app1")
        with zipfile.ZipFile(archive) as zf:
            assert zf.getinfo("src/app.py").date_time == (1980, 1, 1, 0, 0, 0)
            assert zf.read("src/app.py") == b"print('hello')\n"

    def test_missing_version_file_falls_back(self, workspace, tmp_path):
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        archive = builder.build(workspace, "app1", version_file_name="NOPE")
        assert archive.name.startswith("app1-")
        assert archive.name != "app1-.zip"

    def test_archive_inside_source_is_skipped(self, workspace):
        builder = ArchiveBuilder(output_dir=workspace)
        archive = builder.build(workspace, "app1")
        assert archive.name not in archive_names(archive)

    def test_group_appspec_selected(self, workspace, tmp_path):
        (workspace / group_appspec_filename("grp1")).write_text("version: 0.0\n# grp1\n")
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        archive = builder.build(
            workspace,
            "app1",
            deployment_group_appspec=True,
            deployment_group_name="grp1",
        )
        with zipfile.ZipFile(archive) as zf:
            assert zf.read(APPSPEC_FILENAME) == b"version: 0.0\n# grp1\n"

    def test_group_appspec_missing(self, workspace, tmp_path):
        out = tmp_path / "out"
        builder = ArchiveBuilder(output_dir=out)
        with pytest.raises(ManifestMissingError, match="appspec.grp1.yml file does not exist"):
            builder.build(
                workspace,
                "app1",
                deployment_group_appspec=True,
                deployment_group_name="grp1",
            )
        assert not out.exists() or list(out.iterdir()) == []
        # appspec.yml is left as it was
        assert (workspace / APPSPEC_FILENAME).read_text() == "version: 0.0\nos: linux\n"

    def test_group_appspec_needs_group(self, workspace, tmp_path):
        with pytest.raises(PackagingError):
            ArchiveBuilder(output_dir=tmp_path / "out").build(
                workspace, "app1", deployment_group_appspec=True
            )

    def test_unreadable_file_discards_archive(self, workspace, tmp_path, monkeypatch):
        out = tmp_path / "out"

        def fail_write(self, *args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(zipfile.ZipFile, "write", fail_write)
        with pytest.raises(PackagingError, match="disk full"):
            ArchiveBuilder(output_dir=out).build(workspace, "app1")
        assert list(out.iterdir()) == []


class TestPackaged:
    """Tests for the packaged() context manager."""

    def test_archive_removed_after_block(self, workspace, tmp_path):
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        with builder.packaged(workspace, "app1") as archive:
            assert archive.exists()
        assert not archive.exists()

    def test_overlapping_runs_keep_their_own_archive(self, workspace, tmp_path):
        (workspace / "VERSION").write_text("2.0")
        out = tmp_path / "out"
        first_run = ArchiveBuilder(output_dir=out)
        second_run = ArchiveBuilder(output_dir=out)

        with first_run.packaged(workspace, "app1", version_file_name="VERSION") as first:
            with second_run.packaged(workspace, "app1", version_file_name="VERSION") as second:
                assert first != second
            assert not second.exists()
            assert first.exists()
            assert archive_names(first)
        assert not first.exists()
        assert list(out.iterdir()) == []

    def test_archive_removed_on_error(self, workspace, tmp_path):
        builder = ArchiveBuilder(output_dir=tmp_path / "out")
        with pytest.raises(RuntimeError):
            with builder.packaged(workspace, "app1") as archive:
                raise RuntimeError("upload failed")
        assert not archive.exists()
        assert list((tmp_path / "out").iterdir()) == []
