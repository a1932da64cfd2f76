"""Unit tests for workspace path helpers."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from zed_go_tasks.errors import InputError
from zed_go_tasks.workspace import (
    detect_workspace_root,
    package_arg,
    relative_file_path,
    resolve_path,
    validate_source_file,
)


class TestValidateSourceFile:
    """Tests for validate_source_file."""

    def test_accepts_go_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "calc_test.go"
            path.write_text("package calc\n")
            result = validate_source_file(str(path))
            assert result == path.absolute()
            assert result.is_absolute()

    def test_empty_path(self):
        with pytest.raises(InputError, match="--file"):
            validate_source_file("")

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with pytest.raises(InputError, match="not found"):
                validate_source_file(Path(tmpdir) / "missing_test.go")

    def test_directory(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            directory = Path(tmpdir) / "pkg.go"
            directory.mkdir()
            with pytest.raises(InputError, match="directory"):
                validate_source_file(directory)

    def test_wrong_extension(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "notes.txt"
            path.write_text("hello")
            with pytest.raises(InputError, match=r"\.go extension"):
                validate_source_file(path)


class TestDetectWorkspaceRoot:
    """Tests for detect_workspace_root."""

    def test_finds_go_mod(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / "go.mod").write_text("module example.com/m\n")
            pkg = root / "internal" / "calc"
            pkg.mkdir(parents=True)
            assert detect_workspace_root(pkg) == root.absolute()

    def test_finds_git_dir(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / ".git").mkdir()
            pkg = root / "calc"
            pkg.mkdir()
            assert detect_workspace_root(pkg) == root.absolute()

    def test_nearest_marker_wins(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            root = Path(tmpdir)
            (root / ".git").mkdir()
            module = root / "service"
            module.mkdir()
            (module / "go.mod").write_text("module example.com/service\n")
            assert detect_workspace_root(module) == module.absolute()


class TestPackageArg:
    """Tests for package_arg."""

    def test_root_package(self):
        root = Path("/ws")
        assert package_arg(root, root) == "."

    def test_nested_package(self):
        assert package_arg(Path("/ws"), Path("/ws/internal/calc")) == "./internal/calc"

    def test_outside_root(self):
        with pytest.raises(InputError, match="outside root"):
            package_arg(Path("/ws/a"), Path("/ws/b"))


class TestPaths:
    """Tests for relative_file_path and resolve_path."""

    def test_relative_file_path(self):
        assert relative_file_path(Path("/ws"), Path("/ws/calc/calc_test.go")) == "calc/calc_test.go"

    def test_resolve_relative(self):
        assert resolve_path(Path("/ws"), Path(".zed/tasks.json")) == Path("/ws/.zed/tasks.json")

    def test_resolve_absolute(self):
        assert resolve_path(Path("/ws"), Path("/etc/tasks.json")) == Path("/etc/tasks.json")
