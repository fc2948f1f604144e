"""Unit tests for rule_engine.files.searcher."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from rule_engine.files import FileRole, FileSearcher, FileSearchError, FileSearchResult, SourceFile, classify

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _touch(root: Path, relative: str, text: str = "") -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _names(paths: list[Path], root: Path) -> list[str]:
    return sorted(p.relative_to(root).as_posix() for p in paths)


@pytest.fixture()
def tree(tmp_path: Path) -> Path:
    """A small project tree with hidden entries and ignored files."""
    _touch(tmp_path, "pod.lua")
    _touch(tmp_path, "pod_test.lua")
    _touch(tmp_path, "notes.txt")
    _touch(tmp_path, "sub/config.yaml")
    _touch(tmp_path, "sub/deeper/settings.toml")
    _touch(tmp_path, ".hidden.json")
    _touch(tmp_path, ".dir/inside.json")
    _touch(tmp_path, ".dir/.both.json")
    return tmp_path


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassify:
    @pytest.mark.parametrize(
        "name,expected",
        [
            ("pod.lua", FileRole.CHECK),
            ("POD.LUA", FileRole.CHECK),
            ("pod_test.lua", FileRole.TEST),
            ("Pod_Test.Lua", FileRole.TEST),
            ("data.json", FileRole.DATA),
            ("data.yaml", FileRole.DATA),
            ("data.YML", FileRole.DATA),
            ("data.toml", FileRole.DATA),
        ],
    )
    def test_known_roles(self, name, expected):
        assert classify(name) is expected

    @pytest.mark.parametrize("name", ["README.md", "lua", "script.luac", "data.json5", "Makefile"])
    def test_ignored(self, name):
        assert classify(name) is None

    def test_test_suffix_wins_over_script_extension(self):
        assert classify("my_check_test.lua") is FileRole.TEST
        assert classify("test.lua") is FileRole.CHECK

    def test_source_file_from_path(self):
        source = SourceFile.from_path(Path("rules/pod.lua"))
        assert source is not None
        assert source.role is FileRole.CHECK
        assert SourceFile.from_path(Path("rules/README.md")) is None


class TestFileSearchResult:
    def test_merge_keeps_both(self):
        a = FileSearchResult(check_files=[Path("a.lua")])
        b = FileSearchResult(check_files=[Path("b.lua")], data_files=[Path("c.json")])
        merged = a.merge(b)
        assert merged.check_files == [Path("a.lua"), Path("b.lua")]
        assert merged.data_files == [Path("c.json")]
        assert a.data_files == []


# ---------------------------------------------------------------------------
# Directory search
# ---------------------------------------------------------------------------


class TestSearch:
    def test_default_search(self, tree):
        result = FileSearcher().search([tree])
        assert _names(result.check_files, tree) == ["pod.lua"]
        assert _names(result.test_files, tree) == ["pod_test.lua"]
        assert _names(result.data_files, tree) == ["sub/config.yaml", "sub/deeper/settings.toml"]

    def test_dotfiles_only(self, tree):
        result = FileSearcher(include_dotfiles=True).search([tree])
        assert _names(result.data_files, tree) == [
            ".hidden.json",
            "sub/config.yaml",
            "sub/deeper/settings.toml",
        ]

    def test_dotdirs_only(self, tree):
        result = FileSearcher(include_dotdirs=True).search([tree])
        assert _names(result.data_files, tree) == [
            ".dir/inside.json",
            "sub/config.yaml",
            "sub/deeper/settings.toml",
        ]

    def test_dotfiles_and_dotdirs(self, tree):
        result = FileSearcher(include_dotfiles=True, include_dotdirs=True).search([tree])
        assert _names(result.data_files, tree) == [
            ".dir/.both.json",
            ".dir/inside.json",
            ".hidden.json",
            "sub/config.yaml",
            "sub/deeper/settings.toml",
        ]

    def test_role_toggles(self, tree):
        searcher = FileSearcher(include_test_files=False, include_data_files=False)
        result = searcher.search([tree])
        assert _names(result.check_files, tree) == ["pod.lua"]
        assert result.test_files == []
        assert result.data_files == []

    def test_explicit_file_root_bypasses_dot_filter(self, tree):
        result = FileSearcher().search([tree / ".hidden.json"])
        assert result.data_files == [tree / ".hidden.json"]

    def test_explicit_ignored_file(self, tree):
        result = FileSearcher().search([tree / "notes.txt"])
        assert result == FileSearchResult()

    def test_multiple_roots(self, tree):
        result = FileSearcher().search([tree / "sub", tree / "pod.lua"])
        assert _names(result.check_files, tree) == ["pod.lua"]
        assert _names(result.data_files, tree) == ["sub/config.yaml", "sub/deeper/settings.toml"]

    def test_same_directory_twice_is_walked_once(self, tree):
        result = FileSearcher().search([tree / "sub", str(tree / "sub")])
        assert len(result.data_files) == 2

    def test_empty_directory(self, tmp_path):
        assert FileSearcher().search([tmp_path]) == FileSearchResult()

    def test_missing_root_raises(self, tmp_path):
        missing = tmp_path / "nope"
        with pytest.raises(FileSearchError, match="Failed to walk directory") as excinfo:
            FileSearcher().search([missing])
        assert excinfo.value.path == missing

    @pytest.mark.skipif(os.name != "posix" or os.geteuid() == 0, reason="needs unprivileged POSIX permissions")
    def test_unreadable_subdirectory_raises(self, tree):
        locked = tree / "sub" / "locked"
        _touch(locked, "inner.json")
        locked.chmod(0)
        try:
            with pytest.raises(FileSearchError, match="Failed to walk directory") as excinfo:
                FileSearcher(max_workers=2).search([tree])
        finally:
            locked.chmod(0o755)
        assert excinfo.value.path == locked


class TestSymlinks:
    @pytest.fixture()
    def linked(self, tmp_path: Path) -> Path:
        root = tmp_path / "root"
        outside = tmp_path / "outside"
        _touch(root, "local.json")
        _touch(outside, "remote.json")
        os.symlink(outside, root / "link", target_is_directory=True)
        os.symlink(outside / "remote.json", root / "file-link.json")
        return root

    def test_links_skipped_by_default(self, linked):
        result = FileSearcher().search([linked])
        assert _names(result.data_files, linked) == ["local.json"]

    def test_links_followed(self, linked):
        result = FileSearcher(follow_symlinks=True).search([linked])
        assert _names(result.data_files, linked) == ["file-link.json", "link/remote.json", "local.json"]

    def test_cycle_is_walked_once(self, tmp_path):
        _touch(tmp_path, "sub/data.json")
        os.symlink(tmp_path, tmp_path / "sub" / "loop", target_is_directory=True)
        result = FileSearcher(follow_symlinks=True).search([tmp_path])
        assert _names(result.data_files, tmp_path) == ["sub/data.json"]
