"""Unit tests for the repository accessor."""

import tempfile
from pathlib import Path

import pytest

from gitforensics.exceptions import InvalidInputError, NotARepositoryError
from gitforensics.extraction import BINARY_MARKER, RepositoryAccessor


def test_invalid_paths():
    """Test opening something that is not a repository."""
    with pytest.raises(NotARepositoryError, match="does not exist"):
        RepositoryAccessor("/nonexistent/path")

    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(NotARepositoryError, match="Invalid Git repository"):
            RepositoryAccessor(tmpdir)


def test_empty_repository(repo_builder):
    """Test queries on a repository without commits."""
    repo_builder.write("new.py", "x = 1\n")
    with RepositoryAccessor(repo_builder.path) as accessor:
        assert not accessor.has_commits()
        assert accessor.commits_for_path("new.py") == []
        assert accessor.last_commit_time("new.py") is None
        assert accessor.is_modified("new.py")


def test_commits_for_path(coupled_repo):
    """Test per-file history, newest first, with changed files."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        commits = accessor.commits_for_path("src/models.py")

        assert [c.message for c in commits] == [
            "hotfix: revert handler change",
            "Fix user serialisation bug",
            "Add api and models",
        ]
        assert sorted(commits[0].files_changed) == ["src/api.py", "src/models.py"]
        assert commits[0].timestamp > commits[1].timestamp

        limited = accessor.commits_for_path("src/api.py", max_count=2, include_files=False)
        assert len(limited) == 2
        assert limited[0].files_changed == []


def test_root_commit_files(coupled_repo):
    """Test changed files of the initial commit."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        root = accessor.commits_for_path("README.md")[-1]
        assert accessor.changed_files(root.hash) == ["README.md"]


def test_relative_path(coupled_repo):
    """Test path conversion."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        assert accessor.relative_path(coupled_repo.path / "src" / "api.py") == "src/api.py"
        assert accessor.relative_path("src/api.py") == "src/api.py"

        with pytest.raises(InvalidInputError):
            accessor.relative_path("/definitely/elsewhere.py")


def test_is_modified(coupled_repo):
    """Test dirty and clean working tree detection."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        assert not accessor.is_modified("src/api.py")

        coupled_repo.write("src/api.py", "def handler():\n    return 5\n")
        assert accessor.is_modified("src/api.py")

        coupled_repo.write("src/untracked.py", "pass\n")
        assert accessor.is_modified("src/untracked.py")


def test_diff_snippet(coupled_repo):
    """Test diff extraction and truncation."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        latest = accessor.commits_for_path("src/models.py", max_count=1)[0]

        diff = accessor.diff_snippet(latest.hash, "src/models.py")
        assert diff.startswith("diff --git")
        assert "+    name = 'x'" in diff

        short = accessor.diff_snippet(latest.hash, "src/models.py", max_chars=20)
        assert short.endswith("...(truncated)")

        assert accessor.diff_snippet(latest.hash, "logo.png") == BINARY_MARKER


def test_grep_and_list_files(coupled_repo):
    """Test content search over tracked files."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        assert accessor.grep_files(["handler"], fixed_strings=True) == ["src/api.py"]
        assert accessor.grep_files(["no-such-text"], fixed_strings=True) == []
        assert accessor.grep_files(["DEMO"], pathspecs=["*.md"], ignore_case=True) == ["README.md"]
        assert set(accessor.list_files()) == {"README.md", "src/api.py", "src/models.py", "src/other.py"}


def test_read_text(coupled_repo):
    """Test reading working tree files."""
    with RepositoryAccessor(coupled_repo.path) as accessor:
        assert accessor.read_text("src/other.py") == "VALUE = 1\n"
        assert accessor.read_text("missing.py") is None
