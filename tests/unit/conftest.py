"""Shared fixtures: throwaway Git repositories with dated commits."""

import tempfile
import time
from pathlib import Path

import git
import pytest


class RepoBuilder:
    """Write files and commit them at chosen ages."""

    def __init__(self, path: Path):
        self.path = path
        self.repo = git.Repo.init(path)
        self.repo.config_writer().set_value("user", "name", "Test User").release()
        self.repo.config_writer().set_value("user", "email", "test@example.com").release()

    def write(self, name: str, content: str) -> Path:
        file_path = self.path / name
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        return file_path

    def commit(self, files, message, days_ago=0.0, author=("Test User", "test@example.com")):
        """Write ``files`` (name -> content) and commit them ``days_ago`` days back."""
        for name, content in files.items():
            self.write(name, content)
        self.repo.index.add(list(files))

        date = f"{int(time.time() - days_ago * 86400)} +0000"
        actor = git.Actor(*author)
        return self.repo.index.commit(
            message, author=actor, committer=actor, author_date=date, commit_date=date
        )


@pytest.fixture
def repo_builder():
    """Create an empty temporary Git repository."""
    with tempfile.TemporaryDirectory() as tmpdir:
        builder = RepoBuilder(Path(tmpdir).resolve())
        yield builder
        builder.repo.close()


@pytest.fixture
def coupled_repo(repo_builder):
    """Repository where src/api.py always changes with src/models.py."""
    b = repo_builder
    b.commit({"README.md": "# Demo\n"}, "Initial commit", days_ago=40)
    b.commit(
        {"src/api.py": "def handler():\n    return 1\n", "src/models.py": "class User:\n    pass\n"},
        "Add api and models",
        days_ago=30,
    )
    b.commit(
        {"src/api.py": "def handler():\n    return 2\n", "src/models.py": "class User:\n    name = ''\n"},
        "Fix user serialisation bug",
        days_ago=20,
    )
    b.commit(
        {"src/api.py": "def handler():\n    return 3\n", "src/models.py": "class User:\n    name = 'x'\n"},
        "hotfix: revert handler change",
        days_ago=10,
    )
    b.commit({"src/api.py": "def handler():\n    return 4\n"}, "Tweak handler", days_ago=5)
    b.commit({"src/other.py": "VALUE = 1\n"}, "Add other module", days_ago=4)
    return b
