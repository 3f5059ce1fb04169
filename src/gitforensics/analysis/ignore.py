"""Gitignore-style exclusion of generated, vendored and lock files."""

from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import pathspec
import structlog

logger = structlog.get_logger(__name__)

DEFAULT_IGNORE_PATTERNS = [
    # JavaScript / Node
    "node_modules/",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "npm-debug.log",
    "dist/",
    "build/",
    ".next/",
    ".nuxt/",
    ".cache/",
    "coverage/",
    # Python
    "__pycache__/",
    "*.pyc",
    "*.pyo",
    "*.pyd",
    ".Python",
    "venv/",
    ".venv/",
    "env/",
    "pip-log.txt",
    ".pytest_cache/",
    ".mypy_cache/",
    "*.egg-info/",
    ".tox/",
    # JVM
    "target/",
    "*.class",
    "*.jar",
    "*.war",
    ".gradle/",
    ".mvn/",
    # Native
    "*.o",
    "*.obj",
    "*.exe",
    "*.dll",
    "*.so",
    "*.dylib",
    "*.a",
    "*.lib",
    # Rust / Go / Ruby / PHP
    "Cargo.lock",
    "vendor/",
    "*.test",
    "*.out",
    "Gemfile.lock",
    ".bundle/",
    "composer.lock",
    # .NET and generic output
    "bin/",
    "obj/",
    "*.pdb",
    "out/",
    "output/",
    "release/",
    "debug/",
    # Editors and OS
    ".vscode/",
    ".idea/",
    "*.swp",
    "*.swo",
    "*~",
    ".DS_Store",
    "Thumbs.db",
    # VCS and logs
    ".git/",
    ".svn/",
    ".hg/",
    "*.log",
    "logs/",
]


class IgnoreFilter:
    """Compiled exclusion patterns, immutable once built."""

    def __init__(self, patterns: Sequence[str]) -> None:
        self.patterns = tuple(patterns)
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", self.patterns)

    @classmethod
    def for_repository(
        cls, repo_root: Path, extra_patterns: Optional[Iterable[str]] = None
    ) -> "IgnoreFilter":
        """Build the filter for a repository.

        Combines the built-in defaults, the repository's ``.gitignore`` and any
        configured patterns, in that order.

        Args:
            repo_root: Repository root
            extra_patterns: Patterns from repository configuration

        Returns:
            IgnoreFilter instance
        """
        patterns: List[str] = list(DEFAULT_IGNORE_PATTERNS)

        gitignore = Path(repo_root) / ".gitignore"
        try:
            patterns.extend(gitignore.read_text(encoding="utf-8").splitlines())
        except FileNotFoundError:
            pass
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("gitignore_unreadable", path=str(gitignore), error=str(e))

        if extra_patterns:
            patterns.extend(extra_patterns)

        return cls(patterns)

    def is_ignored(self, file_path: str) -> bool:
        """Check whether a repository-relative path is excluded.

        Args:
            file_path: Repository-relative path, either separator style

        Returns:
            True if the path should be left out of results
        """
        normalized = file_path.replace("\\", "/")
        if normalized.startswith("./"):
            normalized = normalized[2:]
        if not normalized:
            return False
        return self._spec.match_file(normalized)

    def filter(self, paths: Iterable[str]) -> List[str]:
        return [p for p in paths if not self.is_ignored(p)]
