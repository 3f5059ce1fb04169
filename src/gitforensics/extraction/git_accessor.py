"""Read-only access to one Git repository."""

import threading
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

import git
import structlog
from git import Commit, Repo

from gitforensics.exceptions import EngineIOError, InvalidInputError, NotARepositoryError
from gitforensics.models import CommitMetadata

logger = structlog.get_logger(__name__)

# Extensions never worth diffing
BINARY_EXTENSIONS = frozenset(
    {
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".svg", ".tiff", ".psd",
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
        ".zip", ".tar", ".gz", ".rar", ".7z", ".bz2",
        ".woff", ".woff2", ".ttf", ".eot", ".otf",
        ".mp3", ".mp4", ".wav", ".avi", ".mov", ".mkv", ".flac",
        ".exe", ".dll", ".so", ".dylib", ".a", ".lib", ".o", ".obj",
        ".bin", ".dat", ".db", ".sqlite", ".sqlite3",
    }
)

BINARY_MARKER = "[Binary file]"


class RepositoryAccessor:
    """Commit-log queries and working-tree reads against one repository root.

    GitPython's ``Repo`` keeps long-running ``git cat-file`` helpers that are not
    safe to drive from several threads, so every git call goes through one
    re-entrant lock owned by the accessor.
    """

    def __init__(self, repo_root: Union[str, Path]) -> None:
        """Open the repository.

        Args:
            repo_root: Repository working tree root

        Raises:
            NotARepositoryError: If the path is missing or not a Git repository
        """
        repo_root = Path(repo_root)
        if not repo_root.exists():
            raise NotARepositoryError(
                "Repository path does not exist", details={"path": str(repo_root)}
            )

        try:
            self.repo = Repo(repo_root)
        except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
            raise NotARepositoryError(
                "Invalid Git repository", details={"path": str(repo_root)}
            ) from e

        if self.repo.working_tree_dir is None:
            raise NotARepositoryError("Bare repositories are not supported", details={"path": str(repo_root)})

        self.repo_root = Path(self.repo.working_tree_dir).resolve()
        self._lock = threading.RLock()

    def __enter__(self) -> "RepositoryAccessor":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Release git helper processes."""
        with self._lock:
            self.repo.close()

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def relative_path(self, path: Union[str, Path]) -> str:
        """Convert a path to a POSIX path relative to the repository root.

        Raises:
            InvalidInputError: If the path lies outside the repository
        """
        candidate = Path(path)
        if not candidate.is_absolute():
            candidate = self.repo_root / candidate
        try:
            return candidate.resolve().relative_to(self.repo_root).as_posix()
        except ValueError as e:
            raise InvalidInputError(
                "Path is outside the repository",
                details={"path": str(path), "repo_root": str(self.repo_root)},
            ) from e

    def absolute_path(self, rel_path: str) -> Path:
        return self.repo_root / rel_path

    # ------------------------------------------------------------------
    # Commit log
    # ------------------------------------------------------------------

    def has_commits(self) -> bool:
        """Return True once HEAD points at a commit."""
        with self._lock:
            return self.repo.head.is_valid()

    def commits_for_path(
        self,
        rel_path: str,
        max_count: Optional[int] = None,
        include_files: bool = True,
    ) -> List[CommitMetadata]:
        """List commits touching a path, newest first.

        Args:
            rel_path: Repository-relative path
            max_count: Maximum number of commits to return
            include_files: Whether to resolve each commit's changed files

        Returns:
            List of CommitMetadata objects

        Raises:
            EngineIOError: If git fails
        """
        kwargs = {"paths": rel_path}
        if max_count:
            kwargs["max_count"] = max_count
        return self._collect(kwargs, include_files)

    def commits_since(
        self,
        since: datetime,
        max_count: Optional[int] = None,
        include_files: bool = False,
    ) -> List[CommitMetadata]:
        """List commits newer than ``since``, newest first.

        Raises:
            EngineIOError: If git fails
        """
        kwargs = {"since": since.isoformat()}
        if max_count:
            kwargs["max_count"] = max_count
        return self._collect(kwargs, include_files)

    def changed_files(self, commit_hash: str) -> List[str]:
        """List paths changed by a commit.

        Raises:
            EngineIOError: If the commit cannot be read
        """
        with self._lock:
            try:
                return self._files_changed(self.repo.commit(commit_hash))
            except (git.exc.GitCommandError, git.exc.BadName, ValueError) as e:
                raise EngineIOError(
                    "Could not read commit", details={"commit": commit_hash}
                ) from e

    def last_commit_time(self, rel_path: str) -> Optional[datetime]:
        """Return the time of the newest commit touching a path, or None."""
        commits = self.commits_for_path(rel_path, max_count=1, include_files=False)
        return commits[0].timestamp if commits else None

    def is_modified(self, rel_path: str) -> bool:
        """Return True if the path is untracked or has uncommitted changes."""
        with self._lock:
            try:
                if rel_path in self.repo.untracked_files:
                    return True
                if not self.repo.head.is_valid():
                    return True
                return self.repo.is_dirty(index=True, working_tree=True, path=rel_path)
            except git.exc.GitCommandError as e:
                raise EngineIOError("Could not read status", details={"path": rel_path}) from e

    def diff_snippet(self, commit_hash: str, rel_path: str, max_chars: int = 1000) -> str:
        """Get the diff a commit made to one file.

        Args:
            commit_hash: Commit hash
            rel_path: Repository-relative path
            max_chars: Truncate the diff beyond this many characters

        Returns:
            Unified diff text, or ``BINARY_MARKER`` for binary files

        Raises:
            EngineIOError: If git fails
        """
        if Path(rel_path).suffix.lower() in BINARY_EXTENSIONS:
            return BINARY_MARKER

        with self._lock:
            try:
                raw = self.repo.git.show(commit_hash, "--format=", "--", rel_path)
            except git.exc.GitCommandError as e:
                raise EngineIOError(
                    "Could not read diff", details={"commit": commit_hash, "path": rel_path}
                ) from e

        if any(line.startswith("Binary files ") and line.endswith(" differ") for line in raw.splitlines()):
            return BINARY_MARKER

        start = raw.find("diff --git")
        diff_text = raw[start:] if start > -1 else raw
        if len(diff_text) > max_chars:
            diff_text = diff_text[:max_chars] + "\n...(truncated)"
        return diff_text

    # ------------------------------------------------------------------
    # Content search
    # ------------------------------------------------------------------

    def grep_files(
        self,
        patterns: Sequence[str],
        pathspecs: Iterable[str] = (),
        ignore_case: bool = False,
        fixed_strings: bool = False,
    ) -> List[str]:
        """List tracked files whose content matches any pattern.

        Args:
            patterns: Extended regular expressions (or literals with fixed_strings)
            pathspecs: Optional pathspecs limiting the search
            ignore_case: Case-insensitive matching
            fixed_strings: Treat patterns as literal strings

        Returns:
            Repository-relative paths, in git's order

        Raises:
            EngineIOError: If git fails for a reason other than "no match"
        """
        if not patterns:
            return []

        args = ["-l", "-I"]
        if ignore_case:
            args.append("-i")
        args.append("-F" if fixed_strings else "-E")
        for pattern in patterns:
            args.extend(["-e", pattern])
        args.append("--")
        args.extend(pathspecs)

        with self._lock:
            try:
                output = self.repo.git.grep(*args)
            except git.exc.GitCommandError as e:
                # git grep exits 1 when nothing matches
                if e.status == 1:
                    return []
                raise EngineIOError("git grep failed", details={"patterns": ",".join(patterns)}) from e

        return [line.strip() for line in output.splitlines() if line.strip()]

    def list_files(self) -> List[str]:
        """List tracked files, repository-relative."""
        with self._lock:
            try:
                output = self.repo.git.ls_files()
            except git.exc.GitCommandError as e:
                raise EngineIOError("git ls-files failed", details={"repo": str(self.repo_root)}) from e
        return [line for line in output.splitlines() if line]

    def read_text(self, rel_path: str) -> Optional[str]:
        """Read a working-tree file as UTF-8.

        Returns:
            File content, or None if missing, unreadable or binary
        """
        path = self.absolute_path(rel_path)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _collect(self, kwargs: dict, include_files: bool) -> List[CommitMetadata]:
        with self._lock:
            try:
                if not self.repo.head.is_valid():
                    return []
                commits = list(self.repo.iter_commits("HEAD", **kwargs))
                return [self._extract_commit_metadata(c, include_files) for c in commits]
            except git.exc.GitCommandError as e:
                logger.warning("git_log_failed", repo=str(self.repo_root), error=str(e))
                raise EngineIOError(
                    "Could not read commit log", details={"repo": str(self.repo_root)}
                ) from e

    def _files_changed(self, commit: Commit) -> List[str]:
        if commit.parents:
            diff_index = commit.parents[0].diff(commit)
        else:
            diff_index = commit.diff(git.NULL_TREE)
        files = []
        for diff in diff_index:
            file_path = diff.b_path or diff.a_path
            if file_path and file_path not in files:
                files.append(file_path)
        return files

    def _extract_commit_metadata(self, commit: Commit, include_files: bool) -> CommitMetadata:
        """Extract metadata from a GitPython Commit object.

        Args:
            commit: GitPython Commit object
            include_files: Whether to diff the commit for its changed files

        Returns:
            CommitMetadata object
        """
        message = commit.message.strip()
        message_lines = message.split("\n")
        message_summary = message_lines[0] if message_lines else ""

        return CommitMetadata(
            hash=commit.hexsha,
            short_hash=commit.hexsha[:7],
            author_name=commit.author.name or "",
            author_email=commit.author.email or "",
            timestamp=datetime.fromtimestamp(commit.committed_date),
            message=message,
            message_summary=message_summary,
            files_changed=self._files_changed(commit) if include_files else [],
            is_merge=len(commit.parents) > 1,
        )
