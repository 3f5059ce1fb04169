"""Per-request analysis context shared by every engine."""

import json
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

import structlog
from pydantic import ValidationError

from gitforensics.analysis.cache import MemoizedCache
from gitforensics.analysis.ignore import IgnoreFilter
from gitforensics.exceptions import ConfigParseError, EngineIOError, NotARepositoryError
from gitforensics.extraction import RepositoryAccessor
from gitforensics.models import AdaptiveThresholds, ForensicsConfig, ProjectMetrics, Settings

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_FILENAME = ".gitforensics.json"

# Returned when the metrics scan itself fails
NEUTRAL_METRICS = ProjectMetrics(total_commits=0, commits_per_week=10.0, avg_files_per_commit=3.0)

_UNSET = object()


def find_repository_root(path: Union[str, Path]) -> Path:
    """Walk upward from ``path`` to the nearest directory holding ``.git``.

    Args:
        path: File or directory inside a repository; it need not exist yet

    Returns:
        Absolute repository root

    Raises:
        NotARepositoryError: If no repository is found before the filesystem root
    """
    start = Path(path).expanduser().resolve()
    if not start.is_dir():
        start = start.parent
    while not start.exists() and start != start.parent:
        start = start.parent

    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate

    raise NotARepositoryError(
        "No Git repository found",
        details={"path": str(path), "searched_up_to": start.anchor or "/"},
    )


def parse_config(text: str, source: str = DEFAULT_CONFIG_FILENAME) -> ForensicsConfig:
    """Parse and validate repository configuration.

    Args:
        text: JSON document
        source: Name used in error details

    Returns:
        Validated ForensicsConfig

    Raises:
        ConfigParseError: If the JSON is malformed or fails validation
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigParseError("Malformed configuration JSON", details={"source": source, "error": str(e)}) from e

    if not isinstance(data, dict):
        raise ConfigParseError("Configuration must be a JSON object", details={"source": source})

    try:
        return ForensicsConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(
            "Invalid configuration",
            details={"source": source, "errors": str(e.error_count())},
        ) from e


def read_config(repo_root: Path, filename: str = DEFAULT_CONFIG_FILENAME) -> Optional[ForensicsConfig]:
    """Read the repository configuration file.

    Returns:
        ForensicsConfig, or None if the file does not exist

    Raises:
        ConfigParseError: If the file exists but cannot be used
    """
    config_path = Path(repo_root) / filename
    try:
        text = config_path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigParseError("Unreadable configuration", details={"source": str(config_path)}) from e
    return parse_config(text, source=str(config_path))


def load_config(repo_root: Path, filename: str = DEFAULT_CONFIG_FILENAME) -> Optional[ForensicsConfig]:
    """Load repository configuration, falling back to None on any problem."""
    try:
        return read_config(repo_root, filename)
    except ConfigParseError as e:
        logger.warning("config_parse_failed", repo=str(repo_root), error=str(e))
        return None


def compute_project_metrics(
    accessor: RepositoryAccessor,
    window_days: int = 30,
    max_commits: int = 500,
    now: Optional[datetime] = None,
) -> ProjectMetrics:
    """Measure recent repository activity with one bounded log scan.

    Args:
        accessor: Repository accessor
        window_days: How far back to look
        max_commits: Cap on commits examined
        now: Reference time, defaults to the current time

    Returns:
        ProjectMetrics, neutral values if the log cannot be read
    """
    since = (now or datetime.now()) - timedelta(days=window_days)
    try:
        commits = accessor.commits_since(since, max_count=max_commits)
        sample = commits[:10]
        sampled_files = sum(len(accessor.changed_files(c.hash)) for c in sample)
    except EngineIOError as e:
        logger.warning("project_metrics_failed", repo=str(accessor.repo_root), error=str(e))
        return NEUTRAL_METRICS

    return ProjectMetrics(
        total_commits=len(commits),
        commits_per_week=len(commits) / window_days * 7,
        avg_files_per_commit=sampled_files / len(sample) if sample else 3.0,
    )


def get_adaptive_thresholds(
    metrics: ProjectMetrics, config: Optional[ForensicsConfig] = None
) -> AdaptiveThresholds:
    """Tune coupling thresholds to the project's velocity.

    Slow projects get a stricter coupling threshold over fewer commits, busy
    projects a looser one over more. Large average commits add noise, so they
    raise the threshold. Explicit configuration always wins.
    """
    coupling_threshold = 0.15
    analysis_window = 50

    if metrics.commits_per_week < 5:
        coupling_threshold = 0.20
        analysis_window = 30
    elif metrics.commits_per_week > 50:
        coupling_threshold = 0.10
        analysis_window = 100

    if metrics.avg_files_per_commit > 5:
        coupling_threshold += 0.05

    effective = config or ForensicsConfig()
    if effective.coupling_threshold is not None:
        coupling_threshold = effective.coupling_threshold
    if effective.analysis_window is not None:
        analysis_window = effective.analysis_window

    return AdaptiveThresholds(
        coupling_threshold=round(coupling_threshold, 4),
        analysis_window=analysis_window,
        drift_days=effective.drift_threshold_days,
    )


class AnalysisContext:
    """Git session, ignore rules, configuration and metrics for one analysis.

    Built once per request and passed by reference into every engine so they
    share one repository session and one set of metrics.
    """

    def __init__(
        self,
        target_path: Path,
        accessor: RepositoryAccessor,
        ignore_filter: IgnoreFilter,
        config: Optional[ForensicsConfig],
        metrics: ProjectMetrics,
        cache: MemoizedCache,
        config_error: Optional[str] = None,
        metrics_window_days: int = 30,
    ) -> None:
        self.target_path = target_path
        self.accessor = accessor
        self.ignore_filter = ignore_filter
        self.config = config
        self.metrics = metrics
        self.cache = cache
        self.config_error = config_error
        self.metrics_window_days = metrics_window_days
        self.thresholds = get_adaptive_thresholds(metrics, config)
        self.failures: Dict[str, str] = {}

    @property
    def repo_root(self) -> Path:
        return self.accessor.repo_root

    @property
    def settings(self) -> ForensicsConfig:
        """Configuration with defaults filled in when no file was present."""
        return self.config or ForensicsConfig()

    def relative(self, path: Union[str, Path]) -> str:
        return self.accessor.relative_path(path)

    def cache_key(self, engine: str, path: Optional[Union[str, Path]] = None) -> str:
        """Build ``"<engine>:<absolute path>"``, suffixed with the config key if any."""
        target = Path(path).resolve() if path is not None else self.target_path
        key = f"{engine}:{target}"
        if self.config is not None:
            key = f"{key}:{self.config.cache_key()}"
        return key

    def run_engine(
        self,
        engine: str,
        compute: Callable[[], Any],
        default: Any,
        path: Optional[Union[str, Path]] = None,
        use_cache: bool = True,
    ) -> Any:
        """Run an engine computation through the cache.

        Read failures are logged, recorded in ``failures`` and replaced by
        ``default``; they are not cached.

        Args:
            engine: Engine name, used as cache namespace
            compute: Zero-argument callable producing the result
            default: Neutral result returned on failure
            path: File the engine is run for, defaults to the target
            use_cache: Whether to read and write the cache

        Returns:
            Engine result
        """
        key = self.cache_key(engine, path)
        if use_cache:
            cached = self.cache.get(key, _UNSET)
            if cached is not _UNSET:
                return cached

        try:
            result = compute()
        except EngineIOError as e:
            logger.warning("engine_failed", engine=engine, key=key, error=str(e))
            self.failures[engine] = str(e)
            return default

        if use_cache:
            self.cache.set(key, result)
        return result

    def close(self) -> None:
        self.accessor.close()


def create_analysis_context(
    target_path: Union[str, Path],
    cache: Optional[MemoizedCache] = None,
    settings: Optional[Settings] = None,
    config: Optional[ForensicsConfig] = None,
) -> AnalysisContext:
    """Create the context for analysing one file.

    Args:
        target_path: File to analyse (need not be committed yet)
        cache: Cache to share across contexts; a fresh one is created if None
        settings: Process settings, loaded from the environment if None
        config: Repository configuration; read from the repository if None

    Returns:
        AnalysisContext

    Raises:
        NotARepositoryError: If the path is not inside a Git repository
    """
    settings = settings or Settings()
    target = Path(target_path).expanduser().resolve()
    repo_root = find_repository_root(target)
    accessor = RepositoryAccessor(repo_root)

    config_error = None
    if config is None:
        try:
            config = read_config(accessor.repo_root, settings.config_filename)
        except ConfigParseError as e:
            logger.warning("config_parse_failed", repo=str(accessor.repo_root), error=str(e))
            config_error = str(e)

    ignore_filter = IgnoreFilter.for_repository(
        accessor.repo_root, config.ignore_patterns if config else None
    )
    metrics = compute_project_metrics(
        accessor,
        window_days=settings.metrics_window_days,
        max_commits=settings.metrics_max_commits,
    )
    if cache is None:
        cache = MemoizedCache(
            ttl_seconds=settings.cache_ttl_seconds, max_entries=settings.cache_max_entries
        )

    logger.debug(
        "analysis_context_created",
        target=str(target),
        repo_root=str(accessor.repo_root),
        has_config=config is not None,
        commits_per_week=round(metrics.commits_per_week, 2),
    )

    return AnalysisContext(
        target_path=target,
        accessor=accessor,
        ignore_filter=ignore_filter,
        config=config,
        metrics=metrics,
        cache=cache,
        config_error=config_error,
        metrics_window_days=settings.metrics_window_days,
    )


@contextmanager
def ensure_context(
    file_path: Union[str, Path], context: Optional[AnalysisContext] = None
) -> Iterator[AnalysisContext]:
    """Resolve an optional context into a concrete one.

    A supplied context is used as-is. Without one, a standalone context is
    created for ``file_path`` and closed when the block exits.
    """
    if context is not None:
        yield context
        return

    standalone = create_analysis_context(file_path)
    try:
        yield standalone
    finally:
        standalone.close()
