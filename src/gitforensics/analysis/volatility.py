"""Volatility engine: how often and how urgently a file changes."""

import re
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.models import (
    AuthorContribution,
    CommitMetadata,
    ForensicsConfig,
    ProjectMetrics,
    RecencyStats,
    VolatilityResult,
)

logger = structlog.get_logger(__name__)

BASE_PANIC_KEYWORDS: Dict[str, float] = {
    # Critical
    "security": 3, "vulnerability": 3, "cve": 3, "exploit": 3,
    "crash": 3, "data loss": 3, "corruption": 3, "breach": 3,
    # Urgent
    "revert": 2, "hotfix": 2, "urgent": 2, "breaking": 2,
    "critical": 2, "emergency": 2, "rollback": 2, "regression": 2,
    # Corrective
    "fix": 1, "bugfix": 1, "bug": 1, "patch": 1, "oops": 1, "typo": 1,
    "issue": 1, "error": 1, "wrong": 1, "mistake": 1, "broken": 1,
    # Maintenance
    "refactor": 0.5, "cleanup": 0.5, "lint": 0.5, "format": 0.5,
}

# Commits at or above this weight count towards the panic score
PANIC_WEIGHT_FLOOR = 1.0
SEVERE_WEIGHT = 2.0
MAX_KEYWORD_WEIGHT = 3.0
WEIGHTED_SAMPLE = 20


def get_effective_panic_keywords(config: Optional[ForensicsConfig]) -> Dict[str, float]:
    """Built-in lexicon extended by ``panic_lexicon`` and overridden by ``panic_keywords``."""
    keywords = dict(BASE_PANIC_KEYWORDS)
    if config is None:
        return keywords
    for word in config.panic_lexicon:
        keywords.setdefault(word.lower(), 1.0)
    for word, weight in config.panic_keywords.items():
        keywords[word.lower()] = weight
    return keywords


# Plural and past or progressive forms count as the keyword itself
INFLECTIONS = r"(?:s|es|d|ed|ing)?"


class UrgencyLexicon:
    """Weighted urgency keywords matched as whole words, case-insensitively."""

    def __init__(self, keywords: Dict[str, float]) -> None:
        self.keywords = dict(keywords)
        self._patterns = [
            (re.compile(r"(?<![a-z0-9])" + re.escape(word.lower()) + INFLECTIONS + r"(?![a-z0-9])"), weight)
            for word, weight in self.keywords.items()
        ]

    @classmethod
    def from_config(cls, config: Optional[ForensicsConfig]) -> "UrgencyLexicon":
        return cls(get_effective_panic_keywords(config))

    def weight(self, message: str) -> float:
        """Highest weight among the keywords present in ``message``."""
        lowered = message.lower()
        return max((w for p, w in self._patterns if p.search(lowered)), default=0.0)


def age_in_days(commit_time: datetime, now: Optional[datetime] = None) -> int:
    """Whole days since ``commit_time``, never negative."""
    return max(0, ((now or datetime.now()) - commit_time).days)


def calculate_recency_decay(
    commit_time: datetime, half_life_days: float = 30.0, now: Optional[datetime] = None
) -> float:
    """Weight of a commit by age: halves every ``half_life_days`` whole days."""
    return 0.5 ** (age_in_days(commit_time, now) / half_life_days)


def summarize_history(
    history: List[CommitMetadata],
    lexicon: UrgencyLexicon,
    metrics: ProjectMetrics,
    half_life_days: float = 30.0,
    window_days: int = 30,
    now: Optional[datetime] = None,
) -> VolatilityResult:
    """Score a file's commit history.

    Args:
        history: Commits touching the file, newest first
        lexicon: Urgency lexicon used to classify messages
        metrics: Repository metrics for the relative frequency
        half_life_days: Recency decay half-life
        window_days: Window for the file's commits-per-week figure
        now: Reference time

    Returns:
        VolatilityResult
    """
    if not history:
        return VolatilityResult()

    now = now or datetime.now()
    panic_count = 0
    weighted_total = 0.0
    panic_commits: List[str] = []
    total_decay = 0.0
    oldest_days = 0
    newest_days: Optional[int] = None
    recent = 0
    authors: Dict[str, dict] = {}

    for index, commit in enumerate(history):
        weight = lexicon.weight(commit.message)
        days_ago = age_in_days(commit.timestamp, now)
        decay = calculate_recency_decay(commit.timestamp, half_life_days, now)

        total_decay += decay
        oldest_days = max(oldest_days, days_ago)
        newest_days = days_ago if newest_days is None else min(newest_days, days_ago)
        if now - commit.timestamp <= timedelta(days=window_days):
            recent += 1

        if weight >= PANIC_WEIGHT_FLOOR:
            panic_count += 1
        if index < WEIGHTED_SAMPLE and weight > 0:
            weighted_total += weight * decay
        if weight >= SEVERE_WEIGHT:
            panic_commits.append((commit.message_summary or commit.message)[:60])

        key = commit.author_email or commit.author_name
        entry = authors.get(key)
        if entry is None:
            authors[key] = {
                "name": commit.author_name,
                "email": commit.author_email,
                "commits": 1,
                "first": commit.timestamp,
                "last": commit.timestamp,
            }
        else:
            entry["commits"] += 1
            entry["first"] = min(entry["first"], commit.timestamp)
            entry["last"] = max(entry["last"], commit.timestamp)

    commit_count = len(history)
    author_details = sorted(
        (
            AuthorContribution(
                name=a["name"],
                email=a["email"],
                commits=a["commits"],
                percentage=round(a["commits"] / commit_count * 100),
                first_commit=a["first"].date(),
                last_commit=a["last"].date(),
            )
            for a in authors.values()
        ),
        key=lambda a: a.commits,
        reverse=True,
    )

    max_weighted = WEIGHTED_SAMPLE * MAX_KEYWORD_WEIGHT
    commits_per_week = recent / window_days * 7
    relative_frequency = (
        commits_per_week / metrics.commits_per_week if metrics.commits_per_week > 0 else 0.0
    )

    return VolatilityResult(
        commit_count=commit_count,
        panic_score=round(panic_count / commit_count, 4),
        weighted_score=min(100, round(weighted_total / max_weighted * 100)),
        panic_commits=panic_commits[:3],
        last_commit_at=history[0].timestamp,
        authors=len(authors),
        author_details=author_details,
        top_author=author_details[0] if author_details else None,
        recency=RecencyStats(
            oldest_commit_days=oldest_days,
            newest_commit_days=newest_days or 0,
            decay_factor=round(total_decay / commit_count, 2),
        ),
        commits_per_week=round(commits_per_week, 4),
        relative_frequency=round(relative_frequency, 4),
    )


def get_volatility(
    file_path: Union[str, Path], context: Optional[AnalysisContext] = None
) -> VolatilityResult:
    """Score how often and how urgently a file changes.

    A file without history yields ``commit_count == 0`` and ``panic_score == 0``;
    callers should then ask for sibling guidance.

    Args:
        file_path: File to score
        context: Shared analysis context; a standalone one is created if None

    Returns:
        VolatilityResult
    """
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            "volatility",
            lambda: _compute_volatility(ctx, Path(file_path)),
            VolatilityResult(),
            path=file_path,
        )


def _compute_volatility(ctx: AnalysisContext, file_path: Path) -> VolatilityResult:
    rel_path = ctx.relative(file_path)
    history = ctx.accessor.commits_for_path(
        rel_path, max_count=ctx.thresholds.analysis_window, include_files=False
    )
    result = summarize_history(
        history,
        UrgencyLexicon.from_config(ctx.config),
        ctx.metrics,
        half_life_days=ctx.settings.decay_half_life_days,
        window_days=ctx.metrics_window_days,
    )
    logger.debug(
        "volatility_computed",
        file=rel_path,
        commits=result.commit_count,
        panic_score=result.panic_score,
    )
    return result
