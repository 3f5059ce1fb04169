"""Co-change coupling: files that historically change together with the target."""

import re
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.analysis.ignore import IgnoreFilter
from gitforensics.analysis.volatility import calculate_recency_decay
from gitforensics.exceptions import EngineIOError
from gitforensics.extraction import BINARY_MARKER
from gitforensics.models import CommitMetadata, CoupledFile, CouplingSignal, DiffSummary

logger = structlog.get_logger(__name__)

CHANGE_TYPE_PATTERNS = {
    "schema": [
        re.compile(r"\b(interface|type|schema|class|struct|enum)\b"),
        re.compile(r":\s*(string|number|boolean|Date|any|null|undefined)\b"),
        re.compile(r"\b(extends|implements)\b"),
    ],
    "api": [
        re.compile(r"\b(function|async|export\s+(const|function|class)|def\s+\w+|func\s+\w+)\b"),
        re.compile(r"\b(return|throw|await|yield)\b"),
        re.compile(r"=>\s*[{(]"),
    ],
    "import": [re.compile(r"^(import|export\s+\*|from\s+['\"]|require\s*\()", re.MULTILINE)],
    "config": [
        re.compile(r"\b(config|env|setting|option|constant)\b", re.IGNORECASE),
        re.compile(r"^[A-Z][A-Z_0-9]+\s*[:=]"),
        re.compile(r"\.(json|yaml|yml|toml|ini|env)"),
    ],
    "test": [
        re.compile(r"\b(describe|it|test|expect|mock|jest|vitest|pytest|spec)\b"),
        re.compile(r"\.(test|spec)\.(ts|js|tsx|jsx)"),
    ],
}

BREAKING_PATTERNS = [
    re.compile(r"\b(remove|delete|deprecate)\b", re.IGNORECASE),
    re.compile(r"^-\s*(export|public|module\.exports)"),
    re.compile(r"^-\s*(async\s+)?(function|def)\s+\w+"),
    re.compile(r"^-\s*(interface|type|class)\s+\w+"),
]

# Order in which a file reported by several sources keeps its entry
SOURCE_PRIORITY = {
    source: rank
    for rank, source in enumerate(
        ["git", "test", "api", "schema", "env", "docs", "type", "transitive", "content"]
    )
}
MAX_MERGED_RESULTS = 15
TEST_COUPLING_SCORE = 0.85
MAX_TEST_FILES = 5

_TEST_NAME = re.compile(r"\.(test|spec)\.|\.(test|spec)$|_test\.|^test_", re.IGNORECASE)


def _squash(line: str) -> str:
    return re.sub(r"\s", "", line)


def classify_change_type(additions: Sequence[str], removals: Sequence[str]) -> str:
    """Guess what kind of relationship a diff represents."""
    combined = "\n".join([*additions, *removals])
    for change_type, patterns in CHANGE_TYPE_PATTERNS.items():
        if any(p.search(combined) for p in patterns):
            return change_type

    if additions and len(additions) == len(removals):
        if all(_squash(added) == _squash(removed) for added, removed in zip(additions, removals)):
            return "style"

    return "unknown"


def parse_diff_summary(raw_diff: str) -> DiffSummary:
    """Digest a unified diff into a DiffSummary.

    Args:
        raw_diff: Diff text, or the binary marker

    Returns:
        DiffSummary with at most 10 additions and removals
    """
    if raw_diff == BINARY_MARKER or "Binary files" in raw_diff:
        return DiffSummary()

    additions: List[str] = []
    removals: List[str] = []
    hunks = 0
    for line in raw_diff.split("\n"):
        if line.startswith("@@"):
            hunks += 1
        elif line.startswith("+") and not line.startswith("+++"):
            content = line[1:].strip()
            if content:
                additions.append(content)
        elif line.startswith("-") and not line.startswith("---"):
            content = line[1:].strip()
            if content:
                removals.append(content)

    has_breaking_change = any(
        p.search(f"-{removal}") for removal in removals for p in BREAKING_PATTERNS
    )

    return DiffSummary(
        additions=additions[:10],
        removals=removals[:10],
        hunks=hunks,
        net_change=len(additions) - len(removals),
        has_breaking_change=has_breaking_change,
        change_type=classify_change_type(additions, removals),
    )


def score_co_changes(
    history: List[CommitMetadata],
    target: str,
    ignore_filter: IgnoreFilter,
    max_files_per_commit: int = 15,
    min_co_changes: int = 2,
    half_life_days: float = 30.0,
    coupling_threshold: float = 0.0,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> List[CoupledFile]:
    """Tally co-changes of ``target`` into scored coupled files.

    The score of a file is the sum of the recency decay of every commit it
    shares with the target, divided by the number of target commits examined,
    so it always lies in [0, 1].

    Args:
        history: Commits touching the target, newest first, with files resolved
        target: Repository-relative path of the target
        ignore_filter: Exclusion rules
        max_files_per_commit: Bulk commits above this size are skipped
        min_co_changes: Minimum shared commits for a file to be reported
        half_life_days: Recency decay half-life
        coupling_threshold: Minimum score to report
        limit: Maximum number of results
        now: Reference time for the decay

    Returns:
        Coupled files sorted by descending score
    """
    if not history:
        return []

    now = now or datetime.now()
    tallies: Dict[str, dict] = {}

    for commit in history:
        files = commit.files_changed
        if len(files) > max_files_per_commit:
            continue

        decay = calculate_recency_decay(commit.timestamp, half_life_days, now)

        for file_path in files:
            if file_path == target or ignore_filter.is_ignored(file_path):
                continue
            tally = tallies.get(file_path)
            if tally is None:
                # History is newest first, so the first sighting is the latest
                tally = tallies[file_path] = {"count": 0, "weight": 0.0, "commit": commit}
            tally["count"] += 1
            tally["weight"] += decay

    total = len(history)
    coupled = [
        CoupledFile(
            file=file_path,
            co_change_count=tally["count"],
            score=round(min(1.0, tally["weight"] / total), 4),
            last_co_changed_at=tally["commit"].timestamp,
            last_commit_hash=tally["commit"].hash,
            last_commit_message=tally["commit"].message_summary or "",
        )
        for file_path, tally in tallies.items()
        if tally["count"] >= min_co_changes
    ]
    coupled = [c for c in coupled if c.score >= coupling_threshold]
    coupled.sort(key=lambda c: (-c.score, -c.co_change_count, c.file))
    return coupled[:limit]


def get_coupled_files(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    include_evidence: bool = True,
) -> List[CoupledFile]:
    """Find files that historically change together with ``file_path``.

    Args:
        file_path: Target file
        context: Shared analysis context; a standalone one is created if None
        include_evidence: Attach a diff summary from the latest shared commit

    Returns:
        Coupled files sorted by descending score, empty for files without history
    """
    engine = "coupling" if include_evidence else "coupling-bare"
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            engine,
            lambda: _compute_coupled_files(ctx, Path(file_path), include_evidence),
            [],
            path=file_path,
        )


def _compute_coupled_files(
    ctx: AnalysisContext, file_path: Path, include_evidence: bool
) -> List[CoupledFile]:
    rel_path = ctx.relative(file_path)
    config = ctx.settings
    history = ctx.accessor.commits_for_path(rel_path, max_count=ctx.thresholds.analysis_window)

    coupled = score_co_changes(
        history,
        rel_path,
        ctx.ignore_filter,
        max_files_per_commit=config.max_files_per_commit,
        min_co_changes=config.min_co_changes,
        half_life_days=config.decay_half_life_days,
        coupling_threshold=ctx.thresholds.coupling_threshold,
        limit=config.max_coupled_files,
    )

    if include_evidence:
        coupled = [_with_evidence(ctx, c) for c in coupled]

    logger.debug("coupling_computed", file=rel_path, commits=len(history), coupled=len(coupled))
    return coupled


def _with_evidence(ctx: AnalysisContext, coupled: CoupledFile) -> CoupledFile:
    try:
        raw_diff = ctx.accessor.diff_snippet(coupled.last_commit_hash, coupled.file)
    except EngineIOError as e:
        logger.debug("evidence_unavailable", file=coupled.file, error=str(e))
        return coupled
    return coupled.model_copy(update={"evidence": parse_diff_summary(raw_diff)})


def is_test_file(file_path: str) -> bool:
    return bool(_TEST_NAME.search(PurePosixPath(file_path).name))


def get_test_coupling(
    file_path: Union[str, Path], context: Optional[AnalysisContext] = None
) -> List[CouplingSignal]:
    """Find test files named after ``file_path`` (``x.test.ts``, ``test_x.py`` ...).

    Returns:
        Up to 5 test coupling signals; empty when the target is itself a test
    """
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            "test-coupling",
            lambda: _compute_test_coupling(ctx, Path(file_path)),
            [],
            path=file_path,
        )


def _compute_test_coupling(ctx: AnalysisContext, file_path: Path) -> List[CouplingSignal]:
    if is_test_file(file_path.name):
        return []

    rel_path = ctx.relative(file_path)
    stem = re.escape(file_path.stem)
    pattern = re.compile(
        rf"^(?:{stem}\.(?:test|spec)\.|{stem}_test\.|test_{stem}\.|{stem}-(?:test|spec)\.)"
    )

    results = []
    for candidate in ctx.accessor.list_files():
        if candidate == rel_path or ctx.ignore_filter.is_ignored(candidate):
            continue
        if pattern.match(PurePosixPath(candidate).name):
            results.append(
                CouplingSignal(
                    file=candidate,
                    score=TEST_COUPLING_SCORE,
                    reason=f"Test file for {file_path.stem}. Update when changing exports.",
                    source="test",
                )
            )
        if len(results) >= MAX_TEST_FILES:
            break
    return results


def merge_coupling_results(
    coupled: Sequence[CoupledFile], *signal_lists: Sequence[CouplingSignal]
) -> List[Union[CoupledFile, CouplingSignal]]:
    """Combine coupling from every source into one ranked list.

    A file reported by several sources is kept once, from the source with the
    highest priority: git, then test, api, schema, env, docs, type,
    transitive and content.
    """
    candidates: List[Union[CoupledFile, CouplingSignal]] = list(coupled)
    for signals in signal_lists:
        candidates.extend(signals)
    candidates.sort(key=lambda c: SOURCE_PRIORITY.get(c.source, len(SOURCE_PRIORITY)))

    seen = set()
    merged = []
    for candidate in candidates:
        if candidate.file in seen:
            continue
        seen.add(candidate.file)
        merged.append(candidate)

    merged.sort(key=lambda c: -c.score)
    return merged[:MAX_MERGED_RESULTS]
