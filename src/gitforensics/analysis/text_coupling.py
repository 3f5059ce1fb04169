"""Coupling found by text matching: documentation and shared environment variables."""

import re
from pathlib import Path
from typing import List, Optional, Sequence, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.analysis.signals import (
    DEFAULT_ENV_EXTRACTOR,
    DEFAULT_EXPORT_EXTRACTOR,
    SignalExtractor,
)
from gitforensics.models import CouplingSignal

logger = structlog.get_logger(__name__)

MAX_SIGNALS = 10
MAX_RESULTS = 5
MAX_DOC_FILES = 10
MAX_ENV_FILES = 20
DOC_PATHSPECS = ("*.md",)


def _describe(label: str, matched: Sequence[str], more_suffix: str) -> str:
    reason = f"{label}: {', '.join(matched[:3])}"
    if len(matched) > 3:
        reason += f" (+{len(matched) - 3}{more_suffix})"
    return reason


def _rank(signals: List[CouplingSignal]) -> List[CouplingSignal]:
    signals.sort(key=lambda s: -s.score)
    return signals[:MAX_RESULTS]


def get_docs_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    extractor: Optional[SignalExtractor] = None,
) -> List[CouplingSignal]:
    """Find markdown files that mention the target's exported symbols.

    Each document scores 0.4 plus 0.1 per mentioned symbol, capped at 0.7.

    Args:
        file_path: Target file
        context: Shared analysis context; a standalone one is created if None
        extractor: Signal extractor, defaults to exported symbol names

    Returns:
        Up to 5 signals sorted by descending score
    """
    extractor = extractor or DEFAULT_EXPORT_EXTRACTOR
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            "docs-coupling",
            lambda: _compute_docs_coupling(ctx, Path(file_path), extractor),
            [],
            path=file_path,
        )


def _compute_docs_coupling(
    ctx: AnalysisContext, file_path: Path, extractor: SignalExtractor
) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    exports = extractor.extract_signals(ctx.accessor.read_text(rel_path) or "")[:MAX_SIGNALS]
    if not exports:
        return []

    documents = [
        doc
        for doc in ctx.accessor.grep_files(
            exports, pathspecs=DOC_PATHSPECS, ignore_case=True, fixed_strings=True
        )
        if doc != rel_path and not ctx.ignore_filter.is_ignored(doc)
    ]

    results = []
    for doc in documents[:MAX_DOC_FILES]:
        content = ctx.accessor.read_text(doc) or ""
        matched = [
            name for name in exports if re.search(rf"\b{re.escape(name)}\b", content, re.IGNORECASE)
        ]
        if matched:
            results.append(
                CouplingSignal(
                    file=doc,
                    score=round(min(0.7, 0.4 + 0.1 * len(matched)), 2),
                    reason=_describe("Mentions", matched, " more"),
                    source="docs",
                )
            )

    logger.debug("docs_coupling_computed", file=rel_path, exports=len(exports), documents=len(results))
    return _rank(results)


def get_env_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    extractor: Optional[SignalExtractor] = None,
) -> List[CouplingSignal]:
    """Find files that read the same environment variables as the target.

    Each file scores 0.4 plus 0.1 per shared variable, capped at 0.75.

    Args:
        file_path: Target file
        context: Shared analysis context; a standalone one is created if None
        extractor: Signal extractor, defaults to environment variable names

    Returns:
        Up to 5 signals sorted by descending score
    """
    extractor = extractor or DEFAULT_ENV_EXTRACTOR
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            "env-coupling",
            lambda: _compute_env_coupling(ctx, Path(file_path), extractor),
            [],
            path=file_path,
        )


def _compute_env_coupling(
    ctx: AnalysisContext, file_path: Path, extractor: SignalExtractor
) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    env_vars = extractor.extract_signals(ctx.accessor.read_text(rel_path) or "")[:MAX_SIGNALS]
    if not env_vars:
        return []

    candidates = [
        candidate
        for candidate in ctx.accessor.grep_files(env_vars, fixed_strings=True)
        if candidate != rel_path and not ctx.ignore_filter.is_ignored(candidate)
    ]

    results = []
    for candidate in candidates[:MAX_ENV_FILES]:
        content = ctx.accessor.read_text(candidate) or ""
        shared = [name for name in env_vars if name in content]
        if shared:
            results.append(
                CouplingSignal(
                    file=candidate,
                    score=round(min(0.75, 0.4 + 0.1 * len(shared)), 2),
                    reason=_describe("Shares env vars", shared, ""),
                    source="env",
                )
            )

    logger.debug("env_coupling_computed", file=rel_path, env_vars=len(env_vars), files=len(results))
    return _rank(results)
