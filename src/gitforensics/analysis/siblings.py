"""Sibling guidance: conventions of neighbouring files, for files without history."""

import math
import re
import statistics
from pathlib import Path
from typing import Dict, List, Optional, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.analysis.volatility import get_volatility
from gitforensics.models import SiblingGuidance, SiblingPattern

logger = structlog.get_logger(__name__)

TEST_SUFFIX = re.compile(r"\.(test|spec)$|-(test|spec)$|_(test|spec)$|^test_")
QUOTED_IMPORT = re.compile(r"(?:import|require|from)\s*[(\[]?\s*['\"]([^'\"]+)['\"]")
PYTHON_IMPORT = re.compile(r"^\s*(?:from\s+([\w.]+)\s+import\b|import\s+([\w.]+))")
CAMEL_PREFIX = re.compile(r"^([a-z]+)[A-Z]")
CAMEL_SUFFIX = re.compile(r"([A-Z][a-z]+)$")
SNAKE_PREFIX = re.compile(r"^([a-z]+)_")
SNAKE_SUFFIX = re.compile(r"_([a-z]+)$")

MAX_EXAMINED = 5
HEADER_LINES = 30


def _imports_in(lines: List[str]) -> List[str]:
    found = []
    for line in lines:
        match = QUOTED_IMPORT.search(line)
        if match:
            found.append(match.group(1))
            continue
        match = PYTHON_IMPORT.match(line)
        if match:
            found.append(match.group(1) or match.group(2))
    return found


def _dominant(counts: Dict[str, int]) -> Optional[str]:
    return next((name for name, count in counts.items() if count >= 2), None)


def get_sibling_guidance(
    file_path: Union[str, Path], context: Optional[AnalysisContext] = None
) -> Optional[SiblingGuidance]:
    """Infer conventions from files next to ``file_path`` with the same extension.

    Intended for files with no history of their own.

    Args:
        file_path: New file
        context: Shared analysis context; a standalone one is created if None

    Returns:
        SiblingGuidance, or None when there are no siblings
    """
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            "siblings",
            lambda: _compute_sibling_guidance(ctx, Path(file_path).resolve()),
            None,
            path=file_path,
        )


def _compute_sibling_guidance(ctx: AnalysisContext, file_path: Path) -> Optional[SiblingGuidance]:
    directory = file_path.parent
    ext = file_path.suffix
    try:
        siblings = sorted(
            entry
            for entry in directory.iterdir()
            if entry.is_file()
            and entry.suffix == ext
            and entry.stem != file_path.stem
            and not ctx.ignore_filter.is_ignored(ctx.relative(entry))
        )
    except OSError as e:
        logger.debug("siblings_unreadable", directory=str(directory), error=str(e))
        return None

    if not siblings:
        return None

    patterns: List[SiblingPattern] = []
    bases = [s.stem for s in siblings]

    test_bases = [b for b in bases if TEST_SUFFIX.search(b)]
    has_tests = bool(test_bases)
    if has_tests and not TEST_SUFFIX.search(file_path.stem):
        examples = test_bases[:3]
        patterns.append(
            SiblingPattern(
                description="Test file expected - siblings have matching test files",
                examples=[b + ext for b in examples],
                confidence=min(100, round(len(examples) / len(siblings) * 100 + 30)),
            )
        )

    examined = siblings[:MAX_EXAMINED]
    panic_total = 0
    with_history = 0
    import_counts: Dict[str, int] = {}
    line_counts: List[int] = []

    for sibling in examined:
        volatility = get_volatility(sibling, ctx)
        if volatility.commit_count > 0:
            panic_total += round(volatility.panic_score * 100)
            with_history += 1

        content = ctx.accessor.read_text(ctx.relative(sibling))
        if content is None:
            continue
        lines = content.split("\n")
        line_counts.append(len(lines))
        for imported in _imports_in(lines[:HEADER_LINES]):
            import_counts[imported] = import_counts.get(imported, 0) + 1

    threshold = max(2, math.ceil(len(examined) * 0.5))
    common_imports = [
        name
        for name, count in sorted(import_counts.items(), key=lambda item: -item[1])
        if count >= threshold
    ][:5]
    if common_imports:
        patterns.append(
            SiblingPattern(
                description=f"Common imports detected - {len(common_imports)} imports shared by siblings",
                examples=common_imports,
                confidence=min(100, round(len(common_imports) / 5 * 100)),
            )
        )

    prefixes: Dict[str, int] = {}
    suffixes: Dict[str, int] = {}
    for base in bases:
        for pattern, counts in (
            (CAMEL_PREFIX, prefixes),
            (SNAKE_PREFIX, prefixes),
            (CAMEL_SUFFIX, suffixes),
            (SNAKE_SUFFIX, suffixes),
        ):
            match = pattern.search(base)
            if match:
                counts[match.group(1)] = counts.get(match.group(1), 0) + 1

    prefix = _dominant(prefixes)
    suffix = _dominant(suffixes)
    if prefix or suffix:
        parts = []
        if prefix:
            parts.append(f'prefix "{prefix}"')
        if suffix:
            parts.append(f'suffix "{suffix}"')
        patterns.append(
            SiblingPattern(
                description=f"Naming convention detected - siblings use {' and '.join(parts)}",
                examples=[b + ext for b in bases[:3]],
                confidence=70,
            )
        )

    typical_line_count = round(statistics.median(line_counts)) if line_counts else None
    if typical_line_count is not None and len(line_counts) >= 2:
        patterns.append(
            SiblingPattern(
                description=f"Typical file length - about {typical_line_count} lines",
                examples=[s.name for s in examined[:3]],
                confidence=60,
            )
        )

    return SiblingGuidance(
        directory=directory.name,
        sibling_count=len(siblings),
        patterns=patterns,
        average_volatility=round(panic_total / with_history) if with_history else 0,
        has_tests=has_tests,
        common_imports=common_imports,
        typical_line_count=typical_line_count,
    )


def format_sibling_guidance(guidance: SiblingGuidance) -> str:
    """Render sibling guidance as a markdown section."""
    output = "### Sibling Patterns\n\n"
    output += f"Analyzed {guidance.sibling_count} similar files in `{guidance.directory}/`\n\n"

    for pattern in guidance.patterns:
        output += f"- {pattern.description}\n"
        if pattern.examples:
            output += "  Examples: " + ", ".join(f"`{e}`" for e in pattern.examples) + "\n"

    label = "stable"
    if guidance.average_volatility >= 50:
        label = "volatile"
    elif guidance.average_volatility >= 25:
        label = "moderate"
    output += f"\nFolder volatility: {guidance.average_volatility}% ({label})\n"

    return output
