"""Reverse-dependency search: files that import the target."""

import re
from pathlib import Path, PurePosixPath
from typing import List, Optional, Pattern, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.analysis.coupling import is_test_file

logger = structlog.get_logger(__name__)

# Files named like this are imported through their directory
PACKAGE_ENTRY_STEMS = {"index", "__init__", "mod"}


def module_stem(file_path: Union[str, Path]) -> str:
    """Name other files use to import ``file_path``."""
    path = Path(file_path)
    if path.stem in PACKAGE_ENTRY_STEMS and path.parent.name:
        return path.parent.name
    return path.stem


def build_import_pattern(stem: str) -> Pattern[str]:
    """Compile the heuristic import matcher for a module stem.

    Covers quoted module specifiers (``import x from "./stem"``,
    ``require("../stem.js")``) and Python ``import``/``from`` statements.
    """
    name = re.escape(stem)
    return re.compile(
        "|".join(
            [
                rf"(?:import|from|require)\b[^\n]*['\"](?:[^'\"\n]*/)?{name}(?:\.\w+)?['\"]",
                rf"^[ \t]*from[ \t]+[\w.]*\b{name}[ \t]+import\b",
                rf"^[ \t]*from[ \t]+[\w.]+[ \t]+import[ \t]+[^\n]*\b{name}\b",
                rf"^[ \t]*import[ \t]+[^\n]*\b{name}\b",
            ]
        ),
        re.MULTILINE,
    )


def get_importers(
    file_path: Union[str, Path], context: Optional[AnalysisContext] = None
) -> List[str]:
    """Find tracked files that textually import ``file_path``.

    This is a heuristic: dynamic or aliased imports can be missed and unrelated
    modules sharing the same name can be reported.

    Args:
        file_path: Target file
        context: Shared analysis context; a standalone one is created if None

    Returns:
        Repository-relative paths of importing files, de-duplicated
    """
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(
            "importers",
            lambda: _compute_importers(ctx, Path(file_path)),
            [],
            path=file_path,
        )


def _compute_importers(ctx: AnalysisContext, file_path: Path) -> List[str]:
    rel_path = ctx.relative(file_path)
    stem = module_stem(rel_path)
    pattern = build_import_pattern(stem)
    target_is_test = is_test_file(rel_path)
    target_name = PurePosixPath(rel_path).name

    importers: List[str] = []
    for candidate in ctx.accessor.grep_files([stem], fixed_strings=True):
        if candidate == rel_path or PurePosixPath(candidate).name == target_name:
            continue
        if ctx.ignore_filter.is_ignored(candidate):
            continue
        if target_is_test and is_test_file(candidate):
            continue
        if candidate in importers:
            continue

        content = ctx.accessor.read_text(candidate)
        if content and pattern.search(content):
            importers.append(candidate)

    logger.debug("importers_computed", file=rel_path, importers=len(importers))
    return importers
