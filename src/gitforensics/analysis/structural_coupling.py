"""Coupling found in file contents: shared types, strings, schemas, endpoints and re-exports."""

import re
from collections import OrderedDict
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.analysis.signals import (
    DEFAULT_ENDPOINT_EXTRACTOR,
    DEFAULT_SCHEMA_EXTRACTOR,
    DEFAULT_STRING_EXTRACTOR,
    DEFAULT_TYPE_EXTRACTOR,
    SignalExtractor,
    is_api_definition_file,
    is_schema_file,
)
from gitforensics.models import CouplingSignal

logger = structlog.get_logger(__name__)

MAX_RESULTS = 5
MAX_TYPES = 5
MAX_ENDPOINTS = 5
MAX_SCHEMA_FILES = 20
MAX_BARRELS = 3
CODE_PATHSPECS = ("*.ts", "*.tsx", "*.js", "*.jsx", "*.py")

BARREL_SCORE = 0.6
BARREL_IMPORTER_SCORE = 0.55

_ERE_SPECIAL = re.compile(r"([.\[\]()*+?{}|^$\\])")
# Not part of an identifier, or the end of the line
_END = "([^A-Za-z0-9_]|$)"
_START = "(^|[^A-Za-z0-9_])"
_MIGRATION = re.compile(r"migration|migrate", re.IGNORECASE)
_QUERY_LAYER = re.compile(r"repo|repository|query|dao", re.IGNORECASE)


def ere_escape(text: str) -> str:
    """Escape ``text`` for a POSIX extended regular expression."""
    return _ERE_SPECIAL.sub(r"\\\1", text)


def _rank(signals: List[CouplingSignal]) -> List[CouplingSignal]:
    signals.sort(key=lambda s: -s.score)
    return signals[:MAX_RESULTS]


def _matching_files(
    ctx: AnalysisContext, rel_path: str, patterns: List[str], **grep_options
) -> List[str]:
    return [
        candidate
        for candidate in ctx.accessor.grep_files(patterns, **grep_options)
        if candidate != rel_path and not ctx.ignore_filter.is_ignored(candidate)
    ]


def _run(engine: str, file_path, context, compute) -> List[CouplingSignal]:
    with ensure_context(file_path, context) as ctx:
        return ctx.run_engine(engine, lambda: compute(ctx, Path(file_path)), [], path=file_path)


# ----------------------------------------------------------------------
# Types
# ----------------------------------------------------------------------


def type_usage_patterns(type_name: str) -> List[str]:
    """Extended regexes for the places a type name is used rather than defined."""
    name = ere_escape(type_name)
    return [
        f"import.*{_START}{name}{_END}",
        f":[[:space:]]*{name}{_END}",
        f"->[[:space:]]*{name}{_END}",
        f"<{name}>",
        f"\\[{name}\\]",
        f"(extends|implements)[[:space:]]+{name}{_END}",
    ]


def get_type_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    extractor: Optional[SignalExtractor] = None,
) -> List[CouplingSignal]:
    """Find code that uses the type definitions declared in the target.

    Each file scores 0.35 plus 0.15 per shared type, capped at 0.65. Only the
    first five types are searched.
    """
    extractor = extractor or DEFAULT_TYPE_EXTRACTOR
    return _run(
        "type-coupling", file_path, context, lambda ctx, path: _compute_type_coupling(ctx, path, extractor)
    )


def _compute_type_coupling(
    ctx: AnalysisContext, file_path: Path, extractor: SignalExtractor
) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    types = extractor.extract_signals(ctx.accessor.read_text(rel_path) or "")[:MAX_TYPES]
    if not types:
        return []

    shared: Dict[str, List[str]] = OrderedDict()
    for type_name in types:
        users = _matching_files(ctx, rel_path, type_usage_patterns(type_name), pathspecs=CODE_PATHSPECS)
        for user in users:
            shared.setdefault(user, []).append(type_name)

    results = [
        CouplingSignal(
            file=user,
            score=round(min(0.65, 0.35 + 0.15 * len(names)), 2),
            reason=f"Shares types: {', '.join(names)}",
            source="type",
        )
        for user, names in shared.items()
    ]
    logger.debug("type_coupling_computed", file=rel_path, types=len(types), files=len(results))
    return _rank(results)


# ----------------------------------------------------------------------
# String literals
# ----------------------------------------------------------------------


def _shorten(literal: str, length: int = 30) -> str:
    return literal[:length] + ("..." if len(literal) > length else "")


def get_content_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    extractor: Optional[SignalExtractor] = None,
) -> List[CouplingSignal]:
    """Find code repeating the target's significant string literals.

    Shared error messages, API paths and format strings hint at a hidden
    contract. Each file scores 0.25 plus 0.1 per shared string, capped at 0.5.
    """
    extractor = extractor or DEFAULT_STRING_EXTRACTOR
    return _run(
        "content-coupling",
        file_path,
        context,
        lambda ctx, path: _compute_content_coupling(ctx, path, extractor),
    )


def _compute_content_coupling(
    ctx: AnalysisContext, file_path: Path, extractor: SignalExtractor
) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    literals = extractor.extract_signals(ctx.accessor.read_text(rel_path) or "")
    if not literals:
        return []

    shared: Dict[str, List[str]] = OrderedDict()
    for literal in literals:
        needle = literal[:50]
        for other in _matching_files(
            ctx, rel_path, [needle], pathspecs=CODE_PATHSPECS, fixed_strings=True
        ):
            shared.setdefault(other, []).append(literal)

    results = []
    for other, strings in shared.items():
        if any(re.search(r"error|fail|invalid", s, re.IGNORECASE) for s in strings):
            kind = "error"
        elif any(s.startswith("/api/") for s in strings):
            kind = "endpoint"
        else:
            kind = "content"
        reason = f'Shared {kind}: "{_shorten(strings[0])}"'
        if len(strings) > 1:
            reason += f" (+{len(strings) - 1})"
        results.append(
            CouplingSignal(
                file=other,
                score=round(min(0.5, 0.25 + 0.1 * len(strings)), 2),
                reason=reason,
                source="content",
            )
        )

    logger.debug("content_coupling_computed", file=rel_path, literals=len(literals), files=len(results))
    return _rank(results)


# ----------------------------------------------------------------------
# Schemas
# ----------------------------------------------------------------------


def get_schema_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    extractor: Optional[SignalExtractor] = None,
) -> List[CouplingSignal]:
    """Find code referring to the tables or models the target defines.

    Only runs when the target looks like a schema file. Each file scores 0.45
    plus 0.12 per referenced name, capped at 0.8; migrations and query layers
    get a more specific reason.
    """
    extractor = extractor or DEFAULT_SCHEMA_EXTRACTOR
    return _run(
        "schema-coupling",
        file_path,
        context,
        lambda ctx, path: _compute_schema_coupling(ctx, path, extractor),
    )


def _compute_schema_coupling(
    ctx: AnalysisContext, file_path: Path, extractor: SignalExtractor
) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    source = ctx.accessor.read_text(rel_path) or ""
    if not is_schema_file(source):
        return []

    names = extractor.extract_signals(source)
    if not names:
        return []

    patterns = []
    for name in names:
        escaped = ere_escape(name)
        patterns.append(f"{_START}{escaped}{_END}")
        patterns.append(f"[\"'`]{ere_escape(name.lower())}[\"'`]")

    results = []
    for other in _matching_files(ctx, rel_path, patterns)[:MAX_SCHEMA_FILES]:
        content = ctx.accessor.read_text(other) or ""
        referenced = [
            name for name in names if re.search(rf"\b{re.escape(name)}\b", content, re.IGNORECASE)
        ]
        if not referenced:
            continue

        listed = ", ".join(referenced)
        if _MIGRATION.search(other):
            reason = f"Migration for: {listed}. Check ordering."
        elif _QUERY_LAYER.search(other):
            reason = f"Queries: {listed}. Schema changes may break."
        else:
            reason = f"References: {listed}"
        results.append(
            CouplingSignal(
                file=other,
                score=round(min(0.8, 0.45 + 0.12 * len(referenced)), 2),
                reason=reason,
                source="schema",
            )
        )

    logger.debug("schema_coupling_computed", file=rel_path, names=len(names), files=len(results))
    return _rank(results)


# ----------------------------------------------------------------------
# API endpoints
# ----------------------------------------------------------------------


def get_api_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
    extractor: Optional[SignalExtractor] = None,
) -> List[CouplingSignal]:
    """Find clients of the HTTP endpoints the target declares.

    Only runs when the target declares routes, and other route definition
    files are never reported as clients. Each client scores 0.5 plus 0.12 per
    endpoint it calls, capped at 0.85.
    """
    extractor = extractor or DEFAULT_ENDPOINT_EXTRACTOR
    return _run(
        "api-coupling",
        file_path,
        context,
        lambda ctx, path: _compute_api_coupling(ctx, path, extractor),
    )


def _compute_api_coupling(
    ctx: AnalysisContext, file_path: Path, extractor: SignalExtractor
) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    source = ctx.accessor.read_text(rel_path) or ""
    if not is_api_definition_file(source):
        return []

    endpoints = extractor.extract_signals(source)[:MAX_ENDPOINTS]
    if not endpoints:
        return []

    consumers: Dict[str, List[str]] = OrderedDict()
    for endpoint in endpoints:
        for other in _matching_files(ctx, rel_path, [endpoint], fixed_strings=True):
            consumers.setdefault(other, []).append(endpoint)

    results = []
    for other, called in consumers.items():
        if is_api_definition_file(ctx.accessor.read_text(other) or ""):
            continue
        listed = ", ".join(called[:2])
        if len(called) > 2:
            listed += f" (+{len(called) - 2})"
        results.append(
            CouplingSignal(
                file=other,
                score=round(min(0.85, 0.5 + 0.12 * len(called)), 2),
                reason=f"Calls: {listed}. Response changes will break this.",
                source="api",
            )
        )

    logger.debug("api_coupling_computed", file=rel_path, endpoints=len(endpoints), files=len(results))
    return _rank(results)


# ----------------------------------------------------------------------
# Re-export chains
# ----------------------------------------------------------------------


def reexport_patterns(module_stem: str) -> List[str]:
    """Extended regexes for barrels re-exporting a module.

    JavaScript ``export ... from './stem'`` lines, and Python
    ``from .stem import ...`` lines (only meaningful inside ``__init__.py``).
    """
    stem = ere_escape(module_stem)
    return [
        f"export.*from[[:space:]]*['\"]([^'\"]*/)?{stem}(\\.[A-Za-z]+)?['\"]",
        f"^[[:space:]]*from[[:space:]]+[.A-Za-z0-9_]*\\.{stem}[[:space:]]+import",
    ]


def barrel_import_patterns(barrel: str) -> List[str]:
    """Extended regexes for modules importing through a barrel file."""
    path = PurePosixPath(barrel)
    package = path.parent.name
    if path.name == "__init__.py":
        if not package:
            return []
        name = ere_escape(package)
        return [f"^[[:space:]]*(from|import)[[:space:]]+([.A-Za-z0-9_]*\\.)?{name}([[:space:]]|,|$)"]

    stem = ere_escape(path.stem)
    patterns = [f"from[[:space:]]*['\"]([^'\"]*/)?{stem}['\"]"]
    if package:
        patterns.append(f"from[[:space:]]*['\"]([^'\"]*/)?{ere_escape(package)}['\"]")
    return patterns


def _is_python_reexport(candidate: str, target: Path) -> bool:
    if target.suffix == ".py":
        return PurePosixPath(candidate).name == "__init__.py"
    return not candidate.endswith(".py")


def get_transitive_coupling(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
) -> List[CouplingSignal]:
    """Find barrels re-exporting the target and the modules importing them.

    Barrel files score 0.6 and modules that reach the target through a barrel
    score 0.55. At most three barrels are followed.
    """
    return _run("transitive-coupling", file_path, context, _compute_transitive_coupling)


def _compute_transitive_coupling(ctx: AnalysisContext, file_path: Path) -> List[CouplingSignal]:
    rel_path = ctx.relative(file_path)
    if file_path.name == "__init__.py":
        return []

    barrels = [
        candidate
        for candidate in _matching_files(ctx, rel_path, reexport_patterns(file_path.stem))
        if _is_python_reexport(candidate, file_path)
    ][:MAX_BARRELS]
    if not barrels:
        return []

    results = [
        CouplingSignal(
            file=barrel,
            score=BARREL_SCORE,
            reason="Re-exports this file. Changes propagate through this barrel.",
            source="transitive",
        )
        for barrel in barrels
    ]

    via: Dict[str, str] = OrderedDict()
    for barrel in barrels:
        patterns = barrel_import_patterns(barrel)
        if not patterns:
            continue
        for importer in _matching_files(ctx, rel_path, patterns):
            if importer not in barrels:
                via.setdefault(importer, barrel)

    results.extend(
        CouplingSignal(
            file=importer,
            score=BARREL_IMPORTER_SCORE,
            reason=f"Imports via {PurePosixPath(barrel).name}. Indirect dependency.",
            source="transitive",
        )
        for importer, barrel in via.items()
    )

    logger.debug("transitive_coupling_computed", file=rel_path, barrels=len(barrels), files=len(results))
    return _rank(results)
