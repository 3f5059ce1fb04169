"""Concurrent orchestration of the analysis engines for one file."""

import asyncio
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, create_analysis_context
from gitforensics.analysis.coupling import get_coupled_files, get_test_coupling
from gitforensics.analysis.drift import check_drift
from gitforensics.analysis.importers import get_importers
from gitforensics.analysis.report import generate_report
from gitforensics.analysis.siblings import get_sibling_guidance
from gitforensics.analysis.structural_coupling import (
    get_api_coupling,
    get_content_coupling,
    get_schema_coupling,
    get_transitive_coupling,
    get_type_coupling,
)
from gitforensics.analysis.text_coupling import get_docs_coupling, get_env_coupling
from gitforensics.analysis.volatility import get_volatility
from gitforensics.exceptions import InvalidInputError
from gitforensics.models import ForensicsReport, VolatilityResult

logger = structlog.get_logger(__name__)

# Independent read-only engines: name -> (engine, factory for its neutral result)
INDEPENDENT_ENGINES: Dict[str, Tuple[Callable[..., Any], Callable[[], Any]]] = {
    "volatility": (get_volatility, VolatilityResult),
    "coupling": (get_coupled_files, list),
    "importers": (get_importers, list),
    "docs-coupling": (get_docs_coupling, list),
    "env-coupling": (get_env_coupling, list),
    "test-coupling": (get_test_coupling, list),
    "api-coupling": (get_api_coupling, list),
    "schema-coupling": (get_schema_coupling, list),
    "type-coupling": (get_type_coupling, list),
    "transitive-coupling": (get_transitive_coupling, list),
    "content-coupling": (get_content_coupling, list),
}


async def _run_independent(target: Path, ctx: AnalysisContext) -> Dict[str, Any]:
    names = list(INDEPENDENT_ENGINES)
    tasks = [
        asyncio.to_thread(INDEPENDENT_ENGINES[name][0], target, ctx) for name in names
    ]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    outputs: Dict[str, Any] = {}
    for name, result in zip(names, results):
        if isinstance(result, BaseException):
            if not isinstance(result, Exception):
                raise result
            logger.error("engine_crashed", engine=name, file=str(target), error=str(result))
            ctx.failures[name] = str(result)
            outputs[name] = INDEPENDENT_ENGINES[name][1]()
        else:
            outputs[name] = result
    return outputs


async def analyze_file(
    file_path: Union[str, Path],
    context: Optional[AnalysisContext] = None,
) -> ForensicsReport:
    """Run every engine for one file and assemble the report.

    Volatility, co-change coupling, importers and every content-based
    coupling engine run concurrently over one shared context. Drift runs
    once coupling is known, sibling guidance only for files without history.

    Args:
        file_path: File to analyse
        context: Pre-built context; one is created and closed here if None

    Returns:
        ForensicsReport

    Raises:
        InvalidInputError: If the file does not exist
        NotARepositoryError: If the file is not inside a Git repository
    """
    target = Path(file_path).expanduser().resolve()
    if not target.is_file():
        raise InvalidInputError("Target file does not exist", details={"path": str(file_path)})

    owned = context is None
    ctx = context or await asyncio.to_thread(create_analysis_context, target)
    try:
        outputs = await _run_independent(target, ctx)
        volatility = outputs["volatility"]
        coupled = outputs["coupling"]

        drift = await asyncio.to_thread(check_drift, target, coupled, ctx)

        guidance = None
        if volatility.commit_count == 0:
            guidance = await asyncio.to_thread(get_sibling_guidance, target, ctx)

        logger.info(
            "file_analyzed",
            file=str(target),
            commits=volatility.commit_count,
            coupled=len(coupled),
            stale=len(drift),
            failures=len(ctx.failures),
        )

        return generate_report(
            target,
            volatility,
            coupled,
            drift,
            importers=outputs["importers"],
            config=ctx.config,
            sibling_guidance=guidance,
            docs_coupling=outputs["docs-coupling"],
            env_coupling=outputs["env-coupling"],
            test_coupling=outputs["test-coupling"],
            api_coupling=outputs["api-coupling"],
            schema_coupling=outputs["schema-coupling"],
            type_coupling=outputs["type-coupling"],
            transitive_coupling=outputs["transitive-coupling"],
            content_coupling=outputs["content-coupling"],
            failures=ctx.failures,
            config_error=ctx.config_error,
        )
    finally:
        if owned:
            ctx.close()


def analyze_file_sync(
    file_path: Union[str, Path], context: Optional[AnalysisContext] = None
) -> ForensicsReport:
    """Blocking wrapper around :func:`analyze_file`."""
    return asyncio.run(analyze_file(file_path, context))
