"""Drift engine: coupled files that did not move in step with the target."""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

import structlog

from gitforensics.analysis.context import AnalysisContext, ensure_context
from gitforensics.models import CoupledFile, DriftAlert

logger = structlog.get_logger(__name__)


def check_drift(
    source_file: Union[str, Path],
    coupled_files: Sequence[Union[CoupledFile, str]],
    context: Optional[AnalysisContext] = None,
) -> List[DriftAlert]:
    """Flag coupled files whose last commit lags behind the source file.

    The reference time is the source's last commit, or now when the source has
    uncommitted changes or no history. A coupled file is stale when it lags by
    strictly more than the drift threshold (7 days by default). Missing files
    and files without history are skipped.

    Args:
        source_file: File being edited
        coupled_files: Output of the coupling engine, or plain relative paths
        context: Shared analysis context; a standalone one is created if None

    Returns:
        Drift alerts in input order
    """
    if not coupled_files or not Path(source_file).exists():
        return []

    with ensure_context(source_file, context) as ctx:
        return ctx.run_engine(
            "drift",
            lambda: _compute_drift(ctx, Path(source_file), coupled_files),
            [],
            path=source_file,
            use_cache=False,
        )


def _compute_drift(
    ctx: AnalysisContext,
    source_file: Path,
    coupled_files: Sequence[Union[CoupledFile, str]],
) -> List[DriftAlert]:
    rel_path = ctx.relative(source_file)
    now = datetime.now()

    reference = None
    if not ctx.accessor.is_modified(rel_path):
        reference = ctx.accessor.last_commit_time(rel_path)
    if reference is None:
        reference = now

    threshold = ctx.thresholds.drift_days
    alerts = []
    for coupled in coupled_files:
        file_path = coupled if isinstance(coupled, str) else coupled.file
        if file_path == rel_path or not ctx.accessor.absolute_path(file_path).exists():
            continue

        last_changed = ctx.accessor.last_commit_time(file_path)
        if last_changed is None:
            continue

        days_old = (reference - last_changed).total_seconds() / 86400
        if days_old > threshold:
            alerts.append(DriftAlert(file=file_path, days_old=days_old))

    logger.debug("drift_checked", file=rel_path, coupled=len(coupled_files), stale=len(alerts))
    return alerts
