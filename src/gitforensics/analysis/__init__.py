"""Analysis engines and their shared infrastructure."""

from gitforensics.analysis.cache import MemoizedCache
from gitforensics.analysis.context import (
    AnalysisContext,
    create_analysis_context,
    ensure_context,
    find_repository_root,
    load_config,
)
from gitforensics.analysis.coupling import get_coupled_files, get_test_coupling, merge_coupling_results
from gitforensics.analysis.drift import check_drift
from gitforensics.analysis.ignore import IgnoreFilter
from gitforensics.analysis.importers import get_importers
from gitforensics.analysis.report import generate_report, render_markdown
from gitforensics.analysis.risk import calculate_compound_risk
from gitforensics.analysis.runner import analyze_file, analyze_file_sync
from gitforensics.analysis.siblings import format_sibling_guidance, get_sibling_guidance
from gitforensics.analysis.signals import (
    extract_api_endpoints,
    extract_env_vars,
    extract_exports,
    extract_schema_names,
    extract_string_literals,
    extract_type_definitions,
)
from gitforensics.analysis.structural_coupling import (
    get_api_coupling,
    get_content_coupling,
    get_schema_coupling,
    get_transitive_coupling,
    get_type_coupling,
)
from gitforensics.analysis.text_coupling import get_docs_coupling, get_env_coupling
from gitforensics.analysis.volatility import get_volatility

__all__ = [
    "MemoizedCache",
    "IgnoreFilter",
    "AnalysisContext",
    "create_analysis_context",
    "ensure_context",
    "find_repository_root",
    "load_config",
    "get_volatility",
    "get_coupled_files",
    "get_test_coupling",
    "merge_coupling_results",
    "get_docs_coupling",
    "get_env_coupling",
    "extract_exports",
    "extract_env_vars",
    "get_type_coupling",
    "get_content_coupling",
    "get_schema_coupling",
    "get_api_coupling",
    "get_transitive_coupling",
    "extract_type_definitions",
    "extract_string_literals",
    "extract_schema_names",
    "extract_api_endpoints",
    "get_importers",
    "check_drift",
    "get_sibling_guidance",
    "format_sibling_guidance",
    "calculate_compound_risk",
    "generate_report",
    "render_markdown",
    "analyze_file",
    "analyze_file_sync",
]
