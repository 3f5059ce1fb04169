"""Assemble engine outputs into one advisory for a human or an agent."""

from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from gitforensics.analysis.coupling import merge_coupling_results
from gitforensics.analysis.risk import calculate_compound_risk
from gitforensics.analysis.siblings import format_sibling_guidance
from gitforensics.models import (
    CoupledFile,
    CouplingSignal,
    DriftAlert,
    ForensicsConfig,
    ForensicsReport,
    SiblingGuidance,
    VolatilityResult,
)

RELATIONSHIP_INSTRUCTIONS = {
    "schema": "These files share type definitions. If you modify types in one, update the other to match.",
    "api": "These files share an API contract. Signature changes require updates to both caller and callee.",
    "config": "These files share configuration. Ensure config keys match between files.",
    "import": "These files have import dependencies. Check for circular imports or missing exports.",
    "test": "This is a test file coupling. Ensure test mocks/fixtures still match the implementation.",
    "style": "These files had formatting changes together. Likely coincidental - verify actual relationship.",
    "unknown": "Relationship unclear. Manually verify if changes to one require changes to the other.",
}

SOURCE_INSTRUCTIONS = {
    "docs": "Documentation references this file. Update docs if you change the API.",
    "test": "Test file for this module. Update tests when changing exports.",
    "env": "Shares environment variables. Ensure values are consistent.",
    "api": "Calls an endpoint declared here. Keep request and response shapes compatible.",
    "schema": "Uses a table or model defined here. Migrate or update queries with schema changes.",
    "type": "Uses types declared here. Keep both sides in sync when types change.",
    "transitive": "Reaches this file through a re-export. Check the barrel still exposes what it needs.",
    "content": "Repeats a string from this file. Keep messages and paths in sync.",
}

MAX_LISTED_IMPORTERS = 8
MAX_CHECKLIST_IMPORTERS = 3


def generate_report(
    file_path: Union[str, Path],
    volatility: VolatilityResult,
    coupled: Sequence[CoupledFile],
    drift: Sequence[DriftAlert],
    importers: Sequence[str] = (),
    config: Optional[ForensicsConfig] = None,
    sibling_guidance: Optional[SiblingGuidance] = None,
    docs_coupling: Sequence[CouplingSignal] = (),
    env_coupling: Sequence[CouplingSignal] = (),
    test_coupling: Sequence[CouplingSignal] = (),
    api_coupling: Sequence[CouplingSignal] = (),
    schema_coupling: Sequence[CouplingSignal] = (),
    type_coupling: Sequence[CouplingSignal] = (),
    transitive_coupling: Sequence[CouplingSignal] = (),
    content_coupling: Sequence[CouplingSignal] = (),
    failures: Optional[Dict[str, str]] = None,
    config_error: Optional[str] = None,
) -> ForensicsReport:
    """Merge engine outputs into a ForensicsReport.

    Pure: performs no I/O and returns the same report for the same inputs.
    """
    return ForensicsReport(
        file_path=str(file_path),
        file_name=Path(file_path).name,
        volatility=volatility,
        coupled_files=list(coupled),
        drift=list(drift),
        importers=list(importers),
        docs_coupling=list(docs_coupling),
        env_coupling=list(env_coupling),
        test_coupling=list(test_coupling),
        api_coupling=list(api_coupling),
        schema_coupling=list(schema_coupling),
        type_coupling=list(type_coupling),
        transitive_coupling=list(transitive_coupling),
        content_coupling=list(content_coupling),
        sibling_guidance=sibling_guidance,
        risk=calculate_compound_risk(volatility, coupled, drift, importers, config),
        failures=dict(sorted((failures or {}).items())),
        config_error=config_error,
    )


def signal_lists(report: ForensicsReport) -> List[List[CouplingSignal]]:
    """Every non-git coupling list of a report."""
    return [
        report.test_coupling,
        report.api_coupling,
        report.schema_coupling,
        report.env_coupling,
        report.docs_coupling,
        report.type_coupling,
        report.transitive_coupling,
        report.content_coupling,
    ]


def _relationship(entry: Union[CoupledFile, CouplingSignal]) -> str:
    if entry.source == "git" and entry.evidence is not None:
        return entry.evidence.change_type
    return "unknown"


def _render_coupling(entry: Union[CoupledFile, CouplingSignal]) -> str:
    relationship = _relationship(entry)
    output = f"**`{entry.file}`** - {round(entry.score * 100)}%"
    if entry.source != "git":
        output += f" [{entry.source}]"
    elif relationship != "unknown":
        output += f" ({relationship})"
    output += "\n"

    if entry.source != "git":
        output += f"> {SOURCE_INSTRUCTIONS[entry.source]}\n"
        output += f"> {entry.reason}\n"
        return output + "\n"

    output += f"> {RELATIONSHIP_INSTRUCTIONS[relationship]}\n"
    evidence = entry.evidence
    if evidence is not None:
        if evidence.has_breaking_change:
            output += "> WARNING: Breaking change detected in last co-commit\n"
        diff_lines = []
        if evidence.additions:
            diff_lines.append("+ " + ", ".join(evidence.additions[:2]))
        if evidence.removals:
            diff_lines.append("- " + ", ".join(evidence.removals[:2]))
        if diff_lines:
            output += "```diff\n" + "\n".join(diff_lines) + "\n```\n"
    return output + "\n"


def render_markdown(report: ForensicsReport) -> str:
    """Render a report as markdown."""
    volatility = report.volatility
    risk = report.risk
    name = report.file_name
    merged = merge_coupling_results(report.coupled_files, *signal_lists(report))

    summary_parts = []
    if volatility.panic_score > 0:
        summary_parts.append(f"{round(volatility.panic_score * 100)}% urgent commits")
    if merged:
        summary_parts.append(f"{len(merged)} coupled")
    if report.importers:
        summary_parts.append(f"{len(report.importers)} dependents")
    if report.drift:
        summary_parts.append(f"{len(report.drift)} stale")

    output = f"# Forensics: `{name}`\n\n"
    output += f"**RISK: {risk.score}/100** - {risk.level.upper()}\n"
    if summary_parts:
        output += " · ".join(summary_parts) + "\n"
    output += "\n"
    if risk.level != "low":
        output += f"> {risk.action}\n\n"
    if report.config_error:
        output += f"> Repository configuration ignored: {report.config_error}\n\n"

    if merged:
        output += "---\n\n## Coupled Files\n\n"
        for entry in merged:
            output += _render_coupling(entry)

    if report.importers:
        output += "---\n\n## Static Dependents\n\n"
        output += f"These files import `{name}`. API changes require updating them.\n\n"
        for importer in report.importers[:MAX_LISTED_IMPORTERS]:
            output += f"- [ ] `{importer}`\n"
        if len(report.importers) > MAX_LISTED_IMPORTERS:
            output += f"- ... and {len(report.importers) - MAX_LISTED_IMPORTERS} more\n"
        output += "\n"

    output += _render_checklist(report, merged)
    output += _render_history(report)

    if report.failures:
        output += "---\n\n## Missing Sections\n\n"
        output += "These engines failed, so their sections may be incomplete:\n\n"
        for engine, error in report.failures.items():
            output += f"- `{engine}`: {error}\n"
        output += "\n"

    return output


def _render_checklist(report: ForensicsReport, merged: List[Union[CoupledFile, CouplingSignal]]) -> str:
    stale = {alert.file: alert for alert in report.drift}
    output = "---\n\n## Pre-flight Checklist\n\n"
    output += f"- [ ] Modify `{report.file_name}`\n"

    for entry in merged:
        relationship = _relationship(entry)
        suffix = ""
        if entry.source != "git":
            suffix = f" [{entry.source}]"
        elif relationship != "unknown":
            suffix = f" ({relationship})"
        if entry.file in stale:
            suffix += f" - stale {int(stale[entry.file].days_old)}d"
        output += f"- [ ] Update `{entry.file}`{suffix}\n"

    merged_files = {entry.file for entry in merged}
    for alert in report.drift:
        if alert.file not in merged_files:
            output += f"- [ ] Update `{alert.file}` - stale {int(alert.days_old)}d\n"

    new_importers = [f for f in report.importers if f not in merged_files]
    for importer in new_importers[:MAX_CHECKLIST_IMPORTERS]:
        output += f"- [ ] Verify `{importer}` (importer)\n"
    if len(new_importers) > MAX_CHECKLIST_IMPORTERS:
        output += f"- ... and {len(new_importers) - MAX_CHECKLIST_IMPORTERS} more importers\n"

    return output + "\n"


def _render_history(report: ForensicsReport) -> str:
    volatility = report.volatility
    if volatility.commit_count == 0:
        output = "---\n\n## File History\n\n"
        output += "**New file** - no git history available.\n\n"
        guidance = report.sibling_guidance
        if guidance is not None and guidance.patterns:
            output += format_sibling_guidance(guidance) + "\n"
        return output

    top_author = volatility.top_author
    expert = top_author is not None and top_author.percentage >= 70 and volatility.authors > 1
    if volatility.weighted_score <= 25 and not expert:
        return ""

    output = "---\n\n## File History\n\n"
    if volatility.weighted_score > 50:
        output += f"**Volatile** - {volatility.weighted_score}% weighted panic score\n"
    elif volatility.weighted_score > 25:
        output += f"**Moderate churn** - {volatility.weighted_score}% weighted panic score\n"

    urgent = round(volatility.panic_score * volatility.commit_count)
    if urgent:
        output += f"{urgent} of {volatility.commit_count} commits were urgent or corrective.\n"
    if volatility.weighted_score > 25 and volatility.recency.newest_commit_days <= 14:
        output += f"Recent bug fixes in the last {volatility.recency.newest_commit_days} days.\n"
    if expert:
        output += f"**Expert:** {top_author.name} ({top_author.percentage}% of commits)\n"

    if volatility.panic_commits:
        output += "\n**Recent issues:**\n"
        for message in volatility.panic_commits[:3]:
            output += f'- "{message}"\n'

    return output + "\n"
