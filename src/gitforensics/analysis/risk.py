"""Compound risk score for editing a file."""

from typing import Optional, Sequence

from gitforensics.models import (
    CoupledFile,
    DriftAlert,
    ForensicsConfig,
    RiskAssessment,
    VolatilityResult,
)

RISK_ACTIONS = {
    "critical": "STOP. Review all coupled files before any changes. Run tests after every edit.",
    "high": "Proceed carefully. Check all coupled files and update stale dependencies.",
    "medium": "Standard caution. Verify coupled files are still compatible.",
    "low": "Safe to proceed with normal development practices.",
}


def calculate_compound_risk(
    volatility: VolatilityResult,
    coupled: Sequence[CoupledFile],
    drift: Sequence[DriftAlert],
    importers: Sequence[str] = (),
    config: Optional[ForensicsConfig] = None,
) -> RiskAssessment:
    """Combine volatility, coupling, drift and importers into one 0-100 score.

    Args:
        volatility: Volatility of the target
        coupled: Coupled files, highest score first
        drift: Stale coupled files
        importers: Files importing the target
        config: Repository configuration supplying the component weights

    Returns:
        RiskAssessment
    """
    weights = (config or ForensicsConfig()).risk_weights

    volatility_component = volatility.weighted_score

    top_scores = [c.score * 100 for c in coupled[:3]]
    coupling_component = (
        min(100.0, sum(top_scores) / len(top_scores) * 1.5) if top_scores else 0.0
    )
    drift_component = min(100, len(drift) * 25)
    importer_component = min(100, len(importers) * 10)

    score = round(
        volatility_component * weights.volatility
        + coupling_component * weights.coupling
        + drift_component * weights.drift
        + importer_component * weights.importers
    )
    score = max(0, min(100, score))

    factors = []
    if volatility_component > 30:
        factors.append(f"High volatility ({volatility_component}% weighted panic score)")
    if len(coupled) >= 3:
        factors.append(f"Tightly coupled ({len(coupled)} files)")
    if drift:
        factors.append(f"{len(drift)} stale dependencies")
    if len(importers) >= 5:
        factors.append(f"Heavily imported ({len(importers)} files depend on this)")
    if volatility.commit_count == 0:
        factors.append("No git history (new file)")

    if score >= 75:
        level = "critical"
    elif score >= 50:
        level = "high"
    elif score >= 25:
        level = "medium"
    else:
        level = "low"

    return RiskAssessment(score=score, level=level, factors=factors, action=RISK_ACTIONS[level])
