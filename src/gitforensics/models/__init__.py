"""Data models for file forensics."""

from gitforensics.models.analysis import (
    AdaptiveThresholds,
    AuthorContribution,
    CoupledFile,
    CouplingSignal,
    DiffSummary,
    DriftAlert,
    ForensicsReport,
    ProjectMetrics,
    RecencyStats,
    RiskAssessment,
    SiblingGuidance,
    SiblingPattern,
    VolatilityResult,
)
from gitforensics.models.commit import CommitMetadata
from gitforensics.models.config import ForensicsConfig, RiskWeights, Settings
from gitforensics.models.memory import Memory, MemorySource

__all__ = [
    "CommitMetadata",
    "ProjectMetrics",
    "AdaptiveThresholds",
    "AuthorContribution",
    "RecencyStats",
    "VolatilityResult",
    "DiffSummary",
    "CoupledFile",
    "DriftAlert",
    "CouplingSignal",
    "SiblingPattern",
    "SiblingGuidance",
    "RiskAssessment",
    "ForensicsReport",
    "Memory",
    "MemorySource",
    "ForensicsConfig",
    "RiskWeights",
    "Settings",
]
