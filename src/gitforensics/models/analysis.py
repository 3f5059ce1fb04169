"""Result models produced by the analysis engines."""

from datetime import date, datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ChangeType = Literal["schema", "api", "import", "config", "test", "style", "unknown"]
SignalSource = Literal["test", "api", "schema", "env", "docs", "type", "transitive", "content"]
RiskLevel = Literal["critical", "high", "medium", "low"]


class ProjectMetrics(BaseModel):
    """Repository-wide activity metrics computed once per analysis."""

    total_commits: int = Field(0, description="Commits inside the metrics window")
    commits_per_week: float = Field(0.0, description="Average commits per week over the window")
    avg_files_per_commit: float = Field(3.0, description="Average files touched per sampled commit")


class AdaptiveThresholds(BaseModel):
    """Thresholds tuned to the project's commit velocity."""

    coupling_threshold: float = Field(..., description="Minimum coupling score (0-1) to report")
    analysis_window: int = Field(..., description="Commits examined per file")
    drift_days: int = Field(..., description="Days before a coupled file counts as stale")


class AuthorContribution(BaseModel):
    """Commit share of one author on a single file."""

    name: str
    email: str
    commits: int
    percentage: int = Field(..., description="Share of the file's commits (0-100)")
    first_commit: date
    last_commit: date


class RecencyStats(BaseModel):
    """Age of a file's commits and the mean decay applied to them."""

    oldest_commit_days: int = 0
    newest_commit_days: int = 0
    decay_factor: float = Field(1.0, description="Mean recency decay over the examined commits")


class VolatilityResult(BaseModel):
    """How often and how urgently a file changes."""

    commit_count: int = Field(0, ge=0, description="Commits touching the file")
    panic_score: float = Field(
        0.0, ge=0.0, le=1.0, description="Fraction of commits whose message signals urgency"
    )
    weighted_score: int = Field(
        0, ge=0, le=100, description="Severity and recency weighted urgency (0-100)"
    )
    panic_commits: List[str] = Field(default_factory=list, description="Most severe commit summaries")
    last_commit_at: Optional[datetime] = Field(None, description="Time of the newest commit")
    authors: int = Field(0, description="Number of distinct authors")
    author_details: List[AuthorContribution] = Field(default_factory=list)
    top_author: Optional[AuthorContribution] = None
    recency: RecencyStats = Field(default_factory=RecencyStats)
    commits_per_week: float = Field(0.0, description="File commits per week over the metrics window")
    relative_frequency: float = Field(
        0.0, description="File commits per week divided by project commits per week"
    )

    @property
    def is_new_file(self) -> bool:
        return self.commit_count == 0


class DiffSummary(BaseModel):
    """Structured digest of one file's diff in one commit."""

    additions: List[str] = Field(default_factory=list, description="First added lines")
    removals: List[str] = Field(default_factory=list, description="First removed lines")
    hunks: int = 0
    net_change: int = 0
    has_breaking_change: bool = False
    change_type: ChangeType = "unknown"


class CoupledFile(BaseModel):
    """A file that historically changes together with the target."""

    file: str = Field(..., description="Repository-relative path")
    co_change_count: int = Field(..., ge=1, description="Commits shared with the target")
    score: float = Field(..., ge=0.0, le=1.0, description="Decay-weighted coupling score")
    last_co_changed_at: datetime = Field(..., description="Time of the newest shared commit")
    last_commit_hash: str = Field(..., description="Hash of the newest shared commit")
    last_commit_message: str = Field("", description="Summary of the newest shared commit")
    source: Literal["git"] = "git"
    evidence: Optional[DiffSummary] = None

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "file": "src/api/routes.py",
                "co_change_count": 4,
                "score": 0.62,
                "last_co_changed_at": "2024-01-15T10:30:00",
                "last_commit_hash": "abc123def456",
                "last_commit_message": "Add pagination to list endpoint",
                "source": "git",
            }
        }


class DriftAlert(BaseModel):
    """A coupled file that has not moved in step with the target."""

    file: str
    days_old: float = Field(..., description="Days the file lags behind the target")


class CouplingSignal(BaseModel):
    """Coupling found by text matching rather than co-change history."""

    file: str
    score: float = Field(..., ge=0.0, le=1.0)
    reason: str
    source: SignalSource


class SiblingPattern(BaseModel):
    """A convention shared by files next to a new file."""

    description: str
    examples: List[str] = Field(default_factory=list)
    confidence: int = Field(..., ge=0, le=100)


class SiblingGuidance(BaseModel):
    """Conventions inferred from structurally similar files."""

    directory: str
    sibling_count: int
    patterns: List[SiblingPattern] = Field(default_factory=list)
    average_volatility: int = Field(0, description="Mean panic score of siblings (0-100)")
    has_tests: bool = False
    common_imports: List[str] = Field(default_factory=list)
    typical_line_count: Optional[int] = None


class RiskAssessment(BaseModel):
    """Compound risk of editing a file."""

    score: int = Field(..., ge=0, le=100)
    level: RiskLevel
    factors: List[str] = Field(default_factory=list)
    action: str


class ForensicsReport(BaseModel):
    """Everything known about a file, merged into one advisory."""

    file_path: str
    file_name: str
    volatility: VolatilityResult
    coupled_files: List[CoupledFile] = Field(default_factory=list)
    drift: List[DriftAlert] = Field(default_factory=list)
    importers: List[str] = Field(default_factory=list)
    docs_coupling: List[CouplingSignal] = Field(default_factory=list)
    env_coupling: List[CouplingSignal] = Field(default_factory=list)
    test_coupling: List[CouplingSignal] = Field(default_factory=list)
    api_coupling: List[CouplingSignal] = Field(default_factory=list)
    schema_coupling: List[CouplingSignal] = Field(default_factory=list)
    type_coupling: List[CouplingSignal] = Field(default_factory=list)
    transitive_coupling: List[CouplingSignal] = Field(default_factory=list)
    content_coupling: List[CouplingSignal] = Field(default_factory=list)
    sibling_guidance: Optional[SiblingGuidance] = None
    risk: RiskAssessment
    failures: Dict[str, str] = Field(
        default_factory=dict, description="Engines that failed, with their error message"
    )
    config_error: Optional[str] = None
