"""Configuration models."""

import hashlib
import json
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


class RiskWeights(BaseModel):
    """Weights of each component in the compound risk score."""

    model_config = ConfigDict(extra="forbid")

    volatility: float = Field(0.35, ge=0.0, le=1.0)
    coupling: float = Field(0.30, ge=0.0, le=1.0)
    drift: float = Field(0.20, ge=0.0, le=1.0)
    importers: float = Field(0.15, ge=0.0, le=1.0)


class ForensicsConfig(BaseModel):
    """Repository-level configuration read from ``.gitforensics.json``.

    Keys may be written in snake_case or camelCase. Unknown keys are rejected so
    that typos surface as a parse failure instead of being silently ignored.
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "ignorePatterns": ["generated/", "*.snap"],
                "driftThresholdDays": 7,
                "maxCoupledFiles": 10,
                "panicLexicon": ["incident"],
                "riskWeights": {"volatility": 0.4, "coupling": 0.3, "drift": 0.2, "importers": 0.1},
            }
        },
    )

    ignore_patterns: List[str] = Field(
        default_factory=list, description="Extra gitignore-style patterns to exclude"
    )
    drift_threshold_days: int = Field(
        7, ge=1, le=365, description="Days before a coupled file is considered stale"
    )
    max_coupled_files: int = Field(10, ge=1, le=50, description="Maximum coupled files reported")
    panic_lexicon: List[str] = Field(
        default_factory=list, description="Extra urgency words, weighted 1.0"
    )
    panic_keywords: Dict[str, Annotated[float, Field(ge=0.0, le=3.0)]] = Field(
        default_factory=dict, description="Weighted overrides of the urgency lexicon"
    )
    coupling_threshold: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Minimum coupling score; adaptive when unset"
    )
    analysis_window: Optional[int] = Field(
        None, ge=10, le=500, description="Commits examined per file; adaptive when unset"
    )
    max_files_per_commit: int = Field(
        15, ge=5, le=100, description="Commits touching more files are ignored for coupling"
    )
    min_co_changes: int = Field(2, ge=1, description="Minimum shared commits to report coupling")
    decay_half_life_days: float = Field(
        30.0, gt=0, description="Age in days at which a commit's weight halves"
    )
    similarity_threshold: float = Field(
        0.7, ge=0.0, le=1.0, description="Keyword overlap needed to merge memories"
    )
    risk_weights: RiskWeights = Field(default_factory=RiskWeights)

    def cache_key(self) -> str:
        """Build a short deterministic key of the options.

        Returns:
            Hex digest identifying this configuration
        """
        payload = json.dumps(self.model_dump(), sort_keys=True)
        return hashlib.sha256(payload.encode()).hexdigest()[:12]


class Settings(BaseSettings):
    """Process settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GITFORENSICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Cache
    cache_ttl_seconds: float = 300.0
    cache_max_entries: int = 100

    # Project metrics scan
    metrics_window_days: int = 30
    metrics_max_commits: int = 500

    config_filename: str = ".gitforensics.json"
