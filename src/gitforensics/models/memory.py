"""Data models for extracted knowledge ("memories")."""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

MemoryType = Literal["lesson", "context", "decision", "pattern", "warning", "todo"]
Importance = Literal["critical", "high", "normal", "low"]
SourceKind = Literal["pr_comment", "commit_message", "auto_extracted"]

IMPORTANCE_RANK = {"critical": 4, "high": 3, "normal": 2, "low": 1}


class MemorySource(BaseModel):
    """Where a memory came from."""

    kind: SourceKind = Field(..., description="Origin of the memory")
    reference: Optional[str] = Field(None, description="Commit hash, file path or review URL")


class Memory(BaseModel):
    """A unit of tacit knowledge extracted from comments or commit messages."""

    context: str = Field(..., description="Full extracted text")
    summary: str = Field(..., description="Text truncated to 100 characters")
    keywords: List[str] = Field(default_factory=list, description="Lower-cased unique keywords")
    memory_type: MemoryType
    importance: Importance
    source: MemorySource
    linked_files: List[str] = Field(default_factory=list, description="Paths the memory applies to")
    confidence: int = Field(..., ge=0, le=100, description="Extraction confidence")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "context": "never call this before the session is initialised",
                "summary": "never call this before the session is initialised",
                "keywords": ["never", "call", "before", "session", "initialised"],
                "memory_type": "warning",
                "importance": "critical",
                "source": {"kind": "auto_extracted", "reference": "src/db.py"},
                "linked_files": ["src/db.py"],
                "confidence": 75,
            }
        }
