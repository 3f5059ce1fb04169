"""Commit log entries as seen by the analysis engines."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CommitMetadata(BaseModel):
    """One entry of a file's (or the repository's) commit log.

    ``files_changed`` is only filled in when the caller asked the accessor to
    resolve it, since that costs one tree diff per commit.
    """

    hash: str = Field(..., description="Full commit SHA")
    short_hash: str = Field(..., description="Abbreviated SHA (7 chars)")
    author_name: str = Field(..., description="Author name, used for bus-factor stats")
    author_email: str = Field(..., description="Author email, the author identity key")
    timestamp: datetime = Field(..., description="Commit time in local time, naive")
    message: str = Field(..., description="Full commit message, scanned for urgency and memories")
    message_summary: Optional[str] = Field(None, description="Subject line")
    files_changed: List[str] = Field(
        default_factory=list, description="Repository-relative paths touched, if resolved"
    )
    is_merge: bool = Field(False, description="Commit has more than one parent")

    class Config:
        """Pydantic config."""
        json_schema_extra = {
            "example": {
                "hash": "9f2c41e0b7a35d6c8e1f4a2b3c5d7e9f0a1b2c3d",
                "short_hash": "9f2c41e",
                "author_name": "Dana Reyes",
                "author_email": "dana@example.com",
                "timestamp": "2024-03-02T16:45:00",
                "message": "hotfix: revert token cache\n\nThis broke refresh for mobile clients",
                "message_summary": "hotfix: revert token cache",
                "files_changed": ["src/auth/session.py", "src/auth/tokens.py"],
                "is_merge": False,
            }
        }
