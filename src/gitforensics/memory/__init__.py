"""Extraction and merging of tacit knowledge ("memories")."""

from gitforensics.memory.extraction import (
    calculate_confidence,
    deduplicate_memories,
    extract_from_code,
    extract_from_commit_message,
    extract_from_history,
    extract_from_pr_comment,
    extract_keywords,
    scan_file,
)
from gitforensics.memory.merge import calculate_similarity, merge_similar_memories, summary_similarity

__all__ = [
    "extract_from_code",
    "extract_from_commit_message",
    "extract_from_pr_comment",
    "extract_from_history",
    "scan_file",
    "calculate_confidence",
    "extract_keywords",
    "deduplicate_memories",
    "calculate_similarity",
    "merge_similar_memories",
    "summary_similarity",
]
