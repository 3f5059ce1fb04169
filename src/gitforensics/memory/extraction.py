"""Heuristic extraction of memories from comments, commits and reviews."""

import re
from typing import Iterable, List, Optional, Sequence

import structlog

from gitforensics.extraction import RepositoryAccessor
from gitforensics.memory.patterns import (
    COMMENT_PATTERNS,
    COMMIT_MIN_LENGTH,
    COMMIT_PATTERNS,
    HIGH_VALUE_WORDS,
    PR_COMMENT_PATTERNS,
    STOPWORDS,
    MarkerPattern,
)
from gitforensics.models import Memory, MemorySource

logger = structlog.get_logger(__name__)

SUMMARY_LENGTH = 100
MAX_KEYWORDS = 15
MAX_LINKED_FILES = 10
DEDUP_PREFIX = 50

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def calculate_confidence(content: str, min_length: int, floor: int = 0) -> int:
    """Score an extraction from its length and the words it contains.

    Args:
        content: Extracted annotation body
        min_length: Minimum length of the marker that matched
        floor: Lowest score the marker allows

    Returns:
        Confidence between ``floor`` and 100
    """
    confidence = 50.0
    confidence += min(20.0, (len(content) - min_length) / 5)

    lowered = content.lower()
    confidence += 5 * sum(1 for word in HIGH_VALUE_WORDS if word in lowered)

    return max(floor, min(100, round(confidence)))


def extract_keywords(text: str) -> List[str]:
    """Lower-cased tokens of three or more characters without stop-words."""
    tokens = _NON_ALNUM.sub(" ", text.lower()).split()
    keywords: List[str] = []
    for token in tokens:
        if len(token) >= 3 and token not in STOPWORDS and token not in keywords:
            keywords.append(token)
            if len(keywords) == MAX_KEYWORDS:
                break
    return keywords


def summarize(content: str) -> str:
    if len(content) > SUMMARY_LENGTH:
        return content[:SUMMARY_LENGTH] + "..."
    return content


def deduplicate_memories(memories: Iterable[Memory]) -> List[Memory]:
    """Drop memories whose context starts like an earlier one."""
    seen = set()
    unique = []
    for memory in memories:
        key = memory.context.lower()[:DEDUP_PREFIX]
        if key in seen:
            continue
        seen.add(key)
        unique.append(memory)
    return unique


def _build(
    marker: MarkerPattern,
    content: str,
    context: str,
    source: MemorySource,
    linked_files: Sequence[str],
    min_length: int,
) -> Memory:
    return Memory(
        context=context,
        summary=summarize(content),
        keywords=extract_keywords(content),
        memory_type=marker.memory_type,
        importance=marker.importance,
        source=source,
        linked_files=list(linked_files),
        confidence=calculate_confidence(content, min_length, marker.confidence_floor),
    )


def extract_from_code(source_text: str, file_path: str) -> List[Memory]:
    """Extract one memory per annotated comment in a source file.

    Args:
        source_text: File content
        file_path: Repository-relative path of the file

    Returns:
        De-duplicated memories in marker order
    """
    source = MemorySource(kind="auto_extracted", reference=file_path)
    memories = []

    for marker in COMMENT_PATTERNS:
        for match in marker.pattern.finditer(source_text):
            content = match.group(1).strip()
            if len(content) < marker.min_length:
                continue
            memories.append(
                _build(marker, content, content, source, [file_path], marker.min_length)
            )

    return deduplicate_memories(memories)


def _extract_phrases(
    patterns: Sequence[MarkerPattern],
    text: str,
    source: MemorySource,
    linked_files: Sequence[str],
    context_prefix: Optional[str] = None,
) -> List[Memory]:
    memories = []
    linked = list(linked_files)[:MAX_LINKED_FILES]

    for marker in patterns:
        match = marker.pattern.search(text)
        if not match:
            continue
        content = match.group(1).strip()
        if len(content) < COMMIT_MIN_LENGTH:
            continue
        context = f"{context_prefix}: {content}" if context_prefix is not None else content
        memories.append(_build(marker, content, context, source, linked, COMMIT_MIN_LENGTH))

    return deduplicate_memories(memories)


def extract_from_commit_message(
    message: str, commit_hash: str, files_touched: Sequence[str]
) -> List[Memory]:
    """Extract memories from a commit message.

    The context is prefixed with the message's first line; linked files are the
    first files the commit touched.
    """
    subject = message.split("\n", 1)[0].strip()
    return _extract_phrases(
        COMMIT_PATTERNS,
        message,
        MemorySource(kind="commit_message", reference=commit_hash),
        files_touched,
        context_prefix=subject,
    )


def extract_from_pr_comment(
    comment: str, review_url: Optional[str], files_affected: Sequence[str]
) -> List[Memory]:
    """Extract memories from a code review comment."""
    return _extract_phrases(
        PR_COMMENT_PATTERNS,
        comment,
        MemorySource(kind="pr_comment", reference=review_url),
        files_affected,
    )


def scan_file(source_text: str, file_path: str, min_confidence: int = 50) -> List[Memory]:
    """Comment memories at or above ``min_confidence``."""
    return [
        memory
        for memory in extract_from_code(source_text, file_path)
        if memory.confidence >= min_confidence
    ]


def extract_from_history(
    accessor: RepositoryAccessor, rel_path: str, max_count: int = 50
) -> List[Memory]:
    """Run commit-message extraction over a file's recent history.

    Args:
        accessor: Open repository accessor
        rel_path: Repository-relative path
        max_count: Number of commits to examine, newest first

    Returns:
        De-duplicated memories, newest commit first

    Raises:
        EngineIOError: If the log cannot be read
    """
    commits = accessor.commits_for_path(rel_path, max_count=max_count, include_files=True)

    memories = []
    for commit in commits:
        memories.extend(
            extract_from_commit_message(commit.message, commit.hash, commit.files_changed)
        )

    unique = deduplicate_memories(memories)
    logger.debug("history_memories_extracted", path=rel_path, commits=len(commits), memories=len(unique))
    return unique
