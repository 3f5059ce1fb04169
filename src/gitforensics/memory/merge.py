"""Similarity-based merging of extracted memories."""

import re
from difflib import SequenceMatcher
from typing import List, Sequence, Set

from gitforensics.exceptions import InvalidInputError
from gitforensics.models import Memory
from gitforensics.models.memory import IMPORTANCE_RANK

MAX_MERGED_FILES = 20
KEYWORD_WEIGHT = 0.8
SUMMARY_WEIGHT = 0.2

_TOKEN = re.compile(r"[a-z0-9]+")


def _keyword_set(memory: Memory) -> Set[str]:
    return {keyword.lower() for keyword in memory.keywords}


def jaccard(left: Set[str], right: Set[str]) -> float:
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def _summary_tokens(memory: Memory) -> List[str]:
    return _TOKEN.findall(memory.summary.lower())


def summary_similarity(first: Memory, second: Memory) -> float:
    """Order-aware match ratio of the summary words, 1.0 only for the same wording."""
    left, right = _summary_tokens(first), _summary_tokens(second)
    if not left and not right:
        return 1.0
    return SequenceMatcher(None, left, right, autojunk=False).ratio()


def calculate_similarity(first: Memory, second: Memory) -> float:
    """Blend keyword overlap with summary wording.

    Keyword Jaccard carries ``KEYWORD_WEIGHT`` of the score and the summary
    ratio ``SUMMARY_WEIGHT``, so a score of 1.0 needs both the same keywords
    and the same summary words in the same order. Memories without keywords are compared on
    their summaries alone.
    """
    text = summary_similarity(first, second)
    left, right = _keyword_set(first), _keyword_set(second)
    if not left and not right:
        return text
    return min(1.0, KEYWORD_WEIGHT * jaccard(left, right) + SUMMARY_WEIGHT * text)


def _ordered_union(groups: Sequence[Sequence[str]]) -> List[str]:
    merged: List[str] = []
    seen = set()
    for group in groups:
        for item in group:
            key = item.lower()
            if key not in seen:
                seen.add(key)
                merged.append(item)
    return merged


def _combine(group: List[Memory]) -> Memory:
    representative = group[0]
    for memory in group[1:]:
        if IMPORTANCE_RANK[memory.importance] > IMPORTANCE_RANK[representative.importance]:
            representative = memory

    keywords = _ordered_union([representative.keywords] + [m.keywords for m in group])
    linked = _ordered_union([m.linked_files for m in group])

    return representative.model_copy(
        update={
            "keywords": [k.lower() for k in keywords],
            "linked_files": linked[:MAX_MERGED_FILES],
            "confidence": max(m.confidence for m in group),
        },
        deep=True,
    )


def merge_similar_memories(memories: Sequence[Memory], threshold: float = 0.7) -> List[Memory]:
    """Greedily fold memories whose similarity reaches ``threshold``.

    Each unmerged memory seeds a group and absorbs every later unmerged memory
    similar to it. Groups of one are returned unchanged, larger groups become a
    new record. Input order decides the result; inputs are never modified.

    Args:
        memories: Memories in a stable order
        threshold: Similarity in [0, 1]; 1.0 only merges memories with identical
            keywords and summary wording

    Returns:
        Merged memories, in order of each group's first member

    Raises:
        InvalidInputError: If threshold is outside [0, 1]
    """
    if not 0.0 <= threshold <= 1.0:
        raise InvalidInputError("Similarity threshold must be within [0, 1]", details={"threshold": threshold})

    items = list(memories)
    if len(items) <= 1:
        return items

    used = [False] * len(items)
    merged = []

    for i, current in enumerate(items):
        if used[i]:
            continue
        used[i] = True
        group = [current]

        for j in range(i + 1, len(items)):
            if not used[j] and calculate_similarity(current, items[j]) >= threshold:
                group.append(items[j])
                used[j] = True

        merged.append(current if len(group) == 1 else _combine(group))

    return merged
