"""Marker lexicons for memory extraction.

Comment markers written in upper case (``CRITICAL``, ``TODO``...) only match
in upper case; prose markers ("This is needed because") match in any case.
Every body group is ``[^\\n*]+`` or ``[^\\n]{n,}`` so a scan stays linear.
"""

import re
from dataclasses import dataclass

from gitforensics.models.memory import Importance, MemoryType

COMMENT_PREFIX = r"(?://|#|/\*)\s*"
COMMENT_BODY = r"[\s:]+([^\n*]+)"

CRITICAL_CONFIDENCE_FLOOR = 70
COMMIT_MIN_LENGTH = 15


@dataclass(frozen=True)
class MarkerPattern:
    """One marker and the memory it produces."""

    pattern: re.Pattern
    memory_type: MemoryType
    importance: Importance
    min_length: int = COMMIT_MIN_LENGTH
    confidence_floor: int = 0


def _marker(markers: str, ignore_case: bool = False, body: str = COMMENT_BODY) -> re.Pattern:
    flags = re.IGNORECASE if ignore_case else 0
    return re.compile(COMMENT_PREFIX + r"(?:" + markers + r")" + body, flags)


def _phrase(phrase: str, min_body: int) -> re.Pattern:
    return re.compile(r"\b(?:" + phrase + r")[\s:]+([^\n]{%d,})" % min_body, re.IGNORECASE)


COMMENT_PATTERNS = (
    MarkerPattern(
        _marker(r"CRITICAL|SECURITY|VULNERABILITY"),
        "warning", "critical", 20, CRITICAL_CONFIDENCE_FLOOR,
    ),
    MarkerPattern(
        _marker(r"DO\s+NOT|NEVER|MUST\s+NOT"),
        "warning", "critical", 15, CRITICAL_CONFIDENCE_FLOOR,
    ),
    MarkerPattern(_marker(r"IMPORTANT|WARNING|CAUTION"), "warning", "high", 15),
    MarkerPattern(_marker(r"HACK|WORKAROUND|TEMPORARY"), "context", "high", 15),
    MarkerPattern(
        _marker(r"This\s+is\s+needed\s+because|Required\s+for|Necessary\s+to", ignore_case=True),
        "context", "high", 20,
    ),
    MarkerPattern(_marker(r"NOTE|NB"), "context", "normal", 20),
    MarkerPattern(_marker(r"FIXME"), "todo", "normal", 15),
    MarkerPattern(_marker(r"TODO"), "todo", "low", 15),
    MarkerPattern(
        _marker(
            r"We\s+(?:do|use|need|have)\s+this\s+(?:because|since|due\s+to)",
            ignore_case=True,
            body=r"([^\n*]+)",
        ),
        "decision", "normal", 25,
    ),
    MarkerPattern(
        _marker(r"Don't\s+(?:remove|delete|change)\s+this", ignore_case=True, body=r"([^\n*]+)"),
        "warning", "high", 20,
    ),
)

COMMIT_PATTERNS = (
    MarkerPattern(_phrase(r"fix|fixed|fixes|fixing", 30), "lesson", "normal"),
    MarkerPattern(_phrase(r"this\s+(?:broke|breaks|was\s+breaking)", 20), "warning", "high"),
    MarkerPattern(_phrase(r"revert|reverted|reverting", 20), "lesson", "high"),
    MarkerPattern(_phrase(r"we\s+(?:decided|chose|went\s+with)", 30), "decision", "normal"),
    MarkerPattern(_phrase(r"the\s+reason\s+(?:for|is|was)", 30), "context", "normal"),
    MarkerPattern(_phrase(r"remember\s+to|don't\s+forget", 15), "lesson", "high"),
    MarkerPattern(_phrase(r"we\s+learned\s+that", 20), "lesson", "normal"),
    MarkerPattern(
        _phrase(r"security|vulnerability|exploit|injection|xss|csrf", 20),
        "warning", "critical", confidence_floor=CRITICAL_CONFIDENCE_FLOOR,
    ),
    MarkerPattern(
        _phrase(r"breaking\s+change|breaking(?=:)", 20),
        "warning", "critical", confidence_floor=CRITICAL_CONFIDENCE_FLOOR,
    ),
)

PR_COMMENT_PATTERNS = (
    MarkerPattern(_phrase(r"this\s+will\s+(?:break|cause\s+issues|fail)", 20), "warning", "high"),
    MarkerPattern(_phrase(r"we\s+should\s+(?:remember|note|keep\s+in\s+mind)", 20), "lesson", "normal"),
    MarkerPattern(_phrase(r"we\s+chose\s+(?:to|this\s+approach)", 30), "decision", "normal"),
    MarkerPattern(
        _phrase(r"watch\s+out\s+for|be\s+careful\s+(?:with|about)", 20), "warning", "high"
    ),
    MarkerPattern(_phrase(r"edge\s+case|corner\s+case", 20), "context", "normal"),
    MarkerPattern(
        _phrase(r"make\s+sure\s+to\s+test|needs?\s+(?:to\s+be\s+)?tested?", 20), "todo", "normal"
    ),
)

HIGH_VALUE_WORDS = (
    "because", "reason", "important", "critical", "security", "bug", "fix",
    "issue", "problem", "warning", "never", "always", "must", "required",
)

STOPWORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "this", "that", "these", "those", "it", "its",
    }
)
