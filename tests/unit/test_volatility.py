"""Unit tests for the volatility engine."""

from datetime import datetime, timedelta

import pytest

from gitforensics.analysis.context import create_analysis_context
from gitforensics.analysis.volatility import (
    UrgencyLexicon,
    age_in_days,
    calculate_recency_decay,
    get_volatility,
    summarize_history,
)
from gitforensics.models import CommitMetadata, ForensicsConfig, ProjectMetrics

NOW = datetime(2024, 6, 1, 12, 0, 0)


def make_commit(message, days_ago=0, author="Alice"):
    return CommitMetadata(
        hash=f"{abs(hash((message, days_ago))):040x}"[:40],
        short_hash="abc1234",
        author_name=author,
        author_email=f"{author.lower()}@example.com",
        timestamp=NOW - timedelta(days=days_ago),
        message=message,
        message_summary=message.split("\n")[0],
    )


@pytest.fixture
def lexicon():
    return UrgencyLexicon.from_config(None)


class TestUrgencyLexicon:
    """Tests for urgency keyword matching."""

    def test_weights(self, lexicon):
        """Test the strongest keyword wins."""
        assert lexicon.weight("Security patch for login") == 3
        assert lexicon.weight("hotfix: revert handler change") == 2
        assert lexicon.weight("Fixes #12") == 1
        assert lexicon.weight("Refactor models") == 0.5
        assert lexicon.weight("Add feature") == 0

    def test_word_start_matching(self, lexicon):
        """Test keywords only match at the start of a word."""
        assert lexicon.weight("Add prefix option") == 0
        assert lexicon.weight("Update information page") == 0

    def test_config_extends_and_overrides(self):
        """Test panic_lexicon and panic_keywords."""
        config = ForensicsConfig(panic_lexicon=["incident"], panic_keywords={"fix": 0})
        custom = UrgencyLexicon.from_config(config)

        assert custom.weight("incident follow-up") == 1
        assert custom.weight("fix the thing") == 0

    def test_whole_word_matching(self, lexicon):
        """Test keywords must end the word, apart from inflections."""
        assert lexicon.weight("Add fixtures for the parser") == 0
        assert lexicon.weight("Update bugle sounds") == 0
        assert lexicon.weight("Fixed flaky login") == 1
        assert lexicon.weight("Reverting the cache layer") == 2
        assert lexicon.weight("Handle errors from the client") == 1
        assert lexicon.weight("bugfix for pagination") == 1


def test_recency_decay():
    """Test the decay halves every half-life."""
    assert calculate_recency_decay(NOW, now=NOW) == 1.0
    assert calculate_recency_decay(NOW - timedelta(days=30), now=NOW) == 0.5
    assert calculate_recency_decay(NOW - timedelta(days=60), now=NOW) == 0.25
    assert calculate_recency_decay(NOW - timedelta(days=10), half_life_days=10, now=NOW) == 0.5
    assert calculate_recency_decay(NOW + timedelta(days=3), now=NOW) == 1.0


def test_age_in_days():
    """Test ages are whole days and never negative."""
    assert age_in_days(NOW - timedelta(days=4, hours=23), now=NOW) == 4
    assert age_in_days(NOW + timedelta(days=1), now=NOW) == 0


def test_summarize_empty_history(lexicon):
    """Test a file without history."""
    result = summarize_history([], lexicon, ProjectMetrics())

    assert result.commit_count == 0
    assert result.panic_score == 0
    assert result.is_new_file


def test_summarize_history(lexicon):
    """Test panic score, weighted score and panic commits."""
    history = [
        make_commit("hotfix: revert x"),
        make_commit("Fix bug in parser"),
        make_commit("Add feature"),
        make_commit("refactor module"),
    ]

    result = summarize_history(history, lexicon, ProjectMetrics(commits_per_week=7), now=NOW)

    assert result.commit_count == 4
    assert result.panic_score == 0.5
    # (2 + 1 + 0.5) / 60 * 100
    assert result.weighted_score == 6
    assert result.panic_commits == ["hotfix: revert x"]
    assert result.last_commit_at == NOW
    assert 0 <= result.panic_score <= 1


def test_weighted_score_decays_with_age(lexicon):
    """Test older urgent commits weigh less."""
    recent = summarize_history([make_commit("crash on start")], lexicon, ProjectMetrics(), now=NOW)
    old = summarize_history(
        [make_commit("crash on start", days_ago=60)], lexicon, ProjectMetrics(), now=NOW
    )

    assert recent.weighted_score == 5
    assert old.weighted_score == 1
    assert recent.panic_score == old.panic_score == 1.0


def test_authorship(lexicon):
    """Test author contributions and bus factor."""
    history = [
        make_commit("one", 1, "Alice"),
        make_commit("two", 2, "Alice"),
        make_commit("three", 3, "Alice"),
        make_commit("four", 40, "Bob"),
    ]

    result = summarize_history(history, lexicon, ProjectMetrics(commits_per_week=3.5), now=NOW)

    assert result.authors == 2
    assert result.top_author.name == "Alice"
    assert result.top_author.percentage == 75
    assert result.author_details[1].commits == 1
    assert result.recency.oldest_commit_days == 40
    assert result.recency.newest_commit_days == 1
    # Three commits in the last 30 days
    assert result.commits_per_week == pytest.approx(0.7)
    assert result.relative_frequency == pytest.approx(0.2)


def test_get_volatility(coupled_repo):
    """Test volatility against a real repository."""
    target = coupled_repo.path / "src" / "api.py"
    result = get_volatility(target)

    assert result.commit_count == 4
    assert result.panic_score == 0.5
    assert result.panic_commits == ["hotfix: revert handler change"]
    assert result.authors == 1


def test_get_volatility_new_file(coupled_repo):
    """Test a file that was never committed."""
    target = coupled_repo.write("src/brand_new.py", "x = 1\n")

    result = get_volatility(target)

    assert result.commit_count == 0
    assert result.panic_score == 0


def test_get_volatility_uses_cache(coupled_repo):
    """Test repeated calls on one context hit the cache."""
    target = coupled_repo.path / "src" / "api.py"
    ctx = create_analysis_context(target)
    try:
        first = get_volatility(target, ctx)
        second = get_volatility(target, ctx)
    finally:
        ctx.close()

    assert first is second
    assert ctx.cache.get_stats()["hits"] == 1
