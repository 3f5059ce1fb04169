"""Unit tests for the co-change coupling engine."""

from datetime import datetime, timedelta

import pytest

from gitforensics.analysis.context import create_analysis_context
from gitforensics.analysis.coupling import (
    classify_change_type,
    get_coupled_files,
    get_test_coupling,
    is_test_file,
    merge_coupling_results,
    parse_diff_summary,
    score_co_changes,
)
from gitforensics.analysis.ignore import IgnoreFilter
from gitforensics.extraction import BINARY_MARKER
from gitforensics.models import CommitMetadata, CoupledFile, CouplingSignal

NOW = datetime(2024, 6, 1, 12, 0, 0)


def make_commit(files, days_ago=0, message="change"):
    return CommitMetadata(
        hash=f"{len(files)}{days_ago}".ljust(40, "0"),
        short_hash="abc1234",
        author_name="Alice",
        author_email="alice@example.com",
        timestamp=NOW - timedelta(days=days_ago),
        message=message,
        message_summary=message,
        files_changed=files,
    )


@pytest.fixture
def no_ignore():
    return IgnoreFilter([])


class TestScoreCoChanges:
    """Tests for the pure co-change scoring."""

    def test_empty_history(self, no_ignore):
        """Test a file without history has no coupling."""
        assert score_co_changes([], "a.py", no_ignore) == []

    def test_scores_and_ordering(self, no_ignore):
        """Test score is decayed shared commits over target commits."""
        history = [
            make_commit(["a.py", "b.py", "c.py"], 0, "newest"),
            make_commit(["a.py", "b.py"], 0),
            make_commit(["a.py", "c.py"], 30),
            make_commit(["a.py", "b.py", "c.py"], 30),
        ]

        coupled = score_co_changes(history, "a.py", no_ignore, now=NOW)

        assert [c.file for c in coupled] == ["b.py", "c.py"]
        assert coupled[0].co_change_count == 3
        assert coupled[0].score == pytest.approx((1 + 1 + 0.5) / 4)
        assert coupled[1].score == pytest.approx((1 + 0.5 + 0.5) / 4)
        assert coupled[0].last_commit_message == "newest"
        assert all(0 <= c.score <= 1 for c in coupled)

    def test_min_co_changes(self, no_ignore):
        """Test files sharing a single commit are dropped."""
        history = [make_commit(["a.py", "b.py"]), make_commit(["a.py", "c.py"]), make_commit(["a.py", "c.py"])]

        coupled = score_co_changes(history, "a.py", no_ignore, now=NOW)

        assert [c.file for c in coupled] == ["c.py"]
        assert len(score_co_changes(history, "a.py", no_ignore, min_co_changes=1, now=NOW)) == 2

    def test_bulk_commits_skipped(self, no_ignore):
        """Test commits touching many files are ignored."""
        bulk = ["a.py"] + [f"f{i}.py" for i in range(20)]
        history = [make_commit(bulk), make_commit(bulk)]

        assert score_co_changes(history, "a.py", no_ignore, now=NOW) == []

    def test_ignored_files(self):
        """Test ignored paths never appear."""
        history = [make_commit(["a.py", "package-lock.json"])] * 3

        assert score_co_changes(history, "a.py", IgnoreFilter(["package-lock.json"]), now=NOW) == []

    def test_threshold_and_limit(self, no_ignore):
        """Test coupling threshold and result limit."""
        history = [make_commit(["a.py", "b.py", "c.py", "d.py"])] * 2 + [make_commit(["a.py"])] * 8

        assert score_co_changes(history, "a.py", no_ignore, coupling_threshold=0.25, now=NOW) == []
        limited = score_co_changes(history, "a.py", no_ignore, limit=2, now=NOW)
        assert [c.file for c in limited] == ["b.py", "c.py"]


class TestDiffSummary:
    """Tests for diff evidence."""

    def test_parse_diff(self):
        """Test additions, removals and hunks."""
        raw = (
            "diff --git a/api.ts b/api.ts\n"
            "--- a/api.ts\n"
            "+++ b/api.ts\n"
            "@@ -1,3 +1,3 @@\n"
            "-export function getUser(id) {\n"
            "+export function getUser(id, opts) {\n"
            " const x = 1\n"
            "@@ -10,1 +10,2 @@\n"
            "+  return user\n"
        )

        summary = parse_diff_summary(raw)

        assert summary.hunks == 2
        assert summary.additions == ["export function getUser(id, opts) {", "return user"]
        assert summary.removals == ["export function getUser(id) {"]
        assert summary.net_change == 1
        assert summary.has_breaking_change
        assert summary.change_type == "api"

    def test_binary(self):
        """Test binary diffs produce empty evidence."""
        summary = parse_diff_summary(BINARY_MARKER)
        assert summary.hunks == 0
        assert summary.change_type == "unknown"

    def test_classify_change_type(self):
        """Test change type heuristics."""
        assert classify_change_type(["interface User {"], []) == "schema"
        assert classify_change_type(["import os"], []) == "import"
        assert classify_change_type(["MAX_RETRIES = 3"], []) == "config"
        assert classify_change_type(["x=1"], ["x = 1"]) == "style"
        assert classify_change_type(["hello"], ["world"]) == "unknown"


def test_get_coupled_files(coupled_repo):
    """Test coupling against a real repository."""
    coupled = get_coupled_files(coupled_repo.path / "src" / "api.py")

    assert [c.file for c in coupled] == ["src/models.py"]
    models = coupled[0]
    assert models.co_change_count == 3
    assert 0.4 < models.score < 0.55
    assert models.last_commit_message == "hotfix: revert handler change"
    assert models.evidence is not None
    assert models.evidence.hunks == 1
    assert models.evidence.additions == ["name = 'x'"]


def test_get_coupled_files_without_evidence(coupled_repo):
    """Test evidence can be skipped."""
    coupled = get_coupled_files(coupled_repo.path / "src" / "api.py", include_evidence=False)

    assert coupled[0].evidence is None


def test_get_coupled_files_new_file(coupled_repo):
    """Test a file without history."""
    target = coupled_repo.write("src/fresh.py", "pass\n")

    assert get_coupled_files(target) == []


def test_coupling_shares_context_with_volatility(coupled_repo):
    """Test engines reuse one context and cache."""
    target = coupled_repo.path / "src" / "api.py"
    ctx = create_analysis_context(target)
    try:
        first = get_coupled_files(target, ctx)
        second = get_coupled_files(target, ctx)
    finally:
        ctx.close()

    assert first == second
    assert ctx.cache.get_stats()["hits"] == 1


class TestTestCoupling:
    """Tests for naming-based test coupling."""

    def test_is_test_file(self):
        """Test naming conventions."""
        assert is_test_file("src/api.test.ts")
        assert is_test_file("tests/test_api.py")
        assert is_test_file("pkg/api_test.go")
        assert not is_test_file("src/api.py")
        assert not is_test_file("src/contest.py")

    def test_get_test_coupling(self, repo_builder):
        """Test test files named after the target are found."""
        repo_builder.commit(
            {
                "src/api.py": "def handler(): pass\n",
                "tests/test_api.py": "from src.api import handler\n",
                "src/api.spec.ts": "it('works')\n",
                "tests/test_other.py": "pass\n",
            },
            "Initial commit",
        )

        signals = get_test_coupling(repo_builder.path / "src" / "api.py")

        assert {s.file for s in signals} == {"tests/test_api.py", "src/api.spec.ts"}
        assert all(s.score == 0.85 and s.source == "test" for s in signals)
        assert get_test_coupling(repo_builder.path / "tests" / "test_api.py") == []


def test_merge_coupling_results():
    """Test de-duplication by source priority and ranking."""
    git_entry = CoupledFile(
        file="src/models.py",
        co_change_count=3,
        score=0.5,
        last_co_changed_at=NOW,
        last_commit_hash="a" * 40,
    )
    test_signal = CouplingSignal(file="tests/test_api.py", score=0.85, reason="t", source="test")
    docs_duplicate = CouplingSignal(file="src/models.py", score=0.7, reason="d", source="docs")
    env_signal = CouplingSignal(file="src/settings.py", score=0.6, reason="e", source="env")

    merged = merge_coupling_results([git_entry], [test_signal], [env_signal], [docs_duplicate])

    assert [m.file for m in merged] == ["tests/test_api.py", "src/settings.py", "src/models.py"]
    assert merged[2].source == "git"


def test_merge_coupling_results_cap():
    """Test at most 15 merged results."""
    signals = [
        CouplingSignal(file=f"doc{i}.md", score=0.4, reason="r", source="docs") for i in range(20)
    ]

    assert len(merge_coupling_results([], signals)) == 15


def test_merge_coupling_results_source_priority():
    """Test the higher priority source wins for a file reported twice."""
    api_signal = CouplingSignal(file="web/client.ts", score=0.62, reason="a", source="api")
    content_duplicate = CouplingSignal(file="web/client.ts", score=0.35, reason="c", source="content")
    type_signal = CouplingSignal(file="src/app.ts", score=0.5, reason="t", source="type")
    transitive_duplicate = CouplingSignal(file="src/app.ts", score=0.55, reason="r", source="transitive")

    merged = merge_coupling_results(
        [], [content_duplicate], [transitive_duplicate], [api_signal], [type_signal]
    )

    assert {m.file: m.source for m in merged} == {"web/client.ts": "api", "src/app.ts": "type"}
    assert [m.file for m in merged] == ["web/client.ts", "src/app.ts"]
