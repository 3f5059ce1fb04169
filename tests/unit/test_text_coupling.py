"""Unit tests for docs and environment variable coupling."""

import pytest

from gitforensics.analysis.signals import EnvVarExtractor, extract_env_vars, extract_exports
from gitforensics.analysis.text_coupling import get_docs_coupling, get_env_coupling

AUTH_TS = """\
import { db } from "./db";

export function validateToken(token: string) {
  return db.check(token, process.env.JWT_SECRET);
}

export const SESSION_TTL = 3600;
"""


@pytest.fixture
def text_repo(repo_builder):
    """Repository with docs and shared environment variables."""
    repo_builder.commit(
        {
            "src/auth.ts": AUTH_TS,
            "docs/guide.md": "Call `validateToken` before trusting a session.\nSessions live SESSION_TTL seconds.\n",
            "docs/faq.md": "Use validateToken for auth.\n",
            "README.md": "# Demo\n",
            "src/config.py": 'import os\nDATABASE_URL = os.environ["DATABASE_URL"]\nAPI_KEY = os.getenv("API_KEY")\n',
            "src/db.py": 'import os\nurl = os.environ["DATABASE_URL"]\n',
            "src/client.py": 'import os\nkey = os.environ["API_KEY"]\nurl = os.environ["DATABASE_URL"]\n',
            "src/http.py": 'TIMEOUT = 3\n',
        },
        "Initial commit",
    )
    return repo_builder


class TestExtractors:
    """Tests for the heuristic signal extractors."""

    def test_extract_exports(self):
        """Test JS/TS and Python export forms."""
        text = (
            "export function validateToken() {}\n"
            "export const SESSION_TTL = 3\n"
            "export { a as b, helperFn }\n"
            "export default function mainEntry() {}\n"
            "def public_api():\n"
            "    def nested():\n"
            "class Store:\n"
            "def _private():\n"
        )

        assert extract_exports(text) == [
            "validateToken",
            "SESSION_TTL",
            "helperFn",
            "mainEntry",
            "public_api",
            "Store",
        ]

    def test_extract_env_vars(self):
        """Test prefix/suffix rules and the denylist."""
        text = "API_KEY DATABASE_URL APIKEY HTTP_PROXY MAX_SIZE GITHUB_TOKEN API_KEY"

        assert extract_env_vars(text) == ["API_KEY", "DATABASE_URL", "GITHUB_TOKEN"]

    def test_env_extractor_is_configurable(self):
        """Test a custom lexicon."""
        extractor = EnvVarExtractor(prefixes=("MYAPP_",), suffixes=(), limit=1)

        assert extractor.extract_signals("MYAPP_MODE MYAPP_LEVEL API_KEY") == ["MYAPP_MODE"]


def test_docs_coupling(text_repo):
    """Test markdown files mentioning exported symbols."""
    signals = get_docs_coupling(text_repo.path / "src" / "auth.ts")

    assert [s.file for s in signals] == ["docs/guide.md", "docs/faq.md"]
    guide, faq = signals
    assert guide.score == 0.6
    assert guide.reason == "Mentions: validateToken, SESSION_TTL"
    assert faq.score == 0.5
    assert all(s.source == "docs" for s in signals)


def test_docs_coupling_without_exports(text_repo):
    """Test files without exports have no docs coupling."""
    assert get_docs_coupling(text_repo.path / "src" / "http.py") == []


def test_env_coupling(text_repo):
    """Test files sharing environment variables."""
    signals = get_env_coupling(text_repo.path / "src" / "config.py")

    assert [s.file for s in signals] == ["src/client.py", "src/db.py"]
    client, db = signals
    assert client.score == 0.6
    assert client.reason == "Shares env vars: DATABASE_URL, API_KEY"
    assert db.score == 0.5
    assert all(s.source == "env" for s in signals)


def test_env_coupling_caps_results(repo_builder):
    """Test at most five files, each scoring at most 0.75."""
    names = ["API_KEY", "DATABASE_URL", "REDIS_HOST", "AUTH_TOKEN", "STRIPE_SECRET"]
    body = "\n".join(f'{n} = env("{n}")' for n in names) + "\n"
    files = {"settings.py": body}
    files.update({f"consumer{i}.py": body for i in range(7)})
    repo_builder.commit(files, "Initial commit")

    signals = get_env_coupling(repo_builder.path / "settings.py")

    assert len(signals) == 5
    assert all(s.score == 0.75 for s in signals)
    assert signals[0].reason.endswith("(+2)")
