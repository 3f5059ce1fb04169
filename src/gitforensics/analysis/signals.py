"""Heuristic signal extraction from source text.

Each extractor turns file content into an ordered, de-duplicated list of
signal strings. Engines only depend on ``extract_signals``, so lexicons can be
swapped or tuned without touching engine logic.
"""

import re
from typing import Iterable, List, Optional, Protocol

JS_EXPORT_PATTERN = re.compile(
    r"export\s+(?:async\s+)?(?:function|const|let|var|class|interface|type|enum)\s+(\w+)"
)
JS_NAMED_EXPORT_PATTERN = re.compile(r"export\s+\{\s*([^}]+)\s*\}")
JS_DEFAULT_FUNCTION_PATTERN = re.compile(r"export\s+default\s+(?:async\s+)?function\s+(\w+)")
PY_TOPLEVEL_PATTERN = re.compile(r"^(?:async\s+def|def|class)\s+([A-Za-z]\w*)", re.MULTILINE)

ENV_VAR_PATTERN = re.compile(r"\b([A-Z][A-Z0-9_]{3,})\b")

DEFAULT_ENV_PREFIXES = (
    "API_", "DATABASE_", "DB_", "STRIPE_", "AUTH_", "JWT_", "AWS_", "GOOGLE_",
    "GITHUB_", "REDIS_", "MONGO_", "POSTGRES_", "MYSQL_", "SECRET_", "PRIVATE_",
    "PUBLIC_", "NEXT_", "VITE_", "REACT_APP_", "VUE_APP_",
)
DEFAULT_ENV_SUFFIXES = (
    "_KEY", "_SECRET", "_TOKEN", "_URL", "_URI", "_HOST", "_PORT", "_PASSWORD",
)
DEFAULT_ENV_DENY_PREFIXES = (
    "HTTP_", "HTML_", "CSS_", "JSON_", "XML_", "UTF_", "CONTENT_TYPE", "STATUS_",
)


class SignalExtractor(Protocol):
    """Anything that can pull signal strings out of source text."""

    def extract_signals(self, text: str) -> List[str]:
        ...


def _unique(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class ExportExtractor:
    """Exported symbol names (JS/TS export forms and Python top-level definitions)."""

    def __init__(self, min_length: int = 3, ignored_names: Optional[Iterable[str]] = None) -> None:
        self.min_length = min_length
        self.ignored_names = frozenset(
            n.lower() for n in (ignored_names or ("default", "module", "exports", "index"))
        )

    def extract_signals(self, text: str) -> List[str]:
        names = [m.group(1) for m in JS_EXPORT_PATTERN.finditer(text)]

        for match in JS_NAMED_EXPORT_PATTERN.finditer(text):
            for part in match.group(1).split(","):
                name = re.split(r"\s+as\s+", part.strip())[0]
                if name and "*" not in name:
                    names.append(name)

        names.extend(m.group(1) for m in JS_DEFAULT_FUNCTION_PATTERN.finditer(text))
        names.extend(m.group(1) for m in PY_TOPLEVEL_PATTERN.finditer(text))

        return [
            name
            for name in _unique(names)
            if len(name) >= self.min_length and name.lower() not in self.ignored_names
        ]


class EnvVarExtractor:
    """Upper-case identifiers that look like environment variable names.

    A candidate must contain an underscore, must not start with a denied prefix
    and must either start with an allowed prefix or end with an allowed suffix.
    """

    def __init__(
        self,
        prefixes: Iterable[str] = DEFAULT_ENV_PREFIXES,
        suffixes: Iterable[str] = DEFAULT_ENV_SUFFIXES,
        deny_prefixes: Iterable[str] = DEFAULT_ENV_DENY_PREFIXES,
        limit: int = 10,
    ) -> None:
        self.prefixes = tuple(prefixes)
        self.suffixes = tuple(suffixes)
        self.deny_prefixes = tuple(deny_prefixes)
        self.limit = limit

    def is_env_var(self, name: str) -> bool:
        if "_" not in name:
            return False
        if name.startswith(self.deny_prefixes):
            return False
        return name.startswith(self.prefixes) or name.endswith(self.suffixes)

    def extract_signals(self, text: str) -> List[str]:
        candidates = (m.group(1) for m in ENV_VAR_PATTERN.finditer(text))
        return _unique(c for c in candidates if self.is_env_var(c))[: self.limit]


DEFAULT_EXPORT_EXTRACTOR = ExportExtractor()
DEFAULT_ENV_EXTRACTOR = EnvVarExtractor()


def extract_exports(text: str) -> List[str]:
    """Exported identifiers of a source file, in order of appearance."""
    return DEFAULT_EXPORT_EXTRACTOR.extract_signals(text)


def extract_env_vars(text: str) -> List[str]:
    """Environment variable names referenced by a source file (at most 10)."""
    return DEFAULT_ENV_EXTRACTOR.extract_signals(text)


TS_TYPE_PATTERN = re.compile(
    r"^\s*(?:export\s+)?(?:declare\s+)?(?:interface|type|enum)\s+(\w+)", re.MULTILINE
)
PY_TYPE_PATTERN = re.compile(
    r"^class\s+(\w+)\s*\([^)]*\b(?:BaseModel|TypedDict|NamedTuple|Protocol|Enum|IntEnum|StrEnum)\b",
    re.MULTILINE,
)
GENERIC_TYPE_NAMES = frozenset(
    {"Props", "State", "Options", "Config", "Data", "Result", "Response", "Request"}
)


class TypeDefinitionExtractor:
    """Names of shared type definitions.

    TypeScript interfaces, type aliases and enums, and Python classes built on
    pydantic models, typed dicts, named tuples, protocols or enums.
    """

    def __init__(self, ignored_names: Iterable[str] = GENERIC_TYPE_NAMES) -> None:
        self.ignored_names = frozenset(ignored_names)

    def extract_signals(self, text: str) -> List[str]:
        names = [m.group(1) for m in TS_TYPE_PATTERN.finditer(text)]
        names.extend(m.group(1) for m in PY_TYPE_PATTERN.finditer(text))
        return [n for n in _unique(names) if len(n) > 2 and n not in self.ignored_names]


STRING_LITERAL_PATTERN = re.compile(r"""['"`]([^'"`\n]{15,80})['"`]""")
_LOCALHOST_URL = re.compile(r"^https?://localhost")
_KEBAB_WORD = re.compile(r"^[a-z-]+$")
_SIMPLE_PATH = re.compile(r"^\.?/?[\w-]+$")
_ERROR_TEXT = re.compile(r"error|failed|invalid|not found|unauthorized", re.IGNORECASE)
_FORMAT_TEXT = re.compile(r"\$\{|%[sdf]|\{\w*\}")


def is_significant_literal(literal: str) -> bool:
    """Whether a string literal is distinctive enough to link two files.

    Error messages, API paths and format strings qualify, as do longer
    sentences. Local URLs, CSS-like words, numbers and bare paths do not.
    """
    if not literal.strip() or literal.isdigit():
        return False
    if _LOCALHOST_URL.match(literal) or _KEBAB_WORD.match(literal) or _SIMPLE_PATH.match(literal):
        return False
    if _ERROR_TEXT.search(literal) or literal.startswith("/api/") or _FORMAT_TEXT.search(literal):
        return True
    return len(literal) > 30 and any(ch.isspace() for ch in literal)


class StringLiteralExtractor:
    """Significant quoted string literals of 15 to 80 characters."""

    def __init__(self, limit: int = 5) -> None:
        self.limit = limit

    def extract_signals(self, text: str) -> List[str]:
        literals = (m.group(1) for m in STRING_LITERAL_PATTERN.finditer(text))
        return _unique(s for s in literals if is_significant_literal(s))[: self.limit]


SCHEMA_INDICATORS = [
    re.compile(r"CREATE\s+TABLE", re.IGNORECASE),
    re.compile(r"ALTER\s+TABLE", re.IGNORECASE),
    re.compile(r"@Entity|@Table|@Column"),
    re.compile(r"model\s+\w+\s*\{"),
    re.compile(r"mongoose\.Schema"),
    re.compile(r"db\.Column|db\.relationship", re.IGNORECASE),
    re.compile(r"sequelize\.define", re.IGNORECASE),
    re.compile(r"__tablename__"),
]
SCHEMA_NAME_PATTERNS = [
    # CREATE TABLE users, ALTER TABLE IF EXISTS "orders"
    re.compile(
        r"""(?:CREATE|ALTER|DROP)\s+TABLE\s+(?:IF\s+(?:NOT\s+)?EXISTS\s+)?["`]?(\w+)["`]?""",
        re.IGNORECASE,
    ),
    # Prisma: model User {
    re.compile(r"model\s+(\w+)\s*\{"),
    # @Entity("users"), @Table("orders")
    re.compile(r"""@(?:Entity|Table)\s*\(\s*["'](\w+)["']"""),
    re.compile(r"""mongoose\.model\s*\(\s*["'](\w+)["']"""),
    re.compile(r"""__tablename__\s*=\s*["'](\w+)["']"""),
]
# class User extends Model, class OrderModel(Base)
ORM_CLASS_PATTERNS = [
    re.compile(r"class\s+(\w+)\s+(?:extends|implements)\b"),
    re.compile(r"^class\s+(\w+)\s*\(\s*(?:[\w.]*Model|Base|[\w.]*DeclarativeBase)\s*\)", re.MULTILINE),
]
GENERIC_SCHEMA_NAMES = frozenset({"id", "data", "item", "entity", "model", "base", "abstract"})


def is_schema_file(text: str) -> bool:
    """Whether source text defines database tables or ORM models."""
    return any(pattern.search(text) for pattern in SCHEMA_INDICATORS)


class SchemaNameExtractor:
    """Table and model names from SQL, Prisma and ORM definitions."""

    def __init__(self, limit: int = 10) -> None:
        self.limit = limit

    def extract_signals(self, text: str) -> List[str]:
        names = []
        for pattern in SCHEMA_NAME_PATTERNS:
            names.extend(m.group(1) for m in pattern.finditer(text))
        for pattern in ORM_CLASS_PATTERNS:
            names.extend(re.sub(r"Model$", "", m.group(1)) for m in pattern.finditer(text))
        return _unique(
            n for n in names if len(n) > 2 and n.lower() not in GENERIC_SCHEMA_NAMES
        )[: self.limit]


ENDPOINT_PATTERN = re.compile(r"""["'`](/(?:api|v\d+)/[^"'`\s]+)["'`]""")
ROUTE_PATTERN = re.compile(
    r"""\.(?:get|post|put|delete|patch|route)\s*\(\s*["'`](/[^"'`]*)["'`]""", re.IGNORECASE
)
DECORATOR_ROUTE_PATTERN = re.compile(r"""@(?:Get|Post|Put|Delete|Patch)\s*\(\s*["'`](/[^"'`]*)["'`]""")
API_INDICATORS = [
    re.compile(
        r"(?:^|[^\w.])(?:app|router|bp|blueprint|server)\.(?:get|post|put|delete|patch|route)\s*\(",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(r"@(Get|Post|Put|Delete|Patch)\s*\("),
    re.compile(r"createRouter|APIRouter|Blueprint\("),
    re.compile(r"export\s+(?:async\s+)?function\s+(GET|POST|PUT|DELETE|PATCH)\b"),
]
_PATH_PARAMETER = re.compile(r":\w+|\{\w+\}|<[\w:]+>")


def is_api_definition_file(text: str) -> bool:
    """Whether source text declares HTTP routes."""
    return any(pattern.search(text) for pattern in API_INDICATORS)


def _clean_endpoint(path: str) -> str:
    # /api/users/:id -> /api/users
    return re.sub(r"/{2,}", "/", _PATH_PARAMETER.sub("", path)).rstrip("/")


class ApiEndpointExtractor:
    """HTTP endpoint paths declared or referenced by source text."""

    def __init__(self, limit: int = 10) -> None:
        self.limit = limit

    def extract_signals(self, text: str) -> List[str]:
        endpoints = [
            clean
            for clean in (_clean_endpoint(m.group(1)) for m in ENDPOINT_PATTERN.finditer(text))
            if len(clean) > 4
        ]
        endpoints.extend(
            clean
            for clean in (_clean_endpoint(m.group(1)) for m in ROUTE_PATTERN.finditer(text))
            if len(clean) > 1
        )
        endpoints.extend(
            _clean_endpoint(m.group(1)) or "/" for m in DECORATOR_ROUTE_PATTERN.finditer(text)
        )
        return _unique(endpoints)[: self.limit]


DEFAULT_TYPE_EXTRACTOR = TypeDefinitionExtractor()
DEFAULT_STRING_EXTRACTOR = StringLiteralExtractor()
DEFAULT_SCHEMA_EXTRACTOR = SchemaNameExtractor()
DEFAULT_ENDPOINT_EXTRACTOR = ApiEndpointExtractor()


def extract_type_definitions(text: str) -> List[str]:
    return DEFAULT_TYPE_EXTRACTOR.extract_signals(text)


def extract_string_literals(text: str) -> List[str]:
    return DEFAULT_STRING_EXTRACTOR.extract_signals(text)


def extract_schema_names(text: str) -> List[str]:
    return DEFAULT_SCHEMA_EXTRACTOR.extract_signals(text)


def extract_api_endpoints(text: str) -> List[str]:
    return DEFAULT_ENDPOINT_EXTRACTOR.extract_signals(text)
