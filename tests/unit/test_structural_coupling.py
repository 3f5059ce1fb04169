"""Unit tests for type, content, schema, API and re-export coupling."""

from gitforensics.analysis.signals import (
    extract_api_endpoints,
    extract_schema_names,
    extract_string_literals,
    extract_type_definitions,
    is_api_definition_file,
    is_schema_file,
)
from gitforensics.analysis.structural_coupling import (
    ere_escape,
    get_api_coupling,
    get_content_coupling,
    get_schema_coupling,
    get_transitive_coupling,
    get_type_coupling,
)

TYPES_TS = """\
export interface UserProfile {
  id: string;
}

export type SessionToken = string;

export enum Role { Admin, Member }

export interface Props {}
"""


class TestExtractors:
    """Tests for the content signal extractors."""

    def test_type_definitions(self):
        """Test TypeScript and Python type names, without generic ones."""
        assert extract_type_definitions(TYPES_TS) == ["UserProfile", "SessionToken", "Role"]
        assert extract_type_definitions(
            "class Invoice(BaseModel):\n    total: int\n\nclass Helper:\n    pass\n"
        ) == ["Invoice"]
        assert extract_type_definitions("# type hints live elsewhere\n") == []

    def test_string_literals(self):
        """Test only distinctive literals are kept."""
        source = (
            'raise ValueError("Invalid token supplied by client")\n'
            'css = "flex-row-center"\n'
            'url = "http://localhost:8000/health"\n'
            'code = "123456789012345"\n'
            'name = "short"\n'
        )

        assert extract_string_literals(source) == ["Invalid token supplied by client"]

    def test_schema_names(self):
        """Test SQL, Prisma and ORM model names."""
        source = (
            'CREATE TABLE IF NOT EXISTS "orders" (id INTEGER);\n'
            "model Customer {\n  id Int\n}\n"
            "model Data {\n}\n"
            "class OrderItemModel(Base):\n"
            '    __tablename__ = "order_items"\n'
        )

        assert set(extract_schema_names(source)) == {"orders", "Customer", "order_items", "OrderItem"}
        assert is_schema_file(source)
        assert not is_schema_file("x = 1\n")

    def test_api_endpoints(self):
        """Test endpoint strings, route calls and route decorators."""
        source = (
            'app.get("/users/:id", handler);\n'
            '@Post("/auth/login")\n'
            'const base = "/v1/billing/";\n'
        )

        assert extract_api_endpoints(source) == ["/v1/billing", "/users", "/auth/login"]
        assert is_api_definition_file(source)
        assert not is_api_definition_file('requests.get("/api/orders")\nsettings.get("debug")\n')

    def test_ere_escape(self):
        """Test regex metacharacters are escaped for git grep."""
        assert ere_escape("a.b(c)") == r"a\.b\(c\)"
        assert ere_escape("user-service") == "user-service"


def test_type_coupling(repo_builder):
    """Test files using the target's types are reported."""
    repo_builder.commit(
        {
            "src/types.ts": TYPES_TS,
            "src/profile.ts": (
                'import { UserProfile, Role } from "./types";\n\n'
                "export function render(profile: UserProfile, role: Role) {\n"
                "  return profile.id;\n}\n"
            ),
            "src/session.ts": 'import { SessionToken } from "./types";\nexport const current: SessionToken = "";\n',
            "src/unrelated.ts": "export const x = 1;\n",
        },
        "Initial commit",
    )

    signals = get_type_coupling(repo_builder.path / "src" / "types.ts")

    assert [(s.file, s.score) for s in signals] == [("src/profile.ts", 0.65), ("src/session.ts", 0.5)]
    assert signals[0].reason == "Shares types: UserProfile, Role"
    assert all(s.source == "type" for s in signals)


def test_type_coupling_python(repo_builder):
    """Test Python models used in annotations."""
    repo_builder.commit(
        {
            "src/models.py": "from pydantic import BaseModel\n\n\nclass Invoice(BaseModel):\n    total: int\n",
            "src/billing.py": "from src.models import Invoice\n\n\ndef charge(invoice: Invoice) -> None:\n    pass\n",
        },
        "Initial commit",
    )

    signals = get_type_coupling(repo_builder.path / "src" / "models.py")

    assert [s.file for s in signals] == ["src/billing.py"]


def test_type_coupling_without_types(repo_builder):
    """Test a file declaring no types."""
    repo_builder.commit({"src/plain.ts": "export const x = 1;\n"}, "Initial commit")

    assert get_type_coupling(repo_builder.path / "src" / "plain.ts") == []


def test_content_coupling(repo_builder):
    """Test a repeated error message links two files."""
    repo_builder.commit(
        {
            "src/errors.py": 'DECLINED = "Payment failed: card was declined"\n',
            "web/notify.ts": 'alert("Payment failed: card was declined");\n',
            "web/other.ts": 'alert("Saved");\n',
        },
        "Initial commit",
    )

    signals = get_content_coupling(repo_builder.path / "src" / "errors.py")

    assert len(signals) == 1
    assert signals[0].file == "web/notify.ts"
    assert signals[0].score == 0.35
    assert signals[0].source == "content"
    assert signals[0].reason.startswith('Shared error: "Payment failed: card was decli..."')


def test_schema_coupling(repo_builder):
    """Test migrations and query layers referencing a table."""
    repo_builder.commit(
        {
            "db/schema.sql": "CREATE TABLE invoices (\n  id INTEGER PRIMARY KEY\n);\n",
            "migrations/002_add_total.sql": "ALTER TABLE invoices ADD COLUMN total INTEGER;\n",
            "src/invoice_repository.py": 'QUERY = "SELECT * FROM invoices"\n',
            "src/unrelated.py": 'QUERY = "SELECT * FROM users"\n',
        },
        "Initial commit",
    )

    signals = {s.file: s for s in get_schema_coupling(repo_builder.path / "db" / "schema.sql")}

    assert set(signals) == {"migrations/002_add_total.sql", "src/invoice_repository.py"}
    assert signals["migrations/002_add_total.sql"].reason == "Migration for: invoices. Check ordering."
    assert signals["src/invoice_repository.py"].reason == "Queries: invoices. Schema changes may break."
    assert signals["src/invoice_repository.py"].score == 0.57


def test_schema_coupling_skips_non_schema_files(repo_builder):
    """Test ordinary code is not treated as a schema."""
    repo_builder.commit(
        {"src/util.py": "def invoices():\n    return []\n", "src/user.py": "invoices()\n"},
        "Initial commit",
    )

    assert get_schema_coupling(repo_builder.path / "src" / "util.py") == []


def test_api_coupling(repo_builder):
    """Test clients of a declared endpoint, ignoring other route files."""
    repo_builder.commit(
        {
            "src/routes.py": (
                "from fastapi import APIRouter\n\nrouter = APIRouter()\n\n\n"
                '@router.get("/api/orders/{order_id}")\ndef read_order(order_id: int):\n    return {}\n'
            ),
            "src/legacy_routes.py": (
                'from flask import Blueprint\n\nbp = Blueprint("legacy", __name__)\n\n\n'
                '@bp.route("/api/orders/legacy")\ndef legacy():\n    return ""\n'
            ),
            "web/client.ts": 'export const load = (id: string) => fetch("/api/orders/" + id);\n',
        },
        "Initial commit",
    )

    signals = get_api_coupling(repo_builder.path / "src" / "routes.py")

    assert [s.file for s in signals] == ["web/client.ts"]
    assert signals[0].score == 0.62
    assert signals[0].reason == "Calls: /api/orders. Response changes will break this."


def test_api_coupling_skips_clients(repo_builder):
    """Test a file that only calls endpoints declares nothing."""
    repo_builder.commit(
        {
            "web/client.ts": 'fetch("/api/orders");\n',
            "web/other.ts": 'fetch("/api/orders");\n',
        },
        "Initial commit",
    )

    assert get_api_coupling(repo_builder.path / "web" / "client.ts") == []


def test_transitive_coupling_through_barrel(repo_builder):
    """Test a barrel re-export and the modules importing through it."""
    repo_builder.commit(
        {
            "src/user/UserService.ts": "export class UserService {}\n",
            "src/user/index.ts": 'export * from "./UserService";\n',
            "src/app.ts": 'import { UserService } from "./user";\n',
            "src/admin.ts": 'import { UserService } from "./user/index";\n',
            "src/other.ts": 'import { x } from "./other-lib";\n',
        },
        "Initial commit",
    )

    signals = get_transitive_coupling(repo_builder.path / "src" / "user" / "UserService.ts")

    assert signals[0].file == "src/user/index.ts"
    assert signals[0].score == 0.6
    assert {s.file: s.score for s in signals[1:]} == {"src/app.ts": 0.55, "src/admin.ts": 0.55}
    assert signals[1].reason == "Imports via index.ts. Indirect dependency."


def test_transitive_coupling_python_package(repo_builder):
    """Test a package __init__ re-exporting a module."""
    repo_builder.commit(
        {
            "pkg/__init__.py": "",
            "pkg/billing/invoice.py": "class Invoice:\n    pass\n",
            "pkg/billing/__init__.py": "from .invoice import Invoice\n",
            "pkg/billing/tasks.py": "from .invoice import Invoice\n",
            "pkg/api.py": "from pkg.billing import Invoice\n",
        },
        "Initial commit",
    )

    signals = get_transitive_coupling(repo_builder.path / "pkg" / "billing" / "invoice.py")

    assert [(s.file, s.score) for s in signals] == [
        ("pkg/billing/__init__.py", 0.6),
        ("pkg/api.py", 0.55),
    ]


def test_transitive_coupling_without_barrels(coupled_repo):
    """Test a module nobody re-exports."""
    assert get_transitive_coupling(coupled_repo.path / "src" / "api.py") == []
