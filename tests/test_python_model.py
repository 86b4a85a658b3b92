from __future__ import annotations

from pathlib import Path

import orjson
import pytest

from model.python_model import UNITS_MANIFEST, PythonCodeModel
from model.revision import Document, Unit
from rules.config import CodeTowerConfig, ConfigError


def _write(root: Path, relative: str, text: str = "") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


ORDERS = '''"""Orders."""

from __future__ import annotations

from .pricing import price


@dataclass
class Order:
    total: int = 0


class Refund:
    pass
'''


def test_open_discovers_namespaces_units_and_skips_backups(tmp_path: Path) -> None:
    _write(tmp_path, "shop/__init__.py")
    _write(tmp_path, "shop/orders/models.py")
    _write(tmp_path, "tools/run.py")
    _write(tmp_path, "setup_helper.py")
    _write(tmp_path, ".codetower_backup/20240101_000000/shop/__init__.py")

    revision = PythonCodeModel().open(tmp_path)

    assert revision.paths() == (
        "setup_helper.py",
        "shop/__init__.py",
        "shop/orders/models.py",
        "tools/run.py",
    )
    assert revision.namespaces == {"shop", "shop.orders", "tools"}
    assert set(revision.units) == {"shop", "tools"}
    assert revision.persisted == frozenset(revision.paths())
    assert revision.number == 0


def test_source_root_scopes_module_names(tmp_path: Path) -> None:
    _write(tmp_path, "src/shop/__init__.py")
    _write(tmp_path, "src/shop/api.py")
    _write(tmp_path, "scripts/deploy.py")

    model = PythonCodeModel(CodeTowerConfig(source_root="src"))
    revision = model.open(tmp_path)

    assert revision.namespaces == {"shop"}
    assert revision.module_name("src/shop/api.py") == "shop.api"
    assert revision.module_name("scripts/deploy.py") is None
    assert revision.folder_for("shop.api") == "src/shop/api"


def test_units_manifest_adds_references(tmp_path: Path) -> None:
    _write(tmp_path, "Application/__init__.py")
    (tmp_path / UNITS_MANIFEST).write_bytes(
        orjson.dumps({"units": {"Application": ["Domain"]}})
    )

    revision = PythonCodeModel().open(tmp_path)

    assert revision.units["Application"] == Unit("Application", frozenset({"Domain"}))


def test_malformed_units_manifest_raises(tmp_path: Path) -> None:
    (tmp_path / UNITS_MANIFEST).write_text('{"units": ["Domain"]}', encoding="utf-8")

    with pytest.raises(ConfigError, match="'units' mapping"):
        PythonCodeModel().open(tmp_path)


def test_namespace_lookup_supports_wildcards(tmp_path: Path) -> None:
    _write(tmp_path, "shop/orders/a.py")
    _write(tmp_path, "shop/billing/b.py")

    model = PythonCodeModel()
    revision = model.open(tmp_path)

    assert [d.name for d in model.find_namespaces(revision, "shop.orders")] == ["shop.orders"]
    assert model.find_namespaces(revision, "shop.missing") == []
    assert [d.name for d in model.find_namespaces_by_pattern(revision, "shop.*")] == [
        "shop.billing",
        "shop.orders",
    ]


def test_find_declarations_reports_top_level_classes(tmp_path: Path) -> None:
    _write(tmp_path, "shop/orders.py", ORDERS)

    model = PythonCodeModel()
    revision = model.open(tmp_path)

    found = model.find_declarations(revision, "Order")
    assert [(d.qualified_name, d.start_lineno, d.lineno) for d in found] == [
        ("shop.orders.Order", 8, 9)
    ]
    assert [d.name for d in model.find_declarations(revision, "Re*")] == ["Refund"]


def test_synthesize_and_remove_declaration(tmp_path: Path) -> None:
    _write(tmp_path, "shop/orders.py", ORDERS)

    model = PythonCodeModel()
    revision = model.open(tmp_path)
    declaration = model.find_declarations(revision, "Order")[0]

    extracted = model.synthesize_document(revision, declaration, "shop.entities")
    remaining = model.remove_declaration(revision, declaration)

    assert extracted.path == "shop/entities/order.py"
    assert extracted.text == (
        '"""Order, extracted from shop.orders."""\n'
        "\n"
        "from __future__ import annotations\n"
        "from shop.pricing import price\n"
        "\n"
        "\n"
        "@dataclass\n"
        "class Order:\n"
        "    total: int = 0\n"
    )
    assert "class Order" not in remaining.text
    assert "class Refund:\n    pass\n" in remaining.text
    assert "\n\n\n\n" not in remaining.text


def test_iter_references_skips_self_and_external(tmp_path: Path) -> None:
    _write(tmp_path, "shop/orders/__init__.py")
    _write(
        tmp_path,
        "shop/orders/service.py",
        "import os\nfrom shop.orders import models\nfrom shop.billing import invoice\n"
        "import shop.billing\n",
    )
    _write(tmp_path, "shop/orders/models.py")
    _write(tmp_path, "shop/billing/invoice.py")

    model = PythonCodeModel()
    revision = model.open(tmp_path)
    document = revision.document("shop/orders/service.py")
    assert document is not None

    assert list(model.iter_references(revision, document)) == [
        ("shop.orders", "shop.billing")
    ]


def test_iter_references_reads_imports_not_attribute_chains(tmp_path: Path) -> None:
    _write(tmp_path, "shop/orders/service.py", "import shop\n\nshop.billing.invoice.run()\n")
    _write(tmp_path, "shop/billing/invoice.py")

    model = PythonCodeModel()
    revision = model.open(tmp_path)
    document = revision.document("shop/orders/service.py")
    assert document is not None

    targets = [target for _, target in model.iter_references(revision, document)]
    assert "shop.billing" not in targets


def test_rename_namespace_only_rewrites_references(tmp_path: Path) -> None:
    _write(tmp_path, "Old/x.py", "VALUE = 1\n")
    _write(tmp_path, "app/main.py", "from Old.x import VALUE\n")

    model = PythonCodeModel()
    revision = model.open(tmp_path)
    renamed = model.rename_namespace(revision, "Old", "New")

    main = renamed.document("app/main.py")
    assert main is not None
    assert main.text == "from New.x import VALUE\n"
    assert "Old/x.py" in renamed
    assert renamed.changed == {"app/main.py"}
    assert revision.document("app/main.py") == Document("app/main.py", "from Old.x import VALUE\n")


def test_apply_writes_changed_documents_and_manifest(tmp_path: Path) -> None:
    _write(tmp_path, "Domain/__init__.py")

    model = PythonCodeModel()
    revision = model.open(tmp_path)
    revision = revision.with_document(Document("Application/__init__.py", "X = 1\n"))
    revision = revision.with_unit(Unit("Application", frozenset({"Domain"})))

    assert model.apply(revision) is True
    assert (tmp_path / "Application/__init__.py").read_text(encoding="utf-8") == "X = 1\n"
    manifest = orjson.loads((tmp_path / UNITS_MANIFEST).read_bytes())
    assert manifest == {"units": {"Application": ["Domain"]}}
