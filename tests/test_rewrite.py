from __future__ import annotations

from parse.rewrite import rename_module_references


def test_plain_and_from_imports_are_renamed() -> None:
    source = (
        "import json\n"
        "import Old.X\n"
        "from Old.Y import helper  # keep me\n"
        "\n"
        "value = Old.X.compute(helper())\n"
    )

    result = rename_module_references(source, "Old", "New")

    assert result == (
        "import json\n"
        "import New.X\n"
        "from New.Y import helper  # keep me\n"
        "\n"
        "value = New.X.compute(helper())\n"
    )


def test_unrelated_prefixes_are_left_alone() -> None:
    source = "import Older\nfrom OldStuff import x\nOld = 1\nprint(Old)\n"

    assert rename_module_references(source, "Old", "New") == source


def test_from_parent_import_of_renamed_package_is_split() -> None:
    source = "from shop import orders, billing\n"

    result = rename_module_references(source, "shop.orders", "shop.sales.orders")

    assert result == "from shop import billing\nfrom shop.sales import orders\n"


def test_alias_is_kept_when_leaf_changes() -> None:
    source = "from shop import orders as o\n"

    result = rename_module_references(source, "shop.orders", "shop.sales")

    assert result == "from shop import sales as o\n"


def test_relative_import_inside_moved_package_stays_relative() -> None:
    source = "from . import models\nfrom .models import Order\n"

    result = rename_module_references(
        source, "shop.orders", "sales", module_name="shop.orders.service"
    )

    assert result == source


def test_relative_import_leaving_the_package_is_pinned() -> None:
    source = "from ..billing import invoice\n"

    result = rename_module_references(
        source, "shop.orders", "sales", module_name="shop.orders.service"
    )

    assert result == "from shop.billing import invoice\n"


def test_relative_import_into_renamed_package_is_retargeted() -> None:
    source = "from .orders import service\n"

    result = rename_module_references(
        source, "shop.orders", "shop.sales", module_name="shop.api"
    )

    assert result == "from shop.sales import service\n"


def test_unparsable_source_is_returned_unchanged() -> None:
    source = "import Old.X\ndef broken(:\n"

    assert rename_module_references(source, "Old", "New") == source


def test_chain_below_a_plainly_imported_root_is_renamed() -> None:
    source = "import A\n\nA.B.mod.f()\nA.Bx.g()\nA.other()\n"

    result = rename_module_references(source, "A.B", "A.C")

    assert result == "import A\n\nA.C.mod.f()\nA.Bx.g()\nA.other()\n"


def test_chain_is_left_alone_when_root_is_only_aliased() -> None:
    source = "import A as a\n\nA.B.mod.f()\n"

    assert rename_module_references(source, "A.B", "A.C") == source
