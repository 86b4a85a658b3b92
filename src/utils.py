"""Shared utilities for codetower."""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z]{2,})")


def path_to_module(file_path: str | Path, source_root: str = "") -> str:
    """Convert a file path to a dotted module name.

    Args:
        file_path: File path relative to the codebase root
            (e.g. "src/shop/orders/models.py" or a Path object)
        source_root: Folder (relative to the codebase root) that holds the
            top-level packages; "" when packages live directly in the root

    Returns:
        Module name (e.g. "shop.orders.models")

    Raises:
        ValueError: If the path does not name a non-empty module, or lies
            outside the source root.

    Examples:
        >>> path_to_module("shop/orders/models.py")
        'shop.orders.models'
        >>> path_to_module("src/shop/__init__.py", source_root="src")
        'shop'
    """
    path_str = file_path.as_posix() if isinstance(file_path, Path) else str(file_path)
    parts = [part for part in path_str.replace("\\", "/").split("/") if part]

    root_parts = [part for part in source_root.split("/") if part and part != "."]
    if root_parts:
        if parts[: len(root_parts)] != root_parts:
            msg = f"{path_str!r} is outside source root {source_root!r}"
            raise ValueError(msg)
        parts = parts[len(root_parts) :]

    if parts and parts[-1].endswith(".py"):
        parts[-1] = parts[-1][:-3]

    if parts and parts[-1] == "__init__":
        parts = parts[:-1]

    if not parts:
        msg = f"{path_str!r} does not map to a non-empty module name"
        raise ValueError(msg)

    return ".".join(parts)


def identifier_to_path(identifier: str, source_root: str = "") -> str:
    """Map a dotted identifier to its folder, relative to the codebase root.

    >>> identifier_to_path("shop.orders")
    'shop/orders'
    >>> identifier_to_path("shop.orders", source_root="src")
    'src/shop/orders'
    """
    folder = PurePosixPath(*identifier.split("."))
    root = source_root.strip("/")
    if root and root != ".":
        folder = PurePosixPath(root) / folder
    return folder.as_posix()


def parent_identifier(identifier: str) -> str:
    """Return the enclosing identifier, or "" for a top-level one."""
    return identifier.rpartition(".")[0]


def is_within(identifier: str, ancestor: str) -> bool:
    """True when ``identifier`` equals ``ancestor`` or is nested inside it."""
    return identifier == ancestor or identifier.startswith(ancestor + ".")


def rebase_identifier(identifier: str, old: str, new: str) -> str | None:
    """Swap the ``old`` prefix of ``identifier`` for ``new``.

    Returns None when ``identifier`` is not ``old`` or nested inside it.
    """
    if identifier == old:
        return new
    if identifier.startswith(old + "."):
        return new + identifier[len(old) :]
    return None


def snake_case(name: str) -> str:
    """Convert a CamelCase name to snake_case.

    >>> snake_case("ValueObjects")
    'value_objects'
    >>> snake_case("DTOs")
    'dtos'
    """
    return _CAMEL_BOUNDARY.sub("_", name).lower()
