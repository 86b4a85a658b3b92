"""Architecture layer ranking and reference wiring."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

DEFAULT_LAYER_ORDER: tuple[str, ...] = (
    "Domain",
    "Application",
    "Infrastructure",
    "Presentation",
)

DEFAULT_LAYER_REFERENCES: dict[str, tuple[str, ...]] = {
    "Application": ("Domain",),
    "Infrastructure": ("Application", "Domain"),
    "Presentation": ("Application",),
}


def layer_rank(identifier: str, order: Sequence[str] = DEFAULT_LAYER_ORDER) -> int:
    """Rank an identifier by the first layer name found among its segments.

    Inner layers rank lower. Identifiers that mention no known layer rank
    one past the outermost layer.

    >>> layer_rank("shop.Domain.orders")
    0
    >>> layer_rank("shop.infrastructure")
    2
    >>> layer_rank("shop.utils")
    4
    """
    wrapped = f".{identifier.lower()}."
    for rank, layer in enumerate(order):
        if f".{layer.lower()}." in wrapped:
            return rank
    return len(order)


def is_layer_violation(
    dependency: str,
    target: str,
    order: Sequence[str] = DEFAULT_LAYER_ORDER,
) -> bool:
    """True when ``dependency`` lives in a layer outward of ``target``."""
    return layer_rank(dependency, order) > layer_rank(target, order)


def layer_references(
    name: str,
    table: Mapping[str, Sequence[str]] = DEFAULT_LAYER_REFERENCES,
) -> tuple[str, ...]:
    """Layers a freshly generated layer references (none for unknown names)."""
    return tuple(table.get(name, ()))
