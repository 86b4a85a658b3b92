"""Architecture templates expanded into GenerateLayer transformations."""

from __future__ import annotations

from engine.transformations import GenerateLayer
from rules.config import ConfigError

CLEAN_ARCHITECTURE: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Domain", ("Entities", "ValueObjects", "Interfaces")),
    ("Application", ("UseCases", "Interfaces", "DTOs", "Services")),
    ("Infrastructure", ("Data", "Services", "Repositories", "External")),
    ("Presentation", ()),
)

TEMPLATES: dict[str, tuple[tuple[str, tuple[str, ...]], ...]] = {
    "cleanarchitecture": CLEAN_ARCHITECTURE,
    "clean": CLEAN_ARCHITECTURE,
}


def template_transformations(template: str) -> list[GenerateLayer]:
    """GenerateLayer steps for ``template``, innermost layer first."""
    layers = TEMPLATES.get(template.lower())
    if layers is None:
        known = ", ".join(sorted(TEMPLATES))
        msg = f"Unknown architecture template {template!r} (known: {known})"
        raise ConfigError(msg)
    return [
        GenerateLayer(target=name, options={"subfolders": ",".join(subfolders)})
        for name, subfolders in layers
    ]


__all__ = ["TEMPLATES", "template_transformations"]
