"""Configuration and layer rules for codetower."""

from rules.config import (
    CodeTowerConfig,
    ConfigError,
    LayersConfig,
    load_config,
)
from rules.layers import (
    DEFAULT_LAYER_ORDER,
    DEFAULT_LAYER_REFERENCES,
    is_layer_violation,
    layer_rank,
    layer_references,
)

__all__ = [
    "DEFAULT_LAYER_ORDER",
    "DEFAULT_LAYER_REFERENCES",
    "CodeTowerConfig",
    "ConfigError",
    "LayersConfig",
    "is_layer_violation",
    "layer_rank",
    "layer_references",
    "load_config",
]
