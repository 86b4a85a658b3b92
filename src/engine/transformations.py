"""Transformation records read from a restructuring config."""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Annotated, Any, Literal, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator

from engine.errors import UnsupportedTransformation
from rules.config import ConfigError


class _TransformationBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    source: str = ""
    target: str
    options: dict[str, str] = Field(default_factory=dict)


def _check_identifier(value: str, field: str) -> None:
    if not value or not all(part.isidentifier() for part in value.split(".")):
        msg = f"{field} must be a dotted identifier, got {value!r}"
        raise ValueError(msg)


class MoveNamespace(_TransformationBase):
    """Move ``source`` (and everything below it) to ``target``."""

    type: Literal["MoveNamespace"] = "MoveNamespace"

    @model_validator(mode="after")
    def _identifiers(self) -> MoveNamespace:
        _check_identifier(self.source, "source")
        _check_identifier(self.target, "target")
        return self


class RenameNamespace(_TransformationBase):
    """Rename ``source`` to ``target``."""

    type: Literal["RenameNamespace"] = "RenameNamespace"

    @model_validator(mode="after")
    def _identifiers(self) -> RenameNamespace:
        _check_identifier(self.source, "source")
        _check_identifier(self.target, "target")
        return self


class ExtractClass(_TransformationBase):
    """Move the class named ``source`` into its own module under ``target``."""

    type: Literal["ExtractClass"] = "ExtractClass"

    @property
    def class_name(self) -> str:
        return self.source

    @property
    def target_namespace(self) -> str:
        return self.target

    @model_validator(mode="after")
    def _identifiers(self) -> ExtractClass:
        if not self.source.isidentifier():
            msg = f"source must be a class name, got {self.source!r}"
            raise ValueError(msg)
        _check_identifier(self.target, "target")
        return self


class GenerateLayer(_TransformationBase):
    """Scaffold a layer named ``target`` with one group per subfolder."""

    type: Literal["GenerateLayer"] = "GenerateLayer"

    @property
    def name(self) -> str:
        return self.target

    @property
    def subfolders(self) -> tuple[str, ...]:
        raw = self.options.get("subfolders", "")
        return tuple(part.strip() for part in raw.split(",") if part.strip())

    @model_validator(mode="after")
    def _identifiers(self) -> GenerateLayer:
        if not self.target.isidentifier():
            msg = f"layer name must be a single identifier, got {self.target!r}"
            raise ValueError(msg)
        for folder in self.subfolders:
            if not folder.isidentifier():
                msg = f"subfolder must be an identifier, got {folder!r}"
                raise ValueError(msg)
        return self


Transformation = Annotated[
    Union[MoveNamespace, RenameNamespace, ExtractClass, GenerateLayer],
    Field(discriminator="type"),
]

TRANSFORMATION_TYPES = frozenset(
    {"MoveNamespace", "RenameNamespace", "ExtractClass", "GenerateLayer"}
)

_ADAPTER: TypeAdapter[Transformation] = TypeAdapter(Transformation)


def parse_transformation(record: Any) -> Transformation:
    """Validate one raw record.

    Raises:
        UnsupportedTransformation: The record names an unknown kind.
        ConfigError: The record is malformed in any other way.
    """
    if not isinstance(record, dict):
        msg = f"transformation must be a mapping, got {type(record).__name__}"
        raise ConfigError(msg)

    kind = record.get("type")
    if kind not in TRANSFORMATION_TYPES:
        msg = f"Transformation type not supported: {kind!r}"
        raise UnsupportedTransformation(msg)

    try:
        return _ADAPTER.validate_python(record)
    except ValidationError as exc:
        msg = f"Invalid {kind} transformation: {exc}"
        raise ConfigError(msg) from exc


def _read_config(path: Path) -> Any:
    try:
        if path.suffix == ".toml":
            with path.open("rb") as f:
                return tomllib.load(f)
        return orjson.loads(path.read_bytes())
    except OSError as exc:
        msg = f"Cannot read restructuring config {path}: {exc}"
        raise ConfigError(msg) from exc
    except (tomllib.TOMLDecodeError, orjson.JSONDecodeError) as exc:
        msg = f"Invalid restructuring config {path}: {exc}"
        raise ConfigError(msg) from exc


def load_transformations(path: Path) -> list[Transformation]:
    """Load the ordered transformation list from a JSON or TOML file.

    The file holds either a bare list of records or a mapping with a
    ``transformations`` list.
    """
    data = _read_config(Path(path))
    records = data.get("transformations", []) if isinstance(data, dict) else data
    if not isinstance(records, list):
        msg = f"{path}: 'transformations' must be a list"
        raise ConfigError(msg)
    return [parse_transformation(record) for record in records]


__all__ = [
    "TRANSFORMATION_TYPES",
    "ExtractClass",
    "GenerateLayer",
    "MoveNamespace",
    "RenameNamespace",
    "Transformation",
    "load_transformations",
    "parse_transformation",
]
