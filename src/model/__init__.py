"""In-memory code model: revisions and the provider contract."""

from model.provider import CodeModelProvider, Declaration
from model.python_model import UNITS_MANIFEST, PythonCodeModel
from model.revision import Document, Revision, Unit

__all__ = [
    "UNITS_MANIFEST",
    "CodeModelProvider",
    "Declaration",
    "Document",
    "PythonCodeModel",
    "Revision",
    "Unit",
]
