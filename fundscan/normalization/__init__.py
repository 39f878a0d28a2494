"""Normalization package.

Exports resolve lazily: ``fundscan.extraction.models`` imports the sanitizers
from here, and an eager import of the normalizer would close an import cycle.
"""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "ControlledVocabulary",
    "NotesBuilder",
    "ResultNormalizer",
    "clean_array",
    "clean_string",
    "parse_amount",
]


_LAZY_EXPORTS = {
    "ControlledVocabulary": ("fundscan.normalization.vocabulary", "ControlledVocabulary"),
    "NotesBuilder": ("fundscan.normalization.notes_builder", "NotesBuilder"),
    "ResultNormalizer": ("fundscan.normalization.result_normalizer", "ResultNormalizer"),
    "clean_array": ("fundscan.normalization.sanitizers", "clean_array"),
    "clean_string": ("fundscan.normalization.sanitizers", "clean_string"),
    "parse_amount": ("fundscan.normalization.sanitizers", "parse_amount"),
}


def __getattr__(name: str) -> Any:
    if name not in _LAZY_EXPORTS:
        raise AttributeError(name)
    module_name, attr_name = _LAZY_EXPORTS[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr_name)


if TYPE_CHECKING:
    from fundscan.normalization.notes_builder import NotesBuilder
    from fundscan.normalization.result_normalizer import ResultNormalizer
    from fundscan.normalization.sanitizers import clean_array, clean_string, parse_amount
    from fundscan.normalization.vocabulary import ControlledVocabulary
