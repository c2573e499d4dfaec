"""
Library generation: extract, classify and package symbols and footprints.
"""

from .converter import (
    CircuitJsonToKicadLibraryConverter,
    KicadLibraryConverter,
    KicadLibraryConverterOptions,
)
from .model_paths import resolve_model_path

__all__ = [
    'CircuitJsonToKicadLibraryConverter',
    'KicadLibraryConverter',
    'KicadLibraryConverterOptions',
    'resolve_model_path',
]
