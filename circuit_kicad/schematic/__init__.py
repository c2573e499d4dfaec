"""
Schematic conversion: Circuit JSON -> .kicad_sch
"""

from .converter import CircuitJsonToKicadSchConverter
from .library_symbols import custom_symbol_names

__all__ = ['CircuitJsonToKicadSchConverter', 'custom_symbol_names']
