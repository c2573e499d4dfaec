"""
MCP tool functions for Circuit JSON conversion.
"""

from .conversion_tools import (
    build_kicad_library,
    convert_circuit_json_to_pcb,
    convert_circuit_json_to_schematic,
    register_conversion_tools,
)

__all__ = [
    'convert_circuit_json_to_pcb',
    'convert_circuit_json_to_schematic',
    'build_kicad_library',
    'register_conversion_tools',
]
