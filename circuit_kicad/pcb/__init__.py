"""
Board generation: Circuit JSON -> .kicad_pcb element trees.
"""

from .converter import CircuitJsonToKicadPcbConverter

__all__ = ['CircuitJsonToKicadPcbConverter']
