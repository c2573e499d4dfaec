"""
Converter Core

Tool-agnostic machinery shared by the schematic, PCB and library
converters:

- pipeline: ordered stages over one shared, mutable context
- transform: affine transforms between Circuit JSON and KiCad coordinates
- nets: connectivity keys -> numbered nets
- naming/layers/identifiers: naming rules, layer mapping, stable UUIDs

Usage:
    from circuit_kicad.converter_core import CircuitIndex, NetResolver

    index = CircuitIndex(circuit_json)
    resolver = NetResolver(index)
    resolver.build()
"""

from .circuit_index import CircuitIndex
from .errors import (
    ConfigurationError,
    ConverterError,
    IterationLimitError,
    PreconditionError,
)
from .identifiers import deterministic_uuid
from .interfaces import QueueStage, SingleStepStage, Stage, StageStatus
from .models import (
    ClassificationContext,
    ExtractedComponent,
    FootprintEntry,
    KicadLibraryBuildOutput,
    KicadLibraryOutput,
    NetInfo,
    SymbolEntry,
)
from .nets import NetResolver
from .pipeline import ConverterContext, PipelineDriver, StagedConverter

__all__ = [
    'CircuitIndex',
    'ConverterError',
    'PreconditionError',
    'IterationLimitError',
    'ConfigurationError',
    'deterministic_uuid',
    'Stage',
    'StageStatus',
    'QueueStage',
    'SingleStepStage',
    'NetInfo',
    'FootprintEntry',
    'SymbolEntry',
    'ExtractedComponent',
    'ClassificationContext',
    'KicadLibraryOutput',
    'KicadLibraryBuildOutput',
    'NetResolver',
    'ConverterContext',
    'PipelineDriver',
    'StagedConverter',
]
