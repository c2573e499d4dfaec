"""
Core data models for the Circuit JSON to KiCad converters.

This module provides the tool-agnostic records passed between the
converters: numbered nets, extracted library entries and the aggregate
used while classifying entries into user and builtin libraries.
Element trees are the nested lists produced by utils.sexpr.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NetInfo:
    """
    A numbered net.

    Attributes:
        id: Net number, 0 is reserved for "no net"
        name: Net name written into the board (empty for net 0)
    """
    id: int
    name: str


@dataclass
class FootprintEntry:
    """
    A reusable footprint extracted from a generated board.

    Attributes:
        footprint_name: Library item name (e.g., "resistor_0402", "U1")
        mod_data: Sanitized ``footprint`` element tree
        model3d_source_paths: Original 3D model locations to copy next to
                              the library
        is_builtin: True if the name matches a standard footprinter token
    """
    footprint_name: str
    mod_data: List[Any]
    model3d_source_paths: List[str] = field(default_factory=list)
    is_builtin: bool = False


@dataclass
class SymbolEntry:
    """
    A reusable schematic symbol extracted from a generated schematic.

    Attributes:
        symbol_name: Library item name (e.g., "R_resistor_0402", "U1")
        symbol_data: ``symbol`` element tree including properties,
                     drawing and pin sub-symbols
        is_builtin: False when the symbol came from a custom schematic_symbol
    """
    symbol_name: str
    symbol_data: List[Any]
    is_builtin: bool = True


@dataclass
class ExtractedComponent:
    """
    Library entries extracted from one exported component.

    Attributes:
        component_name: Export name the entries belong to (e.g., "U1")
        symbols: Extracted symbols in generation order
        footprints: Extracted footprints in generation order
        circuit_json: The circuit the entries were generated from
    """
    component_name: str
    symbols: List[SymbolEntry]
    footprints: List[FootprintEntry]
    circuit_json: List[Dict[str, Any]] = field(default_factory=list)

    def has_custom_footprint(self) -> bool:
        return any(not fp.is_builtin for fp in self.footprints)

    def custom_footprint_names(self) -> List[str]:
        return [fp.footprint_name for fp in self.footprints if not fp.is_builtin]


@dataclass
class ClassificationContext:
    """
    Aggregate state for one library build.

    Every collection is deduplicated by name, first writer wins.

    Attributes:
        library_name: User library name (without any PCM prefix)
        is_pcm: Prefix library references with PCM_ for packaged installs
        user_symbols: Symbols unique to this library
        user_footprints: Footprints unique to this library
        builtin_symbols: Shared standard-part symbols
        builtin_footprints: Shared standard-part footprints
        primary_footprints: Component name -> renamed primary footprint name
    """
    library_name: str
    is_pcm: bool = False
    user_symbols: List[SymbolEntry] = field(default_factory=list)
    user_footprints: List[FootprintEntry] = field(default_factory=list)
    builtin_symbols: List[SymbolEntry] = field(default_factory=list)
    builtin_footprints: List[FootprintEntry] = field(default_factory=list)
    primary_footprints: Dict[str, str] = field(default_factory=dict)

    def has_primary_footprint(self, component_name: str) -> bool:
        return component_name in self.primary_footprints


@dataclass
class KicadLibraryOutput:
    """
    Output of converting a single circuit into library entries.

    Attributes:
        symbols: Extracted symbols
        footprints: Extracted footprints
        kicad_sym_string: Stand-alone .kicad_sym text for the symbols
        fp_lib_table_string: fp-lib-table text
        sym_lib_table_string: sym-lib-table text
        model3d_source_paths: Deduplicated model source paths
    """
    symbols: List[SymbolEntry]
    footprints: List[FootprintEntry]
    kicad_sym_string: str
    fp_lib_table_string: str
    sym_lib_table_string: str
    model3d_source_paths: List[str]


@dataclass
class KicadLibraryBuildOutput:
    """
    Output of a multi-component library build.

    Attributes:
        kicad_project_fs_map: Relative path -> file content
        model3d_source_paths: Model files to copy into 3dmodels/
        library_name: Name of the user library
    """
    kicad_project_fs_map: Dict[str, Any]
    model3d_source_paths: List[str]
    library_name: str

    def summary(self) -> Dict[str, int]:
        """Count generated files by kind."""
        counts = {"symbol_libraries": 0, "footprints": 0, "tables": 0}
        for path in self.kicad_project_fs_map:
            if path.endswith(".kicad_sym"):
                counts["symbol_libraries"] += 1
            elif path.endswith(".kicad_mod"):
                counts["footprints"] += 1
            elif path in ("fp-lib-table", "sym-lib-table"):
                counts["tables"] += 1
        return counts


@dataclass
class BuiltComponent:
    """A component export that rendered to circuit JSON."""
    component_name: str
    circuit_json: List[Dict[str, Any]]
    file_path: Optional[str] = None
