"""
Library file map assembly.

Layout of a generated library, relative to the project directory:

    fp-lib-table
    sym-lib-table
    symbols/<lib>.kicad_sym
    symbols/tscircuit_builtin.kicad_sym
    footprints/<lib>.pretty/<name>.kicad_mod
    footprints/tscircuit_builtin.pretty/<name>.kicad_mod
"""

import logging
from typing import Any, Dict, List

from .. import config
from ..converter_core.models import ClassificationContext, FootprintEntry, SymbolEntry
from ..utils.kicad_elements import node
from ..utils.sexpr import dumps
from .lib_tables import generate_fp_lib_table, generate_sym_lib_table

logger = logging.getLogger(__name__)


def symbol_library_string(symbols: List[SymbolEntry]) -> str:
    """``.kicad_sym`` text holding ``symbols`` in order."""
    library = node(
        "kicad_symbol_lib",
        node("version", config.SYMBOL_LIB_FILE_VERSION),
        node("generator", config.GENERATOR),
    )
    library.extend(entry.symbol_data for entry in symbols)
    return dumps(library)


def footprint_string(entry: FootprintEntry) -> str:
    return dumps(entry.mod_data)


def model_source_paths(footprints: List[FootprintEntry]) -> List[str]:
    """Model source paths of ``footprints``, deduplicated in order."""
    paths: List[str] = []
    for entry in footprints:
        for path in entry.model3d_source_paths:
            if path not in paths:
                paths.append(path)
    return paths


def build_library_files(cctx: ClassificationContext, include_builtins: bool = True) -> Dict[str, Any]:
    """
    Render classified entries into a path -> content map.

    Builtin files and table rows are only written when ``include_builtins``
    is set and the builtin collection is not empty.
    """
    fs_map: Dict[str, Any] = {}
    library_name = cctx.library_name
    builtin = config.BUILTIN_LIBRARY_NAME
    has_builtin_symbols = include_builtins and bool(cctx.builtin_symbols)
    has_builtin_footprints = include_builtins and bool(cctx.builtin_footprints)

    if cctx.user_symbols:
        fs_map[f"symbols/{library_name}.kicad_sym"] = symbol_library_string(cctx.user_symbols)
    if has_builtin_symbols:
        fs_map[f"symbols/{builtin}.kicad_sym"] = symbol_library_string(cctx.builtin_symbols)

    for entry in cctx.user_footprints:
        fs_map[f"footprints/{library_name}.pretty/{entry.footprint_name}.kicad_mod"] = footprint_string(entry)
    if has_builtin_footprints:
        for entry in cctx.builtin_footprints:
            fs_map[f"footprints/{builtin}.pretty/{entry.footprint_name}.kicad_mod"] = footprint_string(entry)

    fs_map["fp-lib-table"] = generate_fp_lib_table(library_name, include_builtin=has_builtin_footprints)
    fs_map["sym-lib-table"] = generate_sym_lib_table(
        library_name,
        include_user=bool(cctx.user_symbols),
        include_builtin=has_builtin_symbols,
    )

    logger.debug("Library %s: %d file(s)", library_name, len(fs_map))
    return fs_map
