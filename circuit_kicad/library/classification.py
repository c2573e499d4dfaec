"""
Classification of extracted entries into user and builtin libraries.

Footprints, per component in input order:
    - the first custom footprint is the component's primary footprint; it
      is renamed to the component name and its model paths are rewritten
    - further custom footprints go to the user library under their own names
    - builtin footprints go to the shared builtin library

Symbols, per component in input order:
    - custom symbols go to the user library under their own name; if the
      component has a custom footprint the symbol's Footprint points at it
    - one builtin symbol may become the component's user symbol when the
      component has a custom footprint (see _claims_custom_footprint)
    - every other symbol goes to the builtin library with its Footprint
      pointing into the builtin footprint library

Every collection is deduplicated by name, first writer wins.
"""

import copy
import logging
from typing import Any, Dict, List, Optional

from .. import config
from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.models import (
    ClassificationContext,
    ExtractedComponent,
    FootprintEntry,
    SymbolEntry,
)
from ..converter_core.naming import split_library_reference
from ..utils.sexpr import find_all
from .metadata import apply_symbol_metadata
from .model_paths import rewrite_footprint_models

logger = logging.getLogger(__name__)


def library_prefix(library_name: str, is_pcm: bool) -> str:
    return f"{config.PCM_PREFIX}{library_name}" if is_pcm else library_name


def builtin_library_prefix(is_pcm: bool) -> str:
    return library_prefix(config.BUILTIN_LIBRARY_NAME, is_pcm)


# ============================================================================
# Entry rewriting
# ============================================================================

def relocate_models(entry: FootprintEntry, library_name: str, model_path_mode: str = "relative",
                    package_id: Optional[str] = None) -> FootprintEntry:
    """Copy of ``entry`` whose model paths point into ``library_name``."""
    return FootprintEntry(
        footprint_name=entry.footprint_name,
        mod_data=rewrite_footprint_models(entry.mod_data, library_name, model_path_mode, package_id),
        model3d_source_paths=list(entry.model3d_source_paths),
        is_builtin=entry.is_builtin,
    )


def rename_footprint(entry: FootprintEntry, new_name: str, library_name: str,
                     model_path_mode: str = "relative",
                     package_id: Optional[str] = None) -> FootprintEntry:
    """
    Copy of ``entry`` named ``new_name`` with models moved into ``library_name``.

    Returns:
        A new FootprintEntry; the original is left untouched
    """
    result = relocate_models(entry, library_name, model_path_mode, package_id)
    result.footprint_name = new_name
    result.mod_data[1] = new_name
    return result


def rename_symbol(entry: SymbolEntry, new_name: str) -> SymbolEntry:
    """
    Copy of ``entry`` named ``new_name``.

    Unit sub-symbols follow the rename: "Old_0_1" -> "New_0_1".
    """
    symbol = copy.deepcopy(entry.symbol_data)
    old_name = str(symbol[1]) if len(symbol) > 1 else ""
    symbol[1] = new_name
    if old_name:
        for child in find_all(symbol, "symbol"):
            if len(child) > 1 and isinstance(child[1], str) and child[1].startswith(old_name):
                child[1] = new_name + child[1][len(old_name):]
    return SymbolEntry(symbol_name=new_name, symbol_data=symbol, is_builtin=entry.is_builtin)


def _footprint_property(symbol: List[Any]) -> Optional[List[Any]]:
    for prop in find_all(symbol, "property"):
        if len(prop) > 2 and prop[1] == "Footprint":
            return prop
    return None


def symbol_footprint_ref(entry: SymbolEntry) -> Optional[str]:
    """Footprint item named by a symbol: "tscircuit:resistor_0402" -> "resistor_0402"."""
    prop = _footprint_property(entry.symbol_data)
    if prop is None or not prop[2]:
        return None
    return split_library_reference(str(prop[2]))


def set_symbol_footprint(entry: SymbolEntry, value: str) -> SymbolEntry:
    prop = _footprint_property(entry.symbol_data)
    if prop is not None:
        prop[2] = value
    return entry


# ============================================================================
# Footprints
# ============================================================================

def _add_unique(collection: list, entry: Any, name: str) -> bool:
    if any(getattr(existing, name) == getattr(entry, name) for existing in collection):
        return False
    collection.append(entry)
    return True


def classify_footprints(cctx: ClassificationContext, components: List[ExtractedComponent],
                        model_path_mode: str = "relative",
                        package_id: Optional[str] = None) -> None:
    """
    Route every component's footprints into the user or builtin collection.

    Every footprint kept has its model paths rewritten for ``model_path_mode``:
    builtin footprints into the builtin library, custom ones into the user library.
    """
    for component in components:
        for entry in component.footprints:
            if entry.is_builtin:
                _add_unique(cctx.builtin_footprints, relocate_models(
                    entry, config.BUILTIN_LIBRARY_NAME, model_path_mode, package_id,
                ), "footprint_name")
            elif not cctx.has_primary_footprint(component.component_name):
                renamed = rename_footprint(
                    entry, component.component_name, cctx.library_name, model_path_mode, package_id,
                )
                cctx.primary_footprints[component.component_name] = renamed.footprint_name
                if not _add_unique(cctx.user_footprints, renamed, "footprint_name"):
                    logger.debug("Footprint %s already in user library", renamed.footprint_name)
            else:
                _add_unique(cctx.user_footprints, relocate_models(
                    entry, cctx.library_name, model_path_mode, package_id,
                ), "footprint_name")


# ============================================================================
# Symbols
# ============================================================================

def symbol_metadata_for(component: ExtractedComponent) -> Optional[Dict[str, Any]]:
    """``kicad_symbol`` metadata of the component's first schematic_symbol, if any."""
    schematic_symbol = CircuitIndex(component.circuit_json).first("schematic_symbol")
    if not schematic_symbol:
        return None
    metadata = (schematic_symbol.get("metadata") or {}).get("kicad_symbol")
    return metadata if isinstance(metadata, dict) else None


def _claims_custom_footprint(entry: SymbolEntry, component: ExtractedComponent) -> bool:
    """
    Whether a builtin symbol should become the component's user symbol.

    True when its name matches the component name (ignoring case), when it
    is the component's only symbol, or when its Footprint names one of the
    component's custom footprints.
    """
    if entry.symbol_name.lower() == component.component_name.lower():
        return True
    if len(component.symbols) == 1:
        return True
    return symbol_footprint_ref(entry) in component.custom_footprint_names()


def _point_at_builtin(result: SymbolEntry, cctx: ClassificationContext) -> SymbolEntry:
    """Retarget the Footprint into the builtin library, or clear it if there is no such footprint."""
    ref = symbol_footprint_ref(result)
    if ref is None:
        return result
    builtin_names = {fp.footprint_name for fp in cctx.builtin_footprints}
    if ref in builtin_names:
        set_symbol_footprint(result, f"{builtin_library_prefix(cctx.is_pcm)}:{ref}")
    else:
        set_symbol_footprint(result, "")
    return result


def classify_symbols(cctx: ClassificationContext, components: List[ExtractedComponent]) -> None:
    """
    Route every component's symbols into the user or builtin collection.

    Must run after classify_footprints so builtin Footprint references can
    be checked against the builtin footprint collection.
    """
    for component in components:
        has_custom_footprint = component.has_custom_footprint()
        user_footprint_ref = f"{library_prefix(cctx.library_name, cctx.is_pcm)}:{component.component_name}"
        metadata = symbol_metadata_for(component)
        added_user_symbol = False

        for entry in component.symbols:
            if not entry.is_builtin:
                if any(s.symbol_name == entry.symbol_name for s in cctx.user_symbols):
                    continue
                result = SymbolEntry(entry.symbol_name, copy.deepcopy(entry.symbol_data), False)
                if has_custom_footprint:
                    set_symbol_footprint(result, user_footprint_ref)
                else:
                    _point_at_builtin(result, cctx)
                if metadata:
                    apply_symbol_metadata(result, metadata)
                cctx.user_symbols.append(result)
            elif has_custom_footprint and not added_user_symbol and _claims_custom_footprint(entry, component):
                added_user_symbol = True
                result = rename_symbol(entry, component.component_name)
                set_symbol_footprint(result, user_footprint_ref)
                if metadata:
                    apply_symbol_metadata(result, metadata)
                _add_unique(cctx.user_symbols, result, "symbol_name")
            else:
                result = SymbolEntry(entry.symbol_name, copy.deepcopy(entry.symbol_data), entry.is_builtin)
                _add_unique(cctx.builtin_symbols, _point_at_builtin(result, cctx), "symbol_name")


def user_symbol_dangling_refs(cctx: ClassificationContext) -> List[str]:
    """Footprint references of user symbols that name no known footprint."""
    known = {fp.footprint_name for fp in cctx.user_footprints + cctx.builtin_footprints}
    dangling = []
    for entry in cctx.user_symbols:
        ref = symbol_footprint_ref(entry)
        if ref and ref not in known:
            dangling.append(ref)
    return dangling
