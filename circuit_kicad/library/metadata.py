"""
Per-symbol overrides from ``schematic_symbol.metadata.kicad_symbol``.

Supported keys: properties (value, id, at, effects), pinNames (offset,
hide), pinNumbers (hide), inBom, onBoard, excludeFromSim, embeddedFonts.
"""

from typing import Any, Dict, List, Optional

from ..converter_core.models import SymbolEntry
from ..utils.kicad_elements import at, node
from ..utils.sexpr import Symbol, find, find_all, head, set_child, yes_no

DEFAULT_TEXT_SIZE = 1.27
DEFAULT_TEXT_THICKNESS = 0.15

_JUSTIFY_VALUES = ("left", "right", "top", "bottom", "mirror")


def _number(value: Any, default: Optional[float] = None) -> Optional[float]:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _justify(value: Any) -> Optional[List[Any]]:
    values = value if isinstance(value, list) else [value]
    kept = [v for v in values if v in _JUSTIFY_VALUES]
    if not kept:
        return None
    return node("justify", *[Symbol(v) for v in kept])


def _merge_effects(existing: Optional[List[Any]], meta: Dict[str, Any]) -> List[Any]:
    effects = list(existing) if existing is not None else node("effects")
    font = find(effects, "font") or node("font", node("size", DEFAULT_TEXT_SIZE, DEFAULT_TEXT_SIZE))
    font = list(font)

    font_meta = meta.get("font") or {}
    size = font_meta.get("size")
    if isinstance(size, dict):
        set_child(font, node(
            "size",
            _number(size.get("x"), DEFAULT_TEXT_SIZE),
            _number(size.get("y"), DEFAULT_TEXT_SIZE),
        ))
    if font_meta.get("thickness") is not None:
        set_child(font, node("thickness", _number(font_meta["thickness"], DEFAULT_TEXT_THICKNESS)))
    set_child(effects, font)

    if meta.get("justify"):
        justify = _justify(meta["justify"])
        if justify is not None:
            set_child(effects, justify)
    if meta.get("hide") is not None:
        effects[1:] = [child for child in effects[1:] if head(child) != "hide"]
        if meta["hide"]:
            effects.append(node("hide", yes_no(True)))
    return effects


def _apply_property(symbol: List[Any], key: str, meta: Dict[str, Any]) -> None:
    existing = next((p for p in find_all(symbol, "property") if len(p) > 1 and p[1] == key), None)

    prop = node("property", key, str(meta.get("value", existing[2] if existing and len(existing) > 2 else "")))
    property_id = _number(meta.get("id"))
    if property_id is not None:
        prop.append(node("id", int(property_id)))
    elif existing is not None and find(existing, "id") is not None:
        prop.append(find(existing, "id"))

    if isinstance(meta.get("at"), dict):
        prop.append(at(
            _number(meta["at"].get("x"), 0),
            _number(meta["at"].get("y"), 0),
            _number(meta["at"].get("rotation"), 0),
        ))
    elif existing is not None and find(existing, "at") is not None:
        prop.append(find(existing, "at"))

    existing_effects = find(existing, "effects") if existing is not None else None
    if isinstance(meta.get("effects"), dict):
        prop.append(_merge_effects(existing_effects, meta["effects"]))
    elif existing_effects is not None:
        prop.append(existing_effects)

    if existing is not None:
        symbol[symbol.index(existing)] = prop
    else:
        # New properties go after the last existing one
        properties = find_all(symbol, "property")
        position = symbol.index(properties[-1]) + 1 if properties else len(symbol)
        symbol.insert(position, prop)


def apply_symbol_metadata(entry: SymbolEntry, metadata: Dict[str, Any]) -> SymbolEntry:
    """
    Apply ``kicad_symbol`` metadata to a symbol entry in place.

    Args:
        entry: Symbol entry to update
        metadata: Metadata dict from the circuit's schematic_symbol

    Returns:
        The same entry
    """
    symbol = entry.symbol_data

    for key, flag in (("excludeFromSim", "exclude_from_sim"), ("inBom", "in_bom"), ("onBoard", "on_board")):
        if metadata.get(key) is not None:
            set_child(symbol, node(flag, yes_no(bool(metadata[key]))))

    if metadata.get("embeddedFonts") is not None:
        set_child(symbol, node("embedded_fonts", yes_no(bool(metadata["embeddedFonts"]))))

    pin_numbers_meta = metadata.get("pinNumbers") or {}
    if pin_numbers_meta.get("hide") is not None:
        set_child(symbol, node("pin_numbers", node("hide", yes_no(bool(pin_numbers_meta["hide"])))))

    pin_names_meta = metadata.get("pinNames")
    if isinstance(pin_names_meta, dict):
        pin_names = list(find(symbol, "pin_names") or node("pin_names"))
        if pin_names_meta.get("offset") is not None:
            current = find(pin_names, "offset")
            fallback = current[1] if current is not None and len(current) > 1 else 0
            set_child(pin_names, node("offset", _number(pin_names_meta["offset"], fallback)))
        if pin_names_meta.get("hide") is not None:
            set_child(pin_names, node("hide", yes_no(bool(pin_names_meta["hide"]))))
        set_child(symbol, pin_names)

    for key, property_meta in (metadata.get("properties") or {}).items():
        if isinstance(property_meta, dict):
            _apply_property(symbol, key, property_meta)

    return entry
