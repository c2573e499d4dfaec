"""
Component naming helpers shared by the schematic, PCB and library converters.

KiCad library items are named after what a part *is* (its manufacturer
part number, or its type plus footprint) rather than its reference
designator, so the same resistor placed as R1 and R7 maps to one
library entry.
"""

import re
from typing import Any, Dict, Optional

_INVALID_NAME_CHARS = re.compile(r'[\\/:\s]+')
_REPEATED_UNDERSCORES = re.compile(r'_+')
_REFERENCE_DESIGNATOR = re.compile(r'^[A-Za-z]+\d+$')
_LEADING_LETTERS = re.compile(r'^([A-Za-z]+)')

# ftype -> reference prefix
_FTYPE_PREFIXES = {
    "simple_resistor": "R",
    "simple_capacitor": "C",
    "simple_inductor": "L",
    "simple_diode": "D",
    "simple_led": "D",
    "simple_chip": "U",
    "simple_transistor": "Q",
    "simple_mosfet": "Q",
    "simple_fuse": "F",
    "simple_crystal": "Y",
    "simple_resonator": "Y",
    "simple_switch": "SW",
    "simple_push_button": "SW",
    "simple_pin_header": "J",
    "simple_battery": "BT",
    "simple_potentiometer": "RV",
    "simple_test_point": "TP",
}


def sanitize_name(name: str) -> str:
    """
    Make a string safe for use as a KiCad library item name.

    Runs of backslashes, slashes, colons and whitespace become a single
    underscore; leading and trailing underscores are dropped.
    """
    cleaned = _INVALID_NAME_CHARS.sub("_", name or "")
    cleaned = _REPEATED_UNDERSCORES.sub("_", cleaned)
    cleaned = cleaned.strip("_").strip()
    return cleaned or "component"


def _clean_type_name(ftype: Optional[str]) -> str:
    if not ftype:
        return "component"
    cleaned = re.sub(r'^simple_', "", ftype)
    return cleaned or "component"


def get_kicad_compatible_component_name(
    source_component: Dict[str, Any],
    cad_component: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Build the library item name for a component.

    Priority:
        1. manufacturer_part_number (e.g., "NA555")
        2. {clean type}_{footprinter string} (e.g., "resistor_0402")
        3. {clean type} (e.g., "chip")

    Reference designators, the "simple_" prefix and element ids are never used.

    Args:
        source_component: source_component element
        cad_component: Linked cad_component element, if any

    Returns:
        Sanitized name
    """
    mpn = source_component.get("manufacturer_part_number")
    if mpn:
        return sanitize_name(str(mpn))

    clean_type = _clean_type_name(source_component.get("ftype"))

    footprinter = (cad_component or {}).get("footprinter_string")
    if footprinter:
        return sanitize_name(f"{clean_type}_{footprinter}")

    return sanitize_name(clean_type)


def extract_reference_prefix(name: Optional[str]) -> str:
    """Leading letters of a reference designator: "R1" -> "R", default "U"."""
    if not name:
        return "U"
    match = _LEADING_LETTERS.match(name)
    return match.group(1).upper() if match else "U"


def is_reference_designator(name: Optional[str]) -> bool:
    """True for names like "R1", "U23", "SW4"."""
    return bool(name) and bool(_REFERENCE_DESIGNATOR.match(name))


def get_reference_prefix_for_component(source_component: Dict[str, Any]) -> str:
    """Reference prefix from the component type, else from its name."""
    prefix = _FTYPE_PREFIXES.get(source_component.get("ftype") or "")
    if prefix:
        return prefix
    return extract_reference_prefix(source_component.get("name"))


def sanitize_library_item_name(library_id: Optional[str], fallback: str) -> str:
    """
    Strip the library nickname from a library id and make it file-safe.

    "tscircuit:resistor_0402" -> "resistor_0402", "Device:a/b" -> "a-b"
    """
    if not library_id:
        return fallback
    parts = library_id.split(":")
    name = parts[1] if len(parts) > 1 else parts[0]
    name = re.sub(r'[\\/]', "-", name).strip()
    return name or fallback


def split_library_reference(reference: str) -> str:
    """Item name part of "lib:item" (or the whole string if there is no colon)."""
    parts = reference.split(":")
    return parts[1] if len(parts) > 1 else parts[0]
