"""
Library symbol definitions for the ``lib_symbols`` section of a sheet.

A symbol is built from a small intermediate description ("symbol data"):

    {
        "center": (x, y),            # origin of the drawing
        "size": (width, height),
        "primitives": [              # drawing, Circuit JSON units
            {"type": "path", "points": [(x, y), ...], "fill": False},
            {"type": "circle", "x": 0, "y": 0, "radius": 0.1, "fill": False},
        ],
        "texts": [{"text": "+", "x": 0, "y": 0, "font_size": 0.2}],
        "ports": [{"x": 0.5, "y": 0, "label": "VCC", "pin_number": 1}],
    }

Three producers exist: a generic box for chips, custom symbols assembled
from ``schematic_symbol`` primitives, and a plain body for every other
part. Net labels on power or ground nets get a small power symbol.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .. import config
from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.naming import (
    extract_reference_prefix,
    get_kicad_compatible_component_name,
    is_reference_designator,
)
from ..converter_core.transform import apply_to_point, scale
from ..utils.kicad_elements import at, effects, fill, node, pts, stroke, symbol_property
from ..utils.sexpr import Symbol, yes_no

logger = logging.getLogger(__name__)

SYMBOL_STROKE_WIDTH = 0.254
PROPERTY_FONT_SIZE = 1.27
TEXT_SCALE_FACTOR = 5

_SYMBOL_PRIMITIVE_TYPES = ("schematic_line", "schematic_circle", "schematic_path")

_DESCRIPTIONS = {
    "simple_resistor": "Resistor",
    "simple_capacitor": "Capacitor",
    "simple_chip": "Integrated Circuit",
}

_KEYWORDS = {
    "simple_resistor": "R res resistor",
    "simple_capacitor": "C cap capacitor",
    "simple_chip": "U IC chip",
}

_FP_FILTERS = {
    "simple_resistor": "R_*",
    "simple_capacitor": "C_*",
    "simple_chip": "*",
}


def get_description(source_component: Optional[Dict[str, Any]]) -> str:
    return _DESCRIPTIONS.get((source_component or {}).get("ftype"), "Component")


def get_keywords(source_component: Optional[Dict[str, Any]]) -> str:
    return _KEYWORDS.get((source_component or {}).get("ftype"), "")


def get_fp_filters(source_component: Optional[Dict[str, Any]], symbol_name: Optional[str] = None) -> str:
    if symbol_name:
        return f"{symbol_name}*"
    return _FP_FILTERS.get((source_component or {}).get("ftype"), "*")


def is_chip(source_component: Optional[Dict[str, Any]]) -> bool:
    return (source_component or {}).get("ftype") == "simple_chip"


# ============================================================================
# Library ids
# ============================================================================

def get_library_id(source_component: Dict[str, Any], schematic_component: Dict[str, Any],
                   cad_component: Optional[Dict[str, Any]] = None) -> str:
    """
    Library id of the symbol a component is placed with.

    Custom symbol names win ("Custom:<symbol_name>"). Parts with a
    descriptive name use "Device:<ergonomic name>"; parts named by
    reference designator use "Device:<prefix>_<ergonomic name>".
    """
    if schematic_component.get("symbol_name"):
        return f"Custom:{schematic_component['symbol_name']}"
    if source_component.get("type") != "source_component":
        return "Device:Component"

    ergonomic = get_kicad_compatible_component_name(source_component, cad_component)
    name = source_component.get("name")
    if name and not is_reference_designator(name):
        return f"Device:{ergonomic}"
    return f"Device:{extract_reference_prefix(name)}_{ergonomic}"


def library_item_name(library_id: str) -> str:
    """"Device:R_0402" -> "R_0402"."""
    parts = library_id.split(":", 1)
    return parts[1] if len(parts) > 1 else parts[0]


# ============================================================================
# Custom symbols
# ============================================================================

def find_schematic_symbol_id(index: CircuitIndex, schematic_component: Dict[str, Any]) -> Optional[str]:
    """
    Id of the ``schematic_symbol`` a component is drawn with, if any.

    The id sits on the component itself or on one of its drawing
    primitives.
    """
    symbol_id = schematic_component.get("schematic_symbol_id")
    if symbol_id:
        return symbol_id
    component_id = schematic_component.get("schematic_component_id")
    for kind in _SYMBOL_PRIMITIVE_TYPES:
        for primitive in index.filter(kind, schematic_component_id=component_id):
            if primitive.get("schematic_symbol_id"):
                return primitive["schematic_symbol_id"]
    return None


def custom_symbol_name(index: CircuitIndex, schematic_symbol: Dict[str, Any],
                       source_component: Dict[str, Any]) -> str:
    """Symbol name for a custom symbol: its own name, else the component's library name."""
    if schematic_symbol.get("name"):
        return str(schematic_symbol["name"])
    cad_component = index.first("cad_component", source_component_id=source_component.get("source_component_id"))
    ergonomic = get_kicad_compatible_component_name(source_component, cad_component)
    if ergonomic:
        return ergonomic
    return f"custom_{source_component.get('ftype') or 'component'}_{schematic_symbol.get('schematic_symbol_id')}"


def custom_symbol_names(index: CircuitIndex) -> List[str]:
    """Names of every custom symbol a circuit places, in placement order."""
    names: List[str] = []
    for schematic_component in index.list("schematic_component"):
        symbol_id = find_schematic_symbol_id(index, schematic_component)
        if not symbol_id:
            continue
        schematic_symbol = index.get("schematic_symbol", symbol_id)
        source_component = index.get("source_component", schematic_component.get("source_component_id"))
        if not schematic_symbol or not source_component:
            continue
        name = custom_symbol_name(index, schematic_symbol, source_component)
        if name not in names:
            names.append(name)
    return names


def _xy(point: Optional[Dict[str, Any]]) -> Tuple[float, float]:
    point = point or {}
    return float(point.get("x") or 0), float(point.get("y") or 0)


def _symbol_ports(index: CircuitIndex, symbol_id: str, component_id: Optional[str]) -> List[Dict[str, Any]]:
    ports = index.filter("schematic_port", schematic_symbol_id=symbol_id)
    if ports or not component_id:
        return ports

    component_ports = index.filter("schematic_port", schematic_component_id=component_id)
    labelled = [p for p in component_ports if p.get("display_pin_label") is not None]
    if labelled:
        return labelled

    # First port per pin number wins
    seen = set()
    unique = []
    for port in component_ports:
        number = port.get("pin_number")
        if number is not None:
            if number in seen:
                continue
            seen.add(number)
        unique.append(port)
    return unique


def build_custom_symbol_data(index: CircuitIndex, schematic_symbol: Dict[str, Any],
                             schematic_component_id: Optional[str]) -> Dict[str, Any]:
    """Symbol data from the primitives linked to a ``schematic_symbol``."""
    symbol_id = schematic_symbol.get("schematic_symbol_id")
    primitives: List[Dict[str, Any]] = []

    for circle in index.filter("schematic_circle", schematic_symbol_id=symbol_id):
        cx, cy = _xy(circle.get("center"))
        primitives.append({
            "type": "circle", "x": cx, "y": cy,
            "radius": float(circle.get("radius") or 0.5),
            "fill": bool(circle.get("is_filled")),
        })

    lines = index.filter("schematic_line", schematic_symbol_id=symbol_id)
    if schematic_component_id:
        # Port stems belong to the component, not the symbol
        lines += [
            line for line in index.filter("schematic_line", schematic_component_id=schematic_component_id)
            if not line.get("schematic_symbol_id")
        ]
    for line in lines:
        primitives.append({
            "type": "path",
            "points": [
                (float(line.get("x1") or 0), float(line.get("y1") or 0)),
                (float(line.get("x2") or 0), float(line.get("y2") or 0)),
            ],
            "fill": False,
        })

    for path in index.filter("schematic_path", schematic_symbol_id=symbol_id):
        if path.get("points"):
            primitives.append({
                "type": "path",
                "points": [_xy(p) for p in path["points"]],
                "fill": bool(path.get("is_filled")),
            })

    texts = [
        {
            "text": text.get("text") or "",
            "x": _xy(text.get("position"))[0],
            "y": _xy(text.get("position"))[1],
            "font_size": float(text.get("font_size") or 0.2),
        }
        for text in index.filter("schematic_text", schematic_symbol_id=symbol_id)
    ]

    ports = []
    for i, port in enumerate(_symbol_ports(index, symbol_id, schematic_component_id)):
        number = port.get("pin_number") or i + 1
        x, y = _xy(port.get("center"))
        ports.append({
            "x": x, "y": y,
            "label": port.get("display_pin_label") or str(number),
            "pin_number": number,
        })
    ports.sort(key=lambda p: p["pin_number"])

    size = schematic_symbol.get("size") or {}
    return {
        "center": _xy(schematic_symbol.get("center")),
        "size": (float(size.get("width") or 1), float(size.get("height") or 1)),
        "primitives": primitives,
        "texts": texts,
        "ports": ports,
    }


# ============================================================================
# Generic symbols
# ============================================================================

def _box(width: float, height: float) -> Dict[str, Any]:
    hw, hh = width / 2, height / 2
    return {
        "type": "path",
        "points": [(-hw, -hh), (hw, -hh), (hw, hh), (-hw, hh), (-hw, -hh)],
        "fill": False,
    }


def _component_ports(index: CircuitIndex, schematic_component: Dict[str, Any]) -> List[Dict[str, Any]]:
    cx, cy = _xy(schematic_component.get("center"))
    ports = sorted(
        index.filter("schematic_port", schematic_component_id=schematic_component.get("schematic_component_id")),
        key=lambda p: p.get("pin_number") or 0,
    )
    result = []
    for port in ports:
        px, py = _xy(port.get("center"))
        number = port.get("pin_number") or 1
        result.append({
            "x": px - cx, "y": py - cy,
            "label": port.get("display_pin_label") or str(number),
            "pin_number": number,
        })
    return result


def build_generic_chip_data(index: CircuitIndex, schematic_component: Dict[str, Any]) -> Dict[str, Any]:
    """Box the size of the component with one pin per schematic port."""
    size = schematic_component.get("size") or {}
    width = float(size.get("width") or 1.5)
    height = float(size.get("height") or 1)
    return {
        "center": (0.0, 0.0),
        "size": (width, height),
        "primitives": [_box(width, height)],
        "texts": [],
        "ports": _component_ports(index, schematic_component),
    }


def build_generic_body_data(index: CircuitIndex, schematic_component: Dict[str, Any]) -> Dict[str, Any]:
    """
    Plain body for two-terminal and other non-chip parts.

    Drawn as a box the size of the component; pins sit where the
    schematic ports are.
    """
    size = schematic_component.get("size") or {}
    width = float(size.get("width") or 1)
    height = float(size.get("height") or 0.4)
    return {
        "center": (0.0, 0.0),
        "size": (width, height),
        "primitives": [_box(width, height)],
        "texts": [],
        "ports": _component_ports(index, schematic_component),
    }


def build_power_symbol_data(is_ground: bool) -> Dict[str, Any]:
    """Rail symbol: a stem and a bar (power) or a triangle (ground)."""
    if is_ground:
        primitives = [
            {"type": "path", "points": [(0, 0), (0, -0.1)], "fill": False},
            {"type": "path", "points": [(-0.1, -0.1), (0.1, -0.1), (0, -0.2), (-0.1, -0.1)], "fill": False},
        ]
    else:
        primitives = [
            {"type": "path", "points": [(0, 0), (0, 0.1)], "fill": False},
            {"type": "path", "points": [(-0.1, 0.1), (0.1, 0.1)], "fill": False},
        ]
    return {
        "center": (0.0, 0.0),
        "size": (0.2, 0.2),
        "primitives": primitives,
        "texts": [],
        "ports": [{"x": 0.0, "y": 0.0, "label": "~", "pin_number": 1}],
    }


# ============================================================================
# Symbol assembly
# ============================================================================

def calculate_pin_position(port: Dict[str, Any], center: Tuple[float, float],
                           size: Tuple[float, float], chip: bool,
                           symbol_scale: float) -> Tuple[float, float, float]:
    """
    Pin connection point and angle in symbol millimetres.

    Chip pins snap to the box edge on the side they are closest to
    (normalised by the box's half width/height) and move outward by the
    pin length. Angles: right side 180, left 0, top 270, bottom 90.
    """
    dx = float(port["x"]) - center[0]
    dy = float(port["y"]) - center[1]
    x, y = apply_to_point(scale(symbol_scale), (dx, dy))

    width, height = size
    if chip and width and height:
        horizontal = abs(dx) / (width / 2) > abs(dy) / (height / 2)
    else:
        horizontal = abs(dx) > abs(dy)

    if chip and width and height:
        half_w = width / 2 * symbol_scale
        half_h = height / 2 * symbol_scale
        if horizontal:
            x = half_w if dx > 0 else -half_w
            y = dy * symbol_scale
        else:
            x = dx * symbol_scale
            y = half_h if dy > 0 else -half_h

    pin_length = config.CHIP_PIN_LENGTH
    if horizontal:
        if dx > 0:
            angle = 180
            if chip:
                x += pin_length
        else:
            angle = 0
            if chip:
                x -= pin_length
    else:
        if dy > 0:
            angle = 270
            if chip:
                y += pin_length
        else:
            angle = 90
            if chip:
                y -= pin_length
    return x, y, angle


def _drawing_subsymbol(item_name: str, data: Dict[str, Any], chip: bool, symbol_scale: float) -> List[Any]:
    cx, cy = data.get("center") or (0.0, 0.0)
    matrix = scale(symbol_scale)
    drawing = node("symbol", f"{item_name}_0_1")

    for primitive in data.get("primitives") or []:
        if primitive.get("type") == "path" and primitive.get("points"):
            points = [apply_to_point(matrix, (px - cx, py - cy)) for px, py in primitive["points"]]
            drawing.append(node(
                "polyline",
                pts(points),
                stroke(SYMBOL_STROKE_WIDTH),
                fill("background" if chip or primitive.get("fill") else "none"),
            ))
        elif primitive.get("type") == "circle":
            x, y = apply_to_point(matrix, (primitive["x"] - cx, primitive["y"] - cy))
            drawing.append(node(
                "circle",
                node("center", x, y),
                node("radius", primitive["radius"] * symbol_scale),
                stroke(SYMBOL_STROKE_WIDTH),
                fill("background" if primitive.get("fill") else "none"),
            ))

    for text in data.get("texts") or []:
        x, y = apply_to_point(matrix, (text["x"] - cx, text["y"] - cy))
        drawing.append(node(
            "text", text["text"],
            at(x, y, 0),
            effects(text["font_size"] * TEXT_SCALE_FACTOR),
        ))
    return drawing


def _pin_subsymbol(item_name: str, data: Dict[str, Any], chip: bool, symbol_scale: float) -> List[Any]:
    pins = node("symbol", f"{item_name}_1_1")
    center = data.get("center") or (0.0, 0.0)
    size = data.get("size") or (0.0, 0.0)
    length = config.CHIP_PIN_LENGTH if chip else config.CUSTOM_PIN_LENGTH

    for i, port in enumerate(data.get("ports") or []):
        x, y, angle = calculate_pin_position(port, center, size, chip, symbol_scale)
        pins.append(node(
            "pin", Symbol("passive"), Symbol("line"),
            at(x, y, angle),
            node("length", length),
            node("name", port.get("label") or "~", effects(PROPERTY_FONT_SIZE)),
            node("number", str(port.get("pin_number") or i + 1), effects(PROPERTY_FONT_SIZE)),
        ))
    return pins


def symbol_properties(reference_prefix: str, footprint_ref: str, description: str,
                      keywords: str, fp_filters: str) -> List[List[Any]]:
    """The seven standard library symbol properties, ids 0-6."""
    rows = [
        ("Reference", reference_prefix, (2.032, 0, 90), False),
        ("Value", reference_prefix, (0, 0, 90), False),
        ("Footprint", footprint_ref, (-1.778, 0, 90), True),
        ("Datasheet", "~", (0, 0, 0), True),
        ("Description", description, (0, 0, 0), True),
        ("ki_keywords", keywords, (0, 0, 0), True),
        ("ki_fp_filters", fp_filters, (0, 0, 0), True),
    ]
    return [
        symbol_property(key, value, position, hide=hide, property_id=i)
        for i, (key, value, position, hide) in enumerate(rows)
    ]


def create_library_symbol(library_id: str, data: Dict[str, Any], chip: bool,
                          description: str, keywords: str, fp_filters: str,
                          footprint_ref: str = "", reference_prefix: Optional[str] = None,
                          chip_scale: float = config.SCHEMATIC_SCALE,
                          power: bool = False) -> List[Any]:
    """
    Build a ``symbol`` node for ``lib_symbols``.

    Args:
        library_id: Full library id (e.g., "Device:R_resistor_0402")
        data: Symbol data (see module docstring)
        chip: Generic chip box (long pins snapped to the box, background fill)
        description: Description property
        keywords: ki_keywords property
        fp_filters: ki_fp_filters property
        footprint_ref: Footprint property (e.g., "tscircuit:resistor_0402")
        reference_prefix: Reference/Value text, defaults to the item's first letter
        chip_scale: Millimetres per unit for chips (the sheet scale)
        power: Mark the symbol as a power symbol

    Returns:
        The symbol element tree
    """
    item_name = library_item_name(library_id)
    prefix = reference_prefix or (item_name[:1] or "U")
    symbol_scale = chip_scale if chip else config.CUSTOM_SYMBOL_SCALE

    symbol = node("symbol", library_id)
    if power:
        symbol.append(node("power"))
    symbol.extend([
        node("pin_numbers", node("hide", yes_no(not chip))),
        node("pin_names", node("offset", 1.27 if chip else 0)),
        node("exclude_from_sim", yes_no(False)),
        node("in_bom", yes_no(True)),
        node("on_board", yes_no(True)),
    ])
    symbol.extend(symbol_properties(prefix, footprint_ref, description, keywords, fp_filters))
    symbol.append(_drawing_subsymbol(item_name, data, chip, symbol_scale))
    symbol.append(_pin_subsymbol(item_name, data, chip, symbol_scale))
    symbol.append(node("embedded_fonts", yes_no(False)))
    return symbol


def pin_numbers_of(symbol: List[Any]) -> List[str]:
    """Pin numbers declared by a library symbol, in order."""
    numbers = []
    for child in symbol[2:]:
        if isinstance(child, list) and child and child[0] == "symbol":
            for pin in child[2:]:
                if isinstance(pin, list) and pin and pin[0] == "pin":
                    for item in pin:
                        if isinstance(item, list) and item and item[0] == "number":
                            numbers.append(str(item[1]))
    return numbers
