"""
Builders for common KiCad element-tree nodes.

Small helpers that return element-tree lists for the fragments every
KiCad file repeats: positions, point lists, strokes, text effects and
properties.
"""
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from .sexpr import Symbol, yes_no


def node(name: str, *items: Any) -> List[Any]:
    """``node("at", 1, 2)`` -> ``(at 1 2)``."""
    return [Symbol(name), *items]


def at(x: float, y: float, rotation: Optional[float] = None) -> List[Any]:
    if rotation is None:
        return node("at", x, y)
    return node("at", x, y, rotation)


def xy(x: float, y: float) -> List[Any]:
    return node("xy", x, y)


def xyz(x: float, y: float, z: float) -> List[Any]:
    return node("xyz", x, y, z)


def pts(points: Iterable[Tuple[float, float]]) -> List[Any]:
    return node("pts", *[xy(x, y) for x, y in points])


def uuid_node(value: str) -> List[Any]:
    return node("uuid", value)


def stroke(width: float, line_type: str = "default") -> List[Any]:
    return node("stroke", node("width", width), node("type", Symbol(line_type)))


def fill(kind: Any) -> List[Any]:
    """``fill(False)`` -> ``(fill no)``, ``fill("background")`` -> ``(fill (type background))``."""
    if isinstance(kind, bool):
        return node("fill", yes_no(kind))
    return node("fill", node("type", Symbol(kind)))


def font(size: float, thickness: Optional[float] = None) -> List[Any]:
    result = node("font", node("size", size, size))
    if thickness is not None:
        result.append(node("thickness", thickness))
    return result


def effects(size: float = 1.27, thickness: Optional[float] = None,
            hide: bool = False, justify: Optional[Sequence[str]] = None) -> List[Any]:
    result = node("effects", font(size, thickness))
    if justify:
        result.append(node("justify", *[Symbol(j) for j in justify]))
    if hide:
        result.append(node("hide", yes_no(True)))
    return result


def footprint_property(key: str, value: str, position: Tuple[float, float, float],
                       layer: str, uuid: str, hide: bool = False,
                       font_size: float = 1.27, thickness: float = 0.15) -> List[Any]:
    """Footprint ``property`` node as written by pcbnew."""
    result = node(
        "property", key, value,
        at(*position),
        node("layer", layer),
    )
    if hide:
        result.append(node("hide", yes_no(True)))
    result.append(uuid_node(uuid))
    result.append(effects(font_size, thickness))
    return result


def symbol_property(key: str, value: str, position: Tuple[float, float, float],
                    hide: bool = False, property_id: Optional[int] = None,
                    font_size: float = 1.27) -> List[Any]:
    """Schematic/symbol ``property`` node."""
    result = node("property", key, value)
    if property_id is not None:
        result.append(node("id", property_id))
    result.append(at(*position))
    result.append(effects(font_size, hide=hide))
    return result
