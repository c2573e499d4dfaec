"""
Sheet sizing: content bounds and paper selection.
"""

from typing import Dict, Optional, Tuple

from .. import config
from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.transform import Point, bounds_center, bounds_of_points


def get_schematic_bounds(index: CircuitIndex) -> Dict[str, float]:
    """
    Bounding box of placed schematic content in Circuit JSON units.

    Covers component bodies (centre +/- half size) and every trace edge.
    An empty schematic yields a zero box at the origin.
    """
    points = []
    for component in index.list("schematic_component"):
        center = component.get("center") or {}
        size = component.get("size") or {}
        cx, cy = float(center.get("x", 0)), float(center.get("y", 0))
        half_w = float(size.get("width") or 0) / 2
        half_h = float(size.get("height") or 0) / 2
        points.append((cx - half_w, cy - half_h))
        points.append((cx + half_w, cy + half_h))

    for trace in index.list("schematic_trace"):
        for edge in trace.get("edges") or []:
            for end in ("from", "to"):
                point = edge.get(end) or {}
                points.append((float(point.get("x", 0)), float(point.get("y", 0))))

    return bounds_of_points(points)


def get_schematic_center(index: CircuitIndex) -> Point:
    return bounds_center(get_schematic_bounds(index))


def select_paper_size(content_width: float, content_height: float,
                      padding_mm: Optional[float] = None) -> Tuple[str, Tuple[float, float]]:
    """
    Pick the smallest landscape paper that fits the content plus padding.

    Args:
        content_width: Content width in millimetres
        content_height: Content height in millimetres
        padding_mm: Margin added on every side (default PAPER_PADDING_MM)

    Returns:
        (paper name, (width, height)); A0 when nothing fits
    """
    padding = config.PAPER_PADDING_MM if padding_mm is None else padding_mm
    required_width = content_width + 2 * padding
    required_height = content_height + 2 * padding

    for name, (width, height) in config.PAPER_SIZES.items():
        if required_width <= width and required_height <= height:
            return name, (width, height)

    largest = list(config.PAPER_SIZES)[-1]
    return largest, config.PAPER_SIZES[largest]


def select_paper_for_circuit(index: CircuitIndex,
                             unit_scale: float = config.SCHEMATIC_SCALE) -> Tuple[str, Tuple[float, float]]:
    bounds = get_schematic_bounds(index)
    width = (bounds["max_x"] - bounds["min_x"]) * unit_scale
    height = (bounds["max_y"] - bounds["min_y"]) * unit_scale
    return select_paper_size(width, height)
