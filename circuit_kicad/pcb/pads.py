"""
Pad builders: SMD pads, plated holes and non-plated holes.

Circuit JSON stores pad geometry in absolute board coordinates with Y up.
KiCad stores pads relative to the footprint origin, unrotated, with Y
down. ``local_transform`` builds the matrix that takes a board point into
that footprint-local frame.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..converter_core.identifiers import deterministic_uuid
from ..converter_core.layers import smd_pad_layers
from ..converter_core.models import NetInfo
from ..converter_core.transform import (
    IDENTITY,
    Matrix,
    apply_to_point,
    compose,
    rotate_degrees,
    scale,
    translate,
)
from ..utils.kicad_elements import at, node, pts
from ..utils.sexpr import Symbol, yes_no

logger = logging.getLogger(__name__)

NetLookup = Callable[[Optional[str]], NetInfo]

THRU_HOLE_LAYERS = ["*.Cu", "*.Mask"]
POLYGON_ANCHOR_SIZE = 0.2
FALLBACK_HOLE_PAD = 1.6
FALLBACK_HOLE_DRILL = 0.8


def local_transform(center: Tuple[float, float], rotation: float = 0) -> Matrix:
    """
    Board -> footprint-local transform for a component.

    Translates the component centre to the origin, flips Y, then undoes the
    component rotation (a CCW rotation looks clockwise once Y is flipped).
    """
    cx, cy = center
    return compose(
        rotate_degrees(rotation) if rotation else IDENTITY,
        scale(1, -1),
        translate(-cx, -cy),
    )


def _pad_net(net: Optional[NetInfo]) -> Optional[List[Any]]:
    if net is None or net.id == 0:
        return None
    return node("net", net.id, net.name)


def _finish_pad(pad: List[Any], net: Optional[NetInfo], uuid: str) -> List[Any]:
    net_node = _pad_net(net)
    if net_node is not None:
        pad.append(net_node)
    pad.append(node("uuid", uuid))
    return pad


def _pad_position(pcb_pad: Dict[str, Any]) -> Optional[Tuple[float, float]]:
    if pcb_pad.get("x") is not None and pcb_pad.get("y") is not None:
        return float(pcb_pad["x"]), float(pcb_pad["y"])
    points = pcb_pad.get("points")
    if isinstance(points, list) and points:
        xs = [p.get("x", 0) for p in points]
        ys = [p.get("y", 0) for p in points]
        return sum(xs) / len(xs), sum(ys) / len(ys)
    return None


def create_smd_pad(pcb_pad: Dict[str, Any], matrix: Matrix, pad_number: int,
                   net: Optional[NetInfo], uuid_seed: str) -> Optional[List[Any]]:
    """
    Build a ``pad ... smd`` node from a pcb_smtpad.

    Rect pads keep width/height, circle pads use the diameter, rotated
    rects carry their rotation and polygon pads become custom pads with a
    small circular anchor and a filled gr_poly primitive.

    Returns:
        The pad node, or None if the pad has neither x/y nor points
    """
    position = _pad_position(pcb_pad)
    if position is None:
        logger.debug("Skipping SMD pad without position: %s", pcb_pad.get("pcb_smtpad_id"))
        return None

    local_x, local_y = apply_to_point(matrix, position)
    shape = pcb_pad.get("shape", "rect")
    layers = smd_pad_layers(pcb_pad.get("layer"))
    rotation = 0.0
    primitives = None

    if shape == "circle":
        diameter = float(pcb_pad.get("radius", 0.25)) * 2
        kicad_shape = "circle"
        size = (diameter, diameter)
    elif shape == "polygon" and pcb_pad.get("points"):
        # Outline relative to the anchor, Y flipped
        relative = compose(scale(1, -1), translate(-position[0], -position[1]))
        outline = [apply_to_point(relative, (p.get("x", 0), p.get("y", 0)))
                   for p in pcb_pad["points"]]
        primitives = node(
            "primitives",
            node("gr_poly", pts(outline), node("width", 0), node("fill", yes_no(True))),
        )
        kicad_shape = "custom"
        size = (POLYGON_ANCHOR_SIZE, POLYGON_ANCHOR_SIZE)
    elif shape == "pill":
        kicad_shape = "oval"
        size = (float(pcb_pad.get("width", 0.5)), float(pcb_pad.get("height", 0.5)))
    else:
        kicad_shape = "rect"
        size = (float(pcb_pad.get("width", 0.5)), float(pcb_pad.get("height", 0.5)))
        if shape == "rotated_rect":
            rotation = float(pcb_pad.get("ccw_rotation") or 0)

    pad = node(
        "pad", str(pad_number), Symbol("smd"), Symbol(kicad_shape),
        at(local_x, local_y, rotation),
        node("size", *size),
        node("layers", *layers),
    )
    if primitives is not None:
        pad.append(node("options", node("clearance", Symbol("outline")), node("anchor", Symbol("circle"))))
        pad.append(primitives)
    return _finish_pad(pad, net, deterministic_uuid(uuid_seed))


def _oval_drill(width: Any, height: Any) -> List[Any]:
    return node("drill", Symbol("oval"), float(width or 0), float(height or 0))


def create_thru_hole_pad(plated_hole: Dict[str, Any], matrix: Matrix, pad_number: int,
                         net: Optional[NetInfo], uuid_seed: str) -> Optional[List[Any]]:
    """
    Build a ``pad ... thru_hole`` node from a pcb_plated_hole.

    Supported shapes: circle, pill/oval, pill_hole_with_rect_pad,
    circular_hole_with_rect_pad and rotated_pill_hole_with_rect_pad;
    anything else gets a 1.6mm round pad with a 0.8mm drill.

    Returns:
        The pad node, or None if the hole has no x/y
    """
    if plated_hole.get("x") is None or plated_hole.get("y") is None:
        return None

    local_x, local_y = apply_to_point(matrix, (float(plated_hole["x"]), float(plated_hole["y"])))
    shape = plated_hole.get("shape")
    rotation = 0.0

    if shape == "circle":
        kicad_shape = "circle"
        outer = float(plated_hole.get("outer_diameter", FALLBACK_HOLE_PAD))
        size = (outer, outer)
        drill = node("drill", float(plated_hole.get("hole_diameter", FALLBACK_HOLE_DRILL)))
    elif shape in ("pill", "oval"):
        kicad_shape = "oval"
        size = (float(plated_hole.get("outer_width", 0)), float(plated_hole.get("outer_height", 0)))
        drill = _oval_drill(plated_hole.get("hole_width"), plated_hole.get("hole_height"))
    elif shape == "pill_hole_with_rect_pad":
        kicad_shape = "rect"
        size = (float(plated_hole.get("rect_pad_width", 0)), float(plated_hole.get("rect_pad_height", 0)))
        drill = _oval_drill(plated_hole.get("hole_width"), plated_hole.get("hole_height"))
    elif shape == "circular_hole_with_rect_pad":
        kicad_shape = "rect"
        size = (float(plated_hole.get("rect_pad_width", 0)), float(plated_hole.get("rect_pad_height", 0)))
        drill = node("drill", float(plated_hole.get("hole_diameter", FALLBACK_HOLE_DRILL)))
    elif shape == "rotated_pill_hole_with_rect_pad":
        kicad_shape = "rect"
        size = (float(plated_hole.get("rect_pad_width", 0)), float(plated_hole.get("rect_pad_height", 0)))
        drill = _oval_drill(plated_hole.get("hole_width"), plated_hole.get("hole_height"))
        rotation = float(plated_hole.get("rect_ccw_rotation") or 0)
    else:
        kicad_shape = "circle"
        size = (FALLBACK_HOLE_PAD, FALLBACK_HOLE_PAD)
        drill = node("drill", FALLBACK_HOLE_DRILL)

    pad = node(
        "pad", str(pad_number), Symbol("thru_hole"), Symbol(kicad_shape),
        at(local_x, local_y, rotation),
        node("size", *size),
        drill,
        node("layers", *THRU_HOLE_LAYERS),
        node("remove_unused_layers", yes_no(False)),
    )
    return _finish_pad(pad, net, deterministic_uuid(uuid_seed))


def create_npth_pad(pcb_hole: Dict[str, Any], matrix: Matrix, uuid_seed: str) -> Optional[List[Any]]:
    """
    Build a non-plated ``pad "" np_thru_hole`` node from a pcb_hole.

    Returns:
        The pad node, or None if the hole has no x/y
    """
    if pcb_hole.get("x") is None or pcb_hole.get("y") is None:
        return None

    local_x, local_y = apply_to_point(matrix, (float(pcb_hole["x"]), float(pcb_hole["y"])))
    hole_shape = pcb_hole.get("hole_shape")

    if hole_shape == "oval":
        kicad_shape = "oval"
        width = float(pcb_hole.get("hole_width", 0))
        height = float(pcb_hole.get("hole_height", 0))
        size = (width, height)
        drill = _oval_drill(width, height)
    else:
        kicad_shape = "circle"
        diameter = float(pcb_hole.get("hole_diameter") or 1.0)
        size = (diameter, diameter)
        drill = node("drill", diameter)

    pad = node(
        "pad", "", Symbol("np_thru_hole"), Symbol(kicad_shape),
        at(local_x, local_y, 0),
        node("size", *size),
        drill,
        node("layers", *THRU_HOLE_LAYERS),
        node("remove_unused_layers", yes_no(False)),
    )
    return _finish_pad(pad, None, deterministic_uuid(uuid_seed))


def convert_component_pads(component: Dict[str, Any], smd_pads: List[Dict[str, Any]],
                           plated_holes: List[Dict[str, Any]], holes: List[Dict[str, Any]],
                           net_lookup: NetLookup) -> List[List[Any]]:
    """
    Convert every pad of one component, numbering SMD pads first and
    plated holes after them. Malformed pads are skipped.
    """
    center = _center_of(component)
    matrix = local_transform(center, float(component.get("rotation") or 0))
    component_id = component.get("pcb_component_id", "component")

    pads: List[List[Any]] = []
    pad_number = 1
    for smd in smd_pads:
        pad = create_smd_pad(smd, matrix, pad_number, net_lookup(smd.get("pcb_port_id")),
                             f"{component_id}-pad-{pad_number}")
        if pad is not None:
            pads.append(pad)
            pad_number += 1

    for hole in plated_holes:
        pad = create_thru_hole_pad(hole, matrix, pad_number, net_lookup(hole.get("pcb_port_id")),
                                   f"{component_id}-pad-{pad_number}")
        if pad is not None:
            pads.append(pad)
            pad_number += 1

    for i, hole in enumerate(holes):
        pad = create_npth_pad(hole, matrix, f"{component_id}-npth-{hole.get('pcb_hole_id', i)}")
        if pad is not None:
            pads.append(pad)

    return pads


def _center_of(element: Dict[str, Any]) -> Tuple[float, float]:
    center = element.get("center") or {}
    return float(center.get("x", 0)), float(center.get("y", 0))
