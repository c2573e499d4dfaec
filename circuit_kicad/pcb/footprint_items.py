"""
Footprint graphics: texts, circles, rectangles, outlines and 3D models.

All positions are converted into the footprint-local frame with the
matrix from pads.local_transform.
"""

from typing import Any, Dict, List, Optional

from ..converter_core.layers import courtyard_layer, fabrication_layer, silkscreen_layer
from ..converter_core.transform import Matrix, apply_to_point
from ..utils.kicad_elements import at, effects, fill, node, pts, stroke, xyz
from ..utils.sexpr import Symbol

COURTYARD_STROKE = 0.05
SILKSCREEN_CIRCLE_STROKE = 0.05
FAB_RECT_STROKE = 0.1

# Circuit JSON silkscreen font sizes read larger than KiCad's
SILKSCREEN_FONT_DIVISOR = 1.5


def _point(element: Dict[str, Any], key: str) -> Optional[tuple]:
    value = element.get(key)
    if not isinstance(value, dict) or value.get("x") is None or value.get("y") is None:
        return None
    return float(value["x"]), float(value["y"])


def convert_silkscreen_text(text: Dict[str, Any], matrix: Matrix,
                            component_name: Optional[str]) -> Optional[List[Any]]:
    """
    fp_text from a pcb_silkscreen_text.

    A text equal to the component's name becomes the footprint's
    ``reference`` text; everything else is a ``user`` text.
    """
    anchor = _point(text, "anchor_position")
    if not text.get("text") or anchor is None:
        return None
    x, y = apply_to_point(matrix, anchor)
    text_type = "reference" if component_name and text["text"] == component_name else "user"
    size = float(text.get("font_size") or 1) / SILKSCREEN_FONT_DIVISOR
    return node(
        "fp_text", Symbol(text_type), text["text"],
        at(x, y, float(text.get("ccw_rotation") or 0)),
        node("layer", silkscreen_layer(text.get("layer"))),
        effects(size, 0.15),
    )


def convert_note_text(text: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    anchor = _point(text, "anchor_position")
    if not text.get("text") or anchor is None:
        return None
    x, y = apply_to_point(matrix, anchor)
    return node(
        "fp_text", Symbol("user"), text["text"],
        at(x, y, 0),
        node("layer", "F.Fab"),
        effects(float(text.get("font_size") or 1)),
    )


_ANCHOR_JUSTIFY = {
    "top_left": ["left", "top"],
    "top_right": ["right", "top"],
    "bottom_left": ["left", "bottom"],
    "bottom_right": ["right", "bottom"],
}


def convert_fabrication_note_text(text: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    """fp_text on the fabrication layer, justified by its anchor alignment."""
    anchor = _point(text, "anchor_position")
    if not text.get("text") or anchor is None:
        return None
    x, y = apply_to_point(matrix, anchor)
    size = float(text.get("font_size") or 1) / SILKSCREEN_FONT_DIVISOR
    justify = _ANCHOR_JUSTIFY.get(text.get("anchor_alignment") or "center")
    return node(
        "fp_text", Symbol("user"), text["text"],
        at(x, y, 0),
        node("layer", fabrication_layer(text.get("layer"))),
        effects(size, justify=justify),
    )


def _circle(center: tuple, radius: float, layer: str, width: float, matrix: Matrix) -> List[Any]:
    x, y = apply_to_point(matrix, center)
    return node(
        "fp_circle",
        node("center", x, y),
        node("end", x + radius, y),
        stroke(width),
        fill(False),
        node("layer", layer),
    )


def convert_silkscreen_circle(circle: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    center = _point(circle, "center")
    if center is None or circle.get("radius") is None:
        return None
    return _circle(center, float(circle["radius"]), silkscreen_layer(circle.get("layer")),
                   float(circle.get("stroke_width") or SILKSCREEN_CIRCLE_STROKE), matrix)


def convert_courtyard_circle(circle: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    center = _point(circle, "center")
    if center is None or circle.get("radius") is None:
        return None
    return _circle(center, float(circle["radius"]), courtyard_layer(circle.get("layer")),
                   COURTYARD_STROKE, matrix)


def _rect(rect: Dict[str, Any], layer: str, width: float, matrix: Matrix) -> Optional[List[Any]]:
    center = _point(rect, "center")
    if center is None or rect.get("width") is None or rect.get("height") is None:
        return None
    x, y = apply_to_point(matrix, center)
    half_w = float(rect["width"]) / 2
    half_h = float(rect["height"]) / 2
    return node(
        "fp_rect",
        node("start", x - half_w, y - half_h),
        node("end", x + half_w, y + half_h),
        stroke(width),
        fill(False),
        node("layer", layer),
    )


def convert_courtyard_rect(rect: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    return _rect(rect, courtyard_layer(rect.get("layer")), COURTYARD_STROKE, matrix)


def convert_fabrication_note_rect(rect: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    return _rect(rect, fabrication_layer(rect.get("layer")),
                 float(rect.get("stroke_width") or FAB_RECT_STROKE), matrix)


def convert_note_rect(rect: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    return _rect(rect, "F.Fab", float(rect.get("stroke_width") or FAB_RECT_STROKE), matrix)


def convert_courtyard_outline(outline: Dict[str, Any], matrix: Matrix) -> Optional[List[Any]]:
    points = outline.get("outline") or []
    if len(points) < 2:
        return None
    local = [apply_to_point(matrix, (float(p.get("x", 0)), float(p.get("y", 0)))) for p in points]
    return node(
        "fp_poly",
        pts(local),
        stroke(COURTYARD_STROKE),
        fill(False),
        node("layer", courtyard_layer(outline.get("layer"))),
    )


def create_model(cad_component: Dict[str, Any], component_center: tuple) -> Optional[List[Any]]:
    """
    ``model`` node for a cad_component's STEP (or WRL) model.

    The offset is the model position relative to the footprint centre,
    Y flipped; rotation and unit scale are copied across.
    """
    url = cad_component.get("model_step_url") or cad_component.get("model_wrl_url")
    if not url:
        return None

    model = node("model", url)
    position = cad_component.get("position")
    if isinstance(position, dict):
        model.append(node("offset", xyz(
            float(position.get("x") or 0) - component_center[0],
            -(float(position.get("y") or 0) - component_center[1]),
            float(position.get("z") or 0),
        )))
    unit_scale = cad_component.get("model_unit_to_mm_scale_factor")
    if unit_scale:
        model.append(node("scale", xyz(unit_scale, unit_scale, unit_scale)))
    rotation = cad_component.get("rotation")
    if isinstance(rotation, dict):
        model.append(node("rotate", xyz(
            float(rotation.get("x") or 0),
            float(rotation.get("y") or 0),
            float(rotation.get("z") or 0),
        )))
    return model
