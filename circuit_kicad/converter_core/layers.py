"""
Layer name mapping between Circuit JSON and KiCad boards.
"""

import re
from typing import List, Optional, Tuple

_INNER_LAYER = re.compile(r'^inner(\d+)$')
_KICAD_INNER_LAYER = re.compile(r'^In(\d+)\.Cu$')

# Non-copper layers written into every board, (id, name, type)
TECHNICAL_LAYERS: List[Tuple[int, str, str]] = [
    (9, "F.Adhes", "user"),
    (11, "B.Adhes", "user"),
    (13, "F.Paste", "user"),
    (15, "B.Paste", "user"),
    (5, "F.SilkS", "user"),
    (7, "B.SilkS", "user"),
    (1, "F.Mask", "user"),
    (3, "B.Mask", "user"),
    (17, "Dwgs.User", "user"),
    (19, "Cmts.User", "user"),
    (21, "Eco1.User", "user"),
    (23, "Eco2.User", "user"),
    (25, "Edge.Cuts", "user"),
    (27, "Margin", "user"),
    (33, "B.CrtYd", "user"),
    (31, "F.CrtYd", "user"),
    (37, "B.Fab", "user"),
    (35, "F.Fab", "user"),
]


def copper_layer(layer: Optional[str]) -> str:
    """
    Map a Circuit JSON copper layer to a KiCad layer name.

    "top" -> "F.Cu", "bottom" -> "B.Cu", "inner2" -> "In2.Cu". Names that
    already look like KiCad layers pass through; missing layers are "F.Cu".
    """
    if not layer:
        return "F.Cu"
    if layer == "top":
        return "F.Cu"
    if layer == "bottom":
        return "B.Cu"
    match = _INNER_LAYER.match(layer)
    if match:
        return f"In{int(match.group(1))}.Cu"
    return layer


def side_prefix(layer: Optional[str]) -> str:
    """Side letter used in KiCad layer names: F (front) or B (back)."""
    return "B" if layer in ("bottom", "B.Cu") else "F"


def silkscreen_layer(layer: Optional[str]) -> str:
    return f"{side_prefix(layer)}.SilkS"


def courtyard_layer(layer: Optional[str]) -> str:
    return f"{side_prefix(layer)}.CrtYd"


def fabrication_layer(layer: Optional[str]) -> str:
    return f"{side_prefix(layer)}.Fab"


def smd_pad_layers(layer: Optional[str]) -> List[str]:
    side = side_prefix(layer)
    return [f"{side}.Cu", f"{side}.Paste", f"{side}.Mask"]


def inner_layer_number(kicad_layer: str) -> int:
    """Inner layer number of "InN.Cu", 0 for outer or non-copper layers."""
    match = _KICAD_INNER_LAYER.match(kicad_layer)
    return int(match.group(1)) if match else 0


def copper_layer_id(kicad_layer: str) -> int:
    """
    KiCad 9 ordinal of a copper layer.

    F.Cu is 0, B.Cu is 2 and inner layer N is 2 + 2N.
    """
    if kicad_layer == "F.Cu":
        return 0
    if kicad_layer == "B.Cu":
        return 2
    inner = inner_layer_number(kicad_layer)
    return 2 + 2 * inner if inner else 0


def copper_layer_names(num_layers: int) -> List[str]:
    """Copper stack from front to back for a board with ``num_layers`` layers."""
    names = ["F.Cu"]
    for i in range(1, max(num_layers, 2) - 1):
        names.append(f"In{i}.Cu")
    names.append("B.Cu")
    return names


def via_layers(num_layers: int) -> List[str]:
    """Layers spanned by a through via on a ``num_layers`` board."""
    return copper_layer_names(num_layers)
