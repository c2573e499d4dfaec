"""
Per-component footprint overrides.

A pcb_component may carry ``metadata.kicad_footprint`` with explicit
property values, attribute flags, a footprint name, a layer, the embedded
fonts flag and an extra 3D model. These are applied to the generated
footprint node after it is built.
"""

import logging
from typing import Any, Dict, List, Optional

from ..converter_core.identifiers import deterministic_uuid
from ..utils.kicad_elements import footprint_property, node, xyz
from ..utils.sexpr import Symbol, find, head, set_child, yes_no

logger = logging.getLogger(__name__)

# key -> (default position, default layer, hidden by default)
_PROPERTY_DEFAULTS = {
    "Reference": ((0.0, -3.0, 0.0), "F.SilkS", False),
    "Value": ((0.0, 3.0, 0.0), "F.Fab", False),
    "Datasheet": ((0.0, 0.0, 0.0), "F.Fab", True),
    "Description": ((0.0, 0.0, 0.0), "F.Fab", True),
}


def _number(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _font_from_meta(meta: Dict[str, Any]) -> tuple:
    font = ((meta.get("effects") or {}).get("font") or {})
    size = font.get("size") or {}
    font_size = _number(size.get("x"), 1.27) if size else 1.27
    thickness = _number(font.get("thickness"), 0.15) if font.get("thickness") is not None else 0.15
    return font_size, thickness


def build_metadata_properties(properties: Dict[str, Any], component_name: str) -> List[List[Any]]:
    """Reference, Value, Datasheet and Description properties from metadata."""
    result = []
    for key, (default_at, default_layer, default_hide) in _PROPERTY_DEFAULTS.items():
        meta = properties.get(key) or {}
        if key == "Reference":
            default_value = "REF**"
        elif key == "Value":
            default_value = component_name
        else:
            default_value = ""
        position = default_at
        if meta.get("at"):
            position = (
                _number(meta["at"].get("x")),
                _number(meta["at"].get("y")),
                _number(meta["at"].get("rotation")),
            )
        hide = meta.get("hide")
        font_size, thickness = _font_from_meta(meta)
        result.append(footprint_property(
            key,
            str(meta.get("value", default_value)),
            position,
            meta.get("layer") or default_layer,
            deterministic_uuid(f"{component_name}-property-{key}"),
            hide=default_hide if hide is None else bool(hide),
            font_size=font_size,
            thickness=thickness,
        ))
    return result


def _replace_properties(footprint: List[Any], properties: List[List[Any]]) -> None:
    insert_at = None
    kept = []
    for i, child in enumerate(footprint):
        if i > 0 and head(child) == "property":
            if insert_at is None:
                insert_at = len(kept)
            continue
        kept.append(child)
    if insert_at is None:
        # After name, layer, uuid and at
        insert_at = min(len(kept), 5)
    footprint[:] = kept[:insert_at] + properties + kept[insert_at:]


def _apply_attributes(footprint: List[Any], attributes: Dict[str, Any]) -> None:
    existing = find(footprint, "attr")
    kind = None
    flags: List[str] = []
    if existing is not None:
        for item in existing[1:]:
            if item in ("smd", "through_hole"):
                kind = str(item)
            else:
                flags.append(str(item))
    if attributes.get("through_hole"):
        kind = "through_hole"
    elif attributes.get("smd"):
        kind = "smd"
    for flag in ("exclude_from_pos_files", "exclude_from_bom"):
        if attributes.get(flag) is None:
            continue
        if attributes[flag] and flag not in flags:
            flags.append(flag)
        elif not attributes[flag] and flag in flags:
            flags.remove(flag)
    attr = node("attr", *[Symbol(v) for v in ([kind] if kind else []) + flags])
    set_child(footprint, attr)


def _metadata_model(model_meta: Dict[str, Any]) -> Optional[List[Any]]:
    path = model_meta.get("path")
    if not path:
        return None
    model = node("model", path)
    for key in ("offset", "scale", "rotate"):
        values = model_meta.get(key)
        if isinstance(values, dict):
            model.append(node(key, xyz(
                _number(values.get("x")), _number(values.get("y")), _number(values.get("z")),
            )))
    return model


def apply_footprint_metadata(footprint: List[Any], metadata: Dict[str, Any],
                             component_name: str) -> List[Any]:
    """
    Apply ``kicad_footprint`` metadata to a footprint node in place.

    Args:
        footprint: ``footprint`` element tree
        metadata: The pcb_component's ``metadata.kicad_footprint`` dict
        component_name: Source component name, used for defaults and UUID seeds

    Returns:
        The same footprint node
    """
    if metadata.get("properties"):
        _replace_properties(footprint, build_metadata_properties(metadata["properties"], component_name))

    if metadata.get("attributes"):
        _apply_attributes(footprint, metadata["attributes"])

    if metadata.get("footprintName"):
        footprint[1] = str(metadata["footprintName"])

    if metadata.get("layer"):
        set_child(footprint, node("layer", metadata["layer"]))

    if metadata.get("embeddedFonts") is not None:
        set_child(footprint, node("embedded_fonts", yes_no(bool(metadata["embeddedFonts"]))))

    if isinstance(metadata.get("model"), dict):
        model = _metadata_model(metadata["model"])
        if model is not None:
            # Explicit model goes ahead of generated ones
            first_model = next(
                (i for i, child in enumerate(footprint) if i > 0 and head(child) == "model"),
                len(footprint),
            )
            footprint.insert(first_model, model)
        else:
            logger.debug("Ignoring footprint model metadata without a path for %s", component_name)

    return footprint
