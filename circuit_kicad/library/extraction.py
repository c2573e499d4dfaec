"""
Library entry extraction.

Re-parses a generated board or sheet and turns every embedded footprint
or library symbol into a reusable library entry. Instance-only data
(placement, uuids, nets, reference text) is stripped so the same part
extracted from two boards yields identical text.
"""

import copy
import logging
import re
from typing import Any, Callable, Iterable, List, Optional, Sequence, Set

from .. import config
from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.identifiers import deterministic_uuid
from ..converter_core.models import FootprintEntry, SymbolEntry
from ..converter_core.naming import sanitize_library_item_name
from ..utils.kicad_elements import at, footprint_property, node, uuid_node
from ..utils.sexpr import SExpressionError, Symbol, find, find_all, head, loads, set_child, yes_no

logger = logging.getLogger(__name__)

Warn = Callable[[str], None]

REFERENCE_PLACEHOLDER = "REF**"
VALUE_PLACEHOLDER = "Val**"
LABEL_MARGIN = 0.5

# Children rebuilt by sanitize_footprint, everything else is carried over
_REBUILT = {
    "version", "generator", "generator_version", "layer", "descr", "tags",
    "property", "attr", "embedded_fonts", "model",
    "uuid", "at", "locked", "placed", "path", "sheetfile", "sheetname",
}

_SEPARATORS = re.compile(r'[\\/]')


def _warn(warn: Optional[Warn], message: str) -> None:
    if warn is not None:
        warn(message)
    else:
        logger.warning(message)


def model_basename(path: str) -> str:
    """Last path component, accepting both / and \\ separators."""
    parts = _SEPARATORS.split(path)
    return parts[-1] or path


def collect_builtin_tokens(circuit_json: Iterable[dict]) -> List[str]:
    """Footprinter strings used by the circuit's cad components, in input order."""
    tokens: List[str] = []
    for cad_component in CircuitIndex(circuit_json).list("cad_component"):
        token = cad_component.get("footprinter_string")
        if token and token not in tokens:
            tokens.append(str(token))
    return tokens


def matching_builtin_token(footprint_name: str, builtin_tokens: Sequence[str]) -> Optional[str]:
    """
    First token contained in ``footprint_name``, if any.

    Plain substring matching: a custom footprint whose name happens to
    contain a token (e.g. "my_0402_adapter") is treated as builtin.
    """
    for token in builtin_tokens:
        if token and token in footprint_name:
            return token
    return None


def _pad_extent(footprint: List[Any]) -> tuple:
    min_y = 0.0
    max_y = 0.0
    for pad in find_all(footprint, "pad"):
        position = find(pad, "at")
        size = find(pad, "size")
        if position is None or size is None or len(position) < 3 or len(size) < 3:
            continue
        pad_y = float(position[2])
        half_height = float(size[2]) / 2
        min_y = min(min_y, pad_y - half_height)
        max_y = max(max_y, pad_y + half_height)
    return min_y, max_y


def _attr_for(footprint: List[Any]) -> List[Any]:
    existing = find(footprint, "attr")
    if existing is not None:
        return existing
    pad_types = [str(pad[2]) for pad in find_all(footprint, "pad") if len(pad) > 2]
    if any("thru_hole" in pad_type for pad_type in pad_types):
        return node("attr", Symbol("through_hole"))
    if any("smd" in pad_type for pad_type in pad_types):
        return node("attr", Symbol("smd"))
    return node("attr")


def _library_properties(footprint_name: str, min_y: float, max_y: float) -> List[List[Any]]:
    rows = [
        ("Reference", REFERENCE_PLACEHOLDER, (0, min_y - LABEL_MARGIN, 0), "F.SilkS", False),
        ("Value", VALUE_PLACEHOLDER, (0, max_y + LABEL_MARGIN, 0), "F.Fab", False),
        ("Datasheet", "", (0, 0, 0), "F.Fab", True),
        ("Description", "", (0, 0, 0), "F.Fab", True),
    ]
    return [
        footprint_property(key, value, position, layer,
                           deterministic_uuid(f"{footprint_name}-property-{key}"), hide=hide)
        for key, value, position, layer, hide in rows
    ]


def _sanitize_text(text: List[Any], footprint_name: str) -> List[Any]:
    text = [child for child in text if head(child) != "uuid"]
    if len(text) > 2:
        if text[1] == "reference":
            text[2] = REFERENCE_PLACEHOLDER
        elif text[1] == "value" and not str(text[2]).strip():
            text[2] = footprint_name
    return text


def _sanitize_pad(pad: List[Any], footprint_name: str, i: int) -> List[Any]:
    pad = [child for child in pad if head(child) != "net"]
    number = pad[1] if len(pad) > 1 else None
    set_child(pad, uuid_node(deterministic_uuid(f"{footprint_name}-pad-{number or i}")))
    return pad


def _library_model(model: List[Any], fp_library_name: str) -> List[Any]:
    new_path = f"../../3dmodels/{fp_library_name}.3dshapes/{model_basename(str(model[1]))}"
    result = node("model", new_path)
    for key in ("offset", "scale", "rotate"):
        child = find(model, key)
        if child is not None:
            result.append(child)
    return result


def sanitize_footprint(footprint: List[Any], fp_library_name: str = config.DEFAULT_FOOTPRINT_LIBRARY,
                       builtin_tokens: Sequence[str] = ()) -> FootprintEntry:
    """
    Turn a placed ``footprint`` node into a library footprint.

    Args:
        footprint: ``footprint`` element tree from a generated board (not modified)
        fp_library_name: Library whose .3dshapes folder custom model paths point into
        builtin_tokens: Footprinter strings marking standard parts

    Returns:
        FootprintEntry with the sanitized tree and the original model paths
    """
    footprint_name = sanitize_library_item_name(
        footprint[1] if len(footprint) > 1 and isinstance(footprint[1], str) else None,
        "footprint",
    )
    token = matching_builtin_token(footprint_name, builtin_tokens)
    min_y, max_y = _pad_extent(footprint)

    body = []
    pad_count = 0
    for child in footprint[2:]:
        if head(child) in _REBUILT or (isinstance(child, Symbol) and child in ("locked", "placed")):
            continue
        child = copy.deepcopy(child)
        if head(child) == "fp_text":
            child = _sanitize_text(child, footprint_name)
        elif head(child) == "pad":
            child = _sanitize_pad(child, footprint_name, pad_count)
            pad_count += 1
        body.append(child)

    # Builtin footprints keep their models in the builtin library
    model_library = config.BUILTIN_LIBRARY_NAME if token is not None else fp_library_name
    models = []
    source_paths = []
    for model in find_all(footprint, "model"):
        if len(model) > 1 and model[1]:
            models.append(_library_model(model, model_library))
            source_paths.append(str(model[1]))

    if token is not None and not models:
        models.append(node(
            "model", f"../../3dmodels/{config.BUILTIN_LIBRARY_NAME}.3dshapes/{token}.step",
        ))
        source_paths.append(f"{config.MODEL_CDN_BASE_URL}/{token}.step")

    embedded_fonts = find(footprint, "embedded_fonts") or node("embedded_fonts", yes_no(False))
    descr = find(footprint, "descr") or node("descr", "")
    tags = find(footprint, "tags") or node("tags", "")

    result = node(
        "footprint", footprint_name,
        node("version", config.FOOTPRINT_FILE_VERSION),
        node("generator", config.FOOTPRINT_GENERATOR),
        node("generator_version", config.FOOTPRINT_GENERATOR_VERSION),
        copy.deepcopy(find(footprint, "layer") or node("layer", "F.Cu")),
        at(0, 0, 0),
        copy.deepcopy(descr),
        copy.deepcopy(tags),
    )
    result.extend(_library_properties(footprint_name, min_y, max_y))
    result.append(copy.deepcopy(_attr_for(footprint)))
    result.extend(body)
    result.append(copy.deepcopy(embedded_fonts))
    result.extend(models)

    return FootprintEntry(
        footprint_name=footprint_name,
        mod_data=result,
        model3d_source_paths=source_paths,
        is_builtin=token is not None,
    )


def extract_footprints(pcb_text: str, fp_library_name: str = config.DEFAULT_FOOTPRINT_LIBRARY,
                       builtin_tokens: Sequence[str] = (),
                       warn: Optional[Warn] = None) -> List[FootprintEntry]:
    """
    Extract every footprint from ``.kicad_pcb`` text, first name wins.

    A board that cannot be parsed yields no entries and a warning.
    """
    try:
        tree = loads(pcb_text)
    except SExpressionError as e:
        _warn(warn, f"Failed to parse PCB for footprint extraction: {e}")
        return []
    if head(tree) != "kicad_pcb":
        return []

    entries: List[FootprintEntry] = []
    seen: Set[str] = set()
    for footprint in find_all(tree, "footprint"):
        entry = sanitize_footprint(footprint, fp_library_name, builtin_tokens)
        if entry.footprint_name in seen:
            continue
        seen.add(entry.footprint_name)
        entries.append(entry)
    return entries


def extract_symbols(sch_text: str, custom_symbol_names: Sequence[str] = (),
                    warn: Optional[Warn] = None) -> List[SymbolEntry]:
    """
    Extract every ``lib_symbols`` definition from ``.kicad_sch`` text.

    Symbols lose their library nickname ("Device:R_x" -> "R_x"). A symbol
    is custom (not builtin) when its name is one of ``custom_symbol_names``.
    A sheet that cannot be parsed yields no entries and a warning.
    """
    try:
        tree = loads(sch_text)
    except SExpressionError as e:
        _warn(warn, f"Failed to parse schematic for symbol extraction: {e}")
        return []
    if head(tree) != "kicad_sch":
        return []

    lib_symbols = find(tree, "lib_symbols")
    if lib_symbols is None:
        return []

    custom = {sanitize_library_item_name(name, "symbol") for name in custom_symbol_names}
    entries: List[SymbolEntry] = []
    seen: Set[str] = set()
    for symbol in find_all(lib_symbols, "symbol"):
        library_id = symbol[1] if len(symbol) > 1 and isinstance(symbol[1], str) else None
        symbol_name = sanitize_library_item_name(library_id, "symbol")
        if symbol_name in seen:
            continue
        seen.add(symbol_name)
        symbol_data = copy.deepcopy(symbol)
        symbol_data[1] = symbol_name
        entries.append(SymbolEntry(
            symbol_name=symbol_name,
            symbol_data=symbol_data,
            is_builtin=symbol_name not in custom,
        ))
    return entries
