"""
Schematic conversion stages.

Each stage adds one kind of sheet content to the ``kicad_sch`` element
tree held by the shared ConverterContext:

1. InitializeSchematicStage: header, uuid, paper
2. AddLibrarySymbolsStage: one ``lib_symbols`` definition per library id
3. AddSymbolInstancesStage: one placed symbol per schematic_component per step
4. AddSchematicTracesStage: wires and junctions, one schematic_trace per step
5. AddNetLabelsStage: text labels and power/ground symbols
6. AddSheetInstancesStage: sheet instances and the embedded fonts flag
"""

import logging
from typing import Any, Dict, List, Optional

from .. import config
from ..converter_core.errors import PreconditionError
from ..converter_core.identifiers import deterministic_uuid
from ..converter_core.interfaces import QueueStage, SingleStepStage
from ..converter_core.naming import (
    get_kicad_compatible_component_name,
    get_reference_prefix_for_component,
)
from ..converter_core.pipeline import ConverterContext
from ..converter_core.transform import apply_to_point
from ..utils.kicad_elements import at, effects, node, pts, stroke, symbol_property, uuid_node
from ..utils.sexpr import yes_no
from . import library_symbols as symbols

logger = logging.getLogger(__name__)

SYMBOL_IDS_CACHE_KEY = "symbol_library_ids"
LIB_PINS_CACHE_KEY = "library_pin_numbers"
SHEET_UUID_CACHE_KEY = "sheet_uuid"

# Reference above the body, value below it (sheet millimetres)
FIELD_OFFSET = 6


def _center(element: Dict[str, Any], key: str = "center") -> tuple:
    value = element.get(key) or {}
    return float(value.get("x", 0)), float(value.get("y", 0))


def _sheet_uuid(ctx: ConverterContext) -> str:
    sheet_uuid = ctx.caches.get(SHEET_UUID_CACHE_KEY)
    if sheet_uuid is None:
        raise PreconditionError("Sheet not initialized; run the initialize stage first")
    return sheet_uuid


def _power_net(ctx: ConverterContext, label: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """The label's source_net when the label should be drawn as a power symbol."""
    if not label.get("symbol_name"):
        return None
    source_net = ctx.index.get("source_net", label.get("source_net_id"))
    if source_net and (source_net.get("is_power") or source_net.get("is_ground")):
        return source_net
    return None


def component_value(source_component: Dict[str, Any]) -> str:
    """Value field text: the display value for passives, else the name."""
    ftype = source_component.get("ftype")
    if ftype == "simple_resistor" and source_component.get("display_resistance"):
        return str(source_component["display_resistance"])
    if ftype == "simple_capacitor" and source_component.get("display_capacitance"):
        return str(source_component["display_capacitance"])
    if ftype == "simple_inductor" and source_component.get("display_inductance"):
        return str(source_component["display_inductance"])
    if ftype in ("simple_diode", "simple_led"):
        return "D"
    return str(source_component.get("name") or "")


class InitializeSchematicStage(SingleStepStage):
    """Creates the ``kicad_sch`` root with header, sheet uuid and paper."""

    name = "initialize_schematic"

    def run(self, ctx: ConverterContext) -> None:
        paper_name = ctx.paper[0] if ctx.paper else "A4"
        names = [c.get("name") or "" for c in ctx.index.list("source_component")]
        sheet_uuid = deterministic_uuid(f"schematic:{paper_name}:{','.join(names)}")
        ctx.caches[SHEET_UUID_CACHE_KEY] = sheet_uuid

        ctx.output = node(
            "kicad_sch",
            node("version", config.SCH_FILE_VERSION),
            node("generator", config.GENERATOR),
            node("generator_version", config.GENERATOR_VERSION),
            uuid_node(sheet_uuid),
            node("paper", paper_name),
        )


class AddLibrarySymbolsStage(SingleStepStage):
    """
    Builds ``lib_symbols``: one definition per distinct library id.

    Records each schematic_component's library id and every library
    symbol's pin numbers in the context caches for the instance stages.
    """

    name = "add_library_symbols"

    def run(self, ctx: ConverterContext) -> None:
        output = ctx.require_output()
        index = ctx.index
        lib_symbols = node("lib_symbols")
        symbol_ids: Dict[str, str] = {}
        lib_pins: Dict[str, List[str]] = {}

        for schematic_component in index.list("schematic_component"):
            source_component = index.get("source_component", schematic_component.get("source_component_id"))
            if not source_component:
                logger.debug("Skipping schematic component without source: %s",
                             schematic_component.get("schematic_component_id"))
                continue

            library_id, symbol = self._build_symbol(ctx, schematic_component, source_component)
            symbol_ids[schematic_component.get("schematic_component_id")] = library_id
            if library_id in lib_pins:
                continue
            lib_pins[library_id] = symbols.pin_numbers_of(symbol)
            lib_symbols.append(symbol)

        for label in index.list("schematic_net_label"):
            source_net = _power_net(ctx, label)
            if source_net is None:
                continue
            library_id = f"Custom:{label['symbol_name']}"
            if library_id in lib_pins:
                continue
            is_ground = bool(source_net.get("is_ground"))
            symbol = symbols.create_library_symbol(
                library_id,
                symbols.build_power_symbol_data(is_ground),
                chip=False,
                description="Ground net label" if is_ground else "Power net label",
                keywords="ground net" if is_ground else "power net",
                fp_filters="",
                reference_prefix="#PWR",
                power=True,
            )
            lib_pins[library_id] = symbols.pin_numbers_of(symbol)
            lib_symbols.append(symbol)

        ctx.caches[SYMBOL_IDS_CACHE_KEY] = symbol_ids
        ctx.caches[LIB_PINS_CACHE_KEY] = lib_pins
        output.append(lib_symbols)
        logger.debug("Sheet defines %d library symbol(s)", len(lib_pins))

    @staticmethod
    def _build_symbol(ctx: ConverterContext, schematic_component: Dict[str, Any],
                      source_component: Dict[str, Any]) -> tuple:
        index = ctx.index
        cad_component = index.first("cad_component",
                                    source_component_id=source_component.get("source_component_id"))
        footprint_name = get_kicad_compatible_component_name(source_component, cad_component)
        footprint_ref = f"{config.DEFAULT_FOOTPRINT_LIBRARY}:{footprint_name}"
        prefix = get_reference_prefix_for_component(source_component)
        description = symbols.get_description(source_component)
        keywords = symbols.get_keywords(source_component)

        symbol_id = symbols.find_schematic_symbol_id(index, schematic_component)
        schematic_symbol = index.get("schematic_symbol", symbol_id) if symbol_id else None
        if schematic_symbol:
            symbol_name = symbols.custom_symbol_name(index, schematic_symbol, source_component)
            library_id = f"Custom:{symbol_name}"
            data = symbols.build_custom_symbol_data(
                index, schematic_symbol, schematic_component.get("schematic_component_id"),
            )
            symbol = symbols.create_library_symbol(
                library_id, data, chip=False,
                description=description, keywords=keywords,
                fp_filters=symbols.get_fp_filters(source_component, schematic_symbol.get("name")),
                footprint_ref=footprint_ref, reference_prefix=prefix,
            )
            return library_id, symbol

        library_id = symbols.get_library_id(source_component, schematic_component, cad_component)
        chip = symbols.is_chip(source_component)
        if chip:
            data = symbols.build_generic_chip_data(index, schematic_component)
        else:
            data = symbols.build_generic_body_data(index, schematic_component)
        symbol = symbols.create_library_symbol(
            library_id, data, chip=chip,
            description=description, keywords=keywords,
            fp_filters=symbols.get_fp_filters(source_component),
            footprint_ref=footprint_ref, reference_prefix=prefix,
        )
        return library_id, symbol


def _instances(sheet_uuid: str, reference: str) -> List[Any]:
    return node(
        "instances",
        node("project", "", node("path", f"/{sheet_uuid}", node("reference", reference), node("unit", 1))),
    )


def _placed_symbol(library_id: str, x: float, y: float, seed: str) -> List[Any]:
    return node(
        "symbol",
        node("lib_id", library_id),
        at(x, y, 0),
        node("unit", 1),
        node("exclude_from_sim", yes_no(False)),
        node("in_bom", yes_no(True)),
        node("on_board", yes_no(True)),
        node("dnp", yes_no(False)),
        node("fields_autoplaced", yes_no(True)),
        uuid_node(deterministic_uuid(seed)),
    )


def _pins(ctx: ConverterContext, library_id: str, seed: str) -> List[List[Any]]:
    numbers = ctx.caches.get(LIB_PINS_CACHE_KEY, {}).get(library_id, [])
    return [node("pin", number, uuid_node(deterministic_uuid(f"{seed}:pin:{number}"))) for number in numbers]


class AddSymbolInstancesStage(QueueStage):
    """Places one library symbol per schematic_component per step."""

    name = "add_symbol_instances"

    def items(self, ctx: ConverterContext) -> list:
        if LIB_PINS_CACHE_KEY not in ctx.caches:
            raise PreconditionError("Library symbols not built; run the library symbols stage first")
        return ctx.index.list("schematic_component")

    def process(self, ctx: ConverterContext, schematic_component: Dict[str, Any]) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()
        sheet_uuid = _sheet_uuid(ctx)
        index = ctx.index

        component_id = schematic_component.get("schematic_component_id")
        library_id = ctx.caches[SYMBOL_IDS_CACHE_KEY].get(component_id)
        source_component = index.get("source_component", schematic_component.get("source_component_id"))
        if library_id is None or not source_component:
            return

        cad_component = index.first("cad_component",
                                    source_component_id=source_component.get("source_component_id"))
        footprint_name = get_kicad_compatible_component_name(source_component, cad_component)
        reference = str(source_component.get("name") or get_reference_prefix_for_component(source_component))
        x, y = apply_to_point(matrix, _center(schematic_component))

        seed = f"symbol:{component_id}"
        placed = _placed_symbol(library_id, x, y, seed)
        placed.extend([
            symbol_property("Reference", reference, (x, y - FIELD_OFFSET, 0)),
            symbol_property("Value", component_value(source_component), (x, y + FIELD_OFFSET, 0)),
            symbol_property("Footprint", f"{config.DEFAULT_FOOTPRINT_LIBRARY}:{footprint_name}",
                            (x, y, 0), hide=True),
            symbol_property("Datasheet", "~", (x, y, 0), hide=True),
            symbol_property("Description", symbols.get_description(source_component), (x, y, 0), hide=True),
        ])
        placed.extend(_pins(ctx, library_id, seed))
        placed.append(_instances(sheet_uuid, reference))
        output.append(placed)


class AddSchematicTracesStage(QueueStage):
    """Converts one schematic_trace per step into wires and junctions."""

    name = "add_schematic_traces"

    def items(self, ctx: ConverterContext) -> list:
        return ctx.index.list("schematic_trace")

    def process(self, ctx: ConverterContext, trace: Dict[str, Any]) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()
        trace_id = trace.get("schematic_trace_id", "trace")

        for i, edge in enumerate(trace.get("edges") or []):
            start = edge.get("from")
            end = edge.get("to")
            if not start or not end:
                continue
            points = [
                apply_to_point(matrix, (float(p.get("x", 0)), float(p.get("y", 0))))
                for p in (start, end)
            ]
            output.append(node(
                "wire",
                pts(points),
                stroke(0),
                uuid_node(deterministic_uuid(f"wire:{trace_id}:{i}")),
            ))

        for i, junction in enumerate(trace.get("junctions") or []):
            x, y = apply_to_point(matrix, (float(junction.get("x", 0)), float(junction.get("y", 0))))
            output.append(node(
                "junction",
                at(x, y),
                node("diameter", 0),
                uuid_node(deterministic_uuid(f"junction:{trace_id}:{i}")),
            ))


class AddNetLabelsStage(SingleStepStage):
    """
    Adds schematic_net_labels.

    Labels on power or ground nets that name a symbol become power symbol
    instances; every other label is a plain text ``label``.
    """

    name = "add_net_labels"

    def run(self, ctx: ConverterContext) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()

        for label in ctx.index.list("schematic_net_label"):
            source_net = ctx.index.get("source_net", label.get("source_net_id")) or {}
            text = label.get("text") or source_net.get("name") or ""
            if not text:
                continue
            position = label.get("anchor_position") or label.get("center") or {}
            x, y = apply_to_point(matrix, (float(position.get("x", 0)), float(position.get("y", 0))))
            seed = f"net_label:{label.get('schematic_net_label_id', text)}"

            if _power_net(ctx, label) is not None:
                output.append(self._power_symbol(ctx, label, text, x, y, seed))
            else:
                output.append(node(
                    "label", text,
                    at(x, y, 0),
                    effects(symbols.PROPERTY_FONT_SIZE),
                    uuid_node(deterministic_uuid(seed)),
                ))

    @staticmethod
    def _power_symbol(ctx: ConverterContext, label: Dict[str, Any], text: str,
                      x: float, y: float, seed: str) -> List[Any]:
        library_id = f"Custom:{label['symbol_name']}"
        placed = _placed_symbol(library_id, x, y, seed)
        placed.extend([
            symbol_property("Reference", text, (x, y, 0), hide=True),
            symbol_property("Value", text, (x, y - FIELD_OFFSET / 2, 0)),
            symbol_property("Footprint", "", (x, y, 0), hide=True),
            symbol_property("Datasheet", "", (x, y, 0), hide=True),
            symbol_property("Description", f"Power/Net symbol: {text}", (x, y, 0), hide=True),
        ])
        placed.extend(_pins(ctx, library_id, seed))
        placed.append(_instances(_sheet_uuid(ctx), text))
        return placed


class AddSheetInstancesStage(SingleStepStage):
    """Closes the sheet with its instance path and embedded fonts flag."""

    name = "add_sheet_instances"

    def run(self, ctx: ConverterContext) -> None:
        output = ctx.require_output()
        output.append(node("sheet_instances", node("path", "/", node("page", "1"))))
        output.append(node("embedded_fonts", yes_no(False)))
