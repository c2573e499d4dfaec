"""
Board conversion stages.

Each stage adds one kind of board content to the ``kicad_pcb`` element
tree held by the shared ConverterContext:

1. InitializePcbStage: header, general, paper, layer table, setup
2. AddNetsStage: numbered nets (net 0 first)
3. AddFootprintsStage: one footprint per pcb_component per step
4. AddTracesStage: one pcb_trace per step, a segment per route pair
5. AddViasStage: one pcb_via per step
6. AddGraphicsStage: silkscreen paths and the Edge.Cuts board outline
"""

import logging
import re
from typing import Any, Dict, List, Optional

from .. import config
from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.errors import PreconditionError
from ..converter_core.identifiers import deterministic_uuid, format_coord
from ..converter_core.interfaces import QueueStage, SingleStepStage
from ..converter_core.layers import (
    TECHNICAL_LAYERS,
    copper_layer,
    copper_layer_id,
    copper_layer_names,
    silkscreen_layer,
    via_layers,
)
from ..converter_core.naming import get_kicad_compatible_component_name
from ..converter_core.nets import NetResolver
from ..converter_core.pipeline import ConverterContext
from ..converter_core.transform import apply_to_point
from ..utils.kicad_elements import at, footprint_property, node, uuid_node
from ..utils.sexpr import Symbol
from . import footprint_items
from .metadata import apply_footprint_metadata
from .pads import convert_component_pads, local_transform

logger = logging.getLogger(__name__)

RESOLVER_CACHE_KEY = "net_resolver"

_INNER = re.compile(r'^inner(\d+)$')


def count_copper_layers(index: CircuitIndex) -> int:
    """
    Number of copper layers the board needs.

    Starts from the board's ``num_layers`` and grows it to an even count
    when traces or vias reference deeper inner layers.
    """
    board = index.first("pcb_board") or {}
    count = int(board.get("num_layers") or 2)

    deepest = 0
    layers: List[Any] = []
    for trace in index.list("pcb_trace"):
        for point in trace.get("route") or []:
            layers.extend(point.get(key) for key in ("layer", "from_layer", "to_layer"))
    for via in index.list("pcb_via"):
        layers.extend(via.get("layers") or [])

    for layer in layers:
        match = _INNER.match(layer) if isinstance(layer, str) else None
        if match:
            deepest = max(deepest, int(match.group(1)))

    if deepest:
        needed = deepest + 2
        count = max(count, needed + (needed % 2))
    return max(count, 2)


def _center(element: Dict[str, Any]) -> tuple:
    value = element.get("center") or {}
    return float(value.get("x", 0)), float(value.get("y", 0))


def _resolver(ctx: ConverterContext) -> NetResolver:
    resolver = ctx.caches.get(RESOLVER_CACHE_KEY)
    if resolver is None:
        raise PreconditionError("Net resolver not initialized; run the nets stage first")
    return resolver


class InitializePcbStage(SingleStepStage):
    """Creates the ``kicad_pcb`` root with header, layer table and setup."""

    name = "initialize_pcb"

    def run(self, ctx: ConverterContext) -> None:
        layers = node("layers")
        for copper in copper_layer_names(ctx.num_layers):
            layers.append([copper_layer_id(copper), copper, Symbol("signal")])
        for layer_id, layer_name, layer_type in TECHNICAL_LAYERS:
            layers.append([layer_id, layer_name, Symbol(layer_type)])

        ctx.output = node(
            "kicad_pcb",
            node("version", config.PCB_FILE_VERSION),
            node("generator", config.GENERATOR),
            node("generator_version", config.GENERATOR_VERSION),
            node("general", node("thickness", config.BOARD_THICKNESS)),
            node("paper", "A4"),
            layers,
            node("setup", node("pad_to_mask_clearance", 0)),
        )


class AddNetsStage(SingleStepStage):
    """Resolves connectivity keys and writes the numbered net list."""

    name = "add_nets"

    def run(self, ctx: ConverterContext) -> None:
        output = ctx.require_output()
        resolver = NetResolver(ctx.index)
        ctx.net_map = resolver.build()
        ctx.caches[RESOLVER_CACHE_KEY] = resolver

        for net in resolver.nets():
            output.append(node("net", net.id, net.name))
        logger.debug("Board has %d net(s)", len(ctx.net_map))


class AddFootprintsStage(QueueStage):
    """Converts one pcb_component into a ``footprint`` per step."""

    name = "add_footprints"

    def items(self, ctx: ConverterContext) -> list:
        return ctx.index.list("pcb_component")

    def process(self, ctx: ConverterContext, component: Dict[str, Any]) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()
        resolver = _resolver(ctx)
        index = ctx.index

        component_id = component.get("pcb_component_id")
        source_component = index.get("source_component", component.get("source_component_id"))
        cad_component = index.first("cad_component", pcb_component_id=component_id)

        if source_component:
            footprint_name = get_kicad_compatible_component_name(source_component, cad_component)
        else:
            footprint_name = "Unknown"
        component_name = (source_component or {}).get("name")

        center = _center(component)
        rotation = float(component.get("rotation") or 0)
        x, y = apply_to_point(matrix, center)

        footprint = node(
            "footprint", f"{config.DEFAULT_FOOTPRINT_LIBRARY}:{footprint_name}",
            node("layer", "F.Cu"),
            uuid_node(deterministic_uuid(
                f"footprint:{component_id}:{format_coord(x)},{format_coord(y)}"
            )),
            at(x, y, rotation),
            footprint_property(
                "Reference", component_name or "REF**", (0, -3, 0), "F.SilkS",
                deterministic_uuid(f"{component_id}-property-Reference"),
            ),
            footprint_property(
                "Value", footprint_name, (0, 3, 0), "F.Fab",
                deterministic_uuid(f"{component_id}-property-Value"),
            ),
        )

        local = local_transform(center, rotation)
        footprint.extend(self._texts(index, component_id, local, component_name))
        footprint.extend(self._graphics(index, component_id, local))

        smd_pads = index.filter("pcb_smtpad", pcb_component_id=component_id)
        plated_holes = index.filter("pcb_plated_hole", pcb_component_id=component_id)
        holes = []
        if component.get("subcircuit_id") is not None:
            holes = index.filter("pcb_hole", subcircuit_id=component["subcircuit_id"])
        footprint.extend(convert_component_pads(
            component, smd_pads, plated_holes, holes, resolver.net_for_pcb_port,
        ))

        if cad_component:
            model = footprint_items.create_model(cad_component, center)
            if model is not None:
                footprint.append(model)

        metadata = (component.get("metadata") or {}).get("kicad_footprint")
        if isinstance(metadata, dict):
            apply_footprint_metadata(footprint, metadata, component_name or footprint_name)

        output.append(footprint)

    @staticmethod
    def _texts(index: CircuitIndex, component_id: str, matrix, component_name: Optional[str]) -> list:
        texts = []
        for text in index.filter("pcb_silkscreen_text", pcb_component_id=component_id):
            texts.append(footprint_items.convert_silkscreen_text(text, matrix, component_name))
        for text in index.filter("pcb_note_text", pcb_component_id=component_id):
            texts.append(footprint_items.convert_note_text(text, matrix))
        for text in index.filter("pcb_fabrication_note_text", pcb_component_id=component_id):
            texts.append(footprint_items.convert_fabrication_note_text(text, matrix))
        return [t for t in texts if t is not None]

    @staticmethod
    def _graphics(index: CircuitIndex, component_id: str, matrix) -> list:
        converters = [
            ("pcb_silkscreen_circle", footprint_items.convert_silkscreen_circle),
            ("pcb_courtyard_circle", footprint_items.convert_courtyard_circle),
            ("pcb_fabrication_note_rect", footprint_items.convert_fabrication_note_rect),
            ("pcb_note_rect", footprint_items.convert_note_rect),
            ("pcb_courtyard_rect", footprint_items.convert_courtyard_rect),
            ("pcb_courtyard_outline", footprint_items.convert_courtyard_outline),
        ]
        graphics = []
        for kind, convert in converters:
            for element in index.filter(kind, pcb_component_id=component_id):
                item = convert(element, matrix)
                if item is not None:
                    graphics.append(item)
        return graphics


def _segment_layer(point: Dict[str, Any]) -> str:
    if point.get("route_type") == "via":
        return copper_layer(point.get("to_layer") or point.get("layer") or "top")
    return copper_layer(point.get("layer") or point.get("to_layer") or "top")


class AddTracesStage(QueueStage):
    """Converts one pcb_trace per step into ``segment`` nodes."""

    name = "add_traces"

    def items(self, ctx: ConverterContext) -> list:
        return ctx.index.list("pcb_trace")

    def process(self, ctx: ConverterContext, trace: Dict[str, Any]) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()
        route = trace.get("route") or []
        if len(route) < 2:
            logger.debug("Skipping trace %s with fewer than two route points", trace.get("pcb_trace_id"))
            return

        net = _resolver(ctx).net_for_pcb_trace(trace)
        width = float(trace.get("width") or config.DEFAULT_TRACE_WIDTH)
        trace_id = trace.get("pcb_trace_id", "trace")

        for i, (start, end) in enumerate(zip(route, route[1:])):
            sx, sy = apply_to_point(matrix, (float(start.get("x", 0)), float(start.get("y", 0))))
            ex, ey = apply_to_point(matrix, (float(end.get("x", 0)), float(end.get("y", 0))))
            output.append(node(
                "segment",
                node("start", sx, sy),
                node("end", ex, ey),
                node("width", width),
                node("layer", _segment_layer(start)),
                node("net", net.id),
                uuid_node(deterministic_uuid(f"segment:{trace_id}:{i}")),
            ))


class AddViasStage(QueueStage):
    """Converts one pcb_via per step into a through ``via``."""

    name = "add_vias"

    def items(self, ctx: ConverterContext) -> list:
        return ctx.index.list("pcb_via")

    def process(self, ctx: ConverterContext, via: Dict[str, Any]) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()
        if via.get("x") is None or via.get("y") is None:
            logger.debug("Skipping via without position: %s", via.get("pcb_via_id"))
            return

        x, y = apply_to_point(matrix, (float(via["x"]), float(via["y"])))
        net = _resolver(ctx).net_for_via(via)
        size = float(via.get("outer_diameter") or config.DEFAULT_VIA_SIZE)
        drill = float(via.get("hole_diameter") or config.DEFAULT_VIA_DRILL)

        if via.get("layers"):
            layers = [copper_layer(layer) for layer in via["layers"]]
        else:
            layers = via_layers(ctx.num_layers)

        seed = f"via:{format_coord(x)},{format_coord(y)}:{format_coord(size)}:{format_coord(drill)}:{net.id}"
        output.append(node(
            "via",
            at(x, y),
            node("size", size),
            node("drill", drill),
            node("layers", *layers),
            node("net", net.id),
            uuid_node(deterministic_uuid(seed)),
        ))


class AddGraphicsStage(SingleStepStage):
    """Adds silkscreen paths and the rectangular board outline."""

    name = "add_graphics"

    def run(self, ctx: ConverterContext) -> None:
        output = ctx.require_output()
        matrix = ctx.require_transform()

        for path in ctx.index.list("pcb_silkscreen_path"):
            route = path.get("route") or []
            width = float(path.get("stroke_width") or config.SILKSCREEN_LINE_WIDTH)
            layer = silkscreen_layer(path.get("layer"))
            for start, end in zip(route, route[1:]):
                if not start or not end:
                    continue
                output.append(self._line(
                    apply_to_point(matrix, (float(start.get("x", 0)), float(start.get("y", 0)))),
                    apply_to_point(matrix, (float(end.get("x", 0)), float(end.get("y", 0)))),
                    layer, width,
                ))

        board = ctx.index.first("pcb_board")
        if not board or board.get("width") is None or board.get("height") is None:
            return

        cx, cy = _center(board)
        half_w = float(board["width"]) / 2
        half_h = float(board["height"]) / 2
        corners = [
            apply_to_point(matrix, point) for point in (
                (cx - half_w, cy - half_h),
                (cx + half_w, cy - half_h),
                (cx + half_w, cy + half_h),
                (cx - half_w, cy + half_h),
            )
        ]
        for i, start in enumerate(corners):
            end = corners[(i + 1) % len(corners)]
            output.append(self._line(start, end, "Edge.Cuts", config.EDGE_CUTS_LINE_WIDTH))

    @staticmethod
    def _line(start: tuple, end: tuple, layer: str, width: float) -> List[Any]:
        return node(
            "gr_line",
            node("start", *start),
            node("end", *end),
            node("layer", layer),
            node("width", width),
        )
