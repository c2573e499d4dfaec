"""
Shared Circuit JSON fixtures.

The circuits are small but realistic: element ids, foreign keys and
coordinates follow what a Circuit JSON renderer emits.
"""

import pytest


def _smtpad(pad_id, component_id, port_id, x, y, width=0.6, height=0.5, layer="top"):
    return {
        "type": "pcb_smtpad",
        "pcb_smtpad_id": pad_id,
        "pcb_component_id": component_id,
        "pcb_port_id": port_id,
        "shape": "rect",
        "x": x,
        "y": y,
        "width": width,
        "height": height,
        "layer": layer,
    }


def _port(component, pin_number, key=None):
    source_port = {
        "type": "source_port",
        "source_port_id": f"source_port_{component}_{pin_number}",
        "source_component_id": f"source_component_{component}",
        "name": f"pin{pin_number}",
        "pin_number": pin_number,
    }
    if key:
        source_port["subcircuit_connectivity_map_key"] = key
    pcb_port = {
        "type": "pcb_port",
        "pcb_port_id": f"pcb_port_{component}_{pin_number}",
        "source_port_id": source_port["source_port_id"],
        "pcb_component_id": f"pcb_component_{component}",
    }
    return [source_port, pcb_port]


def _schematic_port(component, pin_number, x, y, label=None):
    port = {
        "type": "schematic_port",
        "schematic_port_id": f"schematic_port_{component}_{pin_number}",
        "schematic_component_id": f"schematic_component_{component}",
        "source_port_id": f"source_port_{component}_{pin_number}",
        "center": {"x": x, "y": y},
        "pin_number": pin_number,
    }
    if label:
        port["display_pin_label"] = label
    return port


def build_resistor_and_chip():
    """
    R1: standard 0402 resistor. U1: chip with a hand-drawn 4-pad footprint.

    R1 pin 1 and U1 pin 1 share the VCC net through a routed trace.
    """
    elements = [
        {
            "type": "source_component",
            "source_component_id": "source_component_r1",
            "name": "R1",
            "ftype": "simple_resistor",
            "resistance": 1000,
            "display_resistance": "1kΩ",
        },
        {
            "type": "source_component",
            "source_component_id": "source_component_u1",
            "name": "U1",
            "ftype": "simple_chip",
        },
        {
            "type": "source_net",
            "source_net_id": "source_net_vcc",
            "name": "VCC",
            "is_power": True,
            "subcircuit_connectivity_map_key": "net_vcc",
        },
        {
            "type": "source_trace",
            "source_trace_id": "source_trace_0",
            "connected_source_port_ids": ["source_port_r1_1", "source_port_u1_1"],
            "connected_source_net_ids": ["source_net_vcc"],
            "subcircuit_connectivity_map_key": "net_vcc",
        },
    ]
    elements += _port("r1", 1, key="net_vcc")
    elements += _port("r1", 2)
    for pin in range(1, 5):
        elements += _port("u1", pin, key="net_vcc" if pin == 1 else None)

    elements += [
        {
            "type": "pcb_board",
            "pcb_board_id": "pcb_board_0",
            "center": {"x": 0, "y": 0},
            "width": 20,
            "height": 10,
            "num_layers": 2,
        },
        {
            "type": "pcb_component",
            "pcb_component_id": "pcb_component_r1",
            "source_component_id": "source_component_r1",
            "center": {"x": -3, "y": 0},
            "rotation": 0,
            "layer": "top",
            "width": 1.6,
            "height": 0.6,
        },
        {
            "type": "pcb_component",
            "pcb_component_id": "pcb_component_u1",
            "source_component_id": "source_component_u1",
            "center": {"x": 3, "y": 0},
            "rotation": 0,
            "layer": "top",
            "width": 2,
            "height": 2,
        },
        {
            "type": "cad_component",
            "cad_component_id": "cad_component_r1",
            "pcb_component_id": "pcb_component_r1",
            "source_component_id": "source_component_r1",
            "footprinter_string": "0402",
        },
        _smtpad("pcb_smtpad_r1_1", "pcb_component_r1", "pcb_port_r1_1", -3.5, 0),
        _smtpad("pcb_smtpad_r1_2", "pcb_component_r1", "pcb_port_r1_2", -2.5, 0),
        _smtpad("pcb_smtpad_u1_1", "pcb_component_u1", "pcb_port_u1_1", 2.5, 0.5),
        _smtpad("pcb_smtpad_u1_2", "pcb_component_u1", "pcb_port_u1_2", 2.5, -0.5),
        _smtpad("pcb_smtpad_u1_3", "pcb_component_u1", "pcb_port_u1_3", 3.5, -0.5),
        _smtpad("pcb_smtpad_u1_4", "pcb_component_u1", "pcb_port_u1_4", 3.5, 0.5),
        {
            "type": "pcb_trace",
            "pcb_trace_id": "pcb_trace_0",
            "source_trace_id": "source_trace_0",
            "route": [
                {"route_type": "wire", "x": -3.5, "y": 0, "width": 0.15, "layer": "top",
                 "start_pcb_port_id": "pcb_port_r1_1"},
                {"route_type": "wire", "x": 2.5, "y": 0.5, "width": 0.15, "layer": "top",
                 "end_pcb_port_id": "pcb_port_u1_1"},
            ],
        },
        {
            "type": "pcb_silkscreen_text",
            "pcb_silkscreen_text_id": "pcb_silkscreen_text_r1",
            "pcb_component_id": "pcb_component_r1",
            "text": "R1",
            "anchor_position": {"x": -3, "y": 1},
            "font_size": 0.6,
            "layer": "top",
        },
    ]

    elements += [
        {
            "type": "schematic_component",
            "schematic_component_id": "schematic_component_r1",
            "source_component_id": "source_component_r1",
            "center": {"x": -2, "y": 0},
            "size": {"width": 1, "height": 0.4},
        },
        {
            "type": "schematic_component",
            "schematic_component_id": "schematic_component_u1",
            "source_component_id": "source_component_u1",
            "center": {"x": 2, "y": 0},
            "size": {"width": 1.5, "height": 1},
        },
        _schematic_port("r1", 1, -2.5, 0),
        _schematic_port("r1", 2, -1.5, 0),
        _schematic_port("u1", 1, 1.25, 0.25, "VCC"),
        _schematic_port("u1", 2, 1.25, -0.25, "GND"),
        _schematic_port("u1", 3, 2.75, -0.25, "OUT"),
        _schematic_port("u1", 4, 2.75, 0.25, "EN"),
        {
            "type": "schematic_trace",
            "schematic_trace_id": "schematic_trace_0",
            "source_trace_id": "source_trace_0",
            "edges": [
                {"from": {"x": -1.5, "y": 0}, "to": {"x": 0, "y": 0}},
                {"from": {"x": 0, "y": 0}, "to": {"x": 1.25, "y": 0.25}},
            ],
            "junctions": [{"x": 0, "y": 0}],
        },
        {
            "type": "schematic_net_label",
            "schematic_net_label_id": "schematic_net_label_vcc",
            "source_net_id": "source_net_vcc",
            "text": "VCC",
            "anchor_position": {"x": 0, "y": 0.5},
            "symbol_name": "vcc_up",
        },
    ]
    return elements


def build_via_crossing():
    """
    A four-point route that drops from top to inner1 to bottom through two vias.
    """
    return [
        {
            "type": "source_net",
            "source_net_id": "source_net_sig",
            "name": "SIG",
            "subcircuit_connectivity_map_key": "net_sig",
        },
        {
            "type": "pcb_board",
            "pcb_board_id": "pcb_board_0",
            "center": {"x": 0, "y": 0},
            "width": 10,
            "height": 10,
            "num_layers": 2,
        },
        {
            "type": "pcb_trace",
            "pcb_trace_id": "pcb_trace_sig",
            "subcircuit_connectivity_map_key": "net_sig",
            "route": [
                {"route_type": "wire", "x": 0, "y": 0, "width": 0.2, "layer": "top"},
                {"route_type": "via", "x": 1, "y": 0, "from_layer": "top", "to_layer": "inner1"},
                {"route_type": "via", "x": 2, "y": 0, "from_layer": "inner1", "to_layer": "bottom"},
                {"route_type": "wire", "x": 3, "y": 0, "width": 0.2, "layer": "bottom"},
            ],
        },
        {
            "type": "pcb_via",
            "pcb_via_id": "pcb_via_0",
            "pcb_trace_id": "pcb_trace_sig",
            "x": 1,
            "y": 0,
            "outer_diameter": 0.6,
            "hole_diameter": 0.3,
        },
        {
            "type": "pcb_via",
            "pcb_via_id": "pcb_via_1",
            "pcb_trace_id": "pcb_trace_sig",
            "x": 2,
            "y": 0,
            "outer_diameter": 0.6,
            "hole_diameter": 0.3,
        },
    ]


def build_keyless_trace():
    """Two resistors joined by a source trace that carries no connectivity key."""
    elements = []
    for name, x in (("r1", -2), ("r2", 2)):
        elements.append({
            "type": "source_component",
            "source_component_id": f"source_component_{name}",
            "name": name.upper(),
            "ftype": "simple_resistor",
        })
        elements += _port(name, 1)
        elements += _port(name, 2)
        elements.append({
            "type": "pcb_component",
            "pcb_component_id": f"pcb_component_{name}",
            "source_component_id": f"source_component_{name}",
            "center": {"x": x, "y": 0},
            "rotation": 0,
        })
        elements.append(_smtpad(f"pcb_smtpad_{name}_1", f"pcb_component_{name}",
                                f"pcb_port_{name}_1", x - 0.5, 0))
        elements.append(_smtpad(f"pcb_smtpad_{name}_2", f"pcb_component_{name}",
                                f"pcb_port_{name}_2", x + 0.5, 0))
    elements.append({
        "type": "source_trace",
        "source_trace_id": "source_trace_link",
        "connected_source_port_ids": ["source_port_r1_2", "source_port_r2_1"],
        "connected_source_net_ids": [],
    })
    return elements


def build_custom_symbol_circuit():
    """
    Two switches drawn with separate schematic_symbol elements that share a name.
    """
    elements = []
    for name, x in (("sw1", -2), ("sw2", 2)):
        elements += [
            {
                "type": "source_component",
                "source_component_id": f"source_component_{name}",
                "name": name.upper(),
                "ftype": "simple_switch",
            },
            {
                "type": "schematic_symbol",
                "schematic_symbol_id": f"schematic_symbol_{name}",
                "name": "tactile_switch",
                "center": {"x": x, "y": 0},
                "size": {"width": 1, "height": 0.6},
            },
            {
                "type": "schematic_component",
                "schematic_component_id": f"schematic_component_{name}",
                "source_component_id": f"source_component_{name}",
                "schematic_symbol_id": f"schematic_symbol_{name}",
                "center": {"x": x, "y": 0},
                "size": {"width": 1, "height": 0.6},
            },
            {
                "type": "schematic_line",
                "schematic_line_id": f"schematic_line_{name}",
                "schematic_symbol_id": f"schematic_symbol_{name}",
                "x1": x - 0.3, "y1": 0, "x2": x + 0.3, "y2": 0.2,
            },
            {
                "type": "schematic_port",
                "schematic_port_id": f"schematic_port_{name}_1",
                "schematic_component_id": f"schematic_component_{name}",
                "schematic_symbol_id": f"schematic_symbol_{name}",
                "center": {"x": x - 0.5, "y": 0},
                "pin_number": 1,
            },
            {
                "type": "schematic_port",
                "schematic_port_id": f"schematic_port_{name}_2",
                "schematic_component_id": f"schematic_component_{name}",
                "schematic_symbol_id": f"schematic_symbol_{name}",
                "center": {"x": x + 0.5, "y": 0},
                "pin_number": 2,
            },
        ]
    return elements


@pytest.fixture
def resistor_and_chip():
    return build_resistor_and_chip()


@pytest.fixture
def via_crossing():
    return build_via_crossing()


@pytest.fixture
def keyless_trace():
    return build_keyless_trace()


@pytest.fixture
def custom_symbol_circuit():
    return build_custom_symbol_circuit()


def component_subset(elements, component):
    """Elements that belong to one component, e.g. "r1" keeps source_port_r1_1."""
    suffix = f"_{component}"
    infix = f"_{component}_"

    def belongs(element):
        return any(
            isinstance(value, str) and (value.endswith(suffix) or infix in value)
            for key, value in element.items()
            if key.endswith("_id")
        )

    return [element for element in elements if belongs(element)]


@pytest.fixture
def resistor_circuit():
    return component_subset(build_resistor_and_chip(), "r1")


@pytest.fixture
def chip_circuit():
    return component_subset(build_resistor_and_chip(), "u1")
