"""
Tests for component naming, layer mapping and stable identifiers.
"""

import re

from circuit_kicad.converter_core.identifiers import deterministic_uuid
from circuit_kicad.converter_core.layers import (
    copper_layer,
    copper_layer_id,
    copper_layer_names,
    smd_pad_layers,
)
from circuit_kicad.converter_core.naming import (
    extract_reference_prefix,
    get_kicad_compatible_component_name,
    get_reference_prefix_for_component,
    is_reference_designator,
    sanitize_library_item_name,
    sanitize_name,
)
from circuit_kicad.schematic.library_symbols import get_library_id

UUID_PATTERN = re.compile(r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$')


def test_manufacturer_part_number_wins():
    source = {"ftype": "simple_chip", "manufacturer_part_number": "NA555"}
    assert get_kicad_compatible_component_name(source, {"footprinter_string": "soic8"}) == "NA555"


def test_type_and_footprinter():
    source = {"ftype": "simple_resistor", "name": "R1"}
    assert get_kicad_compatible_component_name(source, {"footprinter_string": "0402"}) == "resistor_0402"


def test_type_only():
    assert get_kicad_compatible_component_name({"ftype": "simple_chip", "name": "U1"}) == "chip"
    assert get_kicad_compatible_component_name({}) == "component"


def test_sanitize_name_collapses_separators():
    assert sanitize_name("a/b:c  d") == "a_b_c_d"
    assert sanitize_name("__x__") == "x"
    assert sanitize_name("") == "component"


def test_reference_designators():
    assert is_reference_designator("R1")
    assert is_reference_designator("SW12")
    assert not is_reference_designator("Resistor")
    assert not is_reference_designator("")
    assert extract_reference_prefix("sw3") == "SW"
    assert extract_reference_prefix(None) == "U"


def test_reference_prefix_prefers_type():
    assert get_reference_prefix_for_component({"ftype": "simple_capacitor", "name": "X9"}) == "C"
    assert get_reference_prefix_for_component({"ftype": "unknown", "name": "LED3"}) == "LED"


def test_library_item_name_strips_nickname():
    assert sanitize_library_item_name("tscircuit:resistor_0402", "x") == "resistor_0402"
    assert sanitize_library_item_name("Device:a/b", "x") == "a-b"
    assert sanitize_library_item_name(None, "fallback") == "fallback"


def test_library_ids():
    resistor = {"type": "source_component", "ftype": "simple_resistor", "name": "R1"}
    cad = {"footprinter_string": "0402"}
    assert get_library_id(resistor, {}, cad) == "Device:R_resistor_0402"

    named = {"type": "source_component", "ftype": "simple_chip", "name": "Regulator"}
    assert get_library_id(named, {}) == "Device:chip"

    assert get_library_id(resistor, {"symbol_name": "boxresistor_right"}, cad) == "Custom:boxresistor_right"


def test_layer_mapping():
    assert copper_layer("top") == "F.Cu"
    assert copper_layer("bottom") == "B.Cu"
    assert copper_layer("inner2") == "In2.Cu"
    assert copper_layer(None) == "F.Cu"
    assert smd_pad_layers("bottom") == ["B.Cu", "B.Paste", "B.Mask"]


def test_copper_layer_ids_and_stack():
    assert copper_layer_id("F.Cu") == 0
    assert copper_layer_id("B.Cu") == 2
    assert copper_layer_id("In1.Cu") == 4
    assert copper_layer_names(2) == ["F.Cu", "B.Cu"]
    assert copper_layer_names(4) == ["F.Cu", "In1.Cu", "In2.Cu", "B.Cu"]


def test_deterministic_uuid():
    first = deterministic_uuid("resistor_0402-pad-1")
    assert first == deterministic_uuid("resistor_0402-pad-1")
    assert first != deterministic_uuid("resistor_0402-pad-2")
    assert UUID_PATTERN.match(first)
