"""
Tests for extracting library footprints and symbols from generated files.
"""

from circuit_kicad.library.extraction import (
    collect_builtin_tokens,
    extract_footprints,
    extract_symbols,
    matching_builtin_token,
    model_basename,
    sanitize_footprint,
)
from circuit_kicad.pcb import CircuitJsonToKicadPcbConverter
from circuit_kicad.schematic import CircuitJsonToKicadSchConverter
from circuit_kicad.utils.kicad_elements import at, node
from circuit_kicad.utils.sexpr import Symbol, dumps, find, find_all, loads, value_of


def _pcb_text(circuit_json):
    converter = CircuitJsonToKicadPcbConverter(circuit_json)
    converter.run_until_finished()
    return converter.get_output_string()


def _sch_text(circuit_json):
    converter = CircuitJsonToKicadSchConverter(circuit_json)
    converter.run_until_finished()
    return converter.get_output_string()


def _properties(tree):
    return {prop[1]: prop for prop in find_all(tree, "property")}


def test_builtin_tokens(resistor_and_chip):
    assert collect_builtin_tokens(resistor_and_chip) == ["0402"]
    assert matching_builtin_token("resistor_0402", ["0402"]) == "0402"
    assert matching_builtin_token("chip", ["0402"]) is None


def test_substring_match_is_loose():
    assert matching_builtin_token("my_0402_adapter", ["0402"]) == "0402"


def test_model_basename():
    assert model_basename("${KIPRJMOD}/3dmodels/a.step") == "a.step"
    assert model_basename("C:\\models\\b.wrl") == "b.wrl"


def test_extract_footprints(resistor_and_chip):
    entries = extract_footprints(_pcb_text(resistor_and_chip), "tscircuit", ["0402"])
    assert [(e.footprint_name, e.is_builtin) for e in entries] == [
        ("resistor_0402", True),
        ("chip", False),
    ]


def test_extracted_footprint_layout(resistor_and_chip):
    entry = extract_footprints(_pcb_text(resistor_and_chip), "tscircuit", ["0402"])[0]
    footprint = entry.mod_data

    assert footprint[1] == "resistor_0402"
    heads = [child[0] for child in footprint[2:10]]
    assert heads == ["version", "generator", "generator_version", "layer", "at", "descr", "tags", "property"]
    assert value_of(footprint, "generator") == "pcbnew"
    assert find(footprint, "at")[1:] == [0, 0, 0]
    assert find(footprint, "attr") == ["attr", "smd"]
    assert find(footprint, "uuid") is None


def test_extracted_footprint_properties(resistor_and_chip):
    entry = extract_footprints(_pcb_text(resistor_and_chip), "tscircuit", ["0402"])[0]
    properties = _properties(entry.mod_data)

    assert list(properties) == ["Reference", "Value", "Datasheet", "Description"]
    assert properties["Reference"][2] == "REF**"
    assert properties["Value"][2] == "Val**"
    # Pads are 0.5 tall around y=0
    assert find(properties["Reference"], "at")[2] == -0.75
    assert find(properties["Value"], "at")[2] == 0.75
    assert find(properties["Datasheet"], "hide") == ["hide", "yes"]


def test_extracted_pads_lose_nets(resistor_and_chip):
    entry = extract_footprints(_pcb_text(resistor_and_chip), "tscircuit", ["0402"])[0]
    pads = find_all(entry.mod_data, "pad")
    assert len(pads) == 2
    assert all(find(pad, "net") is None for pad in pads)
    assert all(find(pad, "uuid") is not None for pad in pads)

    texts = find_all(entry.mod_data, "fp_text")
    assert texts[0][1:3] == ["reference", "REF**"]


def test_builtin_without_model_gets_cdn_model(resistor_and_chip):
    entry = extract_footprints(_pcb_text(resistor_and_chip), "tscircuit", ["0402"])[0]
    model = find(entry.mod_data, "model")
    assert model[1] == "../../3dmodels/tscircuit_builtin.3dshapes/0402.step"
    assert entry.model3d_source_paths == ["https://modelcdn.tscircuit.com/jscad_models/0402.step"]


def test_model_paths_move_into_library():
    footprint = node(
        "footprint", "tscircuit:widget",
        node("layer", "F.Cu"),
        at(100, 100, 0),
        node("pad", "1", Symbol("smd"), Symbol("rect"), at(0, 0, 0), node("size", 1, 1),
             node("net", 3, "GND")),
        node("model", "${KIPRJMOD}/3dmodels/widget.step", node("offset", node("xyz", 0, 0, 1))),
    )
    entry = sanitize_footprint(footprint, "parts", [])
    model = find(entry.mod_data, "model")
    assert model[1] == "../../3dmodels/parts.3dshapes/widget.step"
    assert find(model, "offset") == ["offset", ["xyz", 0, 0, 1]]
    assert entry.model3d_source_paths == ["${KIPRJMOD}/3dmodels/widget.step"]
    assert not entry.is_builtin


def test_sanitizing_leaves_input_untouched():
    footprint = node(
        "footprint", "tscircuit:widget",
        node("uuid", "keep-me"),
        node("pad", "1", Symbol("smd"), Symbol("rect"), at(0, 0, 0), node("size", 1, 1),
             node("net", 3, "GND")),
    )
    before = dumps(footprint)
    sanitize_footprint(footprint, "parts", [])
    assert dumps(footprint) == before


def test_sanitizing_is_idempotent(resistor_and_chip):
    first = extract_footprints(_pcb_text(resistor_and_chip), "tscircuit", ["0402"])
    wrapped = node("kicad_pcb", *[entry.mod_data for entry in first])
    second = extract_footprints(dumps(wrapped), "tscircuit", ["0402"])

    assert [dumps(e.mod_data) for e in first] == [dumps(e.mod_data) for e in second]


def test_extraction_is_deterministic(resistor_and_chip):
    text = _pcb_text(resistor_and_chip)
    first = [dumps(e.mod_data) for e in extract_footprints(text, "tscircuit", ["0402"])]
    second = [dumps(e.mod_data) for e in extract_footprints(text, "tscircuit", ["0402"])]
    assert first == second


def test_duplicate_footprints_first_wins(keyless_trace):
    entries = extract_footprints(_pcb_text(keyless_trace), "tscircuit", [])
    assert [e.footprint_name for e in entries] == ["resistor"]


def test_unparsable_board_warns():
    warnings = []
    assert extract_footprints("(kicad_pcb (footprint", warn=warnings.append) == []
    assert len(warnings) == 1
    assert "Failed to parse PCB" in warnings[0]


def test_wrong_root_yields_nothing():
    assert extract_footprints('(kicad_sch (version 1))') == []
    assert extract_symbols('(kicad_pcb (version 1))') == []


def test_extract_symbols(resistor_and_chip):
    entries = extract_symbols(_sch_text(resistor_and_chip))
    assert [(e.symbol_name, e.is_builtin) for e in entries] == [
        ("R_resistor_0402", True),
        ("U_chip", True),
        ("vcc_up", True),
    ]
    assert entries[0].symbol_data[1] == "R_resistor_0402"


def test_custom_symbols_are_not_builtin(custom_symbol_circuit):
    entries = extract_symbols(_sch_text(custom_symbol_circuit), ["tactile_switch"])
    assert [(e.symbol_name, e.is_builtin) for e in entries] == [("tactile_switch", False)]


def test_unparsable_sheet_warns():
    warnings = []
    assert extract_symbols('(kicad_sch (lib_symbols "oops', warn=warnings.append) == []
    assert len(warnings) == 1


def test_extracted_symbol_text_parses_back(resistor_and_chip):
    entry = extract_symbols(_sch_text(resistor_and_chip))[0]
    text = dumps(entry.symbol_data)
    assert dumps(loads(text)) == text
