"""
Tests for routing extracted entries into user and builtin libraries.
"""

from circuit_kicad.converter_core.models import (
    ClassificationContext,
    ExtractedComponent,
    FootprintEntry,
    SymbolEntry,
)
from circuit_kicad.library import CircuitJsonToKicadLibraryConverter
from circuit_kicad.library.classification import (
    classify_footprints,
    classify_symbols,
    rename_symbol,
    symbol_footprint_ref,
    user_symbol_dangling_refs,
)
from circuit_kicad.utils.kicad_elements import node, symbol_property
from circuit_kicad.utils.sexpr import find, find_all, value_of


def _extract(component_name, circuit_json, library_name="my-lib"):
    converter = CircuitJsonToKicadLibraryConverter(
        circuit_json, library_name=library_name, footprint_library_name=library_name,
    )
    converter.run_until_finished()
    output = converter.get_output()
    return ExtractedComponent(component_name, output.symbols, output.footprints, circuit_json)


def _classify(components, library_name="my-lib", is_pcm=False):
    cctx = ClassificationContext(library_name=library_name, is_pcm=is_pcm)
    classify_footprints(cctx, components)
    classify_symbols(cctx, components)
    return cctx


def _footprint_value(entry):
    for prop in find_all(entry.symbol_data, "property"):
        if prop[1] == "Footprint":
            return prop[2]
    return None


def test_resistor_and_chip_library(resistor_circuit, chip_circuit):
    cctx = _classify([_extract("R1", resistor_circuit), _extract("U1", chip_circuit)])

    assert [fp.footprint_name for fp in cctx.builtin_footprints] == ["resistor_0402"]
    assert [fp.footprint_name for fp in cctx.user_footprints] == ["U1"]
    assert cctx.primary_footprints == {"U1": "U1"}

    assert [s.symbol_name for s in cctx.builtin_symbols] == ["R_resistor_0402"]
    assert _footprint_value(cctx.builtin_symbols[0]) == "tscircuit_builtin:resistor_0402"

    assert [s.symbol_name for s in cctx.user_symbols] == ["U1"]
    assert _footprint_value(cctx.user_symbols[0]) == "my-lib:U1"
    assert user_symbol_dangling_refs(cctx) == []


def test_renamed_footprint_tree(chip_circuit):
    cctx = _classify([_extract("U1", chip_circuit)])
    footprint = cctx.user_footprints[0].mod_data
    assert footprint[1] == "U1"
    assert len(find_all(footprint, "pad")) == 4


def test_renamed_symbol_units(chip_circuit):
    cctx = _classify([_extract("U1", chip_circuit)])
    units = [child[1] for child in find_all(cctx.user_symbols[0].symbol_data, "symbol")]
    assert units == ["U1_0_1", "U1_1_1"]


def test_builtin_symbols_only_reference_builtin_footprints(resistor_circuit, chip_circuit):
    cctx = _classify([_extract("R1", resistor_circuit), _extract("U1", chip_circuit)])
    builtin_names = {fp.footprint_name for fp in cctx.builtin_footprints}
    user_names = {fp.footprint_name for fp in cctx.user_footprints}
    for entry in cctx.builtin_symbols:
        ref = symbol_footprint_ref(entry)
        if ref:
            assert ref in builtin_names
            assert ref not in user_names


def test_collections_are_deduplicated(resistor_circuit):
    components = [_extract("R1", resistor_circuit), _extract("R2", resistor_circuit)]
    cctx = _classify(components)
    assert [fp.footprint_name for fp in cctx.builtin_footprints] == ["resistor_0402"]
    assert [s.symbol_name for s in cctx.builtin_symbols] == ["R_resistor_0402"]
    assert cctx.user_footprints == []
    assert cctx.user_symbols == []


def test_pcm_prefixes(resistor_circuit, chip_circuit):
    cctx = _classify([_extract("R1", resistor_circuit), _extract("U1", chip_circuit)], is_pcm=True)
    assert _footprint_value(cctx.user_symbols[0]) == "PCM_my-lib:U1"
    assert _footprint_value(cctx.builtin_symbols[0]) == "PCM_tscircuit_builtin:resistor_0402"


def test_custom_symbol_without_footprint(custom_symbol_circuit):
    cctx = _classify([_extract("SW1", custom_symbol_circuit)])
    assert [s.symbol_name for s in cctx.user_symbols] == ["tactile_switch"]
    assert not cctx.user_symbols[0].is_builtin
    # "tscircuit:switch" names no footprint anywhere, so the reference is cleared
    assert _footprint_value(cctx.user_symbols[0]) == ""
    assert cctx.builtin_symbols == []


def test_symbol_metadata_applied(custom_symbol_circuit):
    circuit = [dict(el) for el in custom_symbol_circuit]
    for element in circuit:
        if element.get("type") == "schematic_symbol":
            element["metadata"] = {"kicad_symbol": {
                "inBom": False,
                "pinNames": {"offset": 0.5},
                "properties": {"Value": {"value": "TACT"}, "MPN": {"value": "B3F-1000"}},
            }}
    cctx = _classify([_extract("SW1", circuit)])
    symbol = cctx.user_symbols[0].symbol_data

    assert value_of(symbol, "in_bom") == "no"
    assert find(find(symbol, "pin_names"), "offset") == ["offset", 0.5]
    values = {prop[1]: prop[2] for prop in find_all(symbol, "property")}
    assert values["Value"] == "TACT"
    assert values["MPN"] == "B3F-1000"


def test_rename_symbol_returns_copy():
    original = SymbolEntry("old", node(
        "symbol", "old",
        symbol_property("Footprint", "lib:fp", (0, 0, 0)),
        node("symbol", "old_0_1"),
        node("symbol", "old_1_1"),
    ))
    renamed = rename_symbol(original, "new")

    assert renamed.symbol_name == "new"
    assert [child[1] for child in find_all(renamed.symbol_data, "symbol")] == ["new_0_1", "new_1_1"]
    assert original.symbol_data[1] == "old"
    assert symbol_footprint_ref(renamed) == "fp"


def test_dangling_user_symbol_reference():
    cctx = ClassificationContext(library_name="my-lib")
    cctx.user_symbols.append(SymbolEntry("X", node(
        "symbol", "X", symbol_property("Footprint", "my-lib:missing", (0, 0, 0)),
    ), is_builtin=False))
    assert user_symbol_dangling_refs(cctx) == ["missing"]


def _footprint(name, is_builtin=False):
    return FootprintEntry(
        footprint_name=name,
        mod_data=node("footprint", name, node("model", "${KIPRJMOD}/3dmodels/part.step")),
        model3d_source_paths=["${KIPRJMOD}/3dmodels/part.step"],
        is_builtin=is_builtin,
    )


def _connector():
    footprints = [_footprint("custom_a"), _footprint("custom_b"), _footprint("resistor_0402", is_builtin=True)]
    return ExtractedComponent("J1", [], footprints, [])


def _model_paths(entries):
    return {entry.footprint_name: find(entry.mod_data, "model")[1] for entry in entries}


def test_further_custom_footprints_keep_their_names():
    cctx = ClassificationContext(library_name="my-lib")
    classify_footprints(cctx, [_connector()])

    assert [fp.footprint_name for fp in cctx.user_footprints] == ["J1", "custom_b"]
    assert cctx.user_footprints[1].mod_data[1] == "custom_b"
    assert cctx.primary_footprints == {"J1": "J1"}
    assert [fp.footprint_name for fp in cctx.builtin_footprints] == ["resistor_0402"]


def test_every_footprint_follows_project_model_mode():
    component = _connector()
    cctx = ClassificationContext(library_name="my-lib")
    classify_footprints(cctx, [component], model_path_mode="project")

    assert _model_paths(cctx.user_footprints) == {
        "J1": "${KIPRJMOD}/my-lib.3dshapes/part.step",
        "custom_b": "${KIPRJMOD}/my-lib.3dshapes/part.step",
    }
    assert _model_paths(cctx.builtin_footprints) == {
        "resistor_0402": "${KIPRJMOD}/tscircuit_builtin.3dshapes/part.step",
    }
    assert find(component.footprints[1].mod_data, "model")[1] == "${KIPRJMOD}/3dmodels/part.step"


def test_every_footprint_follows_pcm_model_mode():
    cctx = ClassificationContext(library_name="my-lib", is_pcm=True)
    classify_footprints(cctx, [_connector()], model_path_mode="pcm", package_id="com.example.parts")

    base = "${KICAD9_3RD_PARTY}/3dmodels/com.example.parts"
    assert _model_paths(cctx.user_footprints)["custom_b"] == f"{base}/my-lib.3dshapes/part.step"
    assert _model_paths(cctx.builtin_footprints)["resistor_0402"] == (
        f"{base}/tscircuit_builtin.3dshapes/part.step"
    )


def test_shared_custom_symbol_is_defined_once(custom_symbol_circuit):
    cctx = _classify([
        _extract("SW1", custom_symbol_circuit),
        _extract("SW2", custom_symbol_circuit),
    ])
    assert [s.symbol_name for s in cctx.user_symbols] == ["tactile_switch"]
    assert cctx.builtin_symbols == []
