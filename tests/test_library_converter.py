"""
Tests for single-circuit library extraction and multi-component library builds.
"""

import pytest

from circuit_kicad.converter_core.errors import ConfigurationError, PreconditionError
from circuit_kicad.library import (
    CircuitJsonToKicadLibraryConverter,
    KicadLibraryConverter,
    KicadLibraryConverterOptions,
)
from circuit_kicad.library.lib_tables import generate_fp_lib_table, generate_sym_lib_table
from circuit_kicad.utils.sexpr import find, find_all, loads, value_of


def _options(circuits, **overrides):
    """Options whose entrypoint exports every key of ``circuits``."""
    options = dict(
        kicad_library_name="my-lib",
        entrypoint="lib/index.ts",
        get_exports_from_file=lambda entrypoint: list(circuits),
        build_file_to_circuit_json=lambda file_path, name: circuits[name],
    )
    options.update(overrides)
    return KicadLibraryConverterOptions(**options)


def _build(circuits, **overrides):
    converter = KicadLibraryConverter(_options(circuits, **overrides))
    return converter, converter.run()


# ----------------------------------------------------------------------
# Single circuit
# ----------------------------------------------------------------------

def test_single_circuit_outputs(resistor_and_chip):
    converter = CircuitJsonToKicadLibraryConverter(resistor_and_chip, library_name="parts")
    converter.run_until_finished()

    assert [fp.footprint_name for fp in converter.get_footprints()] == ["resistor_0402", "chip"]
    sym_lib = loads(converter.get_symbol_library_string())
    assert sym_lib[0] == "kicad_symbol_lib"
    assert value_of(sym_lib, "version") == 20211014
    assert [s[1] for s in find_all(sym_lib, "symbol")] == ["R_resistor_0402", "U_chip", "vcc_up"]

    assert '(name "tscircuit")' in converter.get_fp_lib_table_string()
    assert '(name "parts")' in converter.get_sym_lib_table_string()
    assert converter.get_model3d_source_paths() == [
        "https://modelcdn.tscircuit.com/jscad_models/0402.step",
    ]


def test_single_circuit_before_run(resistor_and_chip):
    converter = CircuitJsonToKicadLibraryConverter(resistor_and_chip)
    with pytest.raises(PreconditionError, match="not been run"):
        converter.get_output()


def test_single_circuit_steps_through_stages(resistor_and_chip):
    converter = CircuitJsonToKicadLibraryConverter(resistor_and_chip)
    names = []
    while not converter.finished:
        names.append(converter.current_stage.name)
        converter.step()
    assert names == ["generate_sch_and_pcb", "extract_symbols", "extract_footprints", "assemble_library_output"]


# ----------------------------------------------------------------------
# Library tables
# ----------------------------------------------------------------------

def test_fp_lib_table_format():
    assert generate_fp_lib_table("my-lib", include_builtin=True) == (
        "(fp_lib_table\n"
        '  (lib (name "my-lib")(type "KiCad")(uri "${KIPRJMOD}/footprints/my-lib.pretty")(options "")(descr ""))\n'
        '  (lib (name "tscircuit_builtin")(type "KiCad")'
        '(uri "${KIPRJMOD}/footprints/tscircuit_builtin.pretty")(options "")(descr ""))\n'
        ")\n"
    )


def test_sym_lib_table_without_user_symbols():
    table = generate_sym_lib_table("my-lib", include_user=False, include_builtin=True)
    assert "my-lib" not in table
    assert "${KIPRJMOD}/symbols/tscircuit_builtin.kicad_sym" in table


# ----------------------------------------------------------------------
# Multi-component library
# ----------------------------------------------------------------------

def test_library_file_map(resistor_circuit, chip_circuit):
    _, output = _build({"R1": resistor_circuit, "U1": chip_circuit})

    assert sorted(output.kicad_project_fs_map) == [
        "footprints/my-lib.pretty/U1.kicad_mod",
        "footprints/tscircuit_builtin.pretty/resistor_0402.kicad_mod",
        "fp-lib-table",
        "sym-lib-table",
        "symbols/my-lib.kicad_sym",
        "symbols/tscircuit_builtin.kicad_sym",
    ]
    assert output.summary() == {"symbol_libraries": 2, "footprints": 2, "tables": 2}
    assert output.library_name == "my-lib"


def test_user_symbol_points_at_user_footprint(resistor_circuit, chip_circuit):
    _, output = _build({"R1": resistor_circuit, "U1": chip_circuit})
    fs_map = output.kicad_project_fs_map

    user_lib = loads(fs_map["symbols/my-lib.kicad_sym"])
    symbols = find_all(user_lib, "symbol")
    assert [s[1] for s in symbols] == ["U1"]
    footprint = next(p for p in find_all(symbols[0], "property") if p[1] == "Footprint")
    assert footprint[2] == "my-lib:U1"

    builtin_lib = loads(fs_map["symbols/tscircuit_builtin.kicad_sym"])
    resistor = find(builtin_lib, "symbol")
    footprint = next(p for p in find_all(resistor, "property") if p[1] == "Footprint")
    assert footprint[2] == "tscircuit_builtin:resistor_0402"

    user_footprint = loads(fs_map["footprints/my-lib.pretty/U1.kicad_mod"])
    assert user_footprint[1] == "U1"


def test_without_builtins(resistor_circuit, chip_circuit):
    _, output = _build({"R1": resistor_circuit, "U1": chip_circuit}, include_builtins=False)
    fs_map = output.kicad_project_fs_map

    assert not any("tscircuit_builtin" in path for path in fs_map)
    assert "tscircuit_builtin" not in fs_map["fp-lib-table"]
    assert output.model3d_source_paths == []


def test_lowercase_exports_are_ignored(resistor_circuit):
    built = []

    def build(file_path, name):
        built.append(name)
        return resistor_circuit

    converter, _ = _build({"R1": resistor_circuit, "helpers": [], "defaultProps": []},
                          build_file_to_circuit_json=build)
    assert built == ["R1"]
    assert converter.ctx.warnings == []


def test_failed_component_is_skipped(resistor_circuit, chip_circuit):
    def build(file_path, name):
        if name == "R1":
            raise RuntimeError("render failed")
        return chip_circuit

    converter, output = _build({"R1": resistor_circuit, "U1": chip_circuit},
                               build_file_to_circuit_json=build)
    assert [c.component_name for c in converter.ctx.extracted_components] == ["U1"]
    assert converter.ctx.warnings == ["Failed to build component R1: render failed"]
    assert "footprints/my-lib.pretty/U1.kicad_mod" in output.kicad_project_fs_map


def test_export_paths_are_resolved(resistor_circuit):
    seen = []

    def build(file_path, name):
        seen.append(file_path)
        return resistor_circuit

    _build({"R1": resistor_circuit}, build_file_to_circuit_json=build,
           resolve_export_path=lambda entrypoint, name: f"lib/{name}.tsx")
    assert seen == ["lib/R1.tsx"]


def test_project_model_paths(chip_circuit):
    circuit = chip_circuit + [{
        "type": "cad_component",
        "cad_component_id": "cad_component_u1",
        "pcb_component_id": "pcb_component_u1",
        "source_component_id": "source_component_u1",
        "model_step_url": "${KIPRJMOD}/3dmodels/chip.step",
    }]
    _, output = _build({"U1": circuit}, model_path_mode="project")

    footprint = loads(output.kicad_project_fs_map["footprints/my-lib.pretty/U1.kicad_mod"])
    assert find(footprint, "model")[1] == "${KIPRJMOD}/my-lib.3dshapes/chip.step"
    assert output.model3d_source_paths == ["${KIPRJMOD}/3dmodels/chip.step"]


def test_pcm_build_prefixes_references(resistor_circuit, chip_circuit):
    _, output = _build({"R1": resistor_circuit, "U1": chip_circuit},
                       is_pcm=True, kicad_pcm_package_id="com.example.my-lib")
    user_lib = output.kicad_project_fs_map["symbols/my-lib.kicad_sym"]
    assert '"PCM_my-lib:U1"' in user_lib


def test_invalid_model_path_mode(resistor_circuit):
    with pytest.raises(ConfigurationError):
        KicadLibraryConverter(_options({"R1": resistor_circuit}, model_path_mode="pcm"))


def test_library_build_is_deterministic(resistor_circuit, chip_circuit):
    _, first = _build({"R1": resistor_circuit, "U1": chip_circuit})
    _, second = _build({"R1": resistor_circuit, "U1": chip_circuit})
    assert first.kicad_project_fs_map == second.kicad_project_fs_map


def test_get_output_before_run(resistor_circuit):
    converter = KicadLibraryConverter(_options({"R1": resistor_circuit}))
    with pytest.raises(PreconditionError):
        converter.get_output()
