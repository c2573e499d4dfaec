"""
Circuit JSON Conversion Tools

MCP tools that turn Circuit JSON files into KiCad boards, schematics and
component libraries. Each tool reads its input from disk, optionally
writes the result, and returns a short report (or an error message).
"""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import Context

from ..converter_core.errors import ConverterError
from ..library import KicadLibraryConverter, KicadLibraryConverterOptions
from ..pcb import CircuitJsonToKicadPcbConverter
from ..schematic import CircuitJsonToKicadSchConverter
from ..utils.sexpr import SExpressionError

logger = logging.getLogger(__name__)


def load_circuit_json(path: str) -> List[Dict[str, Any]]:
    """
    Read a Circuit JSON file.

    Raises:
        ValueError: If the file does not hold a list of elements
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a Circuit JSON element list")
    return data


def _write_text(path: str, text: str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")


async def _report(ctx: Context | None, message: str) -> None:
    if ctx is not None:
        await ctx.info(message)


async def convert_circuit_json_to_pcb(
    circuit_json_path: str,
    output_path: Optional[str] = None,
    ctx: Context | None = None
) -> str:
    """
    Convert a Circuit JSON file into a KiCad board (.kicad_pcb)

    Footprints, pads, traces, vias, silkscreen and the board outline are
    generated with stable UUIDs, so converting the same file twice gives
    identical output.

    Args:
        circuit_json_path: Path to the Circuit JSON file
        output_path: Where to write the .kicad_pcb (optional)

    Returns:
        The board text, or a summary when output_path is given

    Example:
        convert_circuit_json_to_pcb("/path/to/circuit.json", "/path/to/board.kicad_pcb")
    """
    try:
        circuit_json = load_circuit_json(circuit_json_path)
        converter = CircuitJsonToKicadPcbConverter(circuit_json)
        await _report(ctx, f"Converting {len(circuit_json)} elements to a KiCad board")
        converter.run_until_finished()
        text = converter.get_output_string()

        if not output_path:
            return text

        _write_text(output_path, text)
        return (
            f"Wrote {output_path}\n"
            f"- Copper layers: {converter.ctx.num_layers}\n"
            f"- Nets: {len(converter.ctx.net_map)}\n"
            f"- Warnings: {len(converter.ctx.warnings)}"
        )

    except (OSError, ValueError, ConverterError, SExpressionError) as e:
        return f"Error converting Circuit JSON to PCB: {str(e)}"


async def convert_circuit_json_to_schematic(
    circuit_json_path: str,
    output_path: Optional[str] = None,
    ctx: Context | None = None
) -> str:
    """
    Convert a Circuit JSON file into a KiCad schematic (.kicad_sch)

    The sheet is sized to the smallest landscape paper (A5 to A0) that
    fits the placed symbols.

    Args:
        circuit_json_path: Path to the Circuit JSON file
        output_path: Where to write the .kicad_sch (optional)

    Returns:
        The schematic text, or a summary when output_path is given

    Example:
        convert_circuit_json_to_schematic("/path/to/circuit.json", "/path/to/sheet.kicad_sch")
    """
    try:
        circuit_json = load_circuit_json(circuit_json_path)
        converter = CircuitJsonToKicadSchConverter(circuit_json)
        await _report(ctx, f"Converting {len(circuit_json)} elements to a KiCad schematic")
        converter.run_until_finished()
        text = converter.get_output_string()

        if not output_path:
            return text

        _write_text(output_path, text)
        paper = converter.ctx.paper[0] if converter.ctx.paper else "A4"
        return f"Wrote {output_path}\n- Paper: {paper}\n- Warnings: {len(converter.ctx.warnings)}"

    except (OSError, ValueError, ConverterError, SExpressionError) as e:
        return f"Error converting Circuit JSON to schematic: {str(e)}"


async def build_kicad_library(
    components_dir: str,
    library_name: str,
    output_dir: Optional[str] = None,
    include_builtins: bool = True,
    ctx: Context | None = None
) -> str:
    """
    Build a KiCad symbol/footprint library from a folder of Circuit JSON files

    Every ``<Name>.json`` file whose name starts with an uppercase letter
    is one component. Custom footprints and symbols go into the named
    library; standard parts (0402, soic8, ...) go into tscircuit_builtin.

    Args:
        components_dir: Directory holding one Circuit JSON file per component
        library_name: Name of the generated library
        output_dir: Directory to write the library files into (optional)
        include_builtins: Also write the shared builtin library

    Returns:
        Summary of the generated files

    Example:
        build_kicad_library("/path/to/components", "my-parts", "/path/to/project")
    """
    try:
        source = Path(components_dir)
        if not source.is_dir():
            return f"Error: {components_dir} is not a directory"

        def get_exports(entrypoint: str) -> List[str]:
            return sorted(p.stem for p in Path(entrypoint).glob("*.json"))

        def build_component(file_path: str, component_name: str) -> List[Dict[str, Any]]:
            return load_circuit_json(str(Path(file_path) / f"{component_name}.json"))

        converter = KicadLibraryConverter(KicadLibraryConverterOptions(
            kicad_library_name=library_name,
            entrypoint=str(source),
            get_exports_from_file=get_exports,
            build_file_to_circuit_json=build_component,
            include_builtins=include_builtins,
        ))
        await _report(ctx, f"Building KiCad library {library_name} from {components_dir}")
        output = converter.run()

        if output_dir:
            for relative_path, content in output.kicad_project_fs_map.items():
                _write_text(str(Path(output_dir) / relative_path), content)

        summary = output.summary()
        lines = [
            f"Library {library_name}:",
            f"- Symbol libraries: {summary['symbol_libraries']}",
            f"- Footprints: {summary['footprints']}",
            f"- Library tables: {summary['tables']}",
            f"- 3D models to copy: {len(output.model3d_source_paths)}",
        ]
        if converter.ctx.warnings:
            lines.append("Warnings:")
            lines.extend(f"- {w}" for w in converter.ctx.warnings)
        if output_dir:
            lines.append(f"Files written to {output_dir}")
        return "\n".join(lines)

    except (OSError, ValueError, ConverterError, SExpressionError) as e:
        return f"Error building KiCad library: {str(e)}"


# Register tools with MCP server
def register_conversion_tools(mcp):
    """Register all Circuit JSON conversion tools with the MCP server"""

    mcp.tool()(convert_circuit_json_to_pcb)
    mcp.tool()(convert_circuit_json_to_schematic)
    mcp.tool()(build_kicad_library)
