"""
Library converters.

CircuitJsonToKicadLibraryConverter turns one circuit into reusable
library entries: it generates the sheet and the board, re-parses them and
extracts every symbol and footprint.

KicadLibraryConverter builds a whole library from the component exports
of an entrypoint: each export is rendered to Circuit JSON, run through
CircuitJsonToKicadLibraryConverter, then all entries are classified into
the user and builtin libraries and written to a file map.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from .. import config
from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.errors import PreconditionError
from ..converter_core.interfaces import QueueStage, SingleStepStage
from ..converter_core.models import (
    BuiltComponent,
    ClassificationContext,
    ExtractedComponent,
    KicadLibraryBuildOutput,
    KicadLibraryOutput,
)
from ..converter_core.pipeline import ConverterContext, PipelineDriver, StagedConverter
from ..pcb import CircuitJsonToKicadPcbConverter
from ..schematic import CircuitJsonToKicadSchConverter, custom_symbol_names
from .classification import classify_footprints, classify_symbols, user_symbol_dangling_refs
from .extraction import collect_builtin_tokens, extract_footprints, extract_symbols
from .files import build_library_files, model_source_paths, symbol_library_string
from .lib_tables import generate_fp_lib_table, generate_sym_lib_table
from .model_paths import validate_model_path_mode

logger = logging.getLogger(__name__)

SCH_TEXT_KEY = "schematic_text"
PCB_TEXT_KEY = "pcb_text"
SYMBOLS_KEY = "symbol_entries"
FOOTPRINTS_KEY = "footprint_entries"
LIBRARY_OUTPUT_KEY = "library_output"


# ============================================================================
# Single circuit
# ============================================================================

def _cached(ctx: ConverterContext, key: str, stage_hint: str) -> Any:
    if key not in ctx.caches:
        raise PreconditionError(f"{key} not available; run {stage_hint} first")
    return ctx.caches[key]


class GenerateSchAndPcbStage(SingleStepStage):
    """Runs the schematic and board converters and keeps their text."""

    name = "generate_sch_and_pcb"

    def run(self, ctx: ConverterContext) -> None:
        circuit_json = ctx.circuit_json
        sch = CircuitJsonToKicadSchConverter(circuit_json)
        sch.run_until_finished()
        pcb = CircuitJsonToKicadPcbConverter(circuit_json)
        pcb.run_until_finished()
        ctx.caches[SCH_TEXT_KEY] = sch.get_output_string()
        ctx.caches[PCB_TEXT_KEY] = pcb.get_output_string()
        ctx.warnings.extend(sch.ctx.warnings + pcb.ctx.warnings)


class ExtractSymbolsStage(SingleStepStage):
    name = "extract_symbols"

    def run(self, ctx: ConverterContext) -> None:
        sch_text = _cached(ctx, SCH_TEXT_KEY, "the generate stage")
        ctx.caches[SYMBOLS_KEY] = extract_symbols(
            sch_text, custom_symbol_names(ctx.index), warn=ctx.warn,
        )


class ExtractFootprintsStage(SingleStepStage):
    name = "extract_footprints"

    def __init__(self, footprint_library_name: str):
        self.footprint_library_name = footprint_library_name

    def run(self, ctx: ConverterContext) -> None:
        pcb_text = _cached(ctx, PCB_TEXT_KEY, "the generate stage")
        ctx.caches[FOOTPRINTS_KEY] = extract_footprints(
            pcb_text,
            self.footprint_library_name,
            collect_builtin_tokens(ctx.circuit_json),
            warn=ctx.warn,
        )


class AssembleLibraryOutputStage(SingleStepStage):
    """Builds the stand-alone symbol library text and the library tables."""

    name = "assemble_library_output"

    def __init__(self, library_name: str, footprint_library_name: str):
        self.library_name = library_name
        self.footprint_library_name = footprint_library_name

    def run(self, ctx: ConverterContext) -> None:
        symbols = _cached(ctx, SYMBOLS_KEY, "the extract symbols stage")
        footprints = _cached(ctx, FOOTPRINTS_KEY, "the extract footprints stage")
        ctx.caches[LIBRARY_OUTPUT_KEY] = KicadLibraryOutput(
            symbols=symbols,
            footprints=footprints,
            kicad_sym_string=symbol_library_string(symbols),
            fp_lib_table_string=generate_fp_lib_table(self.footprint_library_name),
            sym_lib_table_string=generate_sym_lib_table(self.library_name, include_user=bool(symbols)),
            model3d_source_paths=model_source_paths(footprints),
        )


class CircuitJsonToKicadLibraryConverter(StagedConverter):
    """
    Extract reusable symbols and footprints from one circuit.

    Example:
        converter = CircuitJsonToKicadLibraryConverter(circuit_json, library_name="parts")
        converter.run_until_finished()
        for footprint in converter.get_footprints():
            print(footprint.footprint_name)
    """

    def __init__(self, circuit_json: List[Dict[str, Any]],
                 library_name: str = config.DEFAULT_FOOTPRINT_LIBRARY,
                 footprint_library_name: str = config.DEFAULT_FOOTPRINT_LIBRARY,
                 max_iterations: Optional[int] = None):
        self.library_name = library_name
        self.footprint_library_name = footprint_library_name
        self.ctx = ConverterContext(index=CircuitIndex(circuit_json))
        self.pipeline = PipelineDriver(
            [
                GenerateSchAndPcbStage(),
                ExtractSymbolsStage(),
                ExtractFootprintsStage(footprint_library_name),
                AssembleLibraryOutputStage(library_name, footprint_library_name),
            ],
            self.ctx,
            max_iterations=max_iterations,
        )

    def get_output(self) -> KicadLibraryOutput:
        """
        Raises:
            PreconditionError: If the converter has not run to completion
        """
        output = self.ctx.caches.get(LIBRARY_OUTPUT_KEY)
        if output is None:
            raise PreconditionError("Converter has not been run yet")
        return output

    def get_symbol_library_string(self) -> str:
        return self.get_output().kicad_sym_string

    def get_footprints(self) -> list:
        return self.get_output().footprints

    def get_fp_lib_table_string(self) -> str:
        return self.get_output().fp_lib_table_string

    def get_sym_lib_table_string(self) -> str:
        return self.get_output().sym_lib_table_string

    def get_model3d_source_paths(self) -> List[str]:
        return self.get_output().model3d_source_paths


# ============================================================================
# Multi-component library
# ============================================================================

@dataclass
class KicadLibraryConverterOptions:
    """
    Options for a library build.

    Attributes:
        kicad_library_name: Name of the user library (e.g., "my-parts")
        entrypoint: File whose exports define the library's components
        get_exports_from_file: Returns the export names of a file
        build_file_to_circuit_json: Renders (file path, export name) to
                                    Circuit JSON, or None if it cannot be rendered
        resolve_export_path: Maps (entrypoint, export name) to the file that
                             defines it; None means "use the entrypoint"
        include_builtins: Write the shared builtin libraries too
        is_pcm: Reference libraries with the PCM_ prefix
        kicad_pcm_package_id: Package id used by the "pcm" model path mode
        model_path_mode: "relative", "project" or "pcm"
    """
    kicad_library_name: str
    entrypoint: str
    get_exports_from_file: Callable[[str], List[str]]
    build_file_to_circuit_json: Callable[[str, str], Optional[List[Dict[str, Any]]]]
    resolve_export_path: Optional[Callable[[str, str], Optional[str]]] = None
    include_builtins: bool = True
    is_pcm: bool = False
    kicad_pcm_package_id: Optional[str] = None
    model_path_mode: str = "relative"


@dataclass
class KicadLibraryConverterContext:
    """State shared by the stages of one library build."""
    options: KicadLibraryConverterOptions
    built_components: List[BuiltComponent] = field(default_factory=list)
    extracted_components: List[ExtractedComponent] = field(default_factory=list)
    classification: Optional[ClassificationContext] = None
    kicad_project_fs_map: Dict[str, Any] = field(default_factory=dict)
    model3d_source_paths: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning(message)
        self.warnings.append(message)

    def require_classification(self) -> ClassificationContext:
        if self.classification is None:
            raise PreconditionError("Library entries not classified; run the classify stages first")
        return self.classification


def is_component_export(name: str) -> bool:
    """Component exports start with an uppercase letter."""
    return bool(name) and name[0].isupper()


class BuildComponentsStage(QueueStage):
    """Renders one component export to Circuit JSON per step."""

    name = "build_components"

    def items(self, ctx: KicadLibraryConverterContext) -> list:
        options = ctx.options
        exports = options.get_exports_from_file(options.entrypoint)
        return [name for name in exports if is_component_export(name)]

    def process(self, ctx: KicadLibraryConverterContext, export_name: str) -> None:
        options = ctx.options
        file_path = options.entrypoint
        try:
            if options.resolve_export_path is not None:
                file_path = options.resolve_export_path(options.entrypoint, export_name) or options.entrypoint
            circuit_json = options.build_file_to_circuit_json(file_path, export_name)
        except Exception as e:
            ctx.warn(f"Failed to build component {export_name}: {e}")
            return

        if not circuit_json:
            logger.info("Export %s did not render to a circuit, skipping", export_name)
            return
        ctx.built_components.append(BuiltComponent(export_name, circuit_json, file_path))


class ExtractComponentsStage(QueueStage):
    """Extracts the library entries of one built component per step."""

    name = "extract_components"

    def items(self, ctx: KicadLibraryConverterContext) -> list:
        return ctx.built_components

    def process(self, ctx: KicadLibraryConverterContext, built: BuiltComponent) -> None:
        library_name = ctx.options.kicad_library_name
        converter = CircuitJsonToKicadLibraryConverter(
            built.circuit_json,
            library_name=library_name,
            footprint_library_name=library_name,
        )
        converter.run_until_finished()
        for message in converter.ctx.warnings:
            ctx.warnings.append(f"{built.component_name}: {message}")

        output = converter.get_output()
        ctx.extracted_components.append(ExtractedComponent(
            component_name=built.component_name,
            symbols=output.symbols,
            footprints=output.footprints,
            circuit_json=built.circuit_json,
        ))


class ClassifyFootprintsStage(SingleStepStage):
    name = "classify_footprints"

    def run(self, ctx: KicadLibraryConverterContext) -> None:
        options = ctx.options
        ctx.classification = ClassificationContext(
            library_name=options.kicad_library_name,
            is_pcm=options.is_pcm,
        )
        classify_footprints(
            ctx.classification,
            ctx.extracted_components,
            model_path_mode=options.model_path_mode,
            package_id=options.kicad_pcm_package_id,
        )


class ClassifySymbolsStage(SingleStepStage):
    name = "classify_symbols"

    def run(self, ctx: KicadLibraryConverterContext) -> None:
        cctx = ctx.require_classification()
        classify_symbols(cctx, ctx.extracted_components)
        for ref in user_symbol_dangling_refs(cctx):
            ctx.warn(f"Symbol footprint {ref} is not part of the library")


class BuildLibraryFilesStage(SingleStepStage):
    name = "build_library_files"

    def run(self, ctx: KicadLibraryConverterContext) -> None:
        cctx = ctx.require_classification()
        ctx.kicad_project_fs_map = build_library_files(cctx, include_builtins=ctx.options.include_builtins)

        footprints = list(cctx.user_footprints)
        if ctx.options.include_builtins:
            footprints += cctx.builtin_footprints
        ctx.model3d_source_paths = model_source_paths(footprints)


class KicadLibraryConverter(StagedConverter):
    """
    Build a KiCad library from the component exports of an entrypoint.

    Example:
        converter = KicadLibraryConverter(KicadLibraryConverterOptions(
            kicad_library_name="my-parts",
            entrypoint="lib/index.ts",
            get_exports_from_file=list_exports,
            build_file_to_circuit_json=render_component,
        ))
        converter.run()
        fs_map = converter.get_output().kicad_project_fs_map
    """

    def __init__(self, options: KicadLibraryConverterOptions,
                 max_iterations: Optional[int] = None):
        validate_model_path_mode(options.model_path_mode, options.kicad_pcm_package_id)
        self.options = options
        self.ctx = KicadLibraryConverterContext(options=options)
        self.pipeline = PipelineDriver(
            [
                BuildComponentsStage(),
                ExtractComponentsStage(),
                ClassifyFootprintsStage(),
                ClassifySymbolsStage(),
                BuildLibraryFilesStage(),
            ],
            self.ctx,
            max_iterations=max_iterations,
        )
        self._output: Optional[KicadLibraryBuildOutput] = None

    def run(self) -> KicadLibraryBuildOutput:
        self.run_until_finished()
        self._output = KicadLibraryBuildOutput(
            kicad_project_fs_map=self.ctx.kicad_project_fs_map,
            model3d_source_paths=self.ctx.model3d_source_paths,
            library_name=self.options.kicad_library_name,
        )
        logger.info("Built library %s: %s", self.options.kicad_library_name, self._output.summary())
        return self._output

    def get_output(self) -> KicadLibraryBuildOutput:
        """
        Raises:
            PreconditionError: If run() has not been called
        """
        if self._output is None:
            raise PreconditionError("Library converter has not been run yet")
        return self._output
