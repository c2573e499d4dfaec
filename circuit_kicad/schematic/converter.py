"""
Circuit JSON -> KiCad schematic (.kicad_sch) converter.
"""

import logging
from typing import Any, Dict, List, Optional

from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.pipeline import ConverterContext, PipelineDriver, StagedConverter
from ..converter_core.transform import schematic_transform
from ..utils.sexpr import dumps
from .paper import get_schematic_center, select_paper_for_circuit
from .stages import (
    AddLibrarySymbolsStage,
    AddNetLabelsStage,
    AddSchematicTracesStage,
    AddSheetInstancesStage,
    AddSymbolInstancesStage,
    InitializeSchematicStage,
)

logger = logging.getLogger(__name__)


class CircuitJsonToKicadSchConverter(StagedConverter):
    """
    Convert a Circuit JSON element list into a single KiCad sheet.

    The smallest landscape paper that fits the scaled content is selected
    and the content centre is moved onto the paper centre.

    Example:
        converter = CircuitJsonToKicadSchConverter(circuit_json)
        converter.run_until_finished()
        text = converter.get_output_string()
    """

    def __init__(self, circuit_json: List[Dict[str, Any]],
                 max_iterations: Optional[int] = None):
        index = CircuitIndex(circuit_json)
        paper = select_paper_for_circuit(index)
        self.ctx = ConverterContext(
            index=index,
            paper=paper,
            transform=schematic_transform(get_schematic_center(index), paper[1]),
        )
        self.pipeline = PipelineDriver(
            [
                InitializeSchematicStage(),
                AddLibrarySymbolsStage(),
                AddSymbolInstancesStage(),
                AddSchematicTracesStage(),
                AddNetLabelsStage(),
                AddSheetInstancesStage(),
            ],
            self.ctx,
            max_iterations=max_iterations,
        )
        logger.debug("Schematic converter ready: %d element(s) on %s", len(index), paper[0])

    def get_output(self) -> List[Any]:
        """
        The ``kicad_sch`` element tree.

        Raises:
            PreconditionError: If the initialize stage has not run yet
        """
        return self.ctx.require_output()

    def get_output_string(self) -> str:
        return dumps(self.get_output())
