"""
Circuit JSON -> KiCad board (.kicad_pcb) converter.
"""

import logging
from typing import Any, Dict, List, Optional

from ..converter_core.circuit_index import CircuitIndex
from ..converter_core.pipeline import ConverterContext, PipelineDriver, StagedConverter
from ..converter_core.transform import pcb_transform
from ..utils.sexpr import dumps
from .stages import (
    AddFootprintsStage,
    AddGraphicsStage,
    AddNetsStage,
    AddTracesStage,
    AddViasStage,
    InitializePcbStage,
    count_copper_layers,
)

logger = logging.getLogger(__name__)


class CircuitJsonToKicadPcbConverter(StagedConverter):
    """
    Convert a Circuit JSON element list into a KiCad board.

    Board coordinates keep the input's millimetres, flip Y and move the
    origin to (100, 100) so content lands inside the default drawing area.

    Example:
        converter = CircuitJsonToKicadPcbConverter(circuit_json)
        converter.run_until_finished()
        text = converter.get_output_string()
    """

    def __init__(self, circuit_json: List[Dict[str, Any]],
                 max_iterations: Optional[int] = None):
        index = CircuitIndex(circuit_json)
        self.ctx = ConverterContext(
            index=index,
            transform=pcb_transform(),
            num_layers=count_copper_layers(index),
        )
        self.pipeline = PipelineDriver(
            [
                InitializePcbStage(),
                AddNetsStage(),
                AddFootprintsStage(),
                AddTracesStage(),
                AddViasStage(),
                AddGraphicsStage(),
            ],
            self.ctx,
            max_iterations=max_iterations,
        )
        logger.debug("PCB converter ready: %d element(s), %d copper layer(s)",
                     len(index), self.ctx.num_layers)

    def get_output(self) -> List[Any]:
        """
        The ``kicad_pcb`` element tree.

        Raises:
            PreconditionError: If the initialize stage has not run yet
        """
        return self.ctx.require_output()

    def get_output_string(self) -> str:
        return dumps(self.get_output())
