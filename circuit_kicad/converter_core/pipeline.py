"""
Staged conversion pipeline.

A pipeline is an ordered list of stages sharing one ConverterContext.
The driver steps the current stage until it reports FINISHED, then moves
on; the whole pipeline is finished once it has moved past the last stage.
Each stage gets a hard iteration ceiling so a stage that never finishes
fails fast instead of hanging.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .. import config
from .circuit_index import CircuitIndex
from .errors import IterationLimitError, PreconditionError
from .interfaces import Stage, StageStatus
from .models import NetInfo
from .transform import Matrix

logger = logging.getLogger(__name__)


@dataclass
class ConverterContext:
    """
    Mutable state shared by every stage of one pipeline run.

    Stages read and mutate the context but never replace it. A context is
    owned by exactly one driver and must not be shared between runs.

    Attributes:
        index: Queryable view of the input circuit
        output: Root element tree being built (None until initialized)
        transform: Circuit JSON -> artifact coordinate transform
        net_map: Connectivity key -> NetInfo, filled by the nets stage
        paper: Selected paper (name, (width, height)) for schematics
        num_layers: Copper layer count for boards
        warnings: Recoverable problems encountered during the run
        caches: Stage-scoped derived data (pin positions, symbol ids, ...)
    """
    index: CircuitIndex
    output: Optional[List[Any]] = None
    transform: Optional[Matrix] = None
    net_map: Dict[str, NetInfo] = field(default_factory=dict)
    paper: Optional[Tuple[str, Tuple[float, float]]] = None
    num_layers: int = 2
    warnings: List[str] = field(default_factory=list)
    caches: Dict[str, Any] = field(default_factory=dict)

    @property
    def circuit_json(self) -> List[Dict[str, Any]]:
        return self.index.elements

    def require_output(self) -> List[Any]:
        """
        Return the output root.

        Raises:
            PreconditionError: If no stage has created the output root yet
        """
        if self.output is None:
            raise PreconditionError(
                "Output element tree not initialized; run the initialize stage first"
            )
        return self.output

    def require_transform(self) -> Matrix:
        """
        Return the coordinate transform.

        Raises:
            PreconditionError: If the converter did not set a transform
        """
        if self.transform is None:
            raise PreconditionError(
                "Coordinate transform not initialized in context"
            )
        return self.transform

    def warn(self, message: str) -> None:
        """Record a recoverable problem and log it."""
        logger.warning(message)
        self.warnings.append(message)


class PipelineDriver:
    """
    Runs an ordered list of stages over one context.

    State is the current stage index plus the iteration count of the
    current stage; the driver is finished once the index passes the last
    stage.
    """

    def __init__(self, stages: Sequence[Stage], ctx: Any,
                 max_iterations: Optional[int] = None):
        self.stages: List[Stage] = list(stages)
        self.ctx = ctx
        self.max_iterations = max_iterations or config.MAX_STAGE_ITERATIONS
        self.current_stage_index = 0
        self.iterations: List[int] = [0] * len(self.stages)
        self.finished = not self.stages

    @property
    def current_stage(self) -> Optional[Stage]:
        if self.current_stage_index < len(self.stages):
            return self.stages[self.current_stage_index]
        return None

    def step(self) -> None:
        """
        Advance the current stage by one increment.

        Raises:
            IterationLimitError: If the current stage exceeds its ceiling
        """
        stage = self.current_stage
        if stage is None:
            self.finished = True
            return

        i = self.current_stage_index
        self.iterations[i] += 1
        limit = stage.iteration_limit(self.max_iterations)
        if self.iterations[i] > limit:
            raise IterationLimitError(stage.name, limit)

        status = stage.step(self.ctx)
        if status == StageStatus.FINISHED:
            logger.debug("Stage %s finished after %d step(s)", stage.name, self.iterations[i])
            self.current_stage_index += 1
            if self.current_stage_index >= len(self.stages):
                self.finished = True

    def run_until_finished(self) -> None:
        while not self.finished:
            self.step()


class StagedConverter:
    """
    Base for converters that own one context and one pipeline driver.

    Subclasses build ``self.ctx`` and ``self.pipeline`` in their constructor
    and implement get_output().
    """

    ctx: ConverterContext
    pipeline: PipelineDriver

    @property
    def finished(self) -> bool:
        return self.pipeline.finished

    @property
    def current_stage(self) -> Optional[Stage]:
        return self.pipeline.current_stage

    def step(self) -> None:
        self.pipeline.step()

    def run_until_finished(self) -> None:
        self.pipeline.run_until_finished()
