"""
Stage interface for the staged conversion pipeline.

Every converter (PCB, schematic, library) is an ordered list of stages
sharing one mutable context. A stage does a bounded amount of work per
call and reports whether it has more to do; the driver in pipeline.py
owns the loop and the iteration ceiling.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any


class StageStatus(Enum):
    """Result of a single stage step."""
    CONTINUE = "continue"
    FINISHED = "finished"


class Stage(ABC):
    """
    Abstract base class for one unit of conversion work.

    Implementation Notes:
        - step() must be safe to call repeatedly until it returns FINISHED
        - A stage with nothing left to do returns FINISHED on its next call
        - Stages mutate the context they are given but never replace it
        - Iteration counting and the ceiling live in the driver, not here
    """

    #: Human-readable name used in logs and iteration-limit errors
    name: str = "stage"

    @abstractmethod
    def step(self, ctx: Any) -> StageStatus:
        """
        Advance this stage by one increment.

        Args:
            ctx: The pipeline's shared context

        Returns:
            StageStatus.FINISHED once no work remains, else CONTINUE

        Raises:
            PreconditionError: If an earlier stage has not prepared the context
        """
        pass

    def iteration_limit(self, default: int) -> int:
        """Maximum number of steps the driver allows this stage."""
        return default


class QueueStage(Stage):
    """
    Stage that processes one item of a work list per step.

    Subclasses implement items() (called once, on the first step) and
    process(); an empty work list finishes on the first step. The ceiling
    grows to the length of the work list so large boards do not trip it.
    """

    def __init__(self):
        self._queue = None
        self._position = 0

    @abstractmethod
    def items(self, ctx: Any) -> list:
        pass

    @abstractmethod
    def process(self, ctx: Any, item: Any) -> None:
        pass

    def iteration_limit(self, default: int) -> int:
        if self._queue is None:
            return default
        return max(default, len(self._queue) + 1)

    def step(self, ctx: Any) -> StageStatus:
        if self._queue is None:
            self._queue = list(self.items(ctx))
        if self._position >= len(self._queue):
            return StageStatus.FINISHED
        item = self._queue[self._position]
        self._position += 1
        self.process(ctx, item)
        if self._position >= len(self._queue):
            return StageStatus.FINISHED
        return StageStatus.CONTINUE


class SingleStepStage(Stage):
    """Stage whose whole job fits in one call to run()."""

    @abstractmethod
    def run(self, ctx: Any) -> None:
        pass

    def step(self, ctx: Any) -> StageStatus:
        self.run(ctx)
        return StageStatus.FINISHED
