"""
Tests for the staged pipeline driver.
"""

import pytest

from circuit_kicad.converter_core.circuit_index import CircuitIndex
from circuit_kicad.converter_core.errors import IterationLimitError, PreconditionError
from circuit_kicad.converter_core.interfaces import QueueStage, SingleStepStage, Stage, StageStatus
from circuit_kicad.converter_core.pipeline import ConverterContext, PipelineDriver
from circuit_kicad.pcb.stages import AddNetsStage, AddTracesStage, InitializePcbStage


class RecordingQueueStage(QueueStage):
    name = "recording_queue"

    def __init__(self, values):
        super().__init__()
        self.values = values

    def items(self, ctx):
        return self.values

    def process(self, ctx, item):
        ctx.caches.setdefault("seen", []).append(item)


class MarkerStage(SingleStepStage):
    name = "marker"

    def run(self, ctx):
        ctx.caches.setdefault("seen", []).append("done")


class NeverFinishes(Stage):
    name = "never_finishes"

    def step(self, ctx):
        return StageStatus.CONTINUE


def _context():
    return ConverterContext(index=CircuitIndex([]))


def test_stages_run_in_order():
    ctx = _context()
    driver = PipelineDriver([RecordingQueueStage([1, 2, 3]), MarkerStage()], ctx)
    driver.run_until_finished()

    assert driver.finished
    assert driver.current_stage is None
    assert ctx.caches["seen"] == [1, 2, 3, "done"]


def test_queue_stage_processes_one_item_per_step():
    ctx = _context()
    driver = PipelineDriver([RecordingQueueStage(["a", "b"]), MarkerStage()], ctx)

    driver.step()
    assert ctx.caches["seen"] == ["a"]
    assert driver.current_stage.name == "recording_queue"

    driver.step()
    assert ctx.caches["seen"] == ["a", "b"]
    assert driver.current_stage.name == "marker"
    assert not driver.finished

    driver.step()
    assert driver.finished


def test_empty_queue_finishes_on_first_step():
    ctx = _context()
    driver = PipelineDriver([RecordingQueueStage([])], ctx)
    driver.step()
    assert driver.finished
    assert "seen" not in ctx.caches


def test_empty_pipeline_is_finished():
    assert PipelineDriver([], _context()).finished


def test_runaway_stage_hits_iteration_ceiling():
    driver = PipelineDriver([NeverFinishes()], _context(), max_iterations=5)
    with pytest.raises(IterationLimitError) as exc_info:
        driver.run_until_finished()

    assert exc_info.value.stage_name == "never_finishes"
    assert exc_info.value.limit == 5
    assert driver.iterations[0] == 6


def test_long_queue_is_not_cut_off_by_ceiling():
    ctx = _context()
    driver = PipelineDriver([RecordingQueueStage(list(range(20)))], ctx, max_iterations=3)
    driver.run_until_finished()
    assert ctx.caches["seen"] == list(range(20))


def test_context_preconditions():
    ctx = _context()
    with pytest.raises(PreconditionError):
        ctx.require_output()
    with pytest.raises(PreconditionError):
        ctx.require_transform()


def test_stage_run_before_initialize_fails():
    driver = PipelineDriver([AddNetsStage()], _context())
    with pytest.raises(PreconditionError):
        driver.step()


def test_traces_before_nets_fail(resistor_and_chip):
    ctx = ConverterContext(index=CircuitIndex(resistor_and_chip), transform=(1, 0, 0, 1, 0, 0))
    driver = PipelineDriver([InitializePcbStage(), AddTracesStage()], ctx)
    driver.step()
    with pytest.raises(PreconditionError):
        driver.step()


def test_warn_records_message():
    ctx = _context()
    ctx.warn("pad skipped")
    assert ctx.warnings == ["pad skipped"]
