# tests/test_engine.py

from __future__ import annotations

import pytest

from taskhub.core.constants import IngestionState
from taskhub.ingestion.events import IngestionEvent
from taskhub.pipeline import IngestionContext, IngestionEngine, IngestionStep
from taskhub.pipeline.errors import CleanupFailure, PersistenceFailure


class PassingStep(IngestionStep):
    def __init__(self, name: str, state: IngestionState) -> None:
        self.name = name
        self.state = state

    async def execute(self, ctx):
        return self._success(self._now())


class ExplodingStep(IngestionStep):
    name = "explode"
    state = IngestionState.PERSISTING
    error_type = PersistenceFailure

    async def execute(self, ctx):
        raise KeyError("boom")


class NonFatalStep(IngestionStep):
    name = "tidy"
    state = IngestionState.CLEANUP
    error_type = CleanupFailure
    fatal = False

    async def execute(self, ctx):
        raise CleanupFailure("disk said no")


def make_ctx() -> IngestionContext:
    return IngestionContext(event=IngestionEvent(file_path="/tmp/batch.json"))


@pytest.mark.asyncio
async def test_unexpected_exception_becomes_step_error() -> None:
    steps = [PassingStep("check", IngestionState.RECEIVED), ExplodingStep(), PassingStep("never", IngestionState.CLEANUP)]

    outcome = await IngestionEngine().run_steps(make_ctx(), steps)

    assert outcome.state == IngestionState.FAILED
    assert isinstance(outcome.error, PersistenceFailure)
    assert outcome.error.step_name == "explode"
    assert outcome.error.file_path == "/tmp/batch.json"
    assert isinstance(outcome.error.__cause__, KeyError)
    assert [r["step_name"] for r in outcome.step_results] == ["check", "explode"]
    assert outcome.detail.startswith("PersistenceFailure: ")


@pytest.mark.asyncio
async def test_non_fatal_failure_still_finishes_done() -> None:
    steps = [PassingStep("check", IngestionState.RECEIVED), NonFatalStep()]

    outcome = await IngestionEngine().run_steps(make_ctx(), steps)

    assert outcome.state == IngestionState.DONE
    assert outcome.transitions[-2:] == [IngestionState.CLEANUP, IngestionState.DONE]
    assert "CleanupFailure: disk said no" in outcome.detail


def test_terminal_state_is_final() -> None:
    ctx = make_ctx()
    ctx.transition_to(IngestionState.FAILED)

    with pytest.raises(RuntimeError):
        ctx.transition_to(IngestionState.DONE)
    assert ctx.transitions == [IngestionState.RECEIVED, IngestionState.FAILED]
