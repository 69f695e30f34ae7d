"""
Render session controller tests.

Render calls are resolved by hand through FakeRenderer so that completion
order is fully deterministic.
"""

from __future__ import annotations

import asyncio

import pytest

from diagram_repair.errors import RenderError
from diagram_repair.fallback import fallback
from diagram_repair.kinds import DiagramKind
from diagram_repair.session import Idle, RenderSessionController, Rendering, Settled
from tests.conftest import FENCED_FLOWCHART, MISSING_SENDER, echo_renderer


@pytest.mark.asyncio
async def test_submit_settles_with_artifact():
    controller = RenderSessionController(echo_renderer, timeout=0)
    outcome = await controller.submit(FENCED_FLOWCHART)
    assert outcome.ok
    assert outcome.token == 1
    assert outcome.kind == DiagramKind.FLOWCHART
    assert outcome.artifact == "<svg>graph TD\n    A-->B</svg>"
    assert isinstance(controller.state, Settled)
    assert controller.state.outcome == outcome


@pytest.mark.asyncio
async def test_submit_moves_to_rendering(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    assert isinstance(controller.state, Idle)
    task = controller.submit(FENCED_FLOWCHART)
    assert controller.state == Rendering(1)
    await fake_renderer.wait_for_calls(1)
    fake_renderer.resolve(0, "svg")
    await task


@pytest.mark.asyncio
async def test_later_submit_supersedes_earlier(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    first = controller.submit(FENCED_FLOWCHART)
    second = controller.submit(MISSING_SENDER)
    await fake_renderer.wait_for_calls(2)

    fake_renderer.resolve(1, "svg-second")
    settled = await second
    assert settled.artifact == "svg-second"

    fake_renderer.resolve(0, "svg-first")
    assert await first is None
    assert controller.state.outcome.artifact == "svg-second"


@pytest.mark.asyncio
async def test_superseded_result_arriving_first_is_discarded(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    first = controller.submit(FENCED_FLOWCHART)
    second = controller.submit(MISSING_SENDER)
    await fake_renderer.wait_for_calls(2)

    fake_renderer.resolve(0, "svg-first")
    assert await first is None
    assert controller.state == Rendering(2)

    fake_renderer.resolve(1, "svg-second")
    assert (await second).artifact == "svg-second"


@pytest.mark.asyncio
async def test_cancel_discards_in_flight_result(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    task = controller.submit(FENCED_FLOWCHART)
    await fake_renderer.wait_for_calls(1)

    controller.cancel()
    assert isinstance(controller.state, Idle)
    assert controller.token == 2

    fake_renderer.resolve(0, "svg")
    assert await task is None
    assert isinstance(controller.state, Idle)


@pytest.mark.asyncio
async def test_failure_retries_once_with_fallback(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    task = controller.submit(MISSING_SENDER)
    await fake_renderer.wait_for_calls(1)

    fake_renderer.fail(0, RenderError("Parse error on line 2"))
    await fake_renderer.wait_for_calls(2)
    assert fake_renderer.calls[1][0] == fallback(DiagramKind.SEQUENCE)
    assert controller.state == Rendering(2)

    fake_renderer.resolve(1, "svg-fallback")
    outcome = await task
    assert outcome.ok
    assert outcome.used_fallback
    assert outcome.token == 2
    assert outcome.artifact == "svg-fallback"


@pytest.mark.asyncio
async def test_second_failure_surfaces_error(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    task = controller.submit(MISSING_SENDER)
    await fake_renderer.wait_for_calls(1)
    fake_renderer.fail(0, ValueError("boom"))
    await fake_renderer.wait_for_calls(2)
    fake_renderer.fail(1, ValueError("still broken"))

    outcome = await task
    assert not outcome.ok
    assert outcome.error == "still broken"
    assert outcome.used_fallback
    assert len(fake_renderer.calls) == 2


@pytest.mark.asyncio
async def test_superseded_failure_is_not_retried(fake_renderer):
    controller = RenderSessionController(fake_renderer, timeout=0)
    first = controller.submit(FENCED_FLOWCHART)
    second = controller.submit(FENCED_FLOWCHART)
    await fake_renderer.wait_for_calls(2)

    fake_renderer.fail(0, RenderError("bad"))
    assert await first is None
    assert len(fake_renderer.calls) == 2

    fake_renderer.resolve(1, "svg")
    assert (await second).ok


@pytest.mark.asyncio
async def test_timeout_is_a_failure():
    async def never(_text):
        await asyncio.sleep(10)

    controller = RenderSessionController(never, timeout=0.01)
    outcome = await controller.submit(FENCED_FLOWCHART)
    assert not outcome.ok
    assert "timed out" in outcome.error


@pytest.mark.asyncio
async def test_on_settled_called_once_per_settle():
    settled = []
    controller = RenderSessionController(echo_renderer, on_settled=settled.append, timeout=0)
    await controller.submit(FENCED_FLOWCHART)
    assert len(settled) == 1
    assert isinstance(settled[0], Settled)
    assert settled[0].token == 1


@pytest.mark.asyncio
async def test_unrepairable_input_renders_fallback():
    controller = RenderSessionController(echo_renderer, timeout=0)
    outcome = await controller.submit("no diagram in this message")
    assert outcome.ok
    assert outcome.used_fallback
    assert outcome.kind == DiagramKind.UNKNOWN
    assert "Invalid Response" in outcome.artifact
