from __future__ import annotations

import asyncio

import pytest

from mission_control.agents.runtime import RunResult
from mission_control.errors import IdentityError
from mission_control.scheduler.service import AgentScheduler, default_stagger_seconds


class _GatedAgent:
    def __init__(self, name: str, gate: asyncio.Event | None = None, *, fail: bool = False):
        self.name = name
        self.gate = gate
        self.fail = fail

    async def run(self, task: str | None = None) -> RunResult:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("model exploded with sk-" + "z" * 30)
        return RunResult(action="processed", message=f"{self.name} done")


def test_default_stagger_offsets() -> None:
    offsets = default_stagger_seconds()
    assert offsets["jarvis"] == 0
    assert offsets["fury"] == 300
    assert offsets["quill"] == 600
    assert offsets["wanda"] == 900


@pytest.mark.asyncio
async def test_second_run_for_in_flight_agent_is_skipped() -> None:
    gate = asyncio.Event()
    built: list[str] = []

    def factory(name: str) -> _GatedAgent:
        built.append(name)
        return _GatedAgent(name, gate)

    scheduler = AgentScheduler(factory, interval_seconds=60)
    first = asyncio.create_task(scheduler.run_agent("loki"))
    await asyncio.sleep(0)
    assert scheduler.is_running("loki")

    assert await scheduler.run_agent("loki") is None
    assert built == ["loki"]

    gate.set()
    result = await first
    assert result is not None
    assert result.message == "loki done"
    assert scheduler.in_flight == frozenset()


@pytest.mark.asyncio
async def test_in_flight_marker_cleared_after_error() -> None:
    scheduler = AgentScheduler(lambda name: _GatedAgent(name, fail=True), interval_seconds=60)
    assert await scheduler.run_agent("vision") is None
    assert not scheduler.is_running("vision")


@pytest.mark.asyncio
async def test_factory_failure_is_contained() -> None:
    def factory(name: str) -> _GatedAgent:
        raise IdentityError(f"Invalid agent name: {name}")

    scheduler = AgentScheduler(factory, interval_seconds=60)
    assert await scheduler.run_agent("ghost") is None
    assert scheduler.in_flight == frozenset()


@pytest.mark.asyncio
async def test_different_agents_run_concurrently() -> None:
    gate = asyncio.Event()
    scheduler = AgentScheduler(lambda name: _GatedAgent(name, gate), interval_seconds=60)
    runs = [asyncio.create_task(scheduler.run_agent(name)) for name in ("jarvis", "shuri")]
    await asyncio.sleep(0)
    assert scheduler.in_flight == frozenset({"jarvis", "shuri"})
    gate.set()
    await asyncio.gather(*runs)


@pytest.mark.asyncio
async def test_tick_launches_each_roster_agent_at_its_offset() -> None:
    ran: list[str] = []

    class _Recorder(_GatedAgent):
        async def run(self, task: str | None = None) -> RunResult:
            ran.append(self.name)
            return await super().run(task)

    scheduler = AgentScheduler(
        _Recorder,
        interval_seconds=60,
        roster=("jarvis", "fury", "wanda"),
        stagger_seconds={"jarvis": 0.0, "fury": 0.01, "wanda": 30.0},
    )
    assert scheduler.tick() == 3
    await asyncio.sleep(0.1)
    assert ran == ["jarvis", "fury"]

    await scheduler.shutdown()
    assert ran == ["jarvis", "fury"]


@pytest.mark.asyncio
async def test_shutdown_waits_grace_period_without_cancelling() -> None:
    gate = asyncio.Event()
    scheduler = AgentScheduler(
        lambda name: _GatedAgent(name, gate),
        interval_seconds=60,
        roster=("loki",),
        stagger_seconds={"loki": 0.0},
        grace_seconds=0.05,
    )
    scheduler.tick()
    await asyncio.sleep(0.01)
    assert scheduler.is_running("loki")

    await asyncio.wait_for(scheduler.shutdown(), timeout=1.0)
    assert scheduler.is_running("loki")

    gate.set()
    await asyncio.sleep(0.01)
    assert not scheduler.is_running("loki")
    assert scheduler.tick() == 0


@pytest.mark.asyncio
async def test_run_forever_ticks_until_shutdown_requested() -> None:
    ran: list[str] = []

    class _Recorder(_GatedAgent):
        async def run(self, task: str | None = None) -> RunResult:
            ran.append(self.name)
            return await super().run(task)

    scheduler = AgentScheduler(
        _Recorder,
        interval_seconds=60,
        roster=("jarvis", "shuri"),
        stagger_seconds={"jarvis": 0.0, "shuri": 0.0},
    )
    loop_task = asyncio.create_task(scheduler.run_forever())
    await asyncio.sleep(0.05)
    scheduler.request_shutdown()
    await asyncio.wait_for(loop_task, timeout=1.0)
    assert sorted(ran) == ["jarvis", "shuri"]
