"""Staggered periodic wake-ups for the agent roster.

A single asyncio loop drives every run. The in-flight set guarantees at most
one run per agent name at a time; different agents run concurrently.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from collections.abc import Callable, Mapping
from typing import Protocol

from mission_control.agents.roster import AGENTS
from mission_control.agents.runtime import RunResult
from mission_control.guardrails.secrets import redact_text, safe_error
from mission_control.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

DEFAULT_STAGGER_MINUTES: dict[str, int] = {
    "jarvis": 0,
    "shuri": 0,
    "fury": 5,
    "vision": 5,
    "loki": 10,
    "quill": 10,
    "wanda": 15,
}
_SUMMARY_CHARS = 100


class RunnableAgent(Protocol):
    async def run(self, task: str | None = None) -> RunResult: ...


AgentFactory = Callable[[str], RunnableAgent]


def default_stagger_seconds() -> dict[str, float]:
    return {name: minutes * 60.0 for name, minutes in DEFAULT_STAGGER_MINUTES.items()}


class AgentScheduler:
    def __init__(
        self,
        factory: AgentFactory,
        *,
        interval_seconds: float,
        roster: tuple[str, ...] = AGENTS,
        stagger_seconds: Mapping[str, float] | None = None,
        grace_seconds: float = 2.0,
    ) -> None:
        self._factory = factory
        self.roster = roster
        self.interval_seconds = max(1.0, float(interval_seconds))
        self.stagger_seconds = dict(
            default_stagger_seconds() if stagger_seconds is None else stagger_seconds
        )
        self.grace_seconds = max(0.0, float(grace_seconds))
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task[RunResult | None]] = set()
        self._pending: set[asyncio.TimerHandle] = set()
        self._shutdown = asyncio.Event()

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    def is_running(self, name: str) -> bool:
        return name in self._in_flight

    async def run_agent(self, name: str) -> RunResult | None:
        """Run one agent turn unless that agent is already in flight."""
        if name in self._in_flight:
            logger.info("%s is still running, skipping", name)
            return None

        self._in_flight.add(name)
        clear_context()
        bind_context(agent=name)
        logger.info("Waking %s", name)
        try:
            agent = self._factory(name)
            result = await agent.run()
            summary = (
                redact_text(result.message[:_SUMMARY_CHARS]) if result.message else "No message"
            )
            logger.info("[%s] %s: %s", name, result.action, summary)
            return result
        except Exception as exc:
            logger.error("[%s] Error: %s", name, safe_error(exc))
            return None
        finally:
            self._in_flight.discard(name)
            clear_context()

    def _launch(self, name: str) -> None:
        if self._shutdown.is_set():
            return
        task = asyncio.get_running_loop().create_task(self.run_agent(name))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def tick(self) -> int:
        """Schedule a wake-up for every roster agent at its stagger offset."""
        if self._shutdown.is_set():
            return 0
        loop = asyncio.get_running_loop()
        now = loop.time()
        self._pending = {
            handle for handle in self._pending if not handle.cancelled() and handle.when() > now
        }
        scheduled = 0
        for name in self.roster:
            delay = max(0.0, float(self.stagger_seconds.get(name, 0.0)))
            self._pending.add(loop.call_later(delay, self._launch, name))
            scheduled += 1
        return scheduled

    async def run_forever(self) -> None:
        logger.info(
            "Orchestrator starting: interval=%.0fs agents=%s",
            self.interval_seconds,
            ", ".join(self.roster),
        )
        while not self._shutdown.is_set():
            self.tick()
            try:
                await asyncio.wait_for(self._shutdown.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                continue
        await self.shutdown()

    def request_shutdown(self) -> None:
        self._shutdown.set()

    def install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handlers unavailable for %s", sig)

    async def shutdown(self) -> None:
        """Stop scheduling and give in-flight runs a bounded grace period."""
        self._shutdown.set()
        for handle in list(self._pending):
            handle.cancel()
        self._pending.clear()

        if not self._tasks:
            return
        logger.info(
            "Waiting for %d agent(s) to finish: %s",
            len(self._in_flight),
            ", ".join(sorted(self._in_flight)),
        )
        _, still_running = await asyncio.wait(
            set(self._tasks), timeout=self.grace_seconds
        )
        if still_running:
            logger.warning(
                "Grace period elapsed with %d run(s) still in flight", len(still_running)
            )
