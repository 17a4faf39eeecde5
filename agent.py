"""Agent loop driving one autonomous functional test run."""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Protocol

from playwright.async_api import Page

from browser import BrowserSession
from config import AutoQAConfig
from dom_snapshot import DomSnapshotter
from environment import EnvironmentReset, default_environment_reset
from exceptions import AutoQAError, StepError
from executor import StepExecutor
from locator import LocatorResolver
from oracle import DecisionOracle
from run_types import (
    DECISION_FAILURE_MESSAGE,
    MAX_STEPS_MESSAGE,
    ActionType,
    RunRequest,
    RunStatus,
    StepOutcome,
    TestRun,
    Verdict,
)
from storage import ArtifactStore, JsonRunStore, LocalArtifactStore, RunStore

Sleep = Callable[[float], Awaitable[None]]


class Session(Protocol):
    async def start(self) -> Page: ...

    async def goto(self, url: str) -> None: ...

    async def screenshot(self) -> bytes: ...

    async def close(self) -> None: ...


class QAAgent:
    """Runs snapshot → oracle → execute iterations until a verdict.

    Every collaborator can be injected; anything left out is built from the
    config. One ``run()`` call owns one browser session from launch to close.
    """

    def __init__(
        self,
        config: AutoQAConfig,
        *,
        run_store: Optional[RunStore] = None,
        artifact_store: Optional[ArtifactStore] = None,
        browser_factory: Optional[Callable[[], Session]] = None,
        oracle: Optional[DecisionOracle] = None,
        snapshotter: Optional[DomSnapshotter] = None,
        executor: Optional[StepExecutor] = None,
        environment: Optional[EnvironmentReset] = None,
        logger: Optional[logging.Logger] = None,
        sleep: Optional[Sleep] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger("autoqa_agent")
        self.run_store = run_store or JsonRunStore(config.storage.runs_folder)
        self.artifact_store = artifact_store or LocalArtifactStore(config.storage.screenshots_folder)
        self.browser_factory = browser_factory or (
            lambda: BrowserSession(config.browser, logger=self.logger)
        )
        self.oracle = oracle or DecisionOracle(config.oracle, logger=self.logger)
        self.snapshotter = snapshotter or DomSnapshotter(logger=self.logger)
        self.executor = executor or StepExecutor(
            LocatorResolver(logger=self.logger),
            timeout_ms=config.browser.action_timeout_ms,
            logger=self.logger,
        )
        self.environment = environment or default_environment_reset(config.cleanup, logger=self.logger)
        self.sleep = sleep or asyncio.sleep

    async def run(self, request: RunRequest) -> TestRun:
        """Execute one run and write exactly one terminal record."""
        run = TestRun.start(request)
        session: Optional[Session] = None
        try:
            self.environment.reset()
            session = self.browser_factory()
            page = await session.start()

            self.logger.info(f"[{run.id}] Starting agent loop for {run.url}")
            await session.goto(run.url)
            await self.sleep(self.config.loop.initial_delay)

            verdict = await self._drive(run, page)
            self.logger.info(
                f"[{run.id}] Loop ended after {verdict.steps_taken} step(s): "
                f"{verdict.status.value} - {verdict.result}"
            )

            image = await session.screenshot()
            screenshot_ref = self.artifact_store.put_screenshot(run.id, image)
            self.run_store.record(
                run.id, run.completion_record(verdict.status, verdict.result, screenshot_ref)
            )
            run.finish(verdict.status, verdict.result, screenshot_ref)
        except Exception as exc:
            self.logger.error(f"[{run.id}] System crash: {exc}", exc_info=True)
            self._record_crash(run, exc)
        finally:
            if session is not None:
                await session.close()
        return run

    async def _drive(self, run: TestRun, page: Page) -> Verdict:
        """The iteration loop; returns the verdict without persisting it."""
        loop_config = self.config.loop
        window = self.config.oracle.history_window

        for step_number in range(1, loop_config.max_steps + 1):
            self.logger.info(f"[{run.id}] --- Step {step_number}/{loop_config.max_steps} ---")

            snapshot = await self.snapshotter.capture(page)
            decision = await self.oracle.decide(run.goal, run.recent_summaries(window), snapshot)

            if not decision.is_usable:
                self.logger.error(f"[{run.id}] Oracle returned {decision.describe()}")
                return Verdict(RunStatus.FAILED, DECISION_FAILURE_MESSAGE, step_number)

            if decision.action is ActionType.FINISH:
                status = RunStatus.COMPLETED if decision.success else RunStatus.FAILED
                result = decision.desc or ("Goal reached." if decision.success else "Goal not reached.")
                return Verdict(status, result, step_number)

            if decision.action is ActionType.WAIT:
                self.logger.info(f"[{run.id}] Waiting {loop_config.wait_delay}s: {decision.desc or ''}")
                await self.sleep(loop_config.wait_delay)
                continue

            try:
                used = await self.executor.execute(page, decision)
            except StepError as exc:
                self.logger.warning(f"[{run.id}] Step failed: {decision.describe()}: {exc}")
                run.record_step(decision, StepOutcome.FAILED, error=exc.message)
            else:
                self.logger.info(f"[{run.id}] Step succeeded: {decision.describe()} via {used}")
                run.record_step(decision, StepOutcome.SUCCESS)

            await self.sleep(loop_config.settle_delay)

        return Verdict(RunStatus.FAILED, MAX_STEPS_MESSAGE, loop_config.max_steps)

    def _record_crash(self, run: TestRun, exc: Exception) -> None:
        error = exc.message if isinstance(exc, AutoQAError) else (str(exc) or type(exc).__name__)
        try:
            self.run_store.record(run.id, run.crash_record(error))
        except Exception as store_exc:
            self.logger.error(f"[{run.id}] Failed to record crash: {store_exc}")
        if not run.is_terminal:
            run.crash(error)
