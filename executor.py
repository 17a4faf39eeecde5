"""Perform click/fill/press steps with escalating interaction strategies."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from exceptions import InteractionError, StepError
from locator import LocatorResolver
from run_types import ActionType, Decision

_SCRIPT_CLICK = "(node) => node.click()"

_SCRIPT_FILL = """(node, value) => {
    node.value = value;
    node.dispatchEvent(new Event('input', { bubbles: true }));
    node.dispatchEvent(new Event('change', { bubbles: true }));
}"""

_DISPATCH_INPUT = "(node) => node.dispatchEvent(new Event('input', { bubbles: true }))"


@dataclass(frozen=True)
class InteractionStrategy:
    """A named way of performing one interaction against a locator."""

    name: str
    perform: Callable[[Locator], Awaitable[None]]


async def run_chain(
    strategies: Sequence[InteractionStrategy],
    locator: Locator,
    action: str,
    logger: Optional[logging.Logger] = None,
) -> str:
    """Try strategies in order; return the name of the first that succeeds."""
    logger = logger or logging.getLogger("executor")
    attempts: List[str] = []
    for strategy in strategies:
        try:
            await strategy.perform(locator)
        except Exception as exc:
            attempts.append(f"{strategy.name}: {exc}")
            logger.debug(f"{action} via {strategy.name} failed: {exc}")
            continue
        if attempts:
            logger.info(f"{action} succeeded via {strategy.name} after {len(attempts)} failed attempt(s)")
        return strategy.name
    raise InteractionError(f"All {action} strategies failed", action=action, attempts=attempts)


def click_strategies(timeout_ms: float) -> List[InteractionStrategy]:
    return [
        InteractionStrategy("click", lambda loc: loc.click(timeout=timeout_ms)),
        InteractionStrategy("force-click", lambda loc: loc.click(timeout=timeout_ms, force=True)),
        InteractionStrategy(
            "script-click", lambda loc: loc.evaluate(_SCRIPT_CLICK, timeout=timeout_ms)
        ),
    ]


def fill_strategies(value: str, timeout_ms: float) -> List[InteractionStrategy]:
    return [
        InteractionStrategy("fill", lambda loc: loc.fill(value, timeout=timeout_ms)),
        InteractionStrategy("force-fill", lambda loc: loc.fill(value, timeout=timeout_ms, force=True)),
        InteractionStrategy(
            "script-fill", lambda loc: loc.evaluate(_SCRIPT_FILL, value, timeout=timeout_ms)
        ),
    ]


class StepExecutor:
    """Executes one oracle decision against the page."""

    def __init__(
        self,
        resolver: Optional[LocatorResolver] = None,
        timeout_ms: float = 2000,
        logger: Optional[logging.Logger] = None,
    ):
        self.logger = logger or logging.getLogger("executor")
        self.resolver = resolver or LocatorResolver(logger=self.logger)
        self.timeout_ms = timeout_ms

    async def execute(self, page: Page, decision: Decision) -> str:
        """Run the step; raises a StepError subclass when it cannot be done."""
        try:
            if decision.action is ActionType.CLICK:
                return await self._click(page, decision)
            if decision.action is ActionType.FILL:
                return await self._fill(page, decision)
            if decision.action is ActionType.PRESS:
                return await self._press(page, decision)
        except StepError:
            raise
        except PlaywrightError as exc:
            raise InteractionError(
                f"{decision.action.value} failed: {exc}", action=decision.action.value
            ) from exc

        action = decision.action.value if decision.action else None
        raise InteractionError(f"Action is not executable: {action}", action=action)

    async def _click(self, page: Page, decision: Decision) -> str:
        resolved = await self.resolver.resolve(page, decision.target)
        return await run_chain(
            click_strategies(self.timeout_ms), resolved.locator, "click", self.logger
        )

    async def _fill(self, page: Page, decision: Decision) -> str:
        resolved = await self.resolver.resolve(page, decision.target)
        value = decision.value or ""
        used = await run_chain(
            fill_strategies(value, self.timeout_ms), resolved.locator, "fill", self.logger
        )
        # Blur-based validators only fire once focus leaves the field.
        await resolved.locator.evaluate(_DISPATCH_INPUT, timeout=self.timeout_ms)
        await page.keyboard.press("Tab")
        return used

    async def _press(self, page: Page, decision: Decision) -> str:
        if not decision.key:
            raise InteractionError("No key provided", action="press")
        await page.keyboard.press(decision.key)
        return "keyboard"
