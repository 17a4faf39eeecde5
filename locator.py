"""Map a natural-language target to a concrete element on the page."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, NamedTuple, Optional, Pattern

from playwright.async_api import Locator, Page

from exceptions import ElementNotFoundError

BARE_IDENTIFIER = re.compile(r"^[A-Za-z0-9_-]+$")


class ResolvedTarget(NamedTuple):
    locator: Locator
    strategy: str


@dataclass(frozen=True)
class LocatorStrategy:
    """One rung of the priority chain."""

    name: str
    build: Callable[[Page, str, Pattern[str]], Locator]
    identifier_only: bool = False


def target_pattern(target: str) -> Pattern[str]:
    """Case-insensitive substring pattern for ``target``."""
    return re.compile(re.escape(target.strip()), re.IGNORECASE)


DEFAULT_STRATEGIES: List[LocatorStrategy] = [
    LocatorStrategy("id", lambda page, t, _: page.locator(f'[id="{t}"]'), identifier_only=True),
    LocatorStrategy("name", lambda page, t, _: page.locator(f'[name="{t}"]'), identifier_only=True),
    LocatorStrategy("placeholder", lambda page, _, p: page.get_by_placeholder(p)),
    LocatorStrategy("label", lambda page, _, p: page.get_by_label(p)),
    LocatorStrategy("button", lambda page, _, p: page.get_by_role("button", name=p)),
    LocatorStrategy("link", lambda page, _, p: page.get_by_role("link", name=p)),
    LocatorStrategy("text", lambda page, _, p: page.get_by_text(p)),
]


class LocatorResolver:
    """Try each strategy in order; the first non-empty match wins."""

    def __init__(
        self,
        strategies: Optional[List[LocatorStrategy]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.strategies = strategies or DEFAULT_STRATEGIES
        self.logger = logger or logging.getLogger("locator")

    async def resolve(self, page: Page, target: Optional[str]) -> ResolvedTarget:
        if not target or not target.strip():
            raise ElementNotFoundError("Element not found: empty target", target=target)

        target = target.strip()
        is_identifier = bool(BARE_IDENTIFIER.match(target))
        pattern = target_pattern(target)

        for strategy in self.strategies:
            if strategy.identifier_only and not is_identifier:
                continue
            candidates = strategy.build(page, target, pattern)
            if await candidates.count() > 0:
                self.logger.debug(f"Resolved '{target}' by {strategy.name}")
                return ResolvedTarget(candidates.first, strategy.name)

        raise ElementNotFoundError(f"Element not found: {target}", target=target)
