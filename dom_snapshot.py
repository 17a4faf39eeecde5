"""Reduce a live page to a textual inventory of visible interactive elements."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from playwright.async_api import Page

INTERACTIVE_SELECTOR = "button, a, input, select, textarea, [role='button'], [role='link']"
TEXT_CAP = 50

# Collects raw attributes only; visibility and formatting are decided in Python.
_COLLECT_SCRIPT = """(selector) => {
    const elements = document.querySelectorAll(selector);
    return Array.from(elements).map((el) => {
        const style = window.getComputedStyle(el);
        return {
            tag: el.tagName.toLowerCase(),
            id: el.id || '',
            name: el.getAttribute('name') || '',
            type: el.getAttribute('type') || '',
            text: (el.innerText || '').replace(/\\s+/g, ' ').trim(),
            placeholder: el.getAttribute('placeholder') || '',
            label: el.getAttribute('aria-label') || '',
            value: typeof el.value === 'string' ? el.value : '',
            display: style.display,
            visibility: style.visibility,
            opacity: style.opacity,
        };
    });
}"""


@dataclass(frozen=True)
class ElementDescriptor:
    """Identifying attributes of one interactive element."""

    tag: str
    id: str = ""
    name: str = ""
    type: str = ""
    text: str = ""
    placeholder: str = ""
    label: str = ""
    value: str = ""
    display: str = ""
    visibility: str = ""
    opacity: str = "1"

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "ElementDescriptor":
        def _s(key: str, default: str = "") -> str:
            value = raw.get(key)
            return default if value is None else str(value)

        return cls(
            tag=_s("tag").lower(),
            id=_s("id"),
            name=_s("name"),
            type=_s("type"),
            text=" ".join(_s("text").split())[:TEXT_CAP],
            placeholder=_s("placeholder"),
            label=_s("label"),
            value=_s("value"),
            display=_s("display"),
            visibility=_s("visibility"),
            opacity=_s("opacity", "1"),
        )


def _opacity_is_zero(opacity: str) -> bool:
    try:
        return float(opacity) == 0.0
    except (TypeError, ValueError):
        return False


def is_visible(element: ElementDescriptor) -> bool:
    """Hidden controls must never be offered to the oracle."""
    if element.display.strip().lower() == "none":
        return False
    if element.visibility.strip().lower() == "hidden":
        return False
    return not _opacity_is_zero(element.opacity)


def format_element(element: ElementDescriptor) -> str:
    """Render one element as ``<tag id="…" … />`` with absent fields omitted."""
    parts = [f"<{element.tag}"]
    for name in ("id", "name", "type", "text", "placeholder", "value"):
        attr = getattr(element, name)
        if attr:
            parts.append(f'{name}="{attr}"')
    parts.append("/>")
    return " ".join(parts)


def build_snapshot(elements: Iterable[ElementDescriptor]) -> str:
    return "\n".join(format_element(el) for el in elements if is_visible(el))


class DomSnapshotter:
    """Capture the interactive inventory of a page without touching it."""

    def __init__(
        self,
        selector: str = INTERACTIVE_SELECTOR,
        logger: Optional[logging.Logger] = None,
    ):
        self.selector = selector
        self.logger = logger or logging.getLogger("dom_snapshot")

    async def collect(self, page: Page) -> List[ElementDescriptor]:
        raw_elements = await page.evaluate(_COLLECT_SCRIPT, self.selector)
        return [ElementDescriptor.from_raw(raw) for raw in raw_elements or []]

    async def capture(self, page: Page) -> str:
        elements = await self.collect(page)
        snapshot = build_snapshot(elements)
        visible = snapshot.count("\n") + 1 if snapshot else 0
        self.logger.debug(f"Snapshot: {visible} visible of {len(elements)} interactive elements")
        return snapshot
