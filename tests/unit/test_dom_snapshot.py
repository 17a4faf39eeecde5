"""Unit tests for dom_snapshot module."""
from __future__ import annotations

import pytest

from dom_snapshot import (
    TEXT_CAP,
    DomSnapshotter,
    ElementDescriptor,
    build_snapshot,
    format_element,
    is_visible,
)
from tests.fakes import FakeElement, FakePage


class TestElementDescriptor:
    def test_text_is_collapsed_and_capped(self):
        raw = {"tag": "BUTTON", "text": "  Sign \n\n  in " + "x" * 100}
        element = ElementDescriptor.from_raw(raw)
        assert element.tag == "button"
        assert element.text.startswith("Sign in x")
        assert len(element.text) == TEXT_CAP

    def test_missing_fields_default_to_empty(self):
        element = ElementDescriptor.from_raw({"tag": "a", "id": None})
        assert element.id == ""
        assert element.opacity == "1"


class TestVisibility:
    @pytest.mark.parametrize(
        "overrides",
        [{"display": "none"}, {"visibility": "hidden"}, {"opacity": "0"}, {"opacity": "0.0"}],
    )
    def test_hidden_elements(self, overrides):
        assert not is_visible(ElementDescriptor(tag="input", **overrides))

    def test_visible_element(self):
        assert is_visible(ElementDescriptor(tag="input", display="block", opacity="0.5"))


class TestFormatting:
    def test_attribute_order_and_omission(self):
        element = ElementDescriptor(
            tag="input", id="email", type="email", placeholder="Email", value="a@b.c"
        )
        assert format_element(element) == (
            '<input id="email" type="email" placeholder="Email" value="a@b.c" />'
        )

    def test_bare_element(self):
        assert format_element(ElementDescriptor(tag="button")) == "<button />"

    def test_build_snapshot_skips_hidden(self):
        elements = [
            ElementDescriptor(tag="input", name="user"),
            ElementDescriptor(tag="input", name="secret", display="none"),
            ElementDescriptor(tag="button", text="Sign In"),
        ]
        assert build_snapshot(elements) == '<input name="user" />\n<button text="Sign In" />'

    def test_empty_page(self):
        assert build_snapshot([]) == ""


class TestDomSnapshotter:
    @pytest.mark.asyncio
    async def test_capture_is_read_only_and_stable(self, login_page):
        snapshotter = DomSnapshotter()
        first = await snapshotter.capture(login_page)
        second = await snapshotter.capture(login_page)
        assert first == second
        assert first.splitlines() == [
            '<input name="user" />',
            '<input name="pass" type="password" />',
            '<button text="Sign In" />',
        ]
        assert all(not el.value for el in login_page.elements)

    @pytest.mark.asyncio
    async def test_hidden_element_never_appears(self):
        page = FakePage(
            [
                FakeElement(tag="input", name="visible"),
                FakeElement(tag="input", name="ghost", visibility="hidden"),
            ]
        )
        snapshot = await DomSnapshotter().capture(page)
        assert "ghost" not in snapshot
        assert "visible" in snapshot
