"""Unit tests for locator module."""
from __future__ import annotations

import pytest

from exceptions import ElementNotFoundError
from locator import BARE_IDENTIFIER, LocatorResolver, target_pattern
from tests.fakes import FakeElement, FakePage


async def resolve(elements, target):
    page = FakePage(elements)
    resolved = await LocatorResolver().resolve(page, target)
    return resolved, page


class TestTargetPattern:
    def test_case_insensitive_substring(self):
        assert target_pattern("sign in").search("Please Sign In now")

    def test_regex_metacharacters_are_literal(self):
        pattern = target_pattern("Price (USD)")
        assert pattern.search("Total Price (USD)")
        assert not pattern.search("Price USD")

    def test_bare_identifier(self):
        assert BARE_IDENTIFIER.match("user_name-2")
        assert not BARE_IDENTIFIER.match("Sign In")


class TestLocatorResolver:
    """Priority order: id, name, placeholder, label, button, link, text."""

    @pytest.mark.asyncio
    async def test_id_beats_name(self):
        by_name = FakeElement(tag="input", name="email")
        by_id = FakeElement(tag="input", id="email")
        resolved, _ = await resolve([by_name, by_id], "email")
        assert resolved.strategy == "id"
        assert resolved.locator.matches == [by_id]

    @pytest.mark.asyncio
    async def test_name_beats_placeholder(self):
        by_placeholder = FakeElement(tag="input", placeholder="email")
        by_name = FakeElement(tag="input", name="email")
        resolved, _ = await resolve([by_placeholder, by_name], "email")
        assert resolved.strategy == "name"

    @pytest.mark.asyncio
    async def test_placeholder_beats_label(self):
        by_label = FakeElement(tag="input", label="Email address")
        by_placeholder = FakeElement(tag="input", placeholder="Email address")
        resolved, _ = await resolve([by_label, by_placeholder], "Email address")
        assert resolved.strategy == "placeholder"
        assert resolved.locator.matches == [by_placeholder]

    @pytest.mark.asyncio
    async def test_label_beats_button(self):
        button = FakeElement(tag="button", text="Remember me")
        checkbox = FakeElement(tag="input", type="checkbox", label="Remember me")
        resolved, _ = await resolve([button, checkbox], "Remember me")
        assert resolved.strategy == "label"

    @pytest.mark.asyncio
    async def test_button_beats_link(self):
        link = FakeElement(tag="a", text="Sign In")
        button = FakeElement(tag="button", text="Sign In")
        resolved, _ = await resolve([link, button], "Sign In")
        assert resolved.strategy == "button"
        assert resolved.locator.matches == [button]

    @pytest.mark.asyncio
    async def test_link_beats_text(self):
        span = FakeElement(tag="span", text="Forgot password?")
        link = FakeElement(tag="a", text="Forgot password?")
        resolved, _ = await resolve([span, link], "Forgot password?")
        assert resolved.strategy == "link"

    @pytest.mark.asyncio
    async def test_falls_back_to_text(self):
        resolved, _ = await resolve([FakeElement(tag="div", text="Accept cookies")], "accept")
        assert resolved.strategy == "text"

    @pytest.mark.asyncio
    async def test_phrase_skips_attribute_strategies(self):
        # A phrase with spaces is never looked up as an id.
        element = FakeElement(tag="button", id="Sign In", text="Sign In")
        resolved, _ = await resolve([element], "Sign In")
        assert resolved.strategy == "button"

    @pytest.mark.asyncio
    async def test_first_match_in_document_order(self):
        first = FakeElement(tag="button", text="Save draft")
        second = FakeElement(tag="button", text="Save")
        resolved, _ = await resolve([first, second], "Save")
        assert resolved.locator.matches == [first]

    @pytest.mark.asyncio
    async def test_target_is_trimmed(self):
        resolved, _ = await resolve([FakeElement(tag="input", name="user")], "  user ")
        assert resolved.strategy == "name"

    @pytest.mark.asyncio
    async def test_not_found(self):
        with pytest.raises(ElementNotFoundError) as exc_info:
            await resolve([FakeElement(tag="input", name="user")], "missing")
        assert exc_info.value.message == "Element not found: missing"
        assert exc_info.value.target == "missing"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("target", [None, "", "   "])
    async def test_empty_target(self, target):
        with pytest.raises(ElementNotFoundError):
            await resolve([FakeElement(tag="input", name="user")], target)
