"""Unit tests for oracle and prompts modules."""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Sequence, Union

import pytest

from config import OracleConfig
from exceptions import OracleResponseError
from oracle import DecisionOracle, extract_json_object
from prompts import format_history, get_decision_prompt
from run_types import ActionType


class FakeCompletions:
    """Scripted chat.completions endpoint; exceptions in the script are raised."""

    def __init__(self, script: Sequence[Union[str, None, Exception]]):
        self.script = list(script)
        self.calls: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        item = self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        message = SimpleNamespace(content=item)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_oracle(script: Sequence[Union[str, None, Exception]], **config: Any) -> tuple[DecisionOracle, FakeCompletions]:
    completions = FakeCompletions(script)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    oracle_config = OracleConfig(api_key="k", retry_delay=0.0, **config)
    return DecisionOracle(oracle_config, client=client), completions


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"action": "wait"}') == {"action": "wait"}

    def test_markdown_fenced(self):
        text = 'Sure!\n```json\n{"action": "click", "target": "Sign In"}\n```\nGood luck.'
        assert extract_json_object(text) == {"action": "click", "target": "Sign In"}

    @pytest.mark.parametrize("text", ["", "no braces here", "{not: json}", "} backwards {"])
    def test_rejects_unparseable(self, text):
        with pytest.raises(OracleResponseError):
            extract_json_object(text)

    def test_rejects_array_span(self):
        with pytest.raises(OracleResponseError):
            extract_json_object('[{"a": 1}, {"b": 2}]x')


class TestPrompts:
    def test_history_window(self):
        history = [f"SUCCESS: click on 'b{i}'" for i in range(7)]
        rendered = format_history(history, 5)
        assert rendered.split(" -> ") == history[2:]

    def test_empty_history(self):
        assert format_history([], 5) == "(none)"

    def test_prompt_contains_goal_and_elements(self):
        prompt = get_decision_prompt("log in", [], '<input name="user" />')
        assert 'GOAL: "log in"' in prompt
        assert '<input name="user" />' in prompt
        assert '{"action": "finish", "success": true, "desc": "..."}' in prompt


class TestDecisionOracle:
    @pytest.mark.asyncio
    async def test_valid_response(self):
        oracle, completions = make_oracle(['{"action": "fill", "target": "user", "value": "test"}'])
        decision = await oracle.decide("goal", [], "<input name=\"user\" />")
        assert decision.action is ActionType.FILL
        assert decision.value == "test"
        assert len(completions.calls) == 1
        assert completions.calls[0]["model"] == "gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_three_malformed_responses_fall_back_to_wait(self):
        oracle, completions = make_oracle(["nope", "still nope", "{broken"])
        decision = await oracle.decide("goal", [], "")
        assert decision.action is ActionType.WAIT
        assert decision.fallback is True
        assert len(completions.calls) == 3

    @pytest.mark.asyncio
    async def test_retry_then_success(self):
        oracle, completions = make_oracle(["garbage", None, '{"action": "press", "key": "Enter"}'])
        decision = await oracle.decide("goal", [], "")
        assert decision.action is ActionType.PRESS
        assert decision.key == "Enter"
        assert len(completions.calls) == 3

    @pytest.mark.asyncio
    async def test_transport_errors_fall_back_to_wait(self):
        oracle, completions = make_oracle([RuntimeError("503")] * 3)
        decision = await oracle.decide("goal", [], "")
        assert decision.fallback is True
        assert len(completions.calls) == 3

    @pytest.mark.asyncio
    async def test_attempt_budget_is_configurable(self):
        oracle, completions = make_oracle(["x", "y"], max_attempts=2)
        decision = await oracle.decide("goal", [], "")
        assert decision.fallback is True
        assert len(completions.calls) == 2

    @pytest.mark.asyncio
    async def test_unknown_action_is_returned_not_retried(self):
        oracle, completions = make_oracle(['{"action": "dance"}'])
        decision = await oracle.decide("goal", [], "")
        assert not decision.is_usable
        assert len(completions.calls) == 1

    @pytest.mark.asyncio
    async def test_prompt_shows_only_recent_history(self):
        oracle, completions = make_oracle(['{"action": "wait"}'])
        history = [f"FAILED: click on 'b{i}'" for i in range(7)]
        await oracle.decide("goal", history, "")
        prompt = completions.calls[0]["messages"][0]["content"]
        assert "b1'" not in prompt
        assert "FAILED: click on 'b2' -> " in prompt
        assert "b6'" in prompt
