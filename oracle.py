"""Decision oracle client: asks an LLM for the next step of a run."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional, Sequence

from openai import APIConnectionError, APITimeoutError, AsyncOpenAI
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from config import OracleConfig
from exceptions import OracleConnectionError, OracleError, OracleResponseError
from prompts import get_decision_prompt
from run_types import Decision


def extract_json_object(text: str) -> Dict[str, Any]:
    """Parse the span between the first ``{`` and the last ``}``.

    Models like to wrap their answer in prose or markdown fences; anything
    outside the outermost braces is ignored.
    """
    if not text:
        raise OracleResponseError("Empty response from oracle")
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise OracleResponseError("No JSON found in response", response=text)
    try:
        payload = json.loads(text[start : end + 1])
    except json.JSONDecodeError as exc:
        raise OracleResponseError(f"Malformed JSON in response: {exc}", response=text) from exc
    if not isinstance(payload, dict):
        raise OracleResponseError("Response JSON is not an object", response=text)
    return payload


class DecisionOracle:
    """Consults an OpenAI-compatible chat endpoint with bounded retries."""

    def __init__(
        self,
        config: OracleConfig,
        client: Optional[AsyncOpenAI] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.logger = logger or logging.getLogger("oracle")
        self.client = client or AsyncOpenAI(
            api_key=config.api_key or "unset",
            base_url=config.base_url,
        )

    async def _generate(self, prompt: str) -> str:
        """Single call to the text-generation service."""
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.config.temperature,
                max_tokens=self.config.max_tokens,
            )
        except (APIConnectionError, APITimeoutError) as e:
            raise OracleConnectionError(f"Oracle unreachable: {e}", base_url=self.config.base_url) from e
        except Exception as e:
            raise OracleError(f"Oracle call failed: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise OracleResponseError(f"Unexpected response shape: {e}") from e
        if not content:
            raise OracleResponseError("Empty response from oracle")
        return content

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            f"Oracle attempt {retry_state.attempt_number}/{self.config.max_attempts} failed: {exc}. Retrying..."
        )

    async def decide(self, goal: str, recent_history: Sequence[str], snapshot: str) -> Decision:
        """Return the next decision; degrades to a wait when the oracle keeps failing."""
        prompt = get_decision_prompt(
            goal,
            recent_history,
            snapshot,
            history_window=self.config.history_window,
        )
        payload: Dict[str, Any] = {}
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.config.max_attempts),
                wait=wait_fixed(self.config.retry_delay),
                retry=retry_if_exception_type(OracleError),
                before_sleep=self._log_retry,
                reraise=True,
            ):
                with attempt:
                    text = await self._generate(prompt)
                    self.logger.debug(f"Oracle response: {text[:200]}")
                    payload = extract_json_object(text)
        except OracleError as exc:
            self.logger.error(f"Oracle failed after {self.config.max_attempts} attempts: {exc}")
            return Decision.fallback_wait(f"Oracle unavailable, waiting... ({exc.message})")

        decision = Decision.from_payload(payload)
        self.logger.info(f"Oracle decision: {decision.describe()}")
        return decision
