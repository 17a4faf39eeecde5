"""Prompt for the decision oracle."""
from typing import Sequence

HISTORY_SEPARATOR = " -> "


def format_history(history: Sequence[str], window: int) -> str:
    """Join the most recent ``window`` entries; older ones are dropped."""
    if window <= 0 or not history:
        return "(none)"
    return HISTORY_SEPARATOR.join(history[-window:])


def get_decision_prompt(
    goal: str,
    history: Sequence[str],
    snapshot: str,
    history_window: int = 5,
) -> str:
    """Generate the single-turn prompt asking for the next step."""
    elements = snapshot or "(no visible interactive elements)"

    return f"""You are an autonomous browser agent executing a functional test.

GOAL: "{goal}"
HISTORY: {format_history(history, history_window)}

VISIBLE UI ELEMENTS:
{elements}

---------------------------------------------------
INSTRUCTIONS:
1. Analyze the "VISIBLE UI ELEMENTS".
2. Pick the SINGLE next logical step.
3. Use the 'target' field to specify EXACTLY how to find the element.
   - PRIORITY 1: Use 'name' or 'id' attributes (e.g. target: "email").
   - PRIORITY 2: Use 'placeholder' or 'label' (e.g. target: "Email address").
   - PRIORITY 3: Use visible text (e.g. target: "Sign In").
4. If the HISTORY shows a FAILED step, try a different target or approach.
5. When the desired outcome is visibly reached, finish with success true.
   When it clearly cannot be reached, finish with success false and say why.

OUTPUT SCHEMA (return ONE raw JSON object, nothing else):
{{"action": "click", "target": "..."}}
{{"action": "fill", "target": "...", "value": "..."}}
{{"action": "press", "key": "Enter"}}
{{"action": "finish", "success": true, "desc": "..."}}
"""
