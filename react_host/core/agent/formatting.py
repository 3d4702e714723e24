"""
Markdown and JSON rendering for the text streamed back to the user.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Optional


_JSON_FRAGMENT = re.compile(r"{.*}", re.DOTALL)


def to_pretty_json(obj: Any) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, indent=4)
    except (TypeError, ValueError):
        return "Failed to stringify JSON"


def to_json_with_prefix(prefix: str, obj: Any) -> str:
    return f"{prefix}\n```json\n{to_pretty_json(obj)}\n```"


def to_extract_json_string(text: str) -> str:
    """
    Pretty-print the JSON embedded in an error message, if there is any.

    The outermost `{...}` span is moved into a fenced block after the rest of
    the message. Text whose braces do not hold valid JSON is returned as is.
    """

    match = _JSON_FRAGMENT.search(text)
    if not match:
        return text
    fragment = match.group(0)
    try:
        data = json.loads(fragment)
    except json.JSONDecodeError:
        return text
    remainder = text.replace(fragment, "").strip()
    return f"{remainder} \n```json\n{to_pretty_json(data)}\n```"


def extract_result_text(response: Mapping[str, Any]) -> str:
    """Text of the first part of an A2A result, or an empty string."""
    result = response.get("result")
    if not isinstance(result, Mapping):
        return ""
    parts = result.get("parts")
    if not parts:
        # Task-shaped results carry their output on the status message.
        status = result.get("status")
        message = status.get("message") if isinstance(status, Mapping) else None
        parts = message.get("parts") if isinstance(message, Mapping) else None
    if not parts or not isinstance(parts[0], Mapping):
        return ""
    return str(parts[0].get("text") or "")


def extract_result_state(response: Mapping[str, Any]) -> str:
    result = response.get("result")
    status = result.get("status") if isinstance(result, Mapping) else None
    if not status or not isinstance(status, Mapping):
        return "completed"
    return str(status.get("state") or "completed")


def format_observation_display(
    agent_name: str,
    skill_name: str,
    state: str,
    text: Optional[str],
) -> str:
    state_icon = "🔴" if state == "failed" else "🟢"
    lines = [
        "#### A2A Server Response: ",
        f"> 🤖  **Discovered Server Name:** {agent_name}  ",
        f"> 🛠️  **Discovered Skill Name:** {skill_name}  ",
        f"##### {state_icon} Invocation {state} ",
    ]
    if text:
        lines.append(text)
    return "\n".join(lines) + "\n"
