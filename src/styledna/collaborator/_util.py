"""Shared helpers for collaborator implementations."""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

from styledna.errors import CollaboratorError

_FENCE_RE = re.compile(r"```(?:json)?\n?")


def _to_dict(obj: object) -> dict[str, Any]:
    """Convert an OpenAI SDK response model or a plain mapping to a dict.

    Anything else is a malformed collaborator response.
    """
    if isinstance(obj, Mapping):
        return {str(key): value for key, value in obj.items()}
    model_dump = getattr(obj, "model_dump", None)
    if callable(model_dump):
        dumped = model_dump()
        if isinstance(dumped, Mapping):
            return {str(key): value for key, value in dumped.items()}
    msg = f"Unexpected {type(obj).__name__} in collaborator response."
    raise CollaboratorError(msg, kind="malformed")


def strip_code_fences(content: str) -> str:
    """Remove markdown code fence markers (```json / ```) around a JSON payload."""
    return _FENCE_RE.sub("", content).strip()


def load_json_content(content: str) -> object:
    """Parse JSON text, retrying once without markdown code fences.

    Raises CollaboratorError(kind="malformed") when both attempts fail.
    """
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        cleaned = strip_code_fences(content)
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as exc:
        msg = f"Collaborator returned invalid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})"
        raise CollaboratorError(msg, kind="malformed") from exc


def first_choice_content(response: object) -> str:
    """Return the message content of the first chat completion choice."""
    data = _to_dict(response)
    choices = data.get("choices")
    if isinstance(choices, list) and choices:
        choice = _to_dict(choices[0])
        message = choice.get("message")
        if message is not None:
            content = _to_dict(message).get("content")
            if isinstance(content, str) and content:
                return content
    msg = "No response content from collaborator."
    raise CollaboratorError(msg, kind="malformed")
