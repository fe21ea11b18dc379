"""Helpers to extract text and tool arguments from OpenAI responses."""

from __future__ import annotations

import json
from typing import Any, Dict, Optional


def extract_output_text(response: Any) -> str:
	"""Return the concatenated output_text of a Responses API result."""
	text = getattr(response, "output_text", None)
	if isinstance(text, str):
		return text
	parts = []
	for item in getattr(response, "output", None) or []:
		if getattr(item, "type", None) != "message":
			continue
		for content in getattr(item, "content", None) or []:
			if getattr(content, "type", None) == "output_text":
				parts.append(getattr(content, "text", "") or "")
	return "".join(parts)


def parse_tool_arguments(response: Any, tool_name: str) -> Optional[Dict[str, Any]]:
	"""Return decoded arguments of the named tool call in a chat completion, if any.

	Raises:
		ValueError: If the tool call is present but its arguments are not a JSON object.
	"""
	choices = getattr(response, "choices", None) or []
	if not choices:
		return None
	message = getattr(choices[0], "message", None)
	for call in getattr(message, "tool_calls", None) or []:
		function = getattr(call, "function", None)
		if getattr(function, "name", None) != tool_name:
			continue
		args = json.loads(getattr(function, "arguments", None) or "{}")
		if not isinstance(args, dict):
			raise ValueError(f"Arguments for '{tool_name}' are not a JSON object")
		return args
	return None


def extract_message_content(response: Any) -> str:
	"""Return the plain assistant message content of a chat completion."""
	choices = getattr(response, "choices", None) or []
	if not choices:
		return ""
	message = getattr(choices[0], "message", None)
	return getattr(message, "content", None) or ""
