"""Schema definitions for the answer generation tool."""

from typing import Any, Dict

FUNCTION_NAME = "submit_screen_answer"

FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": FUNCTION_NAME,
        "description": "Return the answer for the recognized screen text and a short title.",
        "parameters": {
            "type": "object",
            "properties": {
                "answer": {
                    "type": "string",
                    "description": "The full answer or explanation, Markdown allowed.",
                },
                "title": {
                    "type": "string",
                    "description": "A short title (at most ten words) summarizing the topic.",
                },
            },
            "required": ["answer", "title"],
            "additionalProperties": False,
        },
    },
}

TOOL_CHOICE: Dict[str, Any] = {"type": "function", "function": {"name": FUNCTION_NAME}}
