"""Vision-model OCR through the OpenAI Responses API."""

import logging
from typing import Any, Dict, List

import httpx
import openai
from openai import AsyncOpenAI

from services.capabilities import TextRecognizer
from services.errors import RecognitionError
from services.openai.error_mapping import to_upstream_error
from services.openai.prompts import transcription_system_prompt, transcription_user_prompt
from services.openai.response_parser import extract_output_text
from utils.media_validation import to_image_data_url

logger = logging.getLogger(__name__)


def build_inputs(image_b64: str) -> List[Dict[str, Any]]:
    """Build the Responses API input array: system prompt, instruction, then the image."""
    return [
        {
            "type": "message",
            "role": "system",
            "content": [{"type": "input_text", "text": transcription_system_prompt()}],
        },
        {
            "type": "message",
            "role": "user",
            "content": [{"type": "input_text", "text": transcription_user_prompt()}],
        },
        {
            "type": "message",
            "role": "user",
            "content": [{"type": "input_image", "image_url": to_image_data_url(image_b64)}],
        },
    ]


class OpenAITextRecognizer(TextRecognizer):
    """Transcribe screenshot text with an OpenAI vision model."""

    name = "openai"

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-4o-mini") -> None:
        """Initialize the recognizer with an OpenAI async client."""
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def recognize(self, image_base64: str) -> str:
        try:
            response = await self.client.responses.create(
                model=self.model,
                input=build_inputs(image_base64),
            )
        except (openai.APIError, httpx.HTTPError) as exc:
            logger.error("Error during OpenAI transcription call: %s", exc)
            raise to_upstream_error(exc, RecognitionError, "Transcription") from exc
        return extract_output_text(response).strip()
