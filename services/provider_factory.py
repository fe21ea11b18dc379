"""Build the configured recognizer and generator variants from settings."""

from __future__ import annotations

from typing import Optional

import httpx
from openai import AsyncOpenAI

from services.baidu.text_recognizer import BaiduTextRecognizer
from services.capabilities import AnswerGenerator, TextRecognizer
from services.openai.answer_generator import OpenAIAnswerGenerator
from services.openai.text_recognizer import OpenAITextRecognizer
from utils.settings import Settings


def build_recognizer(
    settings: Settings,
    http_client: httpx.AsyncClient,
    vision_client: Optional[AsyncOpenAI] = None,
) -> TextRecognizer:
    """Return the recognizer selected by `settings.ocr_provider`.

    Raises:
        RuntimeError: If the selected provider is missing its credentials.
    """
    if settings.ocr_provider == "baidu":
        if not settings.baidu_api_key or not settings.baidu_secret_key:
            raise RuntimeError("BAIDU_API_KEY and BAIDU_SECRET_KEY must be set for OCR_PROVIDER=baidu")
        return BaiduTextRecognizer(
            settings.baidu_api_key,
            settings.baidu_secret_key,
            http_client,
            token_safety_margin=settings.token_safety_margin_seconds,
            token_timeout=settings.token_timeout_seconds,
        )

    if vision_client is None:
        if not settings.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY must be set for OCR_PROVIDER=openai")
        vision_client = build_vision_client(settings)
    return OpenAITextRecognizer(vision_client, model=settings.ocr_model)


def build_vision_client(settings: Settings) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.recognition_timeout_seconds)


def build_answer_client(settings: Settings) -> AsyncOpenAI:
    """Return the async client for answer generation (DeepSeek-compatible by default)."""
    if not settings.ai_api_key:
        raise RuntimeError("AI_API_KEY (or DEEPSEEK_API_KEY) environment variable is not set")
    try:
        return AsyncOpenAI(
            api_key=settings.ai_api_key,
            base_url=settings.ai_base_url or None,
            timeout=settings.generation_timeout_seconds,
        )
    except Exception as exc:
        raise RuntimeError("Failed to initialize the answer generation client") from exc


def build_generator(settings: Settings, client: AsyncOpenAI) -> AnswerGenerator:
    return OpenAIAnswerGenerator(
        client,
        model=settings.ai_model,
        temperature=settings.ai_temperature,
        max_tokens=settings.ai_max_tokens,
    )
