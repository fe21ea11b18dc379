"""Capability interfaces injected into the pipeline coordinator."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GeneratedAnswer:
    """Answer text plus an optional short title, returned directly by the generator."""

    answer: str
    title: str = ""


class TextRecognizer(ABC):
    """Turn a base64-encoded image into transcript text.

    Implementations must tolerate concurrent calls. An empty transcript means
    "no text found" and is not an error. Failures raise `RecognitionError`.
    """

    name: str = "recognizer"

    @abstractmethod
    async def recognize(self, image_base64: str) -> str:
        raise NotImplementedError


class AnswerGenerator(ABC):
    """Turn transcript text into a generated answer.

    Implementations must tolerate concurrent calls. Failures raise `GenerationError`.
    """

    name: str = "generator"

    @abstractmethod
    async def generate_answer(self, text: str) -> GeneratedAnswer:
        raise NotImplementedError
