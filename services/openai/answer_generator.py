"""Answer generation over an OpenAI-compatible chat completions endpoint."""

import logging

import httpx
import openai
from openai import AsyncOpenAI

from services.capabilities import AnswerGenerator, GeneratedAnswer
from services.errors import GenerationError
from services.openai.answer_schema import FUNCTION_DEFINITION, FUNCTION_NAME, TOOL_CHOICE
from services.openai.error_mapping import to_upstream_error
from services.openai.prompts import answer_system_prompt, answer_user_prompt
from services.openai.response_parser import extract_message_content, parse_tool_arguments

logger = logging.getLogger(__name__)

NO_TEXT_ANSWER = "No text was recognized in the screenshot."


class OpenAIAnswerGenerator(AnswerGenerator):
    """Generate an answer and a short title for recognized screen text.

    Works against OpenAI itself or any OpenAI-compatible provider (DeepSeek by
    default) depending on the client's base URL. The answer and title come
    back as arguments of a forced function call, so no response-format
    parsing is needed.
    """

    name = "openai-compatible"

    def __init__(
        self,
        client: AsyncOpenAI,
        model: str = "deepseek-chat",
        *,
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> None:
        if client is None:
            raise ValueError("AsyncOpenAI client is required.")
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    async def generate_answer(self, text: str) -> GeneratedAnswer:
        if not text.strip():
            return GeneratedAnswer(answer=NO_TEXT_ANSWER)

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": answer_system_prompt()},
                    {"role": "user", "content": answer_user_prompt(text)},
                ],
                tools=[FUNCTION_DEFINITION],
                tool_choice=TOOL_CHOICE,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (openai.APIError, httpx.HTTPError) as exc:
            logger.error("Error during answer generation call: %s", exc)
            raise to_upstream_error(exc, GenerationError, "Answer generation") from exc

        try:
            args = parse_tool_arguments(response, FUNCTION_NAME)
        except ValueError as exc:
            raise GenerationError(f"Malformed answer payload: {exc}") from exc

        if args is None:
            content = extract_message_content(response).strip()
            if not content:
                raise GenerationError("AI returned an empty response")
            logger.warning("Model skipped the answer tool; using plain message content")
            return GeneratedAnswer(answer=content)

        answer = str(args.get("answer") or "").strip()
        if not answer:
            raise GenerationError("AI returned an empty answer")
        return GeneratedAnswer(answer=answer, title=str(args.get("title") or "").strip())
