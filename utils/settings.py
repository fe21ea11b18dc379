"""Application settings loaded once from the environment.

`Settings.from_env()` is called a single time at startup (after
`load_dotenv()`), and the resulting frozen object is passed explicitly to
every component factory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, TypeVar

T = TypeVar("T")

OCR_PROVIDERS = ("baidu", "openai")
MIN_TOKEN_SAFETY_MARGIN_SECONDS = 60


def _read(env: Mapping[str, str], name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"{name}={raw!r} is not a valid value") from exc


@dataclass(frozen=True)
class Settings:
    """Configuration for the capture pipeline, its providers, and the web surface."""

    database_dir: Path = Path("data")
    ocr_provider: str = "baidu"

    baidu_api_key: str = ""
    baidu_secret_key: str = ""

    openai_api_key: str = ""
    ocr_model: str = "gpt-4o-mini"

    ai_api_key: str = ""
    ai_base_url: Optional[str] = "https://api.deepseek.com"
    ai_model: str = "deepseek-chat"
    ai_temperature: float = 0.7
    ai_max_tokens: int = 2000

    recognition_timeout_seconds: float = 30.0
    generation_timeout_seconds: float = 60.0
    persistence_timeout_seconds: float = 10.0
    token_timeout_seconds: float = 15.0
    token_safety_margin_seconds: float = 60.0

    history_replay_limit: int = 10
    history_list_limit: int = 50
    subscriber_queue_size: int = 64
    max_concurrent_runs: int = 4

    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8081

    def __post_init__(self) -> None:
        if self.ocr_provider not in OCR_PROVIDERS:
            raise RuntimeError(
                f"OCR_PROVIDER={self.ocr_provider!r} is not supported; choose one of {OCR_PROVIDERS}"
            )
        if self.token_safety_margin_seconds < MIN_TOKEN_SAFETY_MARGIN_SECONDS:
            raise RuntimeError(
                f"TOKEN_SAFETY_MARGIN_SECONDS must be at least {MIN_TOKEN_SAFETY_MARGIN_SECONDS}"
            )
        if self.subscriber_queue_size < 1:
            raise RuntimeError("SUBSCRIBER_QUEUE_SIZE must be a positive integer")
        if self.max_concurrent_runs < 0:
            raise RuntimeError("MAX_CONCURRENT_RUNS must be zero (unbounded) or positive")

    @property
    def database_path(self) -> Path:
        return self.database_dir / "screensage.db"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        env = os.environ if env is None else env
        defaults = cls()
        ai_api_key = env.get("AI_API_KEY") or env.get("DEEPSEEK_API_KEY") or ""
        return cls(
            database_dir=_read(env, "DATABASE_DIR", defaults.database_dir, lambda v: Path(v).expanduser()),
            ocr_provider=_read(env, "OCR_PROVIDER", defaults.ocr_provider, str.lower),
            baidu_api_key=_read(env, "BAIDU_API_KEY", "", str),
            baidu_secret_key=_read(env, "BAIDU_SECRET_KEY", "", str),
            openai_api_key=_read(env, "OPENAI_API_KEY", "", str),
            ocr_model=_read(env, "OCR_MODEL", defaults.ocr_model, str),
            ai_api_key=ai_api_key.strip(),
            ai_base_url=_read(env, "AI_BASE_URL", defaults.ai_base_url, str),
            ai_model=_read(env, "AI_MODEL", defaults.ai_model, str),
            ai_temperature=_read(env, "AI_TEMPERATURE", defaults.ai_temperature, float),
            ai_max_tokens=_read(env, "AI_MAX_TOKENS", defaults.ai_max_tokens, int),
            recognition_timeout_seconds=_read(
                env, "RECOGNITION_TIMEOUT_SECONDS", defaults.recognition_timeout_seconds, float
            ),
            generation_timeout_seconds=_read(
                env, "GENERATION_TIMEOUT_SECONDS", defaults.generation_timeout_seconds, float
            ),
            persistence_timeout_seconds=_read(
                env, "PERSISTENCE_TIMEOUT_SECONDS", defaults.persistence_timeout_seconds, float
            ),
            token_timeout_seconds=_read(env, "TOKEN_TIMEOUT_SECONDS", defaults.token_timeout_seconds, float),
            token_safety_margin_seconds=_read(
                env, "TOKEN_SAFETY_MARGIN_SECONDS", defaults.token_safety_margin_seconds, float
            ),
            history_replay_limit=_read(env, "HISTORY_REPLAY_LIMIT", defaults.history_replay_limit, int),
            history_list_limit=_read(env, "HISTORY_LIST_LIMIT", defaults.history_list_limit, int),
            subscriber_queue_size=_read(env, "SUBSCRIBER_QUEUE_SIZE", defaults.subscriber_queue_size, int),
            max_concurrent_runs=_read(env, "MAX_CONCURRENT_RUNS", defaults.max_concurrent_runs, int),
            log_level=_read(env, "LOG_LEVEL", defaults.log_level, str.upper),
            host=_read(env, "HOST", defaults.host, str),
            port=_read(env, "PORT", defaults.port, int),
        )
