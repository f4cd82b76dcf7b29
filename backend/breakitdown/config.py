"""Application configuration from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

_DEFAULT_SESSIONS_DIR = Path(__file__).parent / "storage" / "data"


class Settings(BaseSettings):
    breakitdown_env: str = "development"
    breakitdown_log_level: str = "debug"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Provider selection: "" = auto, "openai", "dashscope", "anthropic"
    ai_provider: str = ""

    # OpenAI-compatible endpoint
    ai_base_url: str = ""
    ai_api_key: str = ""
    model_text: str = "gpt-4o-mini"
    model_vision: str = "gpt-4o"

    # Alibaba DashScope (compatible mode)
    dashscope_api_key: str = ""
    dashscope_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    dashscope_model_text: str = "qwen-plus"
    dashscope_model_vision: str = "qwen-vl-plus"

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model_text: str = "claude-haiku-4-5-20251001"
    anthropic_model_vision: str = "claude-sonnet-4-5-20250929"

    # Completion limits
    text_timeout_s: float = 90.0
    vision_timeout_s: float = 120.0
    text_temperature: float = 0.8
    text_max_tokens: int = 2000
    vision_max_tokens: int = 1000

    # Decomposition policy
    max_depth: int = 6
    output_language: str = "Chinese"

    # Retry (controller + cards)
    retry_max_retries: int = 2
    retry_base_delay_s: float = 1.0
    retry_multiplier: float = 2.0

    # Concurrency
    card_concurrency: int = 4
    card_prefetch: bool = False  # queue background cards after each expansion
    max_inflight_requests: int = 8
    max_workspaces: int = 64

    # Image search
    pexels_api_key: str = ""
    image_search_timeout_s: float = 10.0

    # Saved sessions
    sessions_dir: Path = _DEFAULT_SESSIONS_DIR

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def resolved_provider(self) -> str:
        """Provider name after auto-detection, or "" when nothing is configured."""
        if self.ai_provider:
            return self.ai_provider.lower()
        if self.ai_base_url and self.ai_api_key:
            return "openai"
        if self.dashscope_api_key:
            return "dashscope"
        if self.anthropic_api_key:
            return "anthropic"
        return ""


settings = Settings()
