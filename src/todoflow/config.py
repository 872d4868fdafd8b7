"""Application settings using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    app_name: str = "TodoFlow"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"

    # ==========================================================================
    # LLM Providers
    # ==========================================================================
    provider: Literal["deepseek", "kimi", "openai"] = "deepseek"

    # DeepSeek
    deepseek_api_key: str = Field(default="")
    deepseek_base_url: str = "https://api.deepseek.com"
    deepseek_model: str = "deepseek-chat"

    # Kimi/Moonshot
    kimi_api_key: str = Field(default="")
    kimi_base_url: str = "https://api.moonshot.cn/v1"
    kimi_model: str = "moonshot-v1-32k"

    # OpenAI
    openai_api_key: str = Field(default="")
    openai_base_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4o-mini"

    llm_timeout_seconds: float = 60.0
    llm_max_tokens: int = 1000

    # Sampling temperature per workflow step
    plan_temperature: float = 0.1
    route_temperature: float = 0.0
    edit_temperature: float = 0.1
    reconcile_temperature: float = 0.0
    answer_temperature: float = 0.1

    # ==========================================================================
    # Workflow
    # ==========================================================================
    max_edit_passes: int = Field(default=10, ge=1)
    max_run_seconds: float = Field(default=300.0, gt=0)
    edit_max_tool_rounds: int = Field(default=6, ge=1)
    max_graph_steps: int = Field(default=200, ge=10)

    # ==========================================================================
    # API
    # ==========================================================================
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = Field(default=["http://localhost:3000"])

    def provider_credentials(self) -> tuple[str, str, str]:
        """Return (api_key, base_url, model) for the configured provider."""
        if self.provider == "deepseek":
            return (self.deepseek_api_key, self.deepseek_base_url, self.deepseek_model)
        if self.provider == "kimi":
            return (self.kimi_api_key, self.kimi_base_url, self.kimi_model)
        return (self.openai_api_key, self.openai_base_url, self.openai_model)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
