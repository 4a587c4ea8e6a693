"""
Engine configuration, read from the environment and an optional .env file.

Providers:
    - google     (Gemini, with Google Search grounding)
    - anthropic  (Claude, no search)
    - openai     (GPT, no search)
    - ollama     (local open-source models, no search)
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    GOOGLE = "google"
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    OLLAMA = "ollama"


class Settings(BaseSettings):
    """Provider credentials, generation parameters, storage and server options."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- LLM Provider ---
    llm_provider: LLMProvider = Field(
        default=LLMProvider.GOOGLE,
        description="Which LLM backend to use: google, anthropic, openai, ollama",
    )

    # --- Google (Gemini) ---
    google_api_key: str | None = Field(default=None, description="Google AI API key")
    google_model: str = Field(
        default="gemini-2.0-flash",
        description="Google Gemini model name",
    )

    # --- Anthropic (Claude) ---
    anthropic_api_key: str | None = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model name",
    )

    # --- OpenAI ---
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name",
    )

    # --- Ollama (local open-source) ---
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL",
    )
    ollama_model: str = Field(
        default="llama3.1:8b",
        description="Ollama model name (must be pulled first)",
    )

    # --- Generation Parameters ---
    temperature: float = Field(default=0.3, ge=0.0, le=2.0, description="LLM temperature")
    max_output_tokens: int = Field(default=8192, ge=256, description="Output token budget per call")
    enable_search: bool = Field(
        default=True,
        description="Request Google Search grounding for analysis calls (Gemini only)",
    )
    model_timeout_seconds: float = Field(
        default=120.0, ge=0.0,
        description="Timeout in seconds for individual LLM calls (0 = no timeout)",
    )

    # --- Storage ---
    portfolio_path: str = Field(
        default="data/portfolio.json",
        description="JSON file holding the persisted portfolio",
    )

    # --- Server ---
    log_level: str = Field(default="INFO", description="Logging level")
    server_port: int = Field(default=7860, description="Gradio server port")

    def get_active_model(self) -> str:
        """Return the model identifier for the configured provider."""
        return self.get_model(self.llm_provider)

    def get_model(self, provider: LLMProvider) -> str:
        """Return the model identifier configured for *provider*."""
        model_map = {
            LLMProvider.GOOGLE: self.google_model,
            LLMProvider.ANTHROPIC: self.anthropic_model,
            LLMProvider.OPENAI: self.openai_model,
            LLMProvider.OLLAMA: self.ollama_model,
        }
        return model_map[provider]

    def resolve_provider(self) -> LLMProvider:
        """Return the provider that will actually serve requests.

        The configured provider wins when it has a key (Ollama needs none).
        Otherwise the first provider with a key is used, and with no keys at
        all the local Ollama server is the last resort.
        """
        key_map = {
            LLMProvider.GOOGLE: self.google_api_key,
            LLMProvider.ANTHROPIC: self.anthropic_api_key,
            LLMProvider.OPENAI: self.openai_api_key,
        }

        if self.llm_provider in key_map and key_map[self.llm_provider]:
            return self.llm_provider

        if self.llm_provider == LLMProvider.OLLAMA:
            return LLMProvider.OLLAMA

        for provider, key in key_map.items():
            if key:
                return provider

        return LLMProvider.OLLAMA


# Shared instance
settings = Settings()
