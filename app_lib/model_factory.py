"""
Model factory functions for LLM providers.

Gemini is the primary backend: it is the only provider with search
grounding, so it gets a dedicated client (analysis/client.py). The other
providers are plain ``callable(prompt, *, system_instruction) -> str``
factories wrapped by ``TextModelClient``. ``create_client()`` is the single
entry point the UI and API use.
"""

from __future__ import annotations

import concurrent.futures
import logging
import os
from typing import Any, Callable

from analysis.errors import UpstreamError
from config.settings import LLMProvider, settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Provider-specific model factories (no search augmentation)
# ---------------------------------------------------------------------------

def _create_anthropic_model(model_name: str | None = None) -> Callable[..., str]:
    """Create a Claude (Anthropic) callable."""
    from anthropic import Anthropic

    api_key = settings.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise UpstreamError("Server Config Error: ANTHROPIC_API_KEY is missing.")
    client = Anthropic(api_key=api_key)
    model = model_name or settings.anthropic_model

    def call(prompt: str, *, system_instruction: str = "") -> str:
        response = client.messages.create(
            model=model,
            max_tokens=settings.max_output_tokens,
            temperature=settings.temperature,
            system=system_instruction,
            messages=[{"role": "user", "content": prompt}],
        )
        return "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )

    return call


def _create_openai_model(model_name: str | None = None) -> Callable[..., str]:
    """Create an OpenAI callable."""
    try:
        from openai import OpenAI
    except ImportError as exc:
        raise RuntimeError(
            "OpenAI package not installed. Run: pip install -e '.[openai]'"
        ) from exc

    api_key = settings.openai_api_key or os.environ.get("OPENAI_API_KEY")
    if not api_key:
        raise UpstreamError("Server Config Error: OPENAI_API_KEY is missing.")
    client = OpenAI(api_key=api_key)
    model = model_name or settings.openai_model

    def call(prompt: str, *, system_instruction: str = "") -> str:
        response = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": prompt},
            ],
            temperature=settings.temperature,
            max_tokens=settings.max_output_tokens,
        )
        return response.choices[0].message.content or ""

    return call


def _create_ollama_model(model_name: str | None = None) -> Callable[..., str]:
    """Create an Ollama (local) callable for open-source models."""
    try:
        import ollama as ollama_lib
    except ImportError as exc:
        raise RuntimeError(
            "Ollama package not installed. Run: pip install -e '.[ollama]'\n"
            "Also ensure Ollama is running: ollama serve"
        ) from exc

    model = model_name or settings.ollama_model
    client = ollama_lib.Client(host=settings.ollama_base_url)

    try:
        client.show(model)
    except Exception as exc:
        raise UpstreamError(
            f"Ollama model '{model}' not found. Pull it first with: ollama pull {model}"
        ) from exc

    def call(prompt: str, *, system_instruction: str = "") -> str:
        response = client.chat(
            model=model,
            messages=[
                {"role": "system", "content": system_instruction},
                {"role": "user", "content": prompt},
            ],
            options={
                "temperature": settings.temperature,
                "num_predict": settings.max_output_tokens,
            },
        )
        return response["message"]["content"]

    return call


PROVIDER_FACTORIES = {
    LLMProvider.ANTHROPIC: _create_anthropic_model,
    LLMProvider.OPENAI: _create_openai_model,
    LLMProvider.OLLAMA: _create_ollama_model,
}

# Display names for the dashboard footer
PROVIDER_DISPLAY = {
    "Gemini + Google Search": LLMProvider.GOOGLE,
    "Claude (Anthropic)": LLMProvider.ANTHROPIC,
    "GPT (OpenAI)": LLMProvider.OPENAI,
    "Ollama (Local)": LLMProvider.OLLAMA,
}

PROVIDER_TO_DISPLAY = {v: k for k, v in PROVIDER_DISPLAY.items()}


# ---------------------------------------------------------------------------
# Per-call timeout
# ---------------------------------------------------------------------------

def with_timeout(fn: Callable[..., Any], timeout_seconds: float) -> Callable[..., Any]:
    """Wrap a blocking call with a timeout guard.

    If the call exceeds *timeout_seconds*, raises UpstreamError. The worker
    thread is abandoned, not killed. If timeout_seconds <= 0, returns *fn*
    unchanged.
    """
    if timeout_seconds <= 0:
        return fn

    def timed_call(*args: Any, **kwargs: Any) -> Any:
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        future = pool.submit(fn, *args, **kwargs)
        try:
            return future.result(timeout=timeout_seconds)
        except concurrent.futures.TimeoutError:
            raise UpstreamError(f"LLM call timed out after {timeout_seconds:.0f}s") from None
        finally:
            pool.shutdown(wait=False)

    return timed_call


# ---------------------------------------------------------------------------
# Unified client factory
# ---------------------------------------------------------------------------

def create_client(
    provider: LLMProvider | None = None,
    model_name: str | None = None,
):
    """
    Create the AI client for the given provider.

    Every client exposes ``generate(system_instruction, prompt, *, use_search)``
    and returns a ``RawModelResponse``. Only Gemini honours ``use_search``;
    the others always report ``search_used=False`` so their output is
    flagged as estimated.

    Args:
        provider: Which LLM backend to use (defaults to settings.resolve_provider())
        model_name: Specific model to use (overrides settings default)
    """
    from analysis.client import GeminiClient, TextModelClient

    provider = provider or settings.resolve_provider()
    timeout = settings.model_timeout_seconds

    if provider == LLMProvider.GOOGLE:
        logger.info(f"Using Gemini client ({model_name or settings.google_model})")
        return GeminiClient(model_name=model_name, timeout_seconds=timeout)

    factory = PROVIDER_FACTORIES.get(provider)
    if not factory:
        raise ValueError(f"Unknown provider: {provider}")

    model_fn = factory(model_name=model_name)
    logger.info(f"Using {provider.value} text client (no search grounding)")
    return TextModelClient(with_timeout(model_fn, timeout), name=provider.value)
