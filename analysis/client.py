"""
AI Client — one request/response call to the generation service.

No retry loop lives here. Any SDK exception, non-success response or
empty answer is raised as ``UpstreamError`` carrying the upstream message
verbatim, overload signals included. Retrying is the user's call.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Callable, Protocol

from analysis.errors import EmptyResponseError, UpstreamError
from analysis.schemas import Citation, RawModelResponse, dedupe_citations
from app_lib.model_factory import with_timeout
from config.settings import settings

logger = logging.getLogger(__name__)


class AnalysisClient(Protocol):
    """Anything that can turn a prompt pair into a RawModelResponse."""

    def generate(
        self,
        system_instruction: str,
        prompt: str,
        *,
        use_search: bool = False,
    ) -> RawModelResponse:
        ...


def extract_citations(response: Any) -> list[Citation]:
    """Read web grounding chunks from a generate_content response.

    Chunks without a URI are skipped; duplicates keep their first position.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    citations = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None)
        if uri:
            citations.append(Citation(uri=uri, title=getattr(web, "title", None) or ""))
    return dedupe_citations(citations)


def _response_text(response: Any) -> str:
    text = getattr(response, "text", None)
    if isinstance(text, str):
        return text
    return ""


class GeminiClient:
    """Gemini via the google-genai SDK, optionally grounded with Google Search."""

    name = "google"

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        *,
        client: Any = None,
        timeout_seconds: float = 0.0,
    ):
        if client is None:
            from google import genai

            key = (
                api_key
                or settings.google_api_key
                or os.environ.get("GOOGLE_API_KEY")
                or os.environ.get("GEMINI_API_KEY")
            )
            if not key:
                raise UpstreamError("Server Config Error: GOOGLE_API_KEY is missing.")
            client = genai.Client(api_key=key)

        self._client = client
        self.model = model_name or settings.google_model
        self._generate_content = with_timeout(client.models.generate_content, timeout_seconds)

    def _build_config(self, system_instruction: str, use_search: bool):
        from google.genai import types

        return types.GenerateContentConfig(
            system_instruction=system_instruction,
            tools=[types.Tool(google_search=types.GoogleSearch())] if use_search else None,
            temperature=settings.temperature,
            max_output_tokens=settings.max_output_tokens,
        )

    def generate(
        self,
        system_instruction: str,
        prompt: str,
        *,
        use_search: bool = False,
    ) -> RawModelResponse:
        logger.info(f"[{self.model}] generate (search={'on' if use_search else 'off'})")
        try:
            response = self._generate_content(
                model=self.model,
                contents=[{"role": "user", "parts": [{"text": prompt}]}],
                config=self._build_config(system_instruction, use_search),
            )
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(str(exc), status_code=getattr(exc, "code", None)) from exc

        text = _response_text(response)
        if not text.strip():
            raise EmptyResponseError()

        citations = extract_citations(response) if use_search else []
        logger.info(f"[{self.model}] response length {len(text)}, {len(citations)} sources")
        return RawModelResponse(text=text, citations=citations, search_used=use_search)


class TextModelClient:
    """Adapter for plain text providers. They cannot search, so use_search is ignored."""

    def __init__(self, model_fn: Callable[..., str], name: str = "text"):
        self._model_fn = model_fn
        self.name = name

    def generate(
        self,
        system_instruction: str,
        prompt: str,
        *,
        use_search: bool = False,
    ) -> RawModelResponse:
        if use_search:
            logger.info(f"[{self.name}] search grounding unavailable; output will be estimated")
        try:
            text = self._model_fn(prompt, system_instruction=system_instruction)
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(str(exc)) from exc

        if not text or not text.strip():
            raise EmptyResponseError()
        return RawModelResponse(text=text, citations=[], search_used=False)
