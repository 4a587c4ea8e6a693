"""
One analysis request end to end: Prompt Builder → AI Client → Response Parser.

Delivery is a single terminal update per request. The ``on_update``
callback exists so a streaming client can later call it repeatedly; the
controller's merge is written for that.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from analysis.parser import parse_response
from analysis.prompts import build_prompts
from analysis.schemas import AnalysisResult, BubbleRequest, MarketRequest, PortfolioRequest
from config.settings import settings

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[AnalysisResult], None]


def run_analysis(
    request: MarketRequest | PortfolioRequest | BubbleRequest,
    client,
    on_update: Optional[UpdateCallback] = None,
    *,
    use_search: Optional[bool] = None,
) -> AnalysisResult:
    """Run *request* through *client* and return the parsed result.

    Raises:
        UpstreamError: propagated unchanged from the client.
    """
    system_instruction, prompt = build_prompts(request)
    if use_search is None:
        use_search = settings.enable_search

    logger.info(f"Processing {request.kind} request")
    raw = client.generate(system_instruction, prompt, use_search=use_search)

    result = parse_response(raw.text, raw.citations, search_used=raw.search_used)
    if result.structured_data is None:
        logger.warning(f"No structured data in {request.kind} response; report only")

    if on_update is not None:
        on_update(result)
    return result
