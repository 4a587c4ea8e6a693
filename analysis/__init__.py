from analysis.errors import UpstreamError, clean_error_message
from analysis.parser import extract_json_candidate, parse_response
from analysis.prompts import build_prompts
from analysis.schemas import AnalysisResult, PortfolioItem, StructuredData
from analysis.state import AnalysisController, ViewState, merge_result

__all__ = [
    "AnalysisController",
    "AnalysisResult",
    "PortfolioItem",
    "StructuredData",
    "UpstreamError",
    "ViewState",
    "build_prompts",
    "clean_error_message",
    "extract_json_candidate",
    "merge_result",
    "parse_response",
]
