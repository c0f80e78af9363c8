"""AI analysis providers."""

from .ai_client import AIAnalyzer, MockAIAnalyzer, OpenAIAnalyzer, build_analyzer
from .errors import is_retryable, to_external_api_error

__all__ = [
    "AIAnalyzer",
    "MockAIAnalyzer",
    "OpenAIAnalyzer",
    "build_analyzer",
    "is_retryable",
    "to_external_api_error",
]
