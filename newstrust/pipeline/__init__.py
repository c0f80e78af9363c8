"""Analysis pipeline: content resolution, orchestration and batches."""

from .batch import BatchItemResult, BatchResult, BatchRunner, validate_limit
from .content import ContentResolver, ResolvedContent, fallback_text, is_usable_content
from .orchestrator import (
    AnalysisOrchestrator,
    AnalysisState,
    AnalysisStats,
    AnalyzeRequest,
    AnalyzeResult,
    PipelineStage,
)

__all__ = [
    "AnalysisOrchestrator",
    "AnalysisState",
    "AnalysisStats",
    "AnalyzeRequest",
    "AnalyzeResult",
    "BatchItemResult",
    "BatchResult",
    "BatchRunner",
    "ContentResolver",
    "PipelineStage",
    "ResolvedContent",
    "fallback_text",
    "is_usable_content",
    "validate_limit",
]
