"""Data models for the trust calibration pipeline."""

from .analysis import (
    ANALYSIS_MODES,
    LOW_COST,
    MODERATE,
    CalibratedAnalysis,
    FactCheck,
    RawAnalysis,
)
from .article import Article
from .stored import (
    STORED_ANALYSIS_VERSION,
    CachedAnalysis,
    CacheStatus,
    StoredAnalysis,
    parse_stored_analysis,
)
from .user import UsageStats, User

__all__ = [
    "ANALYSIS_MODES",
    "LOW_COST",
    "MODERATE",
    "Article",
    "CachedAnalysis",
    "CacheStatus",
    "CalibratedAnalysis",
    "FactCheck",
    "RawAnalysis",
    "STORED_ANALYSIS_VERSION",
    "StoredAnalysis",
    "UsageStats",
    "User",
    "parse_stored_analysis",
]
