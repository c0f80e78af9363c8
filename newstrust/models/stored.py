"""Versioned record for analyses persisted on the article row."""

import json
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .analysis import LOW_COST, RawAnalysis

STORED_ANALYSIS_VERSION = 1


class CacheStatus(str, Enum):
    """Outcome of reading a stored analysis."""

    MISSING = "missing"
    VALID = "valid"
    CORRUPT = "corrupt"


class StoredAnalysis(BaseModel):
    """Calibrated analysis plus the context it was produced under."""

    version: int = Field(STORED_ANALYSIS_VERSION, description="Record format version")
    analysis_mode: str = Field(LOW_COST, description="Mode the analysis ran under")
    content_length: int = Field(0, description="Evidence length at analysis time", ge=0)
    analysis: Dict[str, Any] = Field(..., description="Calibrated analysis payload")

    def to_json(self) -> str:
        """Serialize for the article's analysis column."""
        return json.dumps(self.model_dump(), ensure_ascii=False)


class CachedAnalysis(BaseModel):
    """Parsed view of an article's analysis column."""

    status: CacheStatus
    record: Optional[StoredAnalysis] = None
    error: Optional[str] = None

    @property
    def raw(self) -> Optional[RawAnalysis]:
        """Stored values as raw input for recalibration."""
        if self.record is None:
            return None
        return RawAnalysis.from_payload(self.record.analysis)


def parse_stored_analysis(text: Optional[str]) -> CachedAnalysis:
    """
    Parse an analysis column.

    Accepts versioned records and the legacy bare-analysis JSON (version 0).
    Never raises: unreadable data is reported as CORRUPT so callers can tell
    it apart from an article that was never analyzed.
    """
    if text is None or not text.strip():
        return CachedAnalysis(status=CacheStatus.MISSING)

    try:
        payload = json.loads(text)
    except ValueError as e:
        return CachedAnalysis(status=CacheStatus.CORRUPT, error=f"Invalid JSON: {e}")

    if not isinstance(payload, dict):
        return CachedAnalysis(status=CacheStatus.CORRUPT, error="Analysis is not an object")

    if "version" in payload:
        analysis = payload.get("analysis")
        if not isinstance(analysis, dict) or not isinstance(analysis.get("summary"), str):
            return CachedAnalysis(
                status=CacheStatus.CORRUPT, error="Record has no analysis payload"
            )
        version = payload.get("version")
        if not isinstance(version, int) or version > STORED_ANALYSIS_VERSION:
            return CachedAnalysis(
                status=CacheStatus.CORRUPT, error=f"Unsupported record version: {version}"
            )
        mode = payload.get("analysis_mode")
        length = payload.get("content_length")
        record = StoredAnalysis(
            version=version,
            analysis_mode=mode if isinstance(mode, str) else LOW_COST,
            content_length=length if isinstance(length, int) and length >= 0 else 0,
            analysis=analysis,
        )
        return CachedAnalysis(status=CacheStatus.VALID, record=record)

    # Legacy rows hold the analysis object directly
    if not isinstance(payload.get("summary"), str):
        return CachedAnalysis(status=CacheStatus.CORRUPT, error="Legacy analysis has no summary")

    mode = payload.get("analysisModeUsed")
    record = StoredAnalysis(
        version=0,
        analysis_mode=mode if isinstance(mode, str) else LOW_COST,
        analysis=payload,
    )
    return CachedAnalysis(status=CacheStatus.VALID, record=record)
