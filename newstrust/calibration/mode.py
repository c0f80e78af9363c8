"""Analysis mode selection."""

from typing import Any

from ..models.analysis import ANALYSIS_MODES, LOW_COST

MODERATE_MIN_LENGTH = 800


def normalize_mode(value: Any) -> str:
    """Coerce a requested mode, defaulting to low_cost."""
    if isinstance(value, str) and value.strip().lower() in ANALYSIS_MODES:
        return value.strip().lower()
    return LOW_COST


def select_mode(requested: Any, resolved_length: int, used_fallback: bool = False) -> str:
    """
    Choose the mode an analysis runs (and is calibrated) under.

    Moderate mode needs at least MODERATE_MIN_LENGTH characters of real
    article text. Fallback text never qualifies.
    """
    mode = normalize_mode(requested)
    if used_fallback or resolved_length < MODERATE_MIN_LENGTH:
        return LOW_COST
    return mode


def mode_rank(mode: Any) -> int:
    """Position of a mode in ascending order of analysis depth."""
    return ANALYSIS_MODES.index(normalize_mode(mode))


def requires_upgrade(cached_mode: Any, requested: Any, content_length: int) -> bool:
    """
    Whether a stored analysis is shallower than what the request can get.

    The request is first capped by select_mode against the stored content,
    so short articles never trigger a re-analysis.
    """
    return mode_rank(cached_mode) < mode_rank(select_mode(requested, content_length))
