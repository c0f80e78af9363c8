"""Calibration rules applied to every AI analysis."""

from .engine import apply_evidence_ceilings, calibrate
from .mode import MODERATE_MIN_LENGTH, mode_rank, normalize_mode, requires_upgrade, select_mode

__all__ = [
    "MODERATE_MIN_LENGTH",
    "apply_evidence_ceilings",
    "calibrate",
    "mode_rank",
    "normalize_mode",
    "requires_upgrade",
    "select_mode",
]
