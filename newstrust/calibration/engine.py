"""
Evidence-proportional calibration of AI analyses.

`calibrate` is applied to every analysis before it is stored or returned,
including analyses read back from the cache, so stored rows are always
governed by the current rule set.
"""

import math
from typing import Any, List, Optional, Tuple

from ..models.analysis import (
    BIAS_TYPES,
    FACTUALITY_STATUSES,
    LEANINGS,
    LOW_COST,
    SENTIMENTS,
    VERDICTS,
    CalibratedAnalysis,
    FactCheck,
    RawAnalysis,
)
from .mode import MODERATE_MIN_LENGTH, select_mode
from .text import (
    collapse_whitespace,
    detect_rss_snippet,
    fold,
    has_attribution,
    has_extremist_language,
    has_high_risk_claim,
    has_strong_claim,
    prepare_content_for_analysis,
    states_insufficient_evidence,
)

SHORT_EVIDENCE_LENGTH = 300

# (upper length bound, reliability ceiling, traceability ceiling)
EVIDENCE_CEILINGS: Tuple[Tuple[int, float, float], ...] = (
    (SHORT_EVIDENCE_LENGTH, 45.0, 30.0),
    (MODERATE_MIN_LENGTH, 55.0, 40.0),
)

MIN_BIAS_INDICATORS = 3
MAX_BIAS_INDICATORS = 5
MAX_CLAIMS = 5
MAX_TOPICS = 3
MAX_EVIDENCE_NEEDED = 4
MAX_EVIDENCE_IN_COMMENT = 2
MIN_LEANING_TRACEABILITY = 40.0

LOW_RISK_CATEGORIES = frozenset({"deportes", "cultura"})
HIGH_RISK_CATEGORIES = frozenset({"politica", "economia", "sociedad", "mundo", "internacional"})
LOW_RISK_MAX_CLICKBAIT = 30.0
HIGH_RISK_MAX_TRACEABILITY = 40.0
HIGH_RISK_MAX_RELIABILITY = 55.0

INDETERMINATE = "indeterminada"
NO_BIAS = "ninguno"
NOT_DETERMINABLE = "no_determinable"
INSUFFICIENT_VERDICT = "InsufficientEvidenceInArticle"
SUPPORTED_VERDICT = "SupportedByArticle"

INSUFFICIENT_BIAS_EXPLANATION = (
    "No se detectaron señales suficientes de sesgo con evidencia citada."
)
NEUTRAL_BIAS_COMMENT = (
    "No hay suficientes señales citadas para inferir una tendencia ideológica; "
    "con este nivel de evidencia interna el sesgo se mantiene indeterminado."
)
NOT_VERIFIABLE_PHRASE = "no verificable con fuentes internas"
DEFAULT_REASONING = "Sin información suficiente para verificar."
SUPPORTED_REASONING = (
    "Aparece explícitamente en el texto (soportado por el artículo), "
    "no verificado externamente."
)
INSUFFICIENT_REASONING = (
    "La evidencia interna es insuficiente en el texto; "
    "no verificable con fuentes internas."
)

_BIAS_TYPE_ALIASES = {
    "framing": "encuadre",
    "omission": "omision",
    "omisión": "omision",
    "language": "lenguaje",
    "selection": "seleccion",
    "selección": "seleccion",
    "none": NO_BIAS,
}


def _clamp(value: Optional[float], low: float, high: float, fallback: float) -> float:
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if math.isnan(value):
        return fallback
    return float(max(low, min(high, value)))


def _clean_list(values: Optional[List[str]], limit: int) -> List[str]:
    """Strip, drop blanks and case-insensitive duplicates, keep the first `limit`."""
    cleaned: List[str] = []
    seen = set()
    for value in values or []:
        if not isinstance(value, str):
            continue
        item = collapse_whitespace(value)
        key = item.lower()
        if not item or key in seen:
            continue
        seen.add(key)
        cleaned.append(item)
    return cleaned[:limit]


def _evidence_length(length: Any) -> int:
    if isinstance(length, bool) or not isinstance(length, (int, float)):
        return 0
    if math.isnan(length) or length < 0:
        return 0
    if math.isinf(length):
        return MODERATE_MIN_LENGTH
    return int(length)


def apply_evidence_ceilings(length: int, reliability: float, traceability: float) -> Tuple[float, float]:
    """Cap reliability/traceability by how much text backed the analysis."""
    for upper, reliability_cap, traceability_cap in EVIDENCE_CEILINGS:
        if length < upper:
            return min(reliability, reliability_cap), min(traceability, traceability_cap)
    return reliability, traceability


def _normalize_bias_type(value: Optional[str]) -> str:
    if not isinstance(value, str):
        return NO_BIAS
    key = value.strip().lower()
    key = _BIAS_TYPE_ALIASES.get(key, key)
    return key if key in BIAS_TYPES else NO_BIAS


def _normalize_leaning(value: Optional[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    key = value.strip().lower()
    if key == "otra":
        return INDETERMINATE
    return key if key in LEANINGS else None


def _legacy_leaning(article_leaning: str) -> str:
    return "otra" if article_leaning == "extremista" else article_leaning


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def _bias_comment(indicators: List[str], leaning: str) -> str:
    signals = "; ".join(_truncate(i, 58) for i in indicators[:MIN_BIAS_INDICATORS])
    leaning_text = (
        "sin tendencia ideológica concluyente"
        if leaning == INDETERMINATE
        else f"con tendencia {leaning}"
    )
    return (
        f"El encuadre refleja {leaning_text} según señales citadas ({signals}), "
        "evaluadas solo desde el texto disponible."
    )


def _reliability_band(score: float) -> str:
    if score >= 85:
        return "muy alta"
    if score >= 70:
        return "alta"
    if score >= 50:
        return "media"
    if score >= 30:
        return "baja"
    return "muy baja"


def _traceability_clause(score: float) -> str:
    if score >= 70:
        return "hay trazabilidad clara de citas y atribuciones"
    if score >= 40:
        return "la trazabilidad es parcial"
    return "la trazabilidad es débil"


def _reliability_comment(
    raw_comment: Optional[str],
    factuality_status: str,
    reliability: float,
    traceability: float,
    evidence_needed: List[str],
    length: int,
) -> str:
    if factuality_status != NOT_DETERMINABLE:
        if isinstance(raw_comment, str) and raw_comment.strip():
            return collapse_whitespace(raw_comment)
        return f"Fiabilidad {_reliability_band(reliability)}: {_traceability_clause(traceability)}."

    if length < SHORT_EVIDENCE_LENGTH:
        comment = f"Fiabilidad baja: texto incompleto y sin atribuciones; {NOT_VERIFIABLE_PHRASE}."
    else:
        comment = (
            f"Fiabilidad {_reliability_band(reliability)}: "
            f"{_traceability_clause(traceability)}; {NOT_VERIFIABLE_PHRASE}."
        )
    missing = [_truncate(e, 80) for e in evidence_needed[:MAX_EVIDENCE_IN_COMMENT]]
    if missing:
        comment += f" Falta: {'; '.join(missing)}."
    return comment


def _fact_check(raw: Optional[FactCheck], length: int) -> FactCheck:
    claims = _clean_list(raw.claims if raw else None, MAX_CLAIMS)
    raw_verdict = raw.verdict if raw else None
    raw_reasoning = raw.reasoning if raw else None

    if not claims or length < SHORT_EVIDENCE_LENGTH:
        verdict = INSUFFICIENT_VERDICT
    elif raw_verdict in VERDICTS:
        verdict = raw_verdict
    else:
        verdict = INSUFFICIENT_VERDICT

    reasoning = (
        collapse_whitespace(raw_reasoning)
        if isinstance(raw_reasoning, str) and raw_reasoning.strip()
        else DEFAULT_REASONING
    )
    if states_insufficient_evidence(reasoning):
        verdict = INSUFFICIENT_VERDICT

    if verdict == SUPPORTED_VERDICT:
        reasoning = SUPPORTED_REASONING
    elif verdict == INSUFFICIENT_VERDICT and not states_insufficient_evidence(reasoning):
        reasoning = INSUFFICIENT_REASONING

    return FactCheck(claims=claims, verdict=verdict, reasoning=reasoning)


def _category_escalation(
    current: bool,
    category: Optional[str],
    clickbait: float,
    claims: List[str],
    reliability: float,
    traceability: float,
) -> bool:
    """Adjust the AI's escalation flag by the risk of the article's section."""
    section = fold(category or "").strip()
    high_risk = has_high_risk_claim(claims)
    if section in LOW_RISK_CATEGORIES and clickbait < LOW_RISK_MAX_CLICKBAIT and not high_risk:
        return False
    if (
        section in HIGH_RISK_CATEGORIES
        and traceability <= HIGH_RISK_MAX_TRACEABILITY
        and reliability <= HIGH_RISK_MAX_RELIABILITY
        and (high_risk or has_strong_claim(claims))
    ):
        return True
    return current


def calibrate(
    raw: RawAnalysis,
    length: int,
    mode: Optional[str],
    *,
    text: str = "",
    category: Optional[str] = None,
) -> CalibratedAnalysis:
    """
    Degrade an AI analysis to what its evidence can support.

    Args:
        raw: Untrusted analysis (fresh from the AI or read from storage)
        length: Characters of article text the analysis was based on, 0 for fallback text
        mode: Mode requested for the analysis; downgraded to low_cost when
            the evidence is too short
        text: Text that was analyzed, used to look for attributions
        category: Article section; low-risk sections drop the AI's escalation
            flag and weak high-risk ones raise it

    Returns:
        Calibrated analysis. Missing or malformed inputs take the most
        conservative branch of each rule; this function never raises.
    """
    if isinstance(raw, CalibratedAnalysis):
        raw = raw.to_raw()
    elif not isinstance(raw, RawAnalysis):
        raw = RawAnalysis.from_payload(raw)
    length = _evidence_length(length)
    effective_mode = select_mode(mode, length)
    is_low_cost = effective_mode == LOW_COST
    analyzed_text = prepare_content_for_analysis(text or "")
    summary = collapse_whitespace(raw.summary) if isinstance(raw.summary, str) else ""

    # Reliability and traceability ceilings
    reliability = _clamp(raw.reliability_score, 0.0, 100.0, 50.0)
    traceability = _clamp(raw.traceability_score, 0.0, 100.0, reliability)
    reliability, traceability = apply_evidence_ceilings(length, reliability, traceability)

    # Bias signal needs enough cited indicators
    indicators = _clean_list(raw.bias_indicators, MAX_BIAS_INDICATORS)
    has_bias_evidence = len(indicators) >= MIN_BIAS_INDICATORS
    if has_bias_evidence:
        if raw.bias_raw is not None:
            raw_candidate = raw.bias_raw
        elif raw.bias_score is not None and abs(raw.bias_score) > 1:
            raw_candidate = raw.bias_score
        else:
            raw_candidate = 0.0
        bias_raw = _clamp(raw_candidate, -10.0, 10.0, 0.0)
        bias_normalized = _clamp(raw.bias_score_normalized, 0.0, 1.0, abs(bias_raw) / 10.0)
        bias_type = _normalize_bias_type(raw.bias_type)
        explanation = collapse_whitespace(raw.explanation) if isinstance(raw.explanation, str) else ""
    else:
        indicators = []
        bias_raw = 0.0
        bias_normalized = 0.0
        bias_type = NO_BIAS
        explanation = INSUFFICIENT_BIAS_EXPLANATION

    # Leaning
    has_ideological_evidence = (
        not is_low_cost
        and has_bias_evidence
        and length >= MODERATE_MIN_LENGTH
        and traceability >= MIN_LEANING_TRACEABILITY
    )
    if has_ideological_evidence:
        leaning = _normalize_leaning(raw.article_leaning) or _normalize_leaning(raw.bias_leaning) or INDETERMINATE
        if leaning == "extremista" and not has_extremist_language(indicators):
            leaning = INDETERMINATE
        bias_comment = _bias_comment(indicators, leaning)
    else:
        leaning = INDETERMINATE
        bias_comment = NEUTRAL_BIAS_COMMENT

    # Fact check
    fact_check = _fact_check(raw.fact_check, length)

    # Factuality and reliability comment
    if length < SHORT_EVIDENCE_LENGTH or detect_rss_snippet(text or ""):
        factuality_status = NOT_DETERMINABLE
    elif raw.factuality_status in FACTUALITY_STATUSES:
        factuality_status = raw.factuality_status
    else:
        factuality_status = NOT_DETERMINABLE
    evidence_needed = _clean_list(raw.evidence_needed, MAX_EVIDENCE_NEEDED)
    reliability_comment = _reliability_comment(
        raw.reliability_comment,
        factuality_status,
        reliability,
        traceability,
        evidence_needed,
        length,
    )

    # Escalation
    clickbait = _clamp(raw.clickbait_score, 0.0, 100.0, 0.0)
    if isinstance(raw.should_escalate, bool):
        should_escalate = raw.should_escalate
    else:
        should_escalate = (
            traceability <= 25 and reliability <= 45 and has_strong_claim(fact_check.claims)
        )
    should_escalate = _category_escalation(
        should_escalate,
        category,
        clickbait,
        [*fact_check.claims, summary],
        reliability,
        traceability,
    )
    if (
        is_low_cost
        and not should_escalate
        and has_strong_claim([*fact_check.claims, summary, analyzed_text])
        and not has_attribution(analyzed_text)
    ):
        should_escalate = True

    sentiment = raw.sentiment.strip().lower() if isinstance(raw.sentiment, str) else ""
    if sentiment not in SENTIMENTS:
        sentiment = "neutral"

    return CalibratedAnalysis(
        summary=summary,
        bias_raw=bias_raw,
        bias_score=bias_normalized,
        bias_score_normalized=bias_normalized,
        bias_indicators=indicators,
        bias_type=bias_type,
        explanation=explanation,
        clickbait_score=clickbait,
        reliability_score=reliability,
        traceability_score=traceability,
        sentiment=sentiment,
        main_topics=_clean_list(raw.main_topics, MAX_TOPICS),
        fact_check=fact_check,
        factuality_status=factuality_status,
        evidence_needed=evidence_needed,
        should_escalate=should_escalate,
        article_leaning=leaning,
        bias_leaning=_legacy_leaning(leaning),
        bias_comment=bias_comment,
        reliability_comment=reliability_comment,
        analysis_mode_used=effective_mode,
        category=raw.category if isinstance(raw.category, str) else None,
    )
