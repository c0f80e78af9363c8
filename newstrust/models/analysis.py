"""Raw (untrusted) and calibrated analysis models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

LOW_COST = "low_cost"
MODERATE = "moderate"
ANALYSIS_MODES = (LOW_COST, MODERATE)

SENTIMENTS = ("positive", "negative", "neutral")
FACTUALITY_STATUSES = ("no_determinable", "plausible_but_unverified")
VERDICTS = (
    "SupportedByArticle",
    "NotSupportedByArticle",
    "InsufficientEvidenceInArticle",
)
LEANINGS = ("progresista", "conservadora", "extremista", "neutral", "indeterminada")
BIAS_TYPES = ("encuadre", "omision", "lenguaje", "seleccion", "ninguno")


class FactCheck(BaseModel):
    """Claims extracted from the article and the verdict on them."""

    claims: List[str] = Field(default_factory=list, description="Extracted factual claims")
    verdict: Optional[str] = Field(None, description="Verdict on the claims")
    reasoning: Optional[str] = Field(None, description="Why the verdict was given")


class RawAnalysis(BaseModel):
    """Analysis as returned by the AI provider. Nothing here is trusted."""

    summary: Optional[str] = None
    bias_raw: Optional[float] = Field(None, alias="biasRaw")
    bias_score: Optional[float] = Field(None, alias="biasScore")
    bias_score_normalized: Optional[float] = Field(None, alias="biasScoreNormalized")
    bias_indicators: Optional[List[str]] = Field(None, alias="biasIndicators")
    bias_type: Optional[str] = Field(None, alias="biasType")
    explanation: Optional[str] = None
    clickbait_score: Optional[float] = Field(None, alias="clickbaitScore")
    reliability_score: Optional[float] = Field(None, alias="reliabilityScore")
    traceability_score: Optional[float] = Field(None, alias="traceabilityScore")
    sentiment: Optional[str] = None
    main_topics: Optional[List[str]] = Field(None, alias="mainTopics")
    fact_check: Optional[FactCheck] = Field(None, alias="factCheck")
    factuality_status: Optional[str] = Field(None, alias="factualityStatus")
    evidence_needed: Optional[List[str]] = Field(None, alias="evidence_needed")
    should_escalate: Optional[bool] = Field(None, alias="should_escalate")
    article_leaning: Optional[str] = Field(None, alias="articleLeaning")
    bias_leaning: Optional[str] = Field(None, alias="biasLeaning")
    bias_comment: Optional[str] = Field(None, alias="biasComment")
    reliability_comment: Optional[str] = Field(None, alias="reliabilityComment")
    analysis_mode_used: Optional[str] = Field(None, alias="analysisModeUsed")
    category: Optional[str] = None

    class Config:
        """Pydantic config."""

        populate_by_name = True
        extra = "ignore"

    @classmethod
    def from_payload(cls, payload: Any) -> "RawAnalysis":
        """
        Build a RawAnalysis from a decoded JSON payload.

        Invalid fields are dropped and treated as absent instead of failing
        the whole payload.
        """
        if not isinstance(payload, dict):
            return cls()

        data = dict(payload)

        # Older responses nest biasType/explanation under "analysis"
        legacy = data.pop("analysis", None)
        if isinstance(legacy, dict):
            data.setdefault("biasType", legacy.get("biasType"))
            data.setdefault("explanation", legacy.get("explanation"))

        for _ in range(len(data) + 1):
            try:
                return cls.model_validate(data)
            except ValidationError as e:
                bad_keys = {err["loc"][0] for err in e.errors() if err["loc"]}
                if not bad_keys:
                    break
                for key in bad_keys:
                    data.pop(key, None)
        return cls()


class CalibratedAnalysis(BaseModel):
    """Analysis after calibration. The only form persisted or returned."""

    summary: str
    bias_raw: float = Field(..., alias="biasRaw", ge=-10.0, le=10.0)
    bias_score: float = Field(..., alias="biasScore", ge=0.0, le=1.0)
    bias_score_normalized: float = Field(..., alias="biasScoreNormalized", ge=0.0, le=1.0)
    bias_indicators: List[str] = Field(..., alias="biasIndicators")
    bias_type: str = Field(..., alias="biasType")
    explanation: str
    clickbait_score: float = Field(..., alias="clickbaitScore", ge=0.0, le=100.0)
    reliability_score: float = Field(..., alias="reliabilityScore", ge=0.0, le=100.0)
    traceability_score: float = Field(..., alias="traceabilityScore", ge=0.0, le=100.0)
    sentiment: str
    main_topics: List[str] = Field(..., alias="mainTopics")
    fact_check: FactCheck = Field(..., alias="factCheck")
    factuality_status: str = Field(..., alias="factualityStatus")
    evidence_needed: List[str] = Field(..., alias="evidence_needed")
    should_escalate: bool = Field(..., alias="should_escalate")
    article_leaning: str = Field(..., alias="articleLeaning")
    bias_leaning: str = Field(..., alias="biasLeaning")
    bias_comment: str = Field(..., alias="biasComment")
    reliability_comment: str = Field(..., alias="reliabilityComment")
    analysis_mode_used: str = Field(..., alias="analysisModeUsed")
    category: Optional[str] = None

    class Config:
        """Pydantic config."""

        populate_by_name = True
        extra = "ignore"

    def to_payload(self) -> Dict[str, Any]:
        """Serialize with the stored (camelCase) field names."""
        return self.model_dump(by_alias=True)

    def to_raw(self) -> RawAnalysis:
        """View this analysis as raw input, e.g. to recalibrate it."""
        return RawAnalysis.from_payload(self.to_payload())
