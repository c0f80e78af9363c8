"""Tests for the calibration rules."""

import pytest

from newstrust.calibration import calibrate
from newstrust.calibration.engine import (
    INSUFFICIENT_BIAS_EXPLANATION,
    NEUTRAL_BIAS_COMMENT,
    NOT_VERIFIABLE_PHRASE,
    SUPPORTED_REASONING,
)
from newstrust.models import CalibratedAnalysis, RawAnalysis

from conftest import LONG_CONTENT, RICH_ANALYSIS


def analysis(**overrides):
    payload = dict(RICH_ANALYSIS)
    payload.update(overrides)
    return RawAnalysis.from_payload(payload)


class TestEvidenceCeilings:
    """Reliability and traceability are capped by evidence length."""

    @pytest.mark.parametrize(
        "length,max_reliability,max_traceability",
        [(0, 45, 30), (120, 45, 30), (299, 45, 30), (300, 55, 40), (799, 55, 40)],
    )
    def test_short_evidence_is_capped(self, length, max_reliability, max_traceability):
        """Test scores above the ceiling are lowered to it."""
        result = calibrate(analysis(), length, "moderate")

        assert result.reliability_score <= max_reliability
        assert result.traceability_score <= max_traceability
        assert result.reliability_score == max_reliability

    def test_long_evidence_keeps_scores(self):
        """Test no ceiling applies from 800 characters."""
        result = calibrate(analysis(), 1500, "moderate")

        assert result.reliability_score == 90
        assert result.traceability_score == 80

    def test_scores_are_bounded(self):
        """Test out-of-range scores are clamped to 0..100."""
        result = calibrate(analysis(reliabilityScore=250, traceabilityScore=-5), 2000, "moderate")

        assert result.reliability_score == 100
        assert result.traceability_score == 0

    def test_missing_scores_use_defaults(self):
        """Test missing reliability is 50 and traceability follows it."""
        result = calibrate(analysis(reliabilityScore=None, traceabilityScore=None), 1000, "moderate")

        assert result.reliability_score == 50
        assert result.traceability_score == 50

    def test_missing_scores_are_still_capped(self):
        """Test defaults go through the ceilings too."""
        result = calibrate(RawAnalysis(), 100, "low_cost")

        assert result.reliability_score == 45
        assert result.traceability_score == 30


class TestBiasIndicatorGate:
    """A bias verdict needs at least three cited indicators."""

    def test_single_indicator_zeroes_bias(self):
        """Test one indicator is treated as noise."""
        result = calibrate(
            analysis(biasIndicators=["one indicator"], biasRaw=8, biasScore=0.8, biasScoreNormalized=0.8),
            1500,
            "moderate",
        )

        assert result.bias_raw == 0
        assert result.bias_score == 0
        assert result.bias_score_normalized == 0
        assert result.bias_type == "ninguno"
        assert result.bias_indicators == []
        assert result.explanation == INSUFFICIENT_BIAS_EXPLANATION

    def test_duplicates_do_not_count(self):
        """Test indicators are counted once regardless of case and spacing."""
        result = calibrate(
            analysis(biasIndicators=["Titular alarmista", "titular  alarmista", " TITULAR ALARMISTA ", ""]),
            1500,
            "moderate",
        )

        assert result.bias_score == 0
        assert result.bias_type == "ninguno"

    def test_three_indicators_keep_bias(self):
        """Test enough indicators keep the AI's bias signal."""
        result = calibrate(analysis(), 1500, "moderate")

        assert result.bias_raw == 6
        assert result.bias_score_normalized == 0.6
        assert result.bias_score == result.bias_score_normalized
        assert result.bias_type == "encuadre"
        assert len(result.bias_indicators) == 3

    def test_bias_values_are_clamped(self):
        """Test raw bias is clamped and normalized defaults to |raw| / 10."""
        result = calibrate(analysis(biasRaw=25, biasScoreNormalized=None), 1500, "moderate")

        assert result.bias_raw == 10
        assert result.bias_score_normalized == 1.0

    def test_indicators_are_capped(self):
        """Test at most five indicators are kept."""
        indicators = [f"indicador {i}" for i in range(8)]
        result = calibrate(analysis(biasIndicators=indicators), 1500, "moderate")

        assert result.bias_indicators == indicators[:5]

    def test_gate_applies_in_low_cost(self):
        """Test the gate is independent of the mode."""
        result = calibrate(analysis(biasIndicators=["a", "b"]), 100, "low_cost")

        assert result.bias_score == 0
        assert result.bias_type == "ninguno"


class TestFactCheck:
    """Verdicts require extracted claims and enough text."""

    def test_empty_claims_force_insufficient(self):
        """Test a verdict without claims is discarded."""
        result = calibrate(
            analysis(factCheck={"claims": [], "verdict": "SupportedByArticle", "reasoning": "ok"}),
            1500,
            "moderate",
        )

        assert result.fact_check.verdict == "InsufficientEvidenceInArticle"
        assert NOT_VERIFIABLE_PHRASE in result.fact_check.reasoning

    def test_short_text_forces_insufficient(self):
        """Test claims from under 300 characters cannot be supported."""
        result = calibrate(analysis(), 200, "low_cost")

        assert result.fact_check.verdict == "InsufficientEvidenceInArticle"

    def test_unknown_verdict_is_insufficient(self):
        """Test verdicts outside the known set are rejected."""
        result = calibrate(
            analysis(factCheck={"claims": ["x subió"], "verdict": "True", "reasoning": "ok"}),
            1500,
            "moderate",
        )

        assert result.fact_check.verdict == "InsufficientEvidenceInArticle"

    def test_supported_verdict_gets_fixed_reasoning(self):
        """Test supported verdicts keep claims and use the fixed phrase."""
        result = calibrate(analysis(), 1500, "moderate")

        assert result.fact_check.verdict == "SupportedByArticle"
        assert result.fact_check.reasoning == SUPPORTED_REASONING
        assert result.fact_check.claims == ["La inflación interanual bajó al 3,1% en septiembre"]

    def test_reasoning_stating_insufficiency_wins(self):
        """Test the verdict follows reasoning that admits missing evidence."""
        result = calibrate(
            analysis(
                factCheck={
                    "claims": ["x subió"],
                    "verdict": "SupportedByArticle",
                    "reasoning": "La evidencia es insuficiente para confirmarlo.",
                }
            ),
            1500,
            "moderate",
        )

        assert result.fact_check.verdict == "InsufficientEvidenceInArticle"

    def test_claims_are_capped(self):
        """Test at most five claims are kept."""
        claims = [f"afirmación {i}" for i in range(7)]
        result = calibrate(
            analysis(factCheck={"claims": claims, "verdict": "SupportedByArticle"}),
            1500,
            "moderate",
        )

        assert result.fact_check.claims == claims[:5]


class TestReliabilityComment:
    """Undeterminable factuality gets a synthesized comment."""

    EVIDENCE = ["documento oficial", "segunda fuente", "cifra del INE", "fecha exacta", "autor"]

    def test_short_text_is_not_determinable(self):
        """Test the comment names the missing evidence, at most two entries."""
        result = calibrate(analysis(evidence_needed=self.EVIDENCE), 100, "low_cost")

        assert result.factuality_status == "no_determinable"
        assert NOT_VERIFIABLE_PHRASE in result.reliability_comment
        assert "documento oficial" in result.reliability_comment
        assert "segunda fuente" in result.reliability_comment
        assert "cifra del INE" not in result.reliability_comment
        assert result.evidence_needed == self.EVIDENCE[:4]

    def test_rss_snippet_is_not_determinable(self):
        """Test feed snippets cannot support factuality."""
        snippet = '<p>La inflación baja.</p> <a href="https://diario.example.com/x">Leer más</a>'
        result = calibrate(analysis(), 1500, "moderate", text=snippet)

        assert result.factuality_status == "no_determinable"
        assert NOT_VERIFIABLE_PHRASE in result.reliability_comment

    def test_long_text_keeps_ai_comment(self):
        """Test a determinable analysis keeps the AI's comment."""
        result = calibrate(analysis(), 1500, "moderate", text=LONG_CONTENT)

        assert result.factuality_status == "plausible_but_unverified"
        assert result.reliability_comment == "Fuente oficial citada con fecha y cifra."


class TestLeaning:
    """Leaning survives only with ideological evidence in moderate mode."""

    def test_low_cost_neutralizes_leaning(self):
        """Test low-cost analyses never assert a leaning."""
        result = calibrate(analysis(), 1500, "low_cost")

        assert result.article_leaning == "indeterminada"
        assert result.bias_leaning == "indeterminada"
        assert result.bias_comment == NEUTRAL_BIAS_COMMENT

    def test_short_moderate_request_is_downgraded(self):
        """Test moderate under 800 characters is calibrated as low cost."""
        result = calibrate(analysis(), 500, "moderate")

        assert result.analysis_mode_used == "low_cost"
        assert result.article_leaning == "indeterminada"
        assert result.bias_comment == NEUTRAL_BIAS_COMMENT

    def test_moderate_with_evidence_keeps_leaning(self):
        """Test a well-evidenced leaning is kept."""
        result = calibrate(analysis(), 1500, "moderate")

        assert result.analysis_mode_used == "moderate"
        assert result.article_leaning == "progresista"
        assert result.bias_leaning == "progresista"

    def test_low_traceability_neutralizes_leaning(self):
        """Test a leaning needs traceability of at least 40."""
        result = calibrate(analysis(traceabilityScore=30), 1500, "moderate")

        assert result.article_leaning == "indeterminada"

    def test_extremist_needs_extremist_indicator(self):
        """Test extremista without extremist language is indeterminate."""
        result = calibrate(analysis(articleLeaning="extremista"), 1500, "moderate")

        assert result.article_leaning == "indeterminada"

    def test_extremist_with_indicator(self):
        """Test extremista is kept and mapped to 'otra' for the legacy field."""
        result = calibrate(
            analysis(
                articleLeaning="extremista",
                biasIndicators=[
                    "llama plaga a los inmigrantes",
                    "pide eliminar al adversario",
                    "usa un tono violento",
                ],
            ),
            1500,
            "moderate",
        )

        assert result.article_leaning == "extremista"
        assert result.bias_leaning == "otra"


class TestEscalation:
    """Unattributed absolute claims are escalated in low-cost mode."""

    def test_strong_claim_without_attribution_escalates(self):
        """Test the AI's false flag is overridden."""
        result = calibrate(
            analysis(should_escalate=False),
            100,
            "low_cost",
            text="El gobierno siempre miente y esto lo demuestra.",
        )

        assert result.should_escalate is True

    def test_attributed_claim_does_not_escalate(self):
        """Test an attributed source prevents forced escalation."""
        result = calibrate(
            analysis(should_escalate=False),
            100,
            "low_cost",
            text="Según el ministerio, el gobierno siempre cumple sus plazos.",
        )

        assert result.should_escalate is False

    def test_moderate_mode_is_not_forced(self):
        """Test forced escalation applies only to low-cost analyses."""
        text = "El gobierno siempre miente. " * 40
        result = calibrate(analysis(should_escalate=False), len(text), "moderate", text=text)

        assert result.should_escalate is False

    def test_missing_flag_is_inferred(self):
        """Test escalation is inferred from weak scores and absolute claims."""
        result = calibrate(
            analysis(
                should_escalate=None,
                reliabilityScore=20,
                traceabilityScore=10,
                factCheck={"claims": ["Es definitivo que los precios subirán"]},
            ),
            1500,
            "moderate",
            text=LONG_CONTENT,
        )

        assert result.should_escalate is True


class TestCategoryEscalation:
    """The article's section moderates the AI's escalation flag."""

    WEAK_HIGH_RISK = {
        "reliabilityScore": 50,
        "traceabilityScore": 35,
        "factCheck": {"claims": ["Es definitivo: la quiebra del banco es inminente"]},
    }

    def test_low_risk_section_drops_flag(self):
        """Test a calm sports piece is not escalated on the AI's word alone."""
        result = calibrate(
            analysis(should_escalate=True, clickbaitScore=10),
            1500,
            "moderate",
            text=LONG_CONTENT,
            category="Deportes",
        )

        assert result.should_escalate is False

    @pytest.mark.parametrize(
        "overrides",
        [
            {"clickbaitScore": 60},
            {"clickbaitScore": 10, "factCheck": {"claims": ["Murieron tres aficionados en la grada"]}},
        ],
    )
    def test_low_risk_section_keeps_flag(self, overrides):
        """Test clickbait or high-risk claims keep the AI's flag in low-risk sections."""
        result = calibrate(
            analysis(should_escalate=True, **overrides),
            1500,
            "moderate",
            text=LONG_CONTENT,
            category="cultura",
        )

        assert result.should_escalate is True

    def test_high_risk_section_escalates_weak_claims(self):
        """Test strong claims with weak scores in politics are escalated."""
        result = calibrate(
            analysis(should_escalate=False, **self.WEAK_HIGH_RISK),
            1500,
            "moderate",
            text=LONG_CONTENT,
            category="Política",
        )

        assert result.should_escalate is True

    def test_high_risk_section_with_solid_scores(self):
        """Test well-sourced analyses in high-risk sections keep the AI's flag."""
        result = calibrate(
            analysis(should_escalate=False, factCheck=self.WEAK_HIGH_RISK["factCheck"]),
            1500,
            "moderate",
            text=LONG_CONTENT,
            category="politica",
        )

        assert result.should_escalate is False

    def test_low_risk_section_keeps_forced_escalation(self):
        """Test unattributed absolute claims escalate in low-cost mode whatever the section."""
        result = calibrate(
            analysis(should_escalate=False, clickbaitScore=10),
            100,
            "low_cost",
            text="El equipo siempre gana y esto lo demuestra.",
            category="deportes",
        )

        assert result.should_escalate is True

    def test_category_calibration_is_idempotent(self):
        """Test recalibrating with the same section changes nothing."""
        first = calibrate(
            analysis(should_escalate=False, **self.WEAK_HIGH_RISK),
            1500,
            "moderate",
            text=LONG_CONTENT,
            category="economía",
        )

        assert calibrate(first, 1500, "moderate", text=LONG_CONTENT, category="economía") == first


class TestRobustness:
    """Calibration never raises and is idempotent."""

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            {},
            "not a dict",
            {"reliabilityScore": "alta", "biasIndicators": "x", "factCheck": 5},
            {"summary": 42, "sentiment": "furious", "clickbaitScore": 400},
        ],
    )
    def test_malformed_input_is_conservative(self, payload):
        """Test malformed fields are treated as absent."""
        result = calibrate(payload, 1000, "moderate")

        assert isinstance(result, CalibratedAnalysis)
        assert result.bias_score == 0
        assert result.fact_check.verdict == "InsufficientEvidenceInArticle"
        assert result.sentiment in ("positive", "negative", "neutral")
        assert 0 <= result.clickbait_score <= 100

    def test_invalid_length_is_zero_evidence(self):
        """Test a missing length takes the most conservative ceiling."""
        result = calibrate(analysis(), None, "moderate")

        assert result.reliability_score == 45
        assert result.analysis_mode_used == "low_cost"

    @pytest.mark.parametrize(
        "length,mode,text",
        [
            (0, "low_cost", ""),
            (100, "low_cost", "El gobierno siempre miente."),
            (500, "moderate", ""),
            (1500, "moderate", LONG_CONTENT),
        ],
    )
    def test_idempotent(self, length, mode, text):
        """Test calibrating twice gives the same result."""
        once = calibrate(analysis(evidence_needed=["documento", "fuente"]), length, mode, text=text)
        twice = calibrate(once, length, mode, text=text)

        assert twice == once
