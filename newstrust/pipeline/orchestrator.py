"""Single-article analysis pipeline."""

import time
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field
from rich.console import Console

from ..analyzer import AIAnalyzer
from ..calibration import calibrate, requires_upgrade, select_mode
from ..calibration.text import prepare_content_for_analysis
from ..db.articles import ArticleRepository
from ..errors import EntityNotFoundError, ValidationError
from ..models import (
    Article,
    CacheStatus,
    CalibratedAnalysis,
    StoredAnalysis,
    User,
    parse_stored_analysis,
)
from ..quota import QuotaGuard, quota_bypass_reason
from .content import ContentResolver, fallback_text

console = Console()

FALLBACK_NOTICE = (
    "ADVERTENCIA: No se pudo acceder al artículo completo. Realiza el análisis "
    "basándote ÚNICAMENTE en el título y el resumen disponibles. Indica "
    "explícitamente en tu respuesta que el análisis es preliminar por falta de "
    "acceso a la fuente original.\n\n"
)


class AnalysisState(str, Enum):
    """States an analysis request moves through."""

    VALIDATE = "validate"
    QUOTA_CHECK = "quota_check"
    CACHE_LOOKUP = "cache_lookup"
    CONTENT_RESOLVE = "content_resolve"
    MODE_SELECT = "mode_select"
    AI_INVOKE = "ai_invoke"
    CALIBRATE = "calibrate"
    PERSIST = "persist"
    RETURN = "return"


class PipelineStage:
    """Timing and outcome of one state of a request."""

    def __init__(self, state: AnalysisState):
        self.state = state
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.success = False
        self.error: Optional[str] = None

    def start(self):
        """Mark stage as started."""
        self.start_time = time.time()

    def complete(self):
        """Mark stage as completed successfully."""
        self.end_time = time.time()
        self.success = True

    def fail(self, error: str):
        """Mark stage as failed."""
        self.end_time = time.time()
        self.success = False
        self.error = error

    @property
    def duration(self) -> float:
        """Get stage duration in seconds."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return 0.0


class AnalyzeRequest(BaseModel):
    """Request to analyze one article."""

    article_id: str = Field(..., description="Article to analyze")
    analysis_mode: Optional[str] = Field(None, description="Requested mode (low_cost or moderate)")
    user: Optional[User] = Field(None, description="Caller, None for internal jobs")


class AnalyzeResult(BaseModel):
    """Calibrated trust profile of an article."""

    article_id: str
    summary: str
    bias_score: float
    analysis: CalibratedAnalysis
    scraped_content_length: int = Field(..., description="Evidence length, 0 when fallback text was used")


class AnalysisStats(BaseModel):
    """Analysis coverage of the article store."""

    total: int
    analyzed: int
    pending: int
    percent_analyzed: int


class AnalysisOrchestrator:
    """Runs quota, cache, content, AI and calibration steps for one article."""

    def __init__(
        self,
        repository: ArticleRepository,
        analyzer: AIAnalyzer,
        content_resolver: ContentResolver,
        quota_guard: Optional[QuotaGuard] = None,
    ):
        """Initialize orchestrator with its collaborators."""
        self.repository = repository
        self.analyzer = analyzer
        self.content_resolver = content_resolver
        self.quota_guard = quota_guard
        self.last_trace: List[PipelineStage] = []

    @contextmanager
    def _stage(self, trace: List[PipelineStage], state: AnalysisState) -> Iterator[PipelineStage]:
        stage = PipelineStage(state)
        trace.append(stage)
        stage.start()
        try:
            yield stage
        except Exception as e:
            stage.fail(str(e))
            raise
        stage.complete()

    async def execute(self, request: AnalyzeRequest) -> AnalyzeResult:
        """
        Analyze an article, or serve its stored analysis.

        Stored analyses are recalibrated on every read, so rules added after
        an analysis was written still apply to it.

        Raises:
            ValidationError: empty article id
            EntityNotFoundError: unknown article
            QuotaExceededError: user reached the monthly analysis limit
            ExternalAPIError: the AI provider failed
        """
        trace: List[PipelineStage] = []
        self.last_trace = trace

        with self._stage(trace, AnalysisState.VALIDATE):
            article_id = (request.article_id or "").strip()
            if not article_id:
                raise ValidationError("Article ID is required")

        with self._stage(trace, AnalysisState.QUOTA_CHECK):
            self._check_quota(request.user)

        with self._stage(trace, AnalysisState.CACHE_LOOKUP):
            article = await self.repository.find_by_id(article_id)
            if article is None:
                raise EntityNotFoundError("Article", article_id)
            console.print(f"[cyan]Analyzing: {article.title[:50]}...[/cyan]")
            cached = parse_stored_analysis(article.analysis)
            if cached.status == CacheStatus.CORRUPT:
                console.print(
                    f"[yellow]   Stored analysis is unreadable ({cached.error}), re-analyzing[/yellow]"
                )
            upgrade = cached.status == CacheStatus.VALID and requires_upgrade(
                cached.record.analysis_mode,
                request.analysis_mode,
                len(article.content or ""),
            )
            if upgrade:
                console.print(
                    f"[dim]   Stored {cached.record.analysis_mode} analysis upgraded "
                    f"to {request.analysis_mode}[/dim]"
                )

        if cached.status == CacheStatus.VALID and not upgrade:
            length, text = self._cached_evidence(article, cached.record)
            with self._stage(trace, AnalysisState.CALIBRATE):
                calibrated = calibrate(
                    cached.raw,
                    length,
                    cached.record.analysis_mode,
                    text=text,
                    category=article.category,
                )
            console.print("[dim]   Serving stored analysis, AI not called[/dim]")
            with self._stage(trace, AnalysisState.RETURN):
                return AnalyzeResult(
                    article_id=article.id,
                    summary=article.summary or calibrated.summary,
                    bias_score=calibrated.bias_score_normalized,
                    analysis=calibrated,
                    scraped_content_length=length,
                )

        with self._stage(trace, AnalysisState.CONTENT_RESOLVE):
            resolved = await self.content_resolver.resolve(article)

        with self._stage(trace, AnalysisState.MODE_SELECT):
            mode = select_mode(request.analysis_mode, resolved.length, resolved.used_fallback)
            if request.analysis_mode and mode != request.analysis_mode:
                console.print(
                    f"[dim]   Mode {request.analysis_mode} downgraded to {mode} "
                    f"({resolved.length} chars of evidence)[/dim]"
                )

        with self._stage(trace, AnalysisState.AI_INVOKE):
            content = prepare_content_for_analysis(resolved.text)
            if not content.strip():
                content = resolved.text
            if resolved.used_fallback:
                content = FALLBACK_NOTICE + content
            raw = await self.analyzer.analyze_article(
                title=article.title,
                content=content,
                source=article.source,
                language=article.language,
                mode=mode,
            )

        with self._stage(trace, AnalysisState.CALIBRATE):
            calibrated = calibrate(
                raw, resolved.length, mode, text=resolved.text, category=article.category
            )
            console.print(
                f"[dim]   Bias {calibrated.bias_score_normalized:.2f}, "
                f"reliability {calibrated.reliability_score:.0f}, "
                f"traceability {calibrated.traceability_score:.0f}[/dim]"
            )

        with self._stage(trace, AnalysisState.PERSIST):
            record = StoredAnalysis(
                analysis_mode=mode,
                content_length=resolved.length,
                analysis=calibrated.to_payload(),
            )
            analyzed = resolved.article.with_analysis(record)
            await self.repository.save(analyzed)

        with self._stage(trace, AnalysisState.RETURN):
            return AnalyzeResult(
                article_id=analyzed.id,
                summary=calibrated.summary,
                bias_score=calibrated.bias_score_normalized,
                analysis=calibrated,
                scraped_content_length=resolved.length,
            )

    def _check_quota(self, user: Optional[User]) -> None:
        bypass = quota_bypass_reason(user, self.quota_guard)
        if bypass is not None:
            console.print(f"[dim]   Quota check skipped ({bypass.value})[/dim]")
            return
        self.quota_guard.verify_quota(user, "analysis")

    @staticmethod
    def _cached_evidence(article: Article, record: StoredAnalysis) -> Tuple[int, str]:
        """Evidence length and text a stored analysis is recalibrated against."""
        if record.version == 0:
            content = article.content or ""
            return len(content), content
        if record.content_length == 0:
            return 0, fallback_text(article)
        return record.content_length, article.content or ""

    async def get_stats(self) -> AnalysisStats:
        """Count analyzed and pending articles."""
        total = await self.repository.count()
        analyzed = await self.repository.count_analyzed()
        percent = round(analyzed / total * 100) if total > 0 else 0
        return AnalysisStats(
            total=total,
            analyzed=analyzed,
            pending=total - analyzed,
            percent_analyzed=percent,
        )
