"""Sequential batch analysis of unanalyzed articles."""

from typing import AsyncIterator, List, Optional, Tuple

from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from ..db.articles import ArticleRepository
from ..errors import ExternalAPIError, ValidationError
from ..models import Article
from .orchestrator import AnalysisOrchestrator, AnalyzeRequest

console = Console()

MIN_BATCH_LIMIT = 1
MAX_BATCH_LIMIT = 100


class BatchItemResult(BaseModel):
    """Outcome for one article of a batch."""

    article_id: str
    success: bool
    error: Optional[str] = None

    class Config:
        """Pydantic config."""

        frozen = True


class BatchResult(BaseModel):
    """Accumulated outcome of a batch run."""

    processed: int = 0
    successful: int = 0
    failed: int = 0
    results: Tuple[BatchItemResult, ...] = Field(default_factory=tuple)

    class Config:
        """Pydantic config."""

        frozen = True

    def add(self, item: BatchItemResult) -> "BatchResult":
        """Return a new result that also counts `item`."""
        return BatchResult(
            processed=self.processed + 1,
            successful=self.successful + (1 if item.success else 0),
            failed=self.failed + (0 if item.success else 1),
            results=self.results + (item,),
        )


def is_rate_limited(error: BaseException) -> bool:
    """Whether a failure came from provider rate limiting."""
    if isinstance(error, ExternalAPIError) and error.status_code == 429:
        return True
    message = str(error).lower()
    return "429" in message or "too many requests" in message


def validate_limit(limit: object) -> int:
    """Check a batch size before any storage access."""
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise ValidationError(f"Batch limit must be an integer, got {limit!r}")
    if limit < MIN_BATCH_LIMIT or limit > MAX_BATCH_LIMIT:
        raise ValidationError(
            f"Batch limit must be between {MIN_BATCH_LIMIT} and {MAX_BATCH_LIMIT}, got {limit}"
        )
    return limit


class BatchRunner:
    """Applies the orchestrator to pending articles one at a time."""

    def __init__(self, orchestrator: AnalysisOrchestrator, repository: ArticleRepository):
        self.orchestrator = orchestrator
        self.repository = repository

    async def _outcomes(
        self, articles: List[Article], analysis_mode: Optional[str]
    ) -> AsyncIterator[BatchItemResult]:
        for index, article in enumerate(articles, 1):
            console.print(f"[dim][{index}/{len(articles)}] {article.id}[/dim]")
            try:
                await self.orchestrator.execute(
                    AnalyzeRequest(article_id=article.id, analysis_mode=analysis_mode)
                )
            except Exception as e:
                if is_rate_limited(e):
                    console.print(f"[yellow]   Rate limited on {article.id}: {e}[/yellow]")
                else:
                    console.print(f"[red]   Failed {article.id}: {e}[/red]")
                yield BatchItemResult(article_id=article.id, success=False, error=str(e))
            else:
                yield BatchItemResult(article_id=article.id, success=True)

    async def execute_batch(self, limit: int, analysis_mode: Optional[str] = None) -> BatchResult:
        """
        Analyze up to `limit` unanalyzed articles sequentially.

        Per-article failures are recorded, never raised. An article that
        fell back to title and description still counts as a success.

        Raises:
            ValidationError: limit is not an integer in [1, 100]
        """
        limit = validate_limit(limit)
        articles = await self.repository.find_unanalyzed(limit)
        console.print(f"[cyan]Processing {len(articles)} unanalyzed articles[/cyan]")

        result = BatchResult()
        async for item in self._outcomes(articles, analysis_mode):
            result = result.add(item)

        self._print_summary(result)
        return result

    def _print_summary(self, result: BatchResult) -> None:
        """Print batch execution summary."""
        table = Table(title="Batch Summary")
        table.add_column("Processed", style="cyan")
        table.add_column("Successful", style="green")
        table.add_column("Failed", style="red")
        table.add_row(str(result.processed), str(result.successful), str(result.failed))
        console.print(table)

        for item in result.results:
            if not item.success:
                console.print(f"[red]  {item.article_id}: {item.error}[/red]")
