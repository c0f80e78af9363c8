"""Analyze, batch and stats commands."""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..analyzer import build_analyzer
from ..config import Config
from ..db import PostgresArticleRepository, close_connection_pool
from ..errors import DomainError, InfrastructureError
from ..ingestion import ArticleFetcher
from ..pipeline import (
    AnalysisOrchestrator,
    AnalyzeRequest,
    AnalyzeResult,
    BatchRunner,
    ContentResolver,
)
from ..quota import QuotaGuard

console = Console()


def build_orchestrator(config: Config) -> AnalysisOrchestrator:
    """Wire the pipeline from configuration."""
    settings = config.config
    repository = PostgresArticleRepository(config.get_db_config())
    fetcher = ArticleFetcher(
        timeout=settings.fetcher.timeout,
        user_agent=settings.fetcher.user_agent,
    )
    resolver = ContentResolver(
        fetcher,
        repository,
        min_content_length=settings.calibration.min_content_length,
    )
    return AnalysisOrchestrator(
        repository=repository,
        analyzer=build_analyzer(config.get_llm_config()),
        content_resolver=resolver,
        quota_guard=QuotaGuard(config.get_plan_limits()),
    )


async def _with_pool(coro):
    try:
        return await coro
    finally:
        await close_connection_pool()


def _print_result(result: AnalyzeResult) -> None:
    analysis = result.analysis
    table = Table(title=f"Article {result.article_id}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Mode", analysis.analysis_mode_used)
    table.add_row("Evidence length", str(result.scraped_content_length))
    table.add_row("Bias", f"{result.bias_score:.2f} ({analysis.bias_type})")
    table.add_row("Reliability", f"{analysis.reliability_score:.0f}")
    table.add_row("Traceability", f"{analysis.traceability_score:.0f}")
    table.add_row("Verdict", analysis.fact_check.verdict or "-")
    table.add_row("Leaning", analysis.article_leaning)
    table.add_row("Escalate", "yes" if analysis.should_escalate else "no")
    console.print(table)
    if result.summary:
        console.print(f"\n{result.summary}")
    console.print(f"[dim]{analysis.reliability_comment}[/dim]")


def analyze_command(
    article_id: str = typer.Argument(..., help="Article ID"),
    mode: Optional[str] = typer.Option(
        None,
        "--mode",
        "-m",
        help="Analysis mode (low_cost or moderate)",
    ),
) -> None:
    """Analyze one article, or show its stored analysis."""
    try:
        orchestrator = build_orchestrator(Config())
        result = asyncio.run(
            _with_pool(orchestrator.execute(AnalyzeRequest(article_id=article_id, analysis_mode=mode)))
        )
    except (DomainError, InfrastructureError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    _print_result(result)


def batch_command(
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-n",
        help="Maximum articles to analyze (1-100)",
    ),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Analysis mode"),
) -> None:
    """Analyze pending articles one at a time."""
    try:
        config = Config()
        if limit is None:
            limit = config.config.batch.default_limit
        orchestrator = build_orchestrator(config)
        runner = BatchRunner(orchestrator, orchestrator.repository)
        result = asyncio.run(_with_pool(runner.execute_batch(limit, analysis_mode=mode)))
    except KeyboardInterrupt:
        console.print("\n[yellow]Batch interrupted by user[/yellow]")
        raise typer.Exit(1)
    except (DomainError, InfrastructureError) as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    usage = orchestrator.analyzer.get_usage_stats()
    console.print(
        f"[dim]{usage['api_calls']} AI calls, {usage['total_tokens']} tokens, "
        f"${usage['estimated_cost']:.3f}[/dim]"
    )
    if result.processed and result.successful == 0:
        raise typer.Exit(1)


def stats_command() -> None:
    """Show how many articles have been analyzed."""
    try:
        orchestrator = build_orchestrator(Config(allow_missing=True))
        stats = asyncio.run(_with_pool(orchestrator.get_stats()))
    except InfrastructureError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Analysis Coverage")
    table.add_column("Total", style="cyan")
    table.add_column("Analyzed", style="green")
    table.add_column("Pending", style="yellow")
    table.add_column("Coverage", style="bold")
    table.add_row(
        str(stats.total), str(stats.analyzed), str(stats.pending), f"{stats.percent_analyzed}%"
    )
    console.print(table)
