"""Shared fixtures for pipeline tests."""

from typing import Any, Dict
from unittest.mock import AsyncMock, Mock

import pytest

from newstrust.analyzer import MockAIAnalyzer
from newstrust.db import InMemoryArticleRepository
from newstrust.errors import ExternalAPIError
from newstrust.ingestion import ScrapedContent
from newstrust.models import Article, UsageStats, User
from newstrust.pipeline import AnalysisOrchestrator, ContentResolver
from newstrust.quota import QuotaGuard

PARAGRAPH = (
    "Según el informe del Ministerio de Economía publicado el martes, la inflación "
    "interanual bajó al 3,1% en septiembre, dos décimas menos que en agosto. "
)

# About 1,500 characters of attributed article text
LONG_CONTENT = PARAGRAPH * 10

RICH_ANALYSIS: Dict[str, Any] = {
    "summary": "La inflación bajó al 3,1% según el Ministerio de Economía.",
    "biasRaw": 6,
    "biasScoreNormalized": 0.6,
    "biasType": "encuadre",
    "biasIndicators": [
        "titular destaca solo el dato positivo",
        "omite la inflación subyacente",
        "cita únicamente fuentes oficiales",
    ],
    "explanation": "El texto enmarca el dato como un éxito del gobierno.",
    "clickbaitScore": 20,
    "reliabilityScore": 90,
    "traceabilityScore": 80,
    "sentiment": "positive",
    "mainTopics": ["economía", "inflación"],
    "factCheck": {
        "claims": ["La inflación interanual bajó al 3,1% en septiembre"],
        "verdict": "SupportedByArticle",
        "reasoning": "El dato aparece atribuido al informe oficial.",
    },
    "factualityStatus": "plausible_but_unverified",
    "evidence_needed": [],
    "should_escalate": False,
    "articleLeaning": "progresista",
    "biasComment": "Encuadre favorable al gobierno.",
    "reliabilityComment": "Fuente oficial citada con fecha y cifra.",
}


def build_article(**overrides: Any) -> Article:
    data = {
        "id": "article-1",
        "title": "La inflación baja al 3,1% en septiembre",
        "url": "https://diario.example.com/economia/inflacion-septiembre",
        "source": "Diario Example",
        "description": "El IPC interanual se modera dos décimas.",
        "language": "es",
    }
    data.update(overrides)
    return Article(**data)


def build_user(plan: str = "FREE", articles_analyzed: int = 0) -> User:
    return User(
        id="user-1",
        plan=plan,
        usage_stats=UsageStats(articles_analyzed=articles_analyzed),
    )


@pytest.fixture
def repository():
    """Empty in-memory article store."""
    return InMemoryArticleRepository()


@pytest.fixture
def failing_fetcher():
    """Content fetcher whose every request fails."""
    fetcher = Mock()
    fetcher.scrape_url = AsyncMock(
        side_effect=ExternalAPIError("ContentFetcher", "Server error (503)", 503, retryable=True)
    )
    return fetcher


@pytest.fixture
def working_fetcher():
    """Content fetcher returning LONG_CONTENT for any URL."""
    fetcher = Mock()
    fetcher.scrape_url = AsyncMock(
        side_effect=lambda url: ScrapedContent(url=url, content=LONG_CONTENT)
    )
    return fetcher


@pytest.fixture
def analyzer():
    """Mock analyzer returning a confident, well-evidenced analysis."""
    return MockAIAnalyzer(response=RICH_ANALYSIS)


@pytest.fixture
def make_orchestrator(repository, analyzer, failing_fetcher):
    """Build an orchestrator over the shared fixtures, overridable per test."""

    def _make(fetcher=None, ai=None, quota_guard=None):
        resolver = ContentResolver(fetcher or failing_fetcher, repository)
        return AnalysisOrchestrator(
            repository=repository,
            analyzer=ai or analyzer,
            content_resolver=resolver,
            quota_guard=quota_guard,
        )

    return _make


@pytest.fixture
def quota_guard():
    """Guard with the default plan limits."""
    return QuotaGuard()
