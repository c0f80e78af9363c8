"""Resolution of the article text an analysis is based on."""

from typing import Optional

from pydantic import BaseModel, Field
from rich.console import Console

from ..db.articles import ArticleRepository
from ..ingestion import ContentFetcher
from ..models import Article

console = Console()

MIN_CONTENT_LENGTH = 100
FALLBACK_DESCRIPTION = "Sin descripción disponible"

# Text left behind in the content column by failed scrapes
CONTENT_ERROR_MARKERS = (
    "JinaReader API Error",
    "ContentFetcher API Error",
)


class ResolvedContent(BaseModel):
    """Text to analyze and how much real evidence it carries."""

    text: str = Field(..., description="Text handed to the analyzer")
    length: int = Field(..., description="Characters of real article text, 0 for fallback", ge=0)
    used_fallback: bool = Field(False, description="Whether title and description stand in for the body")
    fetched: bool = Field(False, description="Whether the text was scraped during this request")
    article: Article = Field(..., description="Article, updated when content was fetched")


def fallback_text(article: Article) -> str:
    """Title and feed description, used when no body text is available."""
    return f"{article.title}\n\n{article.description or FALLBACK_DESCRIPTION}"


def is_usable_content(content: Optional[str], min_length: int = MIN_CONTENT_LENGTH) -> bool:
    """Whether stored content can be analyzed without scraping again."""
    if not content or len(content) < min_length:
        return False
    return not any(marker in content for marker in CONTENT_ERROR_MARKERS)


class ContentResolver:
    """Reuses stored text, scrapes it otherwise, and falls back to feed metadata."""

    def __init__(
        self,
        fetcher: ContentFetcher,
        repository: ArticleRepository,
        min_content_length: int = MIN_CONTENT_LENGTH,
    ) -> None:
        self.fetcher = fetcher
        self.repository = repository
        self.min_content_length = min_content_length

    async def resolve(self, article: Article) -> ResolvedContent:
        """
        Resolve the text for an article.

        Fetch failures never propagate: the article is analyzed from its
        title and description with a zero evidence length instead. A failed
        save of freshly fetched content does propagate.
        """
        if is_usable_content(article.content, self.min_content_length):
            console.print("[dim]   Using stored content[/dim]")
            return ResolvedContent(
                text=article.content,
                length=len(article.content),
                article=article,
            )

        console.print(f"[dim]   Fetching content from {article.url}[/dim]")
        try:
            scraped = await self.fetcher.scrape_url(article.url)
            text = scraped.content if scraped else ""
            if not is_usable_content(text, self.min_content_length):
                raise ValueError("Scraped content is empty or too short")
        except Exception as e:
            console.print("[yellow]   Content fetch failed, using title and description[/yellow]")
            console.print(f"[dim]   Reason: {e}[/dim]")
            return ResolvedContent(
                text=fallback_text(article),
                length=0,
                used_fallback=True,
                article=article,
            )

        console.print(f"[green]   Fetched {len(text)} characters[/green]")
        updated = article.with_full_content(text)
        await self.repository.save(updated)
        return ResolvedContent(text=text, length=len(text), fetched=True, article=updated)
