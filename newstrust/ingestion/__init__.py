"""Article content fetching."""

from .article_fetcher import ArticleFetcher, ContentFetcher
from .models import ScrapedContent

__all__ = ["ArticleFetcher", "ContentFetcher", "ScrapedContent"]
