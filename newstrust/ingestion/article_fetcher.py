"""Article fetcher and text extractor."""

from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urlparse

import httpx
import trafilatura
from trafilatura.metadata import extract_metadata

from ..errors import ExternalAPIError
from .models import ScrapedContent

SERVICE_NAME = "ContentFetcher"

PAYWALL_INDICATORS = ("paywall", "subscribe to read", "members only", "suscríbete para leer")


class ContentFetcher(ABC):
    """Fetches the full text behind an article URL."""

    @abstractmethod
    async def scrape_url(self, url: str) -> ScrapedContent:
        """
        Fetch and extract the main text of a page.

        Raises:
            ExternalAPIError: the page could not be fetched or had no extractable text
        """
        pass


class ArticleFetcher(ContentFetcher):
    """Fetch HTML with httpx and extract article text with trafilatura."""

    def __init__(
        self,
        timeout: float = 30.0,
        user_agent: str = "newstrust/0.1 (+article trust profiles)",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize article fetcher."""
        self.timeout = timeout
        self.user_agent = user_agent
        self.transport = transport

    @staticmethod
    def extract_outlet(url: str) -> str:
        """Extract outlet/domain from URL."""
        domain = urlparse(url).hostname or "unknown"
        if domain.startswith("www."):
            domain = domain[4:]
        return domain

    async def scrape_url(self, url: str) -> ScrapedContent:
        """Fetch and extract a single article."""
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "text/html,application/xhtml+xml",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers=headers,
                transport=self.transport,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 404:
                error_msg = "Article not found (404)"
            elif status == 403:
                error_msg = "Access forbidden (403)"
            elif status >= 500:
                error_msg = f"Server error ({status})"
            else:
                error_msg = f"HTTP {status}"
            raise ExternalAPIError(
                SERVICE_NAME, error_msg, status, retryable=status == 429 or status >= 500, cause=e
            )
        except httpx.TimeoutException as e:
            raise ExternalAPIError(SERVICE_NAME, "Request timed out", 504, retryable=True, cause=e)
        except httpx.HTTPError as e:
            raise ExternalAPIError(SERVICE_NAME, f"HTTP error: {e}", 503, retryable=True, cause=e)

        final_url = str(response.url)
        page = response.text

        if any(indicator in page.lower() for indicator in PAYWALL_INDICATORS):
            raise ExternalAPIError(SERVICE_NAME, "Paywall detected", 402)

        extracted = trafilatura.extract(
            page,
            include_comments=False,
            include_tables=False,
            deduplicate=True,
            favor_precision=True,
            url=final_url,
        )
        if not extracted:
            raise ExternalAPIError(SERVICE_NAME, "Failed to extract article content", 422)

        metadata = extract_metadata(page, default_url=final_url)

        return ScrapedContent(
            url=final_url,
            title=metadata.title if metadata else None,
            content=extracted,
            description=metadata.description if metadata else None,
            author=metadata.author if metadata else None,
            published_date=metadata.date if metadata else None,
            image_url=metadata.image if metadata else None,
        )
