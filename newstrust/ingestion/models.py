"""Data models for content fetching."""

from typing import Optional

from pydantic import BaseModel, Field


class ScrapedContent(BaseModel):
    """Main text extracted from an article page."""

    url: str = Field(..., description="Final URL after redirects")
    title: Optional[str] = Field(None, description="Page title")
    content: str = Field(..., description="Extracted main text")
    description: Optional[str] = Field(None, description="Meta description")
    author: Optional[str] = Field(None, description="Author if present")
    published_date: Optional[str] = Field(None, description="Publication date as found on the page")
    image_url: Optional[str] = Field(None, description="Lead image if present")
