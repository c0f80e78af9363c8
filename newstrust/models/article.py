"""Article model as stored by the ingestion side and updated by the pipeline."""

from datetime import datetime
from typing import Optional

import pendulum
from pydantic import BaseModel, Field

from .stored import StoredAnalysis


class Article(BaseModel):
    """News article with its (optional) stored trust profile."""

    id: str = Field(..., description="Article UUID")
    title: str = Field(..., description="Article title")
    url: str = Field(..., description="Article URL")
    source: str = Field(..., description="Publishing outlet name")
    description: Optional[str] = Field(None, description="Feed description/snippet")
    language: str = Field("es", description="Article language code")
    category: Optional[str] = Field(None, description="Editorial category")
    published_at: Optional[datetime] = Field(None, description="Publication timestamp")
    content: Optional[str] = Field(None, description="Resolved full text")
    summary: Optional[str] = Field(None, description="Summary of the stored analysis")
    bias_score: Optional[float] = Field(None, description="Normalized bias of the stored analysis")
    analysis: Optional[str] = Field(None, description="Serialized stored analysis record")
    analyzed_at: Optional[datetime] = Field(None, description="When the analysis was stored")
    fetched_at: Optional[datetime] = Field(None, description="When ingestion stored the article")
    created_at: Optional[datetime] = Field(None, description="Row creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    class Config:
        """Pydantic config."""

        from_attributes = True

    @property
    def is_analyzed(self) -> bool:
        """Whether an analysis was ever stored for this article."""
        return self.analyzed_at is not None

    def with_full_content(self, content: str) -> "Article":
        """Return a copy carrying freshly fetched full text."""
        return self.model_copy(
            update={"content": content, "updated_at": pendulum.now("UTC")}
        )

    def with_analysis(self, record: StoredAnalysis) -> "Article":
        """Return a copy carrying a calibrated analysis record."""
        now = pendulum.now("UTC")
        return self.model_copy(
            update={
                "summary": record.analysis.get("summary"),
                "bias_score": record.analysis.get("biasScoreNormalized"),
                "analysis": record.to_json(),
                "analyzed_at": now,
                "updated_at": now,
            }
        )
