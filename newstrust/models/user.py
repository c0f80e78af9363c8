"""User and usage counters as seen by the quota policy."""

from typing import Optional

from pydantic import BaseModel, Field


class UsageStats(BaseModel):
    """Per-period usage counters, maintained outside the pipeline."""

    articles_analyzed: int = Field(0, description="Analyses consumed this period", ge=0)
    chat_messages: int = Field(0, description="Chat messages sent this period", ge=0)
    searches_performed: int = Field(0, description="Searches run this period", ge=0)


class User(BaseModel):
    """Authenticated caller."""

    id: str = Field(..., description="User identifier")
    plan: str = Field("FREE", description="Subscription plan (FREE, PREMIUM, PRO, ENTERPRISE)")
    usage_stats: Optional[UsageStats] = Field(None, description="Current usage counters")
