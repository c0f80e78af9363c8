"""Configuration models."""

from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class PostgresConfig(BaseModel):
    """Postgres configuration."""

    host: str = Field("localhost", description="Database host")
    port: int = Field(5432, description="Database port")
    database: str = Field("newstrust", description="Database name")
    user: str = Field("newstrust_user", description="Database user")
    password: Optional[str] = Field(None, description="Database password")
    password_env: Optional[str] = Field(None, description="Environment variable for password")


class LLMConfig(BaseModel):
    """AI analyzer configuration."""

    provider: str = Field("openai", description="LLM provider (openai, mock)")
    model: str = Field("gpt-4o-mini", description="Model name")
    api_key_env: Optional[str] = Field("OPENAI_API_KEY", description="Environment variable for API key")
    api_key: Optional[str] = Field(None, description="API key (prefer api_key_env)")
    base_url: Optional[str] = Field(None, description="Base URL for an OpenAI-compatible API")
    max_attempts: int = Field(3, description="Attempts per analysis on transient errors", ge=1, le=10)
    initial_backoff: float = Field(1.0, description="First retry delay in seconds", ge=0.0)
    timeout: float = Field(60.0, description="Request timeout in seconds", gt=0.0)


class PlanQuota(BaseModel):
    """Monthly ceilings for one plan."""

    monthly_analysis_limit: int = Field(..., ge=0)
    monthly_chat_limit: int = Field(..., ge=0)


def _default_plans() -> Dict[str, PlanQuota]:
    return {
        "FREE": PlanQuota(monthly_analysis_limit=500, monthly_chat_limit=20),
        "PRO": PlanQuota(monthly_analysis_limit=5000, monthly_chat_limit=200),
        "ENTERPRISE": PlanQuota(monthly_analysis_limit=100000, monthly_chat_limit=5000),
    }


class PlanLimits(BaseModel):
    """Quota table keyed by plan, plus how subscription names map onto it."""

    plans: Dict[str, PlanQuota] = Field(default_factory=_default_plans)
    plan_aliases: Dict[str, str] = Field(
        default_factory=lambda: {"PREMIUM": "PRO"},
        description="Subscription names that share another plan's limits",
    )
    default_plan: str = Field("FREE", description="Plan used for unknown subscriptions")

    @field_validator("plans")
    @classmethod
    def validate_plans(cls, v: Dict[str, PlanQuota]) -> Dict[str, PlanQuota]:
        """Require at least the FREE plan."""
        if "FREE" not in v:
            raise ValueError("Plan limits must define the FREE plan")
        return v


class CalibrationConfig(BaseModel):
    """Content resolution settings."""

    min_content_length: int = Field(100, description="Stored content shorter than this is re-fetched", ge=0)


class BatchConfig(BaseModel):
    """Batch defaults."""

    default_limit: int = Field(10, ge=1, le=100)


class FetcherConfig(BaseModel):
    """Content fetcher settings."""

    timeout: float = Field(30.0, gt=0.0)
    user_agent: str = Field("newstrust/0.1 (+article trust profiles)")


class ConfigModel(BaseModel):
    """Main configuration model."""

    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    plan_limits: PlanLimits = Field(default_factory=PlanLimits)
    calibration: CalibrationConfig = Field(default_factory=CalibrationConfig)
    batch: BatchConfig = Field(default_factory=BatchConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
