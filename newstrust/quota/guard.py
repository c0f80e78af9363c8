"""Plan-based usage quota checks."""

from enum import Enum
from typing import Optional

from ..config import PlanLimits
from ..errors import QuotaExceededError, ValidationError
from ..models import User

RESOURCES = ("analysis", "chat")


class QuotaBypass(str, Enum):
    """Named reasons for skipping the quota check."""

    ANONYMOUS = "anonymous"
    NOT_CONFIGURED = "not_configured"


def quota_bypass_reason(user: Optional[User], guard: Optional["QuotaGuard"]) -> Optional[QuotaBypass]:
    """
    Decide whether a request skips quota enforcement.

    Internal callers (batch jobs, scripts) carry no user, and deployments
    without a guard do not enforce quotas at all.
    """
    if user is None:
        return QuotaBypass.ANONYMOUS
    if guard is None:
        return QuotaBypass.NOT_CONFIGURED
    return None


class QuotaGuard:
    """Stateless check of a user's usage against their plan limits."""

    def __init__(self, plan_limits: Optional[PlanLimits] = None) -> None:
        self.plan_limits = plan_limits or PlanLimits()

    def resolve_plan(self, subscription_plan: Optional[str]) -> str:
        """Map a subscription name onto a key of the limits table."""
        plan = (subscription_plan or "").strip().upper()
        plan = self.plan_limits.plan_aliases.get(plan, plan)
        if plan not in self.plan_limits.plans:
            return self.plan_limits.default_plan
        return plan

    def limit_for(self, plan: str, resource: str) -> int:
        """Monthly ceiling of a resource for an already resolved plan."""
        quota = self.plan_limits.plans[plan]
        if resource == "analysis":
            return quota.monthly_analysis_limit
        return quota.monthly_chat_limit

    def verify_quota(self, user: User, resource: str) -> None:
        """
        Verify that the user may consume one more unit of a resource.

        Raises:
            QuotaExceededError: usage already reached the plan limit
            ValidationError: unknown resource kind
        """
        if resource not in RESOURCES:
            raise ValidationError(f"Unknown quota resource: {resource}")

        plan = self.resolve_plan(user.plan)
        limit = self.limit_for(plan, resource)

        usage = user.usage_stats
        if usage is None:
            current = 0
        elif resource == "analysis":
            current = usage.articles_analyzed
        else:
            current = usage.chat_messages

        if current >= limit:
            raise QuotaExceededError(
                plan=plan,
                resource=resource,
                current_usage=current,
                limit=limit,
                user_id=user.id,
            )
