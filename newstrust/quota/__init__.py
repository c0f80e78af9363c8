"""Usage quota policy."""

from .guard import QuotaBypass, QuotaGuard, quota_bypass_reason

__all__ = ["QuotaBypass", "QuotaGuard", "quota_bypass_reason"]
