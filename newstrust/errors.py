"""Error taxonomy shared by the pipeline and its adapters."""

from typing import Optional


class DomainError(Exception):
    """Base class for business rule violations."""


class ValidationError(DomainError):
    """Bad input shape (empty id, out-of-range batch limit, ...)."""


class EntityNotFoundError(DomainError):
    """Requested entity does not exist."""

    def __init__(self, entity_name: str, identifier: str) -> None:
        super().__init__(f"{entity_name} with identifier {identifier} not found")
        self.entity_name = entity_name
        self.identifier = identifier


class QuotaExceededError(DomainError):
    """User reached the usage ceiling of their plan for a resource."""

    def __init__(
        self,
        plan: str,
        resource: str,
        current_usage: int,
        limit: int,
        user_id: Optional[str] = None,
    ) -> None:
        super().__init__(
            f"Monthly {resource} limit ({limit}) exceeded for plan {plan}"
        )
        self.plan = plan
        self.resource = resource
        self.current_usage = current_usage
        self.limit = limit
        self.user_id = user_id

    def to_dict(self) -> dict:
        """Diagnostic context for callers."""
        return {
            "plan": self.plan,
            "resource": self.resource,
            "current_usage": self.current_usage,
            "limit": self.limit,
            "user_id": self.user_id,
        }


class InfrastructureError(Exception):
    """External service or technical failure."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class DatabaseError(InfrastructureError):
    """Persistence failure."""


class ConfigurationError(InfrastructureError):
    """Missing or invalid configuration."""


class ExternalAPIError(InfrastructureError):
    """Failure of a third-party API (AI provider, content fetcher)."""

    def __init__(
        self,
        service: str,
        message: str,
        status_code: Optional[int] = None,
        retryable: bool = False,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(f"{service} API Error: {message}", cause)
        self.service = service
        self.status_code = status_code
        self.retryable = retryable
