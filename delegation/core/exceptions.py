"""
Service-layer exception hierarchy.

Services raise these; the substitution blueprint registers handlers
against them once and maps them to consistent HTTP status codes.

Unresolvable substitution chains are NOT exceptions: the resolvers
report them through their boolean result.

Usage:
    from delegation.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Substitution", resource_id="alice", tenant_id=3)
    raise ValidationError("forced must be a boolean", details={"forced": "..."})
"""


class NotFoundError(Exception):
    """Raised when a requested resource does not exist within the given tenant.

    Args:
        resource: Human-readable entity name (e.g. "Substitution", "Tenant").
        resource_id: The key that was looked up. Included in logs, not in HTTP response.
        tenant_id: Optional — the scope that was enforced. For debug logging only.
    """

    def __init__(
        self,
        resource: str,
        resource_id: int | str | None = None,
        tenant_id: int | None = None,
    ) -> None:
        self.resource = resource
        self.resource_id = resource_id
        self.tenant_id = tenant_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        if tenant_id is not None:
            msg += f" (tenant={tenant_id})"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when well-formed input violates a business rule.

    Maps to HTTP 422.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown for structured API responses.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)
