"""Domain error classes.

Protocol-agnostic errors that represent business failures.
These errors are translated to HTTP responses by the entrypoint layer; callers
branch on ``error_code`` rather than on message text.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain errors.

    Contains business error information (message, machine-readable code and
    context) that protocol adapters translate into their own formats.
    """

    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        """Create a domain error.

        Args:
            message: Human-readable error message
            **context: Additional context (e.g. deal id, status, offending VRMs)
        """
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured format for protocol translation."""
        return {
            "message": self.message,
            "code": self.error_code,
            **self.context,
        }


class ValidationError(DomainError):
    """Caller input is malformed or a required field is missing.

    No state is mutated when this is raised.

    Examples:
        - Payment amount missing or <= 0
        - Payment method missing
        - Part-exchange without a VRM
    """

    error_code: str = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str | None = None,
        errors: list[dict[str, str]] | None = None,
        **context: Any,
    ) -> None:
        """Create a validation error.

        Args:
            message: Overall validation error message (optional if errors provided)
            errors: List of field-specific errors, each with 'field' and 'message'
                   Example: [{"field": "amount", "message": "Must be > 0"}]
            **context: Additional context
        """
        self.errors: list[dict[str, str]] | None
        if errors:
            self.errors = errors
            msg = message or "Validation failed"
        else:
            self.errors = None
            msg = message or "Validation error"

        super().__init__(msg, **context)

    def to_dict(self) -> dict[str, Any]:
        """Convert to structured format."""
        if self.errors:
            return {
                "message": self.message,
                "code": self.error_code,
                "errors": self.errors,
                **self.context,
            }
        return super().to_dict()


class PreconditionFailedError(DomainError):
    """A business rule gating an operation is not met.

    Distinct from ``ValidationError``: the input is well formed but the deal
    is not in a state that allows the operation.
    """

    error_code: str = "PRECONDITION_FAILED"


class InvalidTransitionError(PreconditionFailedError):
    """The requested lifecycle event is not legal from the deal's status."""

    error_code: str = "INVALID_TRANSITION"

    def __init__(self, status: str, event: str, message: str | None = None) -> None:
        super().__init__(
            message or f"Cannot {event.lower().replace('_', ' ')} while deal is {status}",
            status=status,
            event=event,
        )


class SettlementConfirmationRequired(PreconditionFailedError):
    """Financed part-exchanges lack written settlement confirmation.

    Callers may retry with an explicit override once the user confirms.
    """

    error_code: str = "SETTLEMENT_CONFIRMATION_REQUIRED"

    def __init__(self, vrms: list[str]) -> None:
        super().__init__(
            "Settlement figure has not been confirmed in writing for financed part exchange(s)",
            vrms=vrms,
        )


class CancelReasonRequired(PreconditionFailedError):
    """Cancelling a completed deal requires a reason."""

    error_code: str = "REASON_REQUIRED"


class NotFoundError(DomainError):
    """Resource not found, or not visible from the caller's dealer scope."""

    error_code: str = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str | None = None, **context: Any) -> None:
        """Create a not found error.

        Args:
            resource: Type of resource (e.g., "Deal", "SalesDocument")
            identifier: Resource identifier
            **context: Additional context
        """
        if identifier:
            message = f"{resource} with identifier '{identifier}' not found"
        else:
            message = f"{resource} not found"

        super().__init__(message, resource=resource, identifier=identifier, **context)


class ConflictError(DomainError):
    """Business constraint conflict.

    Examples:
        - Deal modified concurrently (stale version)
        - Part-exchange VRM already on the deal
    """

    error_code: str = "CONFLICT"


class DuplicateVrmError(ConflictError):
    error_code: str = "DUPLICATE_VRM"


class VrmInStockError(ConflictError):
    error_code: str = "VRM_IN_STOCK"


class PartExchangeLimitError(ConflictError):
    error_code: str = "PART_EXCHANGE_LIMIT"


class UnauthorizedError(DomainError):
    """Dealer scope missing or not authenticated."""

    error_code: str = "UNAUTHORIZED"


class InternalError(DomainError):
    """Internal domain error (unexpected conditions).

    Should be logged for investigation.
    """

    error_code: str = "INTERNAL_ERROR"


class ReconciliationError(InternalError):
    """The ledger and a document snapshot could not be written together.

    Raised when document-number allocation or a snapshot write fails during a
    money-mutating operation. The whole unit of work is rolled back.
    """

    error_code: str = "RECONCILIATION_FAILED"
