"""REST API error response models.

Every non-2xx response uses this shape. Context carried by the domain error
(for example the VRMs awaiting settlement) is added as extra top-level keys.
"""

from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """Field-level error inside a validation failure."""

    field: str
    message: str
    code: str | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "field": "amount",
                "message": "Must be > 0",
                "code": "INVALID_VALUE",
            }
        }
    )


class ErrorResponse(BaseModel):
    """Structured error response format.

    Examples:
        Simple error:
            {"detail": "Deal not found", "code": "NOT_FOUND"}

        Guard failure with context:
            {
                "detail": "Written settlement confirmation is required ...",
                "code": "SETTLEMENT_CONFIRMATION_REQUIRED",
                "vrms": ["AB12CDE"]
            }
    """

    detail: str
    code: str | None = None
    errors: list[ErrorDetail] | None = None

    model_config = ConfigDict(
        extra="allow",
        json_schema_extra={
            "examples": [
                {"detail": "Deal not found", "code": "NOT_FOUND"},
                {
                    "detail": "Validation failed",
                    "code": "VALIDATION_ERROR",
                    "errors": [
                        {"field": "amount", "message": "Must be > 0", "code": "INVALID_VALUE"},
                        {"field": "method", "message": "Payment method is required", "code": "REQUIRED"},
                    ],
                },
                {
                    "detail": "Cannot mark completed while deal is INVOICED",
                    "code": "INVALID_TRANSITION",
                    "status": "INVOICED",
                    "event": "MARK_COMPLETED",
                },
            ]
        },
    )
