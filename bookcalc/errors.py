"""
Cost Calculation Errors

Typed failures raised by the cost engine. Each error carries:
- reason: machine-readable code for the calling layer
- message: human-facing English message (localization is up to the caller)
- params: values the caller needs to render its own message
"""

from typing import Any, Dict, Optional


class CostCalculationError(Exception):
    """Base class for every failure raised while pricing a booking"""

    reason = "cost_calculation_error"

    def __init__(self, message: str, params: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.params = params or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reason": self.reason,
            "message": self.message,
            "params": self.params,
        }


class ValidationError(CostCalculationError):
    """The request violates a cost-adjacent booking constraint (buffer period)"""

    reason = "duration_too_short"

    @classmethod
    def duration_too_short(cls, min_days: int) -> "ValidationError":
        return cls(
            f"The duration of this booking must be at least {min_days} days.",
            {"min_days": min_days},
        )


class InvalidConfigError(CostCalculationError):
    """Pricing configuration is missing, non-numeric or malformed"""

    reason = "invalid_config"


class UnresolvedReferenceError(CostCalculationError):
    """A resource or person type id in the request is not known to the product"""

    reason = "unresolved_reference"

    def __init__(self, kind: str, ref_id: str):
        super().__init__(f"Unknown {kind}: {ref_id}", {"kind": kind, "id": ref_id})


class AvailabilityError(CostCalculationError):
    """Raised by upstream availability checks; propagated unchanged"""

    reason = "not_available"
