"""
Interest service domain exceptions.

Every refusal of the lifecycle engine is one of these. Each carries the HTTP
status the API renders it with and a stable ``code`` for clients.
"""

from __future__ import annotations
from typing import Any, Optional


class InterestServiceError(Exception):
    """Base exception for interest and ranking errors"""

    status_code = 400
    code = "interest_error"

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra = extra

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": self.detail, **self.extra}


class Unauthorized(InterestServiceError):
    """Raised when the caller has no identity"""
    status_code = 401
    code = "unauthorized"


class Forbidden(InterestServiceError):
    """Raised when the actor is not the party allowed to act"""
    status_code = 403
    code = "forbidden"


class NotFound(InterestServiceError):
    """Raised when an interest or profile does not exist (or is not visible)"""
    status_code = 404
    code = "not_found"


class InvalidTransition(InterestServiceError):
    """Raised when an action is not legal from the interest's current status"""
    status_code = 409
    code = "invalid_transition"


class InvalidAction(InterestServiceError):
    """Raised for an unrecognized action or status token"""
    status_code = 400
    code = "invalid_action"


class VerificationRequired(InterestServiceError):
    """Raised when the approval gate is not met"""
    status_code = 403
    code = "verification_required"

    def __init__(self, detail: str, would_be_mutual: bool = False):
        super().__init__(detail, would_be_mutual=would_be_mutual)
        self.would_be_mutual = would_be_mutual


class DuplicateInterest(InterestServiceError):
    """Raised when the sender already has an interest to this receiver"""
    status_code = 409
    code = "duplicate_interest"

    def __init__(self, detail: str, interest: Optional[Any] = None):
        super().__init__(detail)
        self.interest = interest
