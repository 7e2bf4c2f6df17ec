"""
Payout Error Taxonomy

Every user-facing failure raised by the commission, split and payout services
derives from PayoutError and carries a stable error_code, so the HTTP layer can
map it to a status code without inspecting messages:

    PayoutValidationError     -> 400  bad input (amount, reason, rate, threshold)
    PayoutNotFoundError       -> 404  payout id does not exist
    PayoutStateConflictError  -> 409  transition not allowed from current status
    ThresholdNotMetError      -> 422  HOLD total below the requested minimum
    NoPayoutsAvailableError   -> 422  seller has nothing in HOLD
    SplitIntegrityError       -> 500  money math does not reconcile
    PayoutConsistencyError    -> 500  duplicate key but winning row invisible

Duplicate payout creation is NOT an error: it is resolved inside
PayoutLedgerService.create_or_get and reported through PayoutCreateResult.
"""

from typing import Dict


class PayoutError(Exception):
    """Base exception for payout and commission errors."""
    error_code = "PAYOUT_ERROR"
    status_code = 400

    def __init__(self, message: str, error_code: str = None, details: Dict = None):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class PayoutValidationError(PayoutError):
    """Invalid input: non-positive amount, empty rejection reason, bad rate."""
    error_code = "VALIDATION_ERROR"
    status_code = 400


class PayoutNotFoundError(PayoutError):
    error_code = "NOT_FOUND"
    status_code = 404


class PayoutStateConflictError(PayoutError):
    """Transition requested from a status that does not allow it."""
    error_code = "STATE_CONFLICT"
    status_code = 409


class ThresholdNotMetError(PayoutError):
    error_code = "THRESHOLD_NOT_MET"
    status_code = 422


class NoPayoutsAvailableError(PayoutError):
    error_code = "NO_PAYOUTS_AVAILABLE"
    status_code = 422


class SplitIntegrityError(PayoutError):
    """
    A computed split does not reconcile.

    Indicates a programming or data bug. Never clamp, never swallow.
    """
    error_code = "SPLIT_INTEGRITY_ERROR"
    status_code = 500


class PayoutConsistencyError(PayoutError):
    """
    The store reported a duplicate (order_id, seller_id) but the existing
    payout could not be read back after all retries.
    """
    error_code = "PAYOUT_CONSISTENCY_ERROR"
    status_code = 500
