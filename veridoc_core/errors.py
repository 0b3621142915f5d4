"""
veridoc_core.errors
-------------------
Closed error taxonomy shared by the ledger and the content workflow.

Every failure surfaced by the core is exactly one of these kinds. Each carries
a stable ``code`` and a suggested ``http_status`` so a service layer can map
them without inspecting messages.
"""

from __future__ import annotations


class VeridocError(Exception):
    code: str = "error"
    http_status: int = 500


# --------- Ledger ----------
class AuthorizationError(VeridocError):
    """Caller lacks the required role (owner-only or verifier-only action)."""
    code = "unauthorized"
    http_status = 403


class StateConflictError(VeridocError):
    """Current status does not satisfy the transition's precondition."""
    code = "state_conflict"
    http_status = 409


class InvalidArgumentError(VeridocError):
    code = "invalid_argument"
    http_status = 400


class InvariantViolationError(VeridocError):
    code = "invariant_violation"
    http_status = 422


# --------- Content ----------
class DecryptionError(VeridocError):
    code = "decryption_failed"
    http_status = 422


class StoreUnavailableError(VeridocError):
    """Transport or service failure talking to the document store. Retryable."""
    code = "store_unavailable"
    http_status = 503


class NotFoundError(VeridocError):
    code = "not_found"
    http_status = 404


__all__ = [
    "VeridocError",
    "AuthorizationError",
    "StateConflictError",
    "InvalidArgumentError",
    "InvariantViolationError",
    "DecryptionError",
    "StoreUnavailableError",
    "NotFoundError",
]
