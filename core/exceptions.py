"""
Error taxonomy for the Customs Transit Ledger
"""
from typing import Dict, Iterable, List, Optional

from pydantic import ValidationError


class LedgerError(Exception):
    """Base class for all ledger errors"""
    pass


class ShipmentNotFound(LedgerError):
    """Raised when an operation targets an unknown shipment id."""

    def __init__(self, shipment_id: str):
        self.shipment_id = shipment_id
        super().__init__(f"Shipment not found: {shipment_id}")


class InvalidTransition(LedgerError):
    """Raised when a lifecycle transition is not allowed."""

    def __init__(self, current: str, target: str, detail: Optional[str] = None):
        self.current = current
        self.target = target
        message = f"Invalid transition: {current} → {target}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class TransitionGuardError(InvalidTransition):
    """Raised when a transition is in order but its required documents are missing."""

    def __init__(self, current: str, target: str, missing: Iterable[str]):
        self.missing = sorted(missing)
        super().__init__(current, target, f"missing documents: {', '.join(self.missing)}")


class PermissionDenied(LedgerError):
    """Raised when a role attempts an action it is not allowed to perform."""

    def __init__(self, role: str, action: str):
        self.role = role
        self.action = action
        super().__init__(f"Role '{role}' is not allowed to perform '{action}'")


class TrackingNumberExhausted(LedgerError):
    """Raised when no free tracking number remains for a regime."""
    pass


class ShipmentValidationError(LedgerError):
    """
    Field-scoped validation failure.

    ``errors`` maps each offending field to its list of messages so a form
    can redisplay every message next to its input.
    """

    def __init__(self, errors: Dict[str, List[str]]):
        self.errors = errors
        summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        super().__init__(f"Validation failed - {summary}")

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "ShipmentValidationError":
        errors: Dict[str, List[str]] = {}
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__root__"
            problems = (err.get("ctx") or {}).get("problems")
            messages = list(problems) if problems else [err["msg"]]
            errors.setdefault(field, []).extend(messages)
        return cls(errors)
