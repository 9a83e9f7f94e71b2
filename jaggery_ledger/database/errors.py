# database/errors.py
"""
Domain errors surfaced verbatim to the user, plus PersistenceError for
storage failures.

Business-rule violations are never retried. PersistenceError is transient
from the caller's point of view; the ledger does not retry automatically.
"""
from __future__ import annotations

import sqlite3


class DomainError(Exception):
    """Domain-level error suitable for surfacing to the UI."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """Missing/invalid required fields. Caller's fault."""


class RecordNotFound(ValidationError):
    pass


class DuplicateLotNumber(DomainError):
    def __init__(self, lot_number: str):
        super().__init__(
            f"Lot number '{lot_number}' already exists. Please use a unique lot number."
        )
        self.lot_number = lot_number


class EmptyItemList(DomainError):
    def __init__(self, message: str = "A lot needs at least one item with a non-zero quantity."):
        super().__init__(message)


class ExceedsAvailableStock(DomainError):
    def __init__(self, requested_kg: float, available_kg: float, lot_item_id: int | None = None):
        super().__init__(
            f"Requested {requested_kg:g} kg exceeds available stock of {available_kg:g} kg."
        )
        self.requested_kg = float(requested_kg)
        self.available_kg = float(available_kg)
        self.lot_item_id = lot_item_id


InsufficientStock = ExceedsAvailableStock


class EmptyQuantity(DomainError):
    def __init__(self, message: str = "Quantity must be greater than zero."):
        super().__init__(message)


class InvalidAmount(DomainError):
    def __init__(self, amount):
        super().__init__(f"Payment amount must be greater than zero (got {amount!r}).")
        self.amount = amount


class InvalidRate(DomainError):
    def __init__(self, rate):
        super().__init__(f"Sale rate per kg must be greater than zero (got {rate!r}).")
        self.rate = rate


class PickLineNotFound(RecordNotFound):
    def __init__(self, pick_line_id):
        super().__init__(f"Pick line not found: {pick_line_id}")
        self.pick_line_id = pick_line_id


class AlreadyPacked(DomainError):
    def __init__(self, pick_line_id):
        super().__init__(f"Pick line {pick_line_id} is already packed.")
        self.pick_line_id = pick_line_id


class PermissionDenied(DomainError):
    def __init__(self, role: str | None, permission: str):
        super().__init__(f"Role '{role}' does not have the '{permission}' permission.")
        self.role = role
        self.permission = permission


class PersistenceError(DomainError):
    """
    The storage layer failed. `kind` distinguishes the known causes:
      uniqueness | referential | malformed | generic
    """

    MESSAGES: dict[str, str] = {
        "uniqueness": "This record already exists. Please use a different value.",
        "referential": "This record is linked to other records and cannot be changed or removed.",
        "malformed": "Invalid data format. Please check your inputs.",
        "generic": "A storage error occurred. Please try again.",
    }

    def __init__(self, kind: str, detail: str | None = None):
        kind = kind if kind in self.MESSAGES else "generic"
        super().__init__(self.MESSAGES[kind])
        self.kind = kind
        self.detail = detail

    @classmethod
    def from_exception(cls, exc: BaseException) -> "PersistenceError":
        """Classify an sqlite3 error by its message."""
        text = str(exc)
        low = text.lower()
        if isinstance(exc, sqlite3.IntegrityError):
            if "unique constraint" in low:
                return cls("uniqueness", text)
            if "foreign key constraint" in low:
                return cls("referential", text)
            if "check constraint" in low or "not null constraint" in low:
                return cls("malformed", text)
            # RAISE(ABORT, ...) from triggers
            return cls("malformed", text)
        if isinstance(exc, (sqlite3.DataError, sqlite3.InterfaceError)):
            return cls("malformed", text)
        return cls("generic", text)
