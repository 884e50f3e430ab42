"""Discriminated result values returned by every core operation.

Expected failures (bad input, missing entities, shortages, gates) are never
raised.  Operations return :class:`Result` with ``success=False`` and a
:class:`LedgerError` carrying a machine-checkable :class:`ErrorKind`, a
human-readable message and structured details for remediation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from .enums import ErrorKind

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class LedgerError:
    """Structured description of an expected failure."""

    kind: ErrorKind
    message: str
    details: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Either ``data`` (on success) or ``error`` (on failure)."""

    success: bool
    data: T | None = None
    error: LedgerError | None = None

    @classmethod
    def ok(cls, data: T) -> Result[T]:
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, **details: object) -> Result[T]:
        return cls(success=False, error=LedgerError(kind=kind, message=message, details=details))

    @classmethod
    def from_error(cls, error: LedgerError) -> Result[T]:
        return cls(success=False, error=error)

    @property
    def kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def to_dict(self) -> dict[str, object]:
        """Return the ``{success, data|error}`` shape handed to outer layers."""

        if self.error is None:
            return {"success": True, "data": self.data}
        return {
            "success": False,
            "error": {
                "kind": str(self.error.kind),
                "message": self.error.message,
                "details": self.error.details,
            },
        }


def not_found(message: str, **details: object) -> LedgerError:
    return LedgerError(ErrorKind.NOT_FOUND, message, details)


def validation(message: str, **details: object) -> LedgerError:
    return LedgerError(ErrorKind.VALIDATION, message, details)


def insufficient(message: str, **details: object) -> LedgerError:
    return LedgerError(ErrorKind.INSUFFICIENT_RESOURCE, message, details)


def state_gate(message: str, **details: object) -> LedgerError:
    return LedgerError(ErrorKind.STATE_GATE, message, details)
