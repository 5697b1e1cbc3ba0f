# app/errors.py
# Role: Error taxonomy of the transaction store.
#       Routes translate these into HTTP responses (see main.py).

from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List


@dataclass(frozen=True)
class FieldError:
    """One violated constraint on one field."""

    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


class TransactionStoreError(Exception):
    """Base class for all errors raised by the transaction store."""


class ValidationError(TransactionStoreError):
    """
    One or more field constraints were violated.

    All violations are collected before raising, so `errors` lists every
    problem with the record, not only the first one found.
    """

    def __init__(self, errors: Iterable[FieldError]):
        self.errors: List[FieldError] = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))

    @property
    def fields(self) -> List[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": "Validation failed",
            "errors": [e.to_dict() for e in self.errors],
        }


class DuplicateExternalIdError(ValidationError):
    """A transaction with the same external (bank-sync) id already exists."""

    def __init__(self, external_id: str):
        self.external_id = external_id
        super().__init__(
            [FieldError("external_id", f"Transaction with external id {external_id!r} already exists")]
        )


class NotFoundError(TransactionStoreError):
    """A referenced owner, account or transaction does not exist."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier!r} not found")
