"""Error taxonomy shared by the services and the HTTP layer.

Validation, not-found and cross-reference errors are raised before any
write happens. ``PersistenceError`` is raised after the unit of work has
been rolled back. Ingestion problems are never raised; they are logged
and the receipt is saved with whatever survived.
"""

from __future__ import annotations


class ReceiptSplitError(Exception):
    pass


class ValidationError(ReceiptSplitError):
    def __init__(self, field: str, message: str):
        super().__init__(f"Validation error on field '{field}': {message}")
        self.field = field
        self.message = message


class NotFoundError(ReceiptSplitError):
    pass


class CrossReferenceError(ReceiptSplitError):
    pass


class PersistenceError(ReceiptSplitError):
    pass


class StorageError(PersistenceError):
    pass
