"""
POS Exceptions

Every error carries:
- code: machine-readable error code (e.g. "duplicate_barcode")
- message: human-readable message, safe to show in a notification
- context: extra data about the failure

Reads never raise for missing records: absence is a None result.
"""
from typing import Any, Optional

from pydantic import ValidationError


class PosError(Exception):
    """
    Base class for all POS errors

    Attributes:
        code: Machine-readable error code
        message: Human-readable message
        context: Additional data about the error
    """

    code = "error"

    def __init__(self, message: str = "", code: Optional[str] = None, context: Optional[dict] = None):
        self.message = message
        if code:
            self.code = code
        self.context = context or {}
        super().__init__(message)


class StorageUnavailable(PosError):
    """The local datastore could not be opened. Fatal to the session."""

    code = "storage_unavailable"


class ConstraintViolation(PosError):
    """
    A unique index collided with a different record.

    Attributes:
        collection: Collection the write targeted
        index: Index that collided ("id" for the primary key)
        value: Colliding value
    """

    code = "constraint_violation"

    def __init__(self, collection: str, index: str, value: Any, message: str = ""):
        self.collection = collection
        self.index = index
        self.value = value
        super().__init__(
            message or f"{collection}.{index} already contains {value!r}",
            context={"collection": collection, "index": index, "value": value},
        )


class DuplicateBarcode(ConstraintViolation):
    code = "duplicate_barcode"

    def __init__(self, barcode: str):
        super().__init__("products", "barcode", barcode, f"Barcode already exists: {barcode}")


class DuplicateOrderNumber(ConstraintViolation):
    code = "duplicate_order_number"

    def __init__(self, order_number: str):
        super().__init__("orders", "orderNumber", order_number, f"Order number already exists: {order_number}")


class ParseFailure(PosError):
    """Malformed backup document or import row."""

    code = "parse_failure"


class CheckoutError(PosError):
    """
    Checkout could not build a valid order.

    Codes: "empty_cart", "unknown_product", "invalid_quantity"
    """

    code = "checkout_error"


def describe_error(error: Exception) -> str:
    """One-line, user-facing description of a per-record failure"""
    if isinstance(error, ValidationError):
        return "; ".join(
            f"{'.'.join(str(part) for part in err['loc']) or 'record'}: {err['msg']}"
            for err in error.errors()
        )
    if isinstance(error, PosError):
        return error.message
    return str(error)
