"""
Product Import Service
Bulk create/update of products from spreadsheet rows.

Spreadsheet parsing happens outside this package. Rows arrive either as
dicts keyed by product field or as lists in template column order:

    Mã vạch | Tên sản phẩm | Danh mục | Giá bán | Giá nhập | Tồn kho | Đơn vị
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Union

from petpos.core.exceptions import ParseFailure, PosError, describe_error
from petpos.domain.product import barcode_to_text
from petpos.repositories.category_repository import CategoryRepository
from petpos.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)

# Column order of the import template
TEMPLATE_COLUMNS = ("barcode", "name", "category", "price", "cost", "stock", "unit")
TEMPLATE_HEADERS = ("Mã vạch", "Tên sản phẩm", "Danh mục", "Giá bán", "Giá nhập", "Tồn kho", "Đơn vị")

Row = Union[Dict[str, Any], Sequence[Any]]


@dataclass
class RowOutcome:
    row: int
    barcode: Optional[str]
    success: bool
    created: bool = False
    reason: Optional[str] = None


@dataclass
class BulkImportResult:
    imported: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    outcomes: List[RowOutcome] = field(default_factory=list)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(barcode_to_text(value)).strip()


def _number(value: Any) -> Decimal:
    """Cell value as a number; blanks and junk count as 0"""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return Decimal("0")
    return number if number.is_finite() else Decimal("0")


class ProductImportService:
    """
    Imports product rows, one outcome per row

    A bad row is reported and skipped; it never aborts the batch.
    """

    def __init__(self, products: ProductRepository, categories: CategoryRepository):
        self.products = products
        self.categories = categories

    @staticmethod
    def normalize_row(row: Row) -> Dict[str, Any]:
        """
        Clean one spreadsheet row into product fields

        Strings are trimmed, the barcode becomes text even when the cell was
        numeric, and prices and stock default to 0.
        """
        if not isinstance(row, dict):
            row = dict(zip(TEMPLATE_COLUMNS, row))

        return {
            "barcode": _text(row.get("barcode")),
            "name": _text(row.get("name")),
            "category": _text(row.get("category")),
            "price": _number(row.get("price")),
            "cost": _number(row.get("cost")),
            "stock": int(_number(row.get("stock"))),
            "unit": _text(row.get("unit")),
        }

    def import_row(self, row: Row) -> RowOutcome:
        """
        Upsert one row by barcode (row number is filled in by import_rows)

        Raises:
            ParseFailure: barcode or name missing
        """
        data = self.normalize_row(row)
        if not data["barcode"] or not data["name"]:
            raise ParseFailure("Row needs both a barcode and a name", context={"barcode": data["barcode"]})

        if data["category"]:
            self.categories.ensure_category(data["category"])

        product, created = self.products.upsert_by_barcode(data)
        return RowOutcome(row=0, barcode=product.barcode, success=True, created=created)

    def import_rows(self, rows: List[Row]) -> BulkImportResult:
        """
        Import every row

        Rows are numbered from 1 in the outcomes.
        """
        result = BulkImportResult()

        for number, row in enumerate(rows, start=1):
            try:
                outcome = self.import_row(row)
            except (PosError, ValueError) as e:
                barcode = self.normalize_row(row)["barcode"] or None
                reason = describe_error(e)
                logger.warning(f"Import row {number} skipped: {reason}")
                result.failed += 1
                result.outcomes.append(RowOutcome(row=number, barcode=barcode, success=False, reason=reason))
                continue

            outcome.row = number
            result.imported += 1
            if outcome.created:
                result.created += 1
            else:
                result.updated += 1
            result.outcomes.append(outcome)

        logger.info(
            f"Import finished: {result.created} created, {result.updated} updated, {result.failed} failed"
        )
        return result
