"""
Backup Service - full-store snapshots for backup and restore

The backup file is the JSON document

    {"exportDate": ISO-8601, "version": 1,
     "products": [...], "orders": [...], "categories": [...]}

with records exactly as stored (camelCase keys). Restore is a destructive
replace: the three collections are cleared, then categories, products and
orders are inserted in that order. A record that fails validation or
collides with another is skipped and reported; the rest of the restore goes
on. Restore is not atomic: a crash half-way leaves a partially filled store.
"""
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from petpos.core.config import settings
from petpos.core.exceptions import ConstraintViolation, ParseFailure, describe_error
from petpos.core.record_store import CATEGORIES, ORDERS, PRODUCTS, RecordStore
from petpos.domain.category import Category
from petpos.domain.product import Product
from petpos.repositories.order_repository import OrderRepository

logger = logging.getLogger(__name__)

# Restore order: categories and products exist before the orders that mention them
RESTORE_ORDER = (CATEGORIES, PRODUCTS, ORDERS)


# ============================================================================
# Result types
# ============================================================================

@dataclass
class RecordOutcome:
    collection: str
    record_id: Optional[str]
    success: bool
    reason: Optional[str] = None


@dataclass
class RestoreResult:
    success: bool
    imported: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in RESTORE_ORDER})
    failed: Dict[str, int] = field(default_factory=lambda: {name: 0 for name in RESTORE_ORDER})
    outcomes: List[RecordOutcome] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed_total(self) -> int:
        return sum(self.failed.values())

    @property
    def is_partial(self) -> bool:
        """Restore finished but some records were rejected"""
        return self.success and self.failed_total > 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data['partial'] = self.is_partial
        return data


class BackupDocument(BaseModel):
    """Shape check for an incoming backup file; records are validated one by one"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    export_date: Optional[str] = None
    version: int = Field(1, ge=1)
    products: List[Dict[str, Any]] = Field(default_factory=list)
    orders: List[Dict[str, Any]] = Field(default_factory=list)
    categories: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("products", "orders", "categories", mode="before")
    @classmethod
    def _missing_is_empty(cls, value):
        return [] if value is None else value


# ============================================================================
# Backup Service
# ============================================================================

class BackupService:
    """
    Export, restore and wipe the whole datastore

    Usage:
        service = BackupService(store)
        text = service.export_json()
        result = service.import_snapshot(text)
    """

    def __init__(self, store: RecordStore, orders: Optional[OrderRepository] = None):
        self.store = store
        self.orders = orders or OrderRepository(store)

    # ------------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------------

    def export_snapshot(self) -> Dict[str, Any]:
        """Every record of every collection, plus export time and layout version"""
        exported_at = datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
        snapshot = {
            "exportDate": exported_at,
            "version": settings.BACKUP_SCHEMA_VERSION,
            "products": self.store.get_all(PRODUCTS),
            "orders": self.store.get_all(ORDERS),
            "categories": self.store.get_all(CATEGORIES),
        }
        logger.info(
            f"Snapshot exported: {len(snapshot['products'])} products, "
            f"{len(snapshot['orders'])} orders, {len(snapshot['categories'])} categories"
        )
        return snapshot

    def export_json(self) -> str:
        return json.dumps(self.export_snapshot(), indent=2, ensure_ascii=False)

    @staticmethod
    def backup_filename(today: Optional[date] = None) -> str:
        """Download name for a backup taken today"""
        today = today or date.today()
        return f"petstore_backup_{today.isoformat()}.json"

    # ------------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------------

    @staticmethod
    def parse_document(document: Union[str, bytes, Dict[str, Any]]) -> BackupDocument:
        """
        Check that a backup document can be restored

        Raises:
            ParseFailure: not JSON, not an object, wrong field types, or a
                layout version newer than this build understands
        """
        if isinstance(document, (str, bytes)):
            try:
                document = json.loads(document)
            except json.JSONDecodeError as e:
                raise ParseFailure(f"Backup file is not valid JSON: {e.msg} (line {e.lineno})") from e

        if not isinstance(document, dict):
            raise ParseFailure("Backup file must contain a JSON object")

        try:
            parsed = BackupDocument.model_validate(document)
        except ValidationError as e:
            raise ParseFailure(f"Backup file is malformed: {describe_error(e)}") from e

        if parsed.version > settings.BACKUP_SCHEMA_VERSION:
            raise ParseFailure(
                f"Backup version {parsed.version} is newer than supported version {settings.BACKUP_SCHEMA_VERSION}"
            )
        return parsed

    def import_snapshot(self, document: Union[str, bytes, Dict[str, Any]]) -> RestoreResult:
        """
        Replace the whole datastore with a backup

        The document is checked before anything is deleted: a malformed
        backup returns a failed result and leaves the store as it was.

        Returns:
            RestoreResult with per-collection counts and one outcome per record
        """
        try:
            parsed = self.parse_document(document)
        except ParseFailure as e:
            logger.warning(f"Restore rejected: {e.message}")
            return RestoreResult(success=False, error=e.message)

        self.clear_all()
        result = RestoreResult(success=True)

        writers: Dict[str, Callable[[dict], Any]] = {
            CATEGORIES: self._restore_category,
            PRODUCTS: self._restore_product,
            ORDERS: self.orders.restore_order,
        }

        for collection in RESTORE_ORDER:
            for record in getattr(parsed, collection):
                record_id = record.get("id") if isinstance(record, dict) else None
                try:
                    writers[collection](record)
                except (ValueError, ConstraintViolation) as e:
                    reason = describe_error(e)
                    logger.warning(f"Skipped {collection} record {record_id}: {reason}")
                    result.failed[collection] += 1
                    result.outcomes.append(RecordOutcome(collection, record_id, False, reason))
                    continue

                result.imported[collection] += 1
                result.outcomes.append(RecordOutcome(collection, record_id, True))

        self.orders.reconcile_sequence()

        logger.info(
            f"Restore finished: imported {result.imported}, failed {result.failed}"
        )
        return result

    def _restore_category(self, record: dict) -> None:
        self.store.add(CATEGORIES, Category.model_validate(record).to_record())

    def _restore_product(self, record: dict) -> None:
        self.store.add(PRODUCTS, Product.model_validate(record).to_record())

    # ------------------------------------------------------------------------
    # Wipe and stats
    # ------------------------------------------------------------------------

    def clear_all(self) -> None:
        """Empty every collection and restart order numbering. Irreversible."""
        with self.store.write_lock:
            for collection in RESTORE_ORDER:
                self.store.clear(collection)
            self.orders.reset_sequence()
        logger.warning("All data cleared")

    def dataset_stats(self) -> Dict[str, Any]:
        """Record counts and lifetime revenue (settings page)"""
        revenue = sum((o.total for o in self.orders.get_all_orders()), Decimal("0"))
        return {
            "products": self.store.count(PRODUCTS),
            "orders": self.store.count(ORDERS),
            "categories": self.store.count(CATEGORIES),
            "total_revenue": revenue,
        }
