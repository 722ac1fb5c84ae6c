"""
Order Repository - Data Access Layer for Orders (the sales ledger)

Handles all Record Store access for orders and returns Order domain models.

Order numbers
-------------
Numbers are PREFIX + zero-padded sequence (HD0001, HD0002, ...). The last
issued sequence is a persisted counter in the store, advanced while holding
the store's write lock, so two checkouts can never get the same number and a
deleted order's number is never handed out again. reconcile_sequence() moves
the counter past every number already in the ledger; it runs once when the
repository is built and again after a restore.
"""
import logging
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import List, Optional, Union

from petpos.core.config import settings
from petpos.core.exceptions import ConstraintViolation, DuplicateOrderNumber
from petpos.core.ids import generate_id
from petpos.core.record_store import ORDERS, RecordStore
from petpos.domain.base import local_now, to_local
from petpos.domain.order import DailyStats, Order, OrderCreate, SalesSummary

logger = logging.getLogger(__name__)

ORDER_SEQUENCE = "order_number"

# Days of history shown for each period filter; None means no lower bound
HISTORY_PERIODS = {
    "today": 0,
    "week": 7,
    "month": 30,
    "all": None,
}


def start_of_day(moment: datetime) -> datetime:
    """Local midnight of moment's day, with the UTC offset in force at midnight"""
    return datetime.combine(to_local(moment).date(), time.min).astimezone()


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(to_local(moment).date(), time.max).astimezone()


class OrderRepository:
    """
    Repository for Order data access

    Orders are written once (checkout) and never edited; they can only be
    deleted one at a time to correct mistakes.
    """

    def __init__(self, store: RecordStore, prefix: Optional[str] = None, width: Optional[int] = None):
        self.store = store
        self.prefix = prefix or settings.ORDER_NUMBER_PREFIX
        self.width = width or settings.ORDER_NUMBER_WIDTH
        self.reconcile_sequence()

    @staticmethod
    def _map_record_to_order(record: dict) -> Order:
        return Order.model_validate(record)

    # ========================================================================
    # Order numbers
    # ========================================================================

    def format_order_number(self, sequence: int) -> str:
        return f"{self.prefix}{str(sequence).zfill(self.width)}"

    def parse_order_number(self, order_number: str) -> Optional[int]:
        """Sequence part of an order number, None if it does not follow the pattern"""
        if not order_number or not order_number.startswith(self.prefix):
            return None
        digits = order_number[len(self.prefix):]
        return int(digits) if digits.isdigit() else None

    def next_order_number(self) -> str:
        """
        Number the next order will get

        Does not reserve it: add_order() allocates under the write lock.
        """
        return self.format_order_number(self.store.get_sequence(ORDER_SEQUENCE) + 1)

    def _advance_sequence(self, order_number: str) -> None:
        sequence = self.parse_order_number(order_number)
        if sequence is not None:
            self.store.advance_sequence(ORDER_SEQUENCE, sequence)

    def reconcile_sequence(self) -> int:
        """
        Move the counter past every order number in the ledger

        Returns:
            The counter value afterwards
        """
        highest = 0
        for record in self.store.get_all(ORDERS):
            sequence = self.parse_order_number(record.get("orderNumber", ""))
            if sequence is not None and sequence > highest:
                highest = sequence

        value = self.store.advance_sequence(ORDER_SEQUENCE, highest)
        logger.debug(f"Order sequence at {value}")
        return value

    def reset_sequence(self) -> None:
        """Start numbering from the beginning again (used when the ledger is wiped)"""
        self.store.reset_sequence(ORDER_SEQUENCE)

    # ========================================================================
    # Writes
    # ========================================================================

    def add_order(self, order: Union[OrderCreate, dict]) -> Order:
        """
        Record a sale

        The order number (unless given) is resolved before the write, and
        id and createdAt are assigned if absent. Items and total are stored
        as given: the checkout path is responsible for total == sum(subtotals).

        Returns:
            The stored Order with its resolved fields

        Raises:
            DuplicateOrderNumber: the number is already used by another order
        """
        if not isinstance(order, OrderCreate):
            order = OrderCreate.model_validate(order)

        with self.store.write_lock:
            order_number = order.order_number or self.next_order_number()
            stored = Order(
                id=order.id or generate_id(),
                order_number=order_number,
                created_at=order.created_at or local_now(),
                items=order.items,
                total=order.total,
            )

            try:
                self.store.add(ORDERS, stored.to_record())
            except ConstraintViolation as e:
                if e.index == "orderNumber":
                    logger.error(f"Order number collision on {order_number}")
                    raise DuplicateOrderNumber(order_number) from e
                raise

            self._advance_sequence(order_number)

        logger.info(f"Order {order_number} recorded: {len(stored.items)} lines, total {stored.total}")
        return stored

    def restore_order(self, record: dict) -> Order:
        """
        Insert an order exactly as it was exported (backup restore)

        Raises:
            pydantic.ValidationError: the record is not a valid order
            ConstraintViolation: id or order number already present
        """
        order = self._map_record_to_order(record)
        with self.store.write_lock:
            self.store.add(ORDERS, order.to_record())
            self._advance_sequence(order.order_number)
        return order

    def delete_order(self, order_id: str) -> None:
        """Delete one order. No cascade, and its number is not reused."""
        self.store.delete(ORDERS, order_id)
        logger.info(f"Order deleted: {order_id}")

    # ========================================================================
    # Reads
    # ========================================================================

    def get_order(self, order_id: str) -> Optional[Order]:
        record = self.store.get(ORDERS, order_id)
        return self._map_record_to_order(record) if record else None

    def get_order_by_number(self, order_number: str) -> Optional[Order]:
        record = self.store.get_by_index(ORDERS, "orderNumber", order_number)
        return self._map_record_to_order(record) if record else None

    def get_all_orders(self) -> List[Order]:
        return [self._map_record_to_order(r) for r in self.store.get_all(ORDERS)]

    def get_orders_by_date_range(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        end_exclusive: Optional[bool] = None,
    ) -> List[Order]:
        """
        Orders created between start and end

        Args:
            start: Lower bound, inclusive. None leaves the range open.
            end: Upper bound. None leaves the range open.
            end_exclusive: True excludes end, False includes it. When None,
                end is inclusive unless it falls exactly on local midnight
                after start, so (day, day + 1 day) selects exactly one
                calendar day.

        Naive datetimes are taken as local time.
        """
        start = to_local(start) if start else None
        end = to_local(end) if end else None
        if end_exclusive is None:
            end_exclusive = (
                end is not None
                and end == start_of_day(end)
                and (start is None or end > start)
            )

        def in_range(order: Order) -> bool:
            created = order.created_at
            if start is not None and created < start:
                return False
            if end is not None:
                return created < end if end_exclusive else created <= end
            return True

        return [o for o in self.get_all_orders() if in_range(o)]

    def get_history(self, period: str = "today", now: Optional[datetime] = None) -> List[Order]:
        """
        Orders for a history period, newest first

        Args:
            period: "today", "week" (last 7 days), "month" (last 30 days) or "all"
            now: Reference time (default: current local time)

        Raises:
            ValueError: unknown period
        """
        if period not in HISTORY_PERIODS:
            raise ValueError(f"period must be one of: {', '.join(HISTORY_PERIODS)}")

        now = to_local(now) if now else local_now()
        days = HISTORY_PERIODS[period]

        if days is None:
            orders = self.get_all_orders()
        else:
            start = start_of_day(now - timedelta(days=days))
            orders = self.get_orders_by_date_range(start, end_of_day(now), end_exclusive=False)

        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    def search_orders(self, query: str, orders: Optional[List[Order]] = None) -> List[Order]:
        """Orders whose number or any item name contains query (case-insensitive)"""
        if orders is None:
            orders = self.get_all_orders()
        if not query:
            return list(orders)

        needle = query.lower()
        return [
            o for o in orders
            if needle in o.order_number.lower()
            or any(needle in item.name.lower() for item in o.items)
        ]

    # ========================================================================
    # Statistics
    # ========================================================================

    def stats_for_today(self, now: Optional[datetime] = None) -> DailyStats:
        """
        Order count, revenue and units sold for the current local day

        The day runs from 00:00:00.000 to 23:59:59.999 inclusive.
        """
        now = to_local(now) if now else local_now()
        orders = self.get_orders_by_date_range(start_of_day(now), end_of_day(now), end_exclusive=False)

        return DailyStats(
            order_count=len(orders),
            total_revenue=sum((o.total for o in orders), Decimal("0")),
            items_sold=sum(o.item_count for o in orders),
        )

    @staticmethod
    def summary(orders: List[Order]) -> SalesSummary:
        """Count, revenue, units and average order value for a list of orders"""
        revenue = sum((o.total for o in orders), Decimal("0"))
        return SalesSummary(
            order_count=len(orders),
            total_revenue=revenue,
            items_sold=sum(o.item_count for o in orders),
            average_order_value=(revenue / len(orders)).quantize(Decimal("1")) if orders else Decimal("0"),
        )
