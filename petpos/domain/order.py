"""
Order Domain Models

Represents sales recorded at the till. Orders copy the product name and price
at time of sale into their items, so receipts stay accurate after the product
is edited or deleted.
"""
from pydantic import Field
from typing import Optional, List
from decimal import Decimal

from petpos.domain.base import LocalDatetime, Money, RecordModel


class OrderItem(RecordModel):
    """
    Order Item domain model - represents a line item in an order

    Fields:
        product_id: Product record id at time of sale (may no longer exist)
        name: Product name at time of sale
        price: Unit price at time of sale
        quantity: Number of units sold
        subtotal: price * quantity
    """

    product_id: Optional[str] = Field(None, description="Product record id")
    name: str = Field(..., description="Product name at sale time")
    price: Money = Field(..., description="Price per unit")
    quantity: int = Field(..., description="Quantity sold", ge=1)
    subtotal: Money = Field(..., description="price * quantity")

    @classmethod
    def for_product(cls, product_id: Optional[str], name: str, price: Decimal, quantity: int) -> "OrderItem":
        """Build a line with its subtotal"""
        return cls(
            product_id=product_id,
            name=name,
            price=price,
            quantity=quantity,
            subtotal=Decimal(price) * quantity,
        )


class Order(RecordModel):
    """
    Order domain model - represents a completed sale

    Fields:
        id: Record id (primary key)
        order_number: Human-readable order number (HD0001, HD0002, ...)
        created_at: When the sale was recorded
        items: Sold lines, in cart order
        total: Sum of item subtotals
    """

    id: str = Field(..., description="Record id")
    order_number: str = Field(..., min_length=1, description="Order number")
    created_at: LocalDatetime = Field(..., description="Creation timestamp")
    items: List[OrderItem] = Field(default_factory=list, description="Sold lines")
    total: Money = Field(..., description="Total order amount")

    @property
    def item_count(self) -> int:
        """Units sold in this order"""
        return sum(item.quantity for item in self.items)

    def to_dict(self) -> dict:
        data = self.to_record()
        data['itemCount'] = self.item_count
        return data


class OrderCreate(RecordModel):
    """Schema for a new order; number, id and createdAt are resolved if absent"""
    id: Optional[str] = None
    order_number: Optional[str] = None
    created_at: Optional[LocalDatetime] = None
    items: List[OrderItem] = Field(default_factory=list)
    total: Money

    @classmethod
    def from_items(cls, items: List[OrderItem]) -> "OrderCreate":
        """Order whose total is the sum of its item subtotals"""
        return cls(items=items, total=sum((item.subtotal for item in items), Decimal("0")))


class DailyStats(RecordModel):
    """Sales figures for one calendar day"""
    order_count: int = 0
    total_revenue: Money = Decimal("0")
    items_sold: int = 0


class SalesSummary(RecordModel):
    """Figures for a list of orders (history page)"""
    order_count: int = 0
    total_revenue: Money = Decimal("0")
    items_sold: int = 0
    average_order_value: Money = Decimal("0")
