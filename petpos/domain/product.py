"""
Product Domain Model

Represents a product entity in the shop catalog.
This is the single source of truth for product data structure.
"""
from pydantic import BeforeValidator, Field
from typing import Annotated, Optional
from decimal import Decimal

from petpos.core.config import settings
from petpos.domain.base import LocalDatetime, Money, RecordModel


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


def barcode_to_text(value):
    # Spreadsheets and old backups hand numeric barcodes over as numbers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value)) if float(value).is_integer() else str(value)
    return value


Barcode = Annotated[str, BeforeValidator(barcode_to_text), Field(min_length=1)]
CategoryName = Annotated[Optional[str], BeforeValidator(_blank_to_none)]


class Product(RecordModel):
    """
    Product domain model - represents a product in our catalog

    Fields:
        id: Opaque record id (primary key)
        barcode: Barcode printed on the package (unique across products)
        name: Product name
        category: Category name (soft reference to Category.name, optional)
        price: Selling price
        cost: Purchase price
        stock: Units on hand
        unit: Unit description (e.g., "gói", "hộp", "kg")

        # Metadata
        created_at: When product was created
        updated_at: When product was last updated
    """

    # Primary identification
    id: str = Field(..., description="Record id")
    barcode: Barcode = Field(..., description="Barcode (unique)")
    name: str = Field(..., min_length=1, description="Product name")

    # Details
    category: CategoryName = Field(None, description="Category name")
    unit: str = Field("", description="Unit description (gói, hộp, kg, etc.)")

    # Pricing and inventory
    price: Money = Field(Decimal("0"), description="Sale price")
    cost: Money = Field(Decimal("0"), description="Cost/purchase price")
    stock: int = Field(0, ge=0, description="Units on hand")

    # Metadata
    created_at: LocalDatetime = Field(..., description="Creation timestamp")
    updated_at: Optional[LocalDatetime] = Field(None, description="Last update timestamp")

    # Computed properties
    @property
    def is_low_stock(self) -> bool:
        """Check if stock is at or below the low-stock threshold"""
        return self.stock <= settings.LOW_STOCK_THRESHOLD

    @property
    def is_out_of_stock(self) -> bool:
        """Check if product is out of stock"""
        return self.stock <= 0

    @property
    def margin(self) -> Decimal:
        """Gross margin per unit"""
        return self.price - self.cost

    def to_dict(self) -> dict:
        """
        Convert to dictionary with computed fields

        Returns the stored record plus computed properties, for API responses
        """
        data = self.to_record()
        data['isLowStock'] = self.is_low_stock
        data['isOutOfStock'] = self.is_out_of_stock
        return data


class ProductCreate(RecordModel):
    """Schema for creating a new product (id and createdAt are assigned if absent)"""
    id: Optional[str] = None
    barcode: Barcode
    name: str = Field(..., min_length=1)
    category: CategoryName = None
    price: Money = Decimal("0")
    cost: Money = Decimal("0")
    stock: int = Field(0, ge=0)
    unit: str = ""
    created_at: Optional[LocalDatetime] = None


class ProductUpdate(RecordModel):
    """Schema for updating an existing product; unset fields keep their stored value"""
    id: Optional[str] = None
    barcode: Optional[Barcode] = None
    name: Optional[str] = Field(None, min_length=1)
    category: CategoryName = None
    price: Optional[Money] = None
    cost: Optional[Money] = None
    stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
