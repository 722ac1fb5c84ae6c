"""
Product Repository - Data Access Layer for Products

Handles all Record Store access for products and returns Product domain models.
"""
import logging
from collections import Counter
from decimal import Decimal
from typing import List, Optional, Tuple, Union

from petpos.core.config import settings
from petpos.core.exceptions import ConstraintViolation, DuplicateBarcode
from petpos.core.ids import generate_id
from petpos.core.record_store import PRODUCTS, RecordStore
from petpos.domain.base import local_now
from petpos.domain.product import Product, ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)


class ProductRepository:
    """
    Repository for Product data access

    All product reads and writes go through here.
    Returns Product domain models, not raw dictionaries.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    @staticmethod
    def _map_record_to_product(record: dict) -> Product:
        """Helper method to map a stored record to the Product domain model."""
        return Product.model_validate(record)

    def _save(self, product: Product, replace: bool) -> Product:
        """Write a product, reporting barcode collisions as DuplicateBarcode"""
        record = product.to_record()
        try:
            if replace:
                self.store.put(PRODUCTS, record)
            else:
                self.store.add(PRODUCTS, record)
        except ConstraintViolation as e:
            if e.index == "barcode":
                logger.warning(f"Rejected product {product.name!r}: barcode {product.barcode} already exists")
                raise DuplicateBarcode(product.barcode) from e
            raise
        return product

    # ========================================================================
    # Writes
    # ========================================================================

    def add_product(self, data: Union[ProductCreate, dict]) -> Product:
        """
        Add a new product

        Args:
            data: Product fields; id and createdAt are assigned if absent

        Returns:
            The stored Product

        Raises:
            DuplicateBarcode: another product already has this barcode
        """
        if not isinstance(data, ProductCreate):
            data = ProductCreate.model_validate(data)

        product = Product(
            **data.model_dump(exclude={"id", "created_at"}),
            id=data.id or generate_id(),
            created_at=data.created_at or local_now(),
        )
        self._save(product, replace=False)
        logger.info(f"Product added: {product.barcode} {product.name}")
        return product

    def update_product(self, data: Union[ProductUpdate, dict], product_id: Optional[str] = None) -> Product:
        """
        Update a product and stamp updatedAt

        Fields left out of data keep their stored value. Existence is not
        checked: updating an unknown id creates the product (upsert).

        Args:
            data: Changed fields
            product_id: Product id (default: data.id)

        Raises:
            ValueError: no id given
            DuplicateBarcode: the new barcode belongs to another product
        """
        if not isinstance(data, ProductUpdate):
            data = ProductUpdate.model_validate(data)

        product_id = product_id or data.id
        if not product_id:
            raise ValueError("update_product requires a product id")

        existing = self.store.get(PRODUCTS, product_id)
        if existing:
            fields = self._map_record_to_product(existing).model_dump()
        else:
            fields = {"created_at": local_now()}

        fields.update(data.model_dump(exclude_unset=True, exclude={"id"}))
        fields["id"] = product_id
        fields["updated_at"] = local_now()

        product = Product.model_validate(fields)
        self._save(product, replace=True)
        logger.info(f"Product updated: {product.barcode} {product.name}")
        return product

    def upsert_by_barcode(self, data: dict) -> Tuple[Product, bool]:
        """
        Merge data into the product with the same barcode, or add it

        Barcode is the natural key for rows coming from a spreadsheet import.

        Returns:
            Tuple of (stored product, True if it was created)
        """
        row = ProductCreate.model_validate(data)
        existing = self.get_product_by_barcode(row.barcode)
        if existing:
            changes = ProductUpdate.model_validate(data).model_dump(exclude_unset=True, exclude={"id"})
            return self.update_product(ProductUpdate(**changes), product_id=existing.id), False
        return self.add_product(row), True

    def delete_product(self, product_id: str) -> None:
        """Delete a product. Orders that sold it keep their own copy of name and price."""
        self.store.delete(PRODUCTS, product_id)
        logger.info(f"Product deleted: {product_id}")

    # ========================================================================
    # Reads
    # ========================================================================

    def get_product(self, product_id: str) -> Optional[Product]:
        """
        Find product by id

        Returns:
            Product or None if not found
        """
        record = self.store.get(PRODUCTS, product_id)
        return self._map_record_to_product(record) if record else None

    def get_product_by_barcode(self, barcode: str) -> Optional[Product]:
        """
        Find product by barcode (scanner lookup)

        Returns:
            Product or None if not found
        """
        record = self.store.get_by_index(PRODUCTS, "barcode", barcode)
        return self._map_record_to_product(record) if record else None

    def get_all_products(self) -> List[Product]:
        return [self._map_record_to_product(r) for r in self.store.get_all(PRODUCTS)]

    def search_products(self, query: str) -> List[Product]:
        """
        Search products

        Name and category match case-insensitively, barcode matches exactly
        as typed. Every match is returned, in catalog order.
        """
        needle = query.lower()
        return [
            p for p in self.get_all_products()
            if needle in p.name.lower()
            or query in p.barcode
            or (p.category is not None and needle in p.category.lower())
        ]

    def find_by_category(self, category: str) -> List[Product]:
        """Products whose category is exactly this name"""
        return [
            self._map_record_to_product(r)
            for r in self.store.get_all_by_index(PRODUCTS, "category", category)
        ]

    def find_low_stock(self, threshold: Optional[int] = None) -> List[Product]:
        """
        Find products with low stock

        Args:
            threshold: Custom threshold (default: settings.LOW_STOCK_THRESHOLD)

        Returns:
            Products at or below the threshold, lowest stock first
        """
        if threshold is None:
            threshold = settings.LOW_STOCK_THRESHOLD
        low = [p for p in self.get_all_products() if p.stock <= threshold]
        return sorted(low, key=lambda p: p.stock)

    def get_stats(self) -> dict:
        """
        Get product statistics

        Returns:
            Dict with totals, stock levels, products per category and the
            stock value at cost
        """
        products = self.get_all_products()
        by_category = Counter(p.category for p in products if p.category)

        return {
            'total': len(products),
            'stock_levels': {
                'out_of_stock': sum(1 for p in products if p.is_out_of_stock),
                'low_stock': sum(1 for p in products if p.is_low_stock and not p.is_out_of_stock),
                'in_stock': sum(1 for p in products if not p.is_low_stock),
            },
            'by_category': [
                {'category': name, 'count': count} for name, count in by_category.most_common()
            ],
            'stock_value': sum((p.cost * p.stock for p in products), Decimal("0")),
        }
