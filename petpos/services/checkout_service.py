"""
Checkout Service
Turns a cart into a recorded order.

Stock is not decremented at checkout; inventory counts are adjusted by hand
from the product page.
"""
import logging
from collections import OrderedDict
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from petpos.core.exceptions import CheckoutError
from petpos.domain.base import Money
from petpos.domain.order import Order, OrderCreate, OrderItem
from petpos.repositories.order_repository import OrderRepository
from petpos.repositories.product_repository import ProductRepository

logger = logging.getLogger(__name__)


class CartLine(BaseModel):
    """
    One line of the cart

    name and price are what the till showed when the product was scanned.
    When given they win over the catalog, so a price change mid-sale does
    not alter the sale.
    """
    product_id: str = Field(..., alias="productId")
    quantity: int
    name: Optional[str] = None
    price: Optional[Money] = None

    model_config = ConfigDict(populate_by_name=True)


class CheckoutService:
    """
    Builds and records an order from cart lines

    Usage:
        service = CheckoutService(products, orders)
        order = service.checkout([{"productId": "p1", "quantity": 2}])
    """

    def __init__(self, products: ProductRepository, orders: OrderRepository):
        self.products = products
        self.orders = orders

    def _merge_lines(self, lines: List[CartLine]) -> "OrderedDict[str, CartLine]":
        """Collapse repeated scans of one product into a single line, first scan order kept"""
        merged: "OrderedDict[str, CartLine]" = OrderedDict()
        for line in lines:
            if line.quantity < 1:
                raise CheckoutError(
                    f"Quantity must be at least 1 (got {line.quantity})",
                    code="invalid_quantity",
                    context={"product_id": line.product_id, "quantity": line.quantity},
                )
            if line.product_id in merged:
                first = merged[line.product_id]
                merged[line.product_id] = first.model_copy(update={"quantity": first.quantity + line.quantity})
            else:
                merged[line.product_id] = line
        return merged

    def build_items(self, lines: List[Union[CartLine, Dict]]) -> List[OrderItem]:
        """
        Resolve cart lines into order items with subtotals

        Raises:
            CheckoutError: empty cart, quantity below 1, or a product that is
                neither in the catalog nor carries its own name and price
        """
        if not lines:
            raise CheckoutError("Cart is empty", code="empty_cart")

        cart = [line if isinstance(line, CartLine) else CartLine.model_validate(line) for line in lines]

        items = []
        for product_id, line in self._merge_lines(cart).items():
            name, price = line.name, line.price
            if name is None or price is None:
                product = self.products.get_product(product_id)
                if product is None:
                    raise CheckoutError(
                        f"Product not found: {product_id}",
                        code="unknown_product",
                        context={"product_id": product_id},
                    )
                name = product.name if name is None else name
                price = product.price if price is None else price

            items.append(OrderItem.for_product(product_id, name, price, line.quantity))
        return items

    def checkout(self, lines: List[Union[CartLine, Dict]]) -> Order:
        """
        Record the cart as an order

        Returns:
            The stored Order, with its number assigned
        """
        items = self.build_items(lines)
        order = self.orders.add_order(OrderCreate.from_items(items))
        logger.info(f"Checkout complete: {order.order_number} ({order.item_count} units, {order.total})")
        return order
