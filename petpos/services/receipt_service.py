"""
Receipt Service
Plain-text receipts sized for a 58mm thermal printer.
"""
import textwrap
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Union

from petpos.core.config import settings
from petpos.domain.base import to_local
from petpos.domain.order import Order


def format_currency(amount: Union[Decimal, int, float]) -> str:
    """
    Format an amount in Vietnamese dong

    >>> format_currency(120000)
    '120.000 đ'
    """
    value = Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    sign = "-" if value < 0 else ""
    grouped = f"{abs(int(value)):,}".replace(",", ".")
    return f"{sign}{grouped} đ"


class ReceiptService:
    """Renders a recorded order as a printable receipt"""

    def __init__(self, width: int = 32):
        self.width = width

    def _separator(self) -> str:
        return "-" * self.width

    def _row(self, left: str, right: str) -> List[str]:
        """Left text and right-aligned amount; long names wrap, the amount goes on the last line"""
        lines = textwrap.wrap(left, self.width) or [""]
        last = lines[-1]
        if len(last) + len(right) + 1 <= self.width:
            lines[-1] = last + " " * (self.width - len(last) - len(right)) + right
        else:
            lines.append(right.rjust(self.width))
        return lines

    def render(self, order: Order) -> str:
        created = to_local(order.created_at)

        lines = [
            settings.SHOP_NAME.center(self.width).rstrip(),
            order.order_number.center(self.width).rstrip(),
            created.strftime("%d/%m/%Y %H:%M:%S").center(self.width).rstrip(),
            self._separator(),
        ]

        for item in order.items:
            lines.extend(self._row(f"{item.name} x{item.quantity}", format_currency(item.subtotal)))

        lines.append(self._separator())
        lines.extend(self._row("TỔNG CỘNG", format_currency(order.total)))
        lines.append("")
        lines.append(settings.RECEIPT_FOOTER.center(self.width).rstrip())

        return "\n".join(lines)
