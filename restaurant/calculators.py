"""
Order and invoice money calculations.

Placement, the completion cascade and manual invoices all go through
OrderCalculator, so an order's totals and its invoice's totals are computed
the same way:

    subtotal   = sum(line.price * line.quantity)
    tax_amount = subtotal * tax_rate / 100, rounded half-up to the cent
    total      = subtotal + tax_amount + tip
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, NamedTuple

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

# One loyalty point per full ten currency units spent
LOYALTY_UNIT = Decimal('10')


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def quantize_money(value) -> Decimal:
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def loyalty_points_for(total) -> int:
    """Points earned for an order total; partial units never round up."""
    total = to_decimal(total)
    if total <= 0:
        return 0
    return int(total // LOYALTY_UNIT)


class Totals(NamedTuple):
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    tip: Decimal
    total: Decimal


class OrderCalculator:
    def __init__(self, tax_rate):
        self.tax_rate = to_decimal(tax_rate)

    def subtotal(self, lines: Iterable) -> Decimal:
        """Lines only need `price` and `quantity` attributes."""
        return quantize_money(sum((to_decimal(line.price) * line.quantity for line in lines), ZERO))

    def tax_for(self, subtotal) -> Decimal:
        return quantize_money(to_decimal(subtotal) * self.tax_rate / Decimal('100'))

    def totals_for_subtotal(self, subtotal, tip=ZERO) -> Totals:
        subtotal = quantize_money(subtotal)
        tip = quantize_money(tip)
        tax_amount = self.tax_for(subtotal)
        return Totals(
            subtotal=subtotal,
            tax_rate=self.tax_rate,
            tax_amount=tax_amount,
            tip=tip,
            total=subtotal + tax_amount + tip,
        )

    def calculate_totals(self, lines: Iterable, tip=ZERO) -> Totals:
        return self.totals_for_subtotal(self.subtotal(lines), tip)
