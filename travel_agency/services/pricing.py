from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class PassengerBreakdown:
    adults: int = 1
    children_11_13: int = 0
    children_6_10: int = 0
    # up to 5 years old, ride on a lap and do not pay
    children_free: int = 0

    @property
    def total(self) -> int:
        return self.adults + self.children_11_13 + self.children_6_10 + self.children_free

    @property
    def seated(self) -> int:
        return self.adults + self.children_11_13 + self.children_6_10


def calculate_total_price(package, num_passengers: int, breakdown: PassengerBreakdown | None = None) -> int:
    """
    Total price of a booking in cents.

    Without a breakdown every passenger pays the full package price. With a
    breakdown, children pay their age-band price when the package defines one.
    """
    if breakdown is None:
        if num_passengers < 1:
            raise ValueError("num_passengers must be at least 1")
        return package.price * num_passengers

    price_11_13 = package.price_child_11_13 if package.price_child_11_13 is not None else package.price
    price_6_10 = package.price_child_6_10 if package.price_child_6_10 is not None else package.price
    return (breakdown.adults * package.price
            + breakdown.children_11_13 * price_11_13
            + breakdown.children_6_10 * price_6_10)


def format_brl(cents: int) -> str:
    """Format cents as Brazilian reais, e.g. 123456 -> 'R$ 1.234,56'."""
    sign = "-" if cents < 0 else ""
    value = Decimal(abs(cents)) / 100
    formatted = f"{value:,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {formatted}"
