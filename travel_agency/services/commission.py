from dataclasses import dataclass, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


@dataclass(frozen=True)
class CommissionTier:
    name: str
    min_sales: int
    max_sales: Optional[int]
    commission_rate: float
    bonus: int  # cents, paid once when the tier is reached

    def to_dict(self):
        return asdict(self)


COMMISSION_TIERS = (
    CommissionTier("Iniciante", 1, 5, 7.0, 0),
    CommissionTier("Bronze", 6, 15, 8.0, 30000),
    CommissionTier("Prata", 16, 30, 9.0, 80000),
    CommissionTier("Ouro", 31, None, 10.0, 150000),
)


def tier_for_sales(sales_count: int) -> CommissionTier:
    """Tier matching a cumulative number of sales. Zero sales maps to the first tier."""
    for tier in reversed(COMMISSION_TIERS):
        if sales_count >= tier.min_sales:
            return tier
    return COMMISSION_TIERS[0]


def calculate_commission(sale_amount: int, commission_rate: float) -> int:
    amount = Decimal(sale_amount) * Decimal(str(commission_rate)) / Decimal(100)
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))
