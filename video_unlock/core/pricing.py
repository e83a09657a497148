"""Server-side pricing for unlock purchases."""
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Price:
    amount: int  # minor units
    currency: str

    @property
    def major_units(self) -> str:
        """Amount in major units as a string, e.g. 999 -> '9.99'."""
        value = self.amount / 100
        return str(int(value)) if value.is_integer() else str(value)


class PricingPolicy(Protocol):
    def price_for(self, purchase_type: str) -> Price:
        ...


class FixedPricePolicy:
    """Single-SKU pricing: every purchase type costs the same."""

    def __init__(self, amount: int = 999, currency: str = "usd"):
        self._price = Price(amount=amount, currency=currency.lower())

    def price_for(self, purchase_type: str) -> Price:
        return self._price
