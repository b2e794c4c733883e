"""
Price brackets: an ordered, closed set of non-overlapping price ranges.

Bracket boundaries are data, not code. The default table matches one
currency's scale; deployments override it through SearchSettings.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict

from hotel_geosearch.exceptions import InvalidPriceTableError, UnknownPriceBracketError


class PriceBracket(BaseModel):
    """
    One row of the bracket table.

    ``min_price``/``max_price`` are the bounds shown to users. For matching,
    a bracket runs from its ``min_price`` up to (not including) the next
    bracket's ``min_price``; see PriceTable.price_range. ``max_price=None``
    means open-ended.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    label: str
    min_price: float
    max_price: Optional[float] = None


# Returned by classify_price() when a hotel has no usable price.
UNSET_BRACKET = PriceBracket(code="unset", label="Price not set", min_price=0, max_price=0)

DEFAULT_PRICE_BRACKETS: tuple[PriceBracket, ...] = (
    PriceBracket(code="budget", label="up to 15,000", min_price=0, max_price=15000),
    PriceBracket(code="standard", label="15,001 - 30,000", min_price=15001, max_price=30000),
    PriceBracket(code="premium", label="30,001 - 50,000", min_price=30001, max_price=50000),
    PriceBracket(code="luxury", label="50,001 - 100,000", min_price=50001, max_price=100000),
    PriceBracket(code="ultra", label="100,001 and above", min_price=100001, max_price=None),
)


class PriceTable:
    """
    Ordered bracket table.

    Invariants checked on construction:
        - at least one bracket, the first starting at 0
        - brackets sorted, non-overlapping and without gaps wider than one
          minor unit (integer bounds like [0, 15000], [15001, 30000])
        - only the last bracket may be open-ended
    """

    def __init__(self, brackets: tuple[PriceBracket, ...] | list[PriceBracket] = DEFAULT_PRICE_BRACKETS):
        self.brackets: tuple[PriceBracket, ...] = tuple(brackets)
        self._validate()
        self._by_code = {b.code: b for b in self.brackets}

    def _validate(self) -> None:
        if not self.brackets:
            raise InvalidPriceTableError("Price table must contain at least one bracket")
        if self.brackets[0].min_price != 0:
            raise InvalidPriceTableError(
                "First price bracket must start at 0",
                details={"code": self.brackets[0].code},
            )
        codes = [b.code for b in self.brackets]
        if len(set(codes)) != len(codes):
            raise InvalidPriceTableError("Price bracket codes must be unique", details={"codes": codes})

        for prev, nxt in zip(self.brackets, self.brackets[1:]):
            if prev.max_price is None:
                raise InvalidPriceTableError(
                    "Only the last price bracket may be open-ended",
                    details={"code": prev.code},
                )
            if prev.max_price < prev.min_price:
                raise InvalidPriceTableError("Bracket max is below its min", details={"code": prev.code})
            gap = nxt.min_price - prev.max_price
            if gap <= 0 or gap > 1:
                raise InvalidPriceTableError(
                    f"Brackets '{prev.code}' and '{nxt.code}' overlap or leave a gap",
                    details={"previous_max": prev.max_price, "next_min": nxt.min_price},
                )

        if self.brackets[-1].max_price is not None:
            raise InvalidPriceTableError(
                "Last price bracket must be open-ended",
                details={"code": self.brackets[-1].code},
            )

    def __iter__(self):
        return iter(self.brackets)

    def __len__(self) -> int:
        return len(self.brackets)

    def get(self, code: str) -> PriceBracket:
        """Look up a bracket by code. Raises UnknownPriceBracketError."""
        try:
            return self._by_code[code]
        except KeyError:
            raise UnknownPriceBracketError(
                f"Unknown price bracket '{code}'",
                details={"code": code, "known": list(self._by_code)},
            ) from None

    def price_range(self, code: str) -> tuple[float, Optional[float]]:
        """
        Matching range of a bracket as ``(lower, upper)``, lower inclusive and
        upper exclusive. ``upper`` is the next bracket's ``min_price``, or None
        for the last bracket. Raises UnknownPriceBracketError.
        """
        bracket = self.get(code)
        idx = self.brackets.index(bracket)
        upper = self.brackets[idx + 1].min_price if idx + 1 < len(self.brackets) else None
        return bracket.min_price, upper

    def classify(self, price: float | None) -> PriceBracket:
        """
        Return the bracket whose price_range() contains ``price``.

        Absent, zero or negative prices map to UNSET_BRACKET. Prices falling
        between two integer bounds (e.g. 15000.5) belong to the lower bracket,
        so every positive price lands in exactly one bracket.
        """
        if not price or price < 0:
            return UNSET_BRACKET
        for bracket in reversed(self.brackets):
            if price >= bracket.min_price:
                return bracket
        return UNSET_BRACKET  # unreachable: the first bracket starts at 0

    def label_for(self, price: float | None) -> str:
        return self.classify(price).label


_default_table = PriceTable()


def classify_price(price: float | None, table: PriceTable | None = None) -> PriceBracket:
    """Classify a price against ``table`` (the default table if omitted)."""
    return (table or _default_table).classify(price)
