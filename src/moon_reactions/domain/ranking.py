from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Iterable

from moon_reactions.domain.models import ReactionProfit


class SortField(str, Enum):
    OUTPUT_NAME = "output_name"
    OUTPUT_QUANTITY = "output_quantity"
    INPUT_COST = "input_cost"
    OUTPUT_VALUE = "output_value"
    PROFIT = "profit"
    MARGIN = "margin"

    @classmethod
    def parse(cls, value: str | "SortField") -> "SortField":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown sort field {value!r} (expected one of: {allowed})") from None


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"

    @classmethod
    def parse(cls, value: str | "SortDirection") -> "SortDirection":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown sort direction {value!r} (expected 'asc' or 'desc')") from None


_SORT_KEYS: dict[SortField, Callable[[ReactionProfit], Any]] = {
    SortField.OUTPUT_NAME: lambda p: p.output_name,
    SortField.OUTPUT_QUANTITY: lambda p: p.output_quantity,
    SortField.INPUT_COST: lambda p: p.input_cost,
    SortField.OUTPUT_VALUE: lambda p: p.output_value,
    SortField.PROFIT: lambda p: p.profit,
    SortField.MARGIN: lambda p: p.margin,
}


def rank(
    profits: Iterable[ReactionProfit],
    field: SortField | str = SortField.MARGIN,
    direction: SortDirection | str = SortDirection.DESC,
) -> list[ReactionProfit]:
    """Return a new list ordered by `field`; equal keys keep catalog order."""

    key = _SORT_KEYS[SortField.parse(field)]
    descending = SortDirection.parse(direction) is SortDirection.DESC

    # sorted() is stable and reverse=True preserves the order of equal items,
    # so pre-sorting by catalog position fixes the tie order for both directions.
    by_catalog = sorted(profits, key=lambda p: p.catalog_index)
    return sorted(by_catalog, key=key, reverse=descending)


def filter_profits(
    profits: Iterable[ReactionProfit],
    *,
    only_profitable: bool = False,
    only_using_holdings: bool = False,
) -> list[ReactionProfit]:
    out: list[ReactionProfit] = []
    for p in profits:
        if only_profitable and not p.profit > 0:
            continue
        if only_using_holdings and not p.uses_user_materials:
            continue
        out.append(p)
    return out
