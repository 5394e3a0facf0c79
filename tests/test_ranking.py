from __future__ import annotations

import pytest

from moon_reactions.domain.models import ReactionProfit, SourceType, SourcingNode
from moon_reactions.domain.ranking import SortDirection, SortField, filter_profits, rank


def _profit(name: str, *, margin: float = 0.0, profit: float = 0.0, index: int = 0, holdings: bool = False) -> ReactionProfit:
    tree = SourcingNode(source=SourceType.OUTPUT, material_id=index, name=name, quantity=1, unit_price=1, total_price=1)
    return ReactionProfit(
        formula_id=1000 + index,
        formula_name=f"{name} Reaction Formula",
        output_id=index,
        output_name=name,
        output_quantity=1,
        output_unit_price=1,
        output_value=1,
        input_cost=1 - profit,
        profit=profit,
        margin=margin,
        uses_user_materials=holdings,
        tree=tree,
        catalog_index=index,
    )


def test_rank_by_margin_descending():
    profits = [_profit("A", margin=10, index=0), _profit("B", margin=-5, index=1), _profit("C", margin=40, index=2)]

    ranked = rank(profits, SortField.MARGIN, SortDirection.DESC)

    assert [p.margin for p in ranked] == [40, 10, -5]
    # Input is left untouched.
    assert [p.margin for p in profits] == [10, -5, 40]


def test_rank_by_name_ascending_breaks_ties_by_catalog_order():
    profits = [_profit("Beta", index=0), _profit("Alpha", index=3), _profit("Alpha", index=1)]

    ranked = rank(profits, "output_name", "asc")

    assert [(p.output_name, p.catalog_index) for p in ranked] == [("Alpha", 1), ("Alpha", 3), ("Beta", 0)]


def test_equal_keys_keep_catalog_order_descending():
    profits = [_profit("C", margin=5, index=2), _profit("A", margin=5, index=0), _profit("B", margin=5, index=1)]

    ranked = rank(profits, SortField.MARGIN, SortDirection.DESC)

    assert [p.catalog_index for p in ranked] == [0, 1, 2]


@pytest.mark.parametrize("value", ["bogus", ""])
def test_unknown_sort_field(value: str):
    with pytest.raises(ValueError):
        SortField.parse(value)


def test_sort_names_are_case_insensitive():
    assert SortField.parse(" Profit ") is SortField.PROFIT
    assert SortDirection.parse("ASC") is SortDirection.ASC
    with pytest.raises(ValueError):
        SortDirection.parse("sideways")


def test_filter_profits():
    profits = [
        _profit("A", profit=10, index=0, holdings=True),
        _profit("B", profit=0, index=1, holdings=True),
        _profit("C", profit=5, index=2),
    ]

    assert [p.output_name for p in filter_profits(profits)] == ["A", "B", "C"]
    assert [p.output_name for p in filter_profits(profits, only_profitable=True)] == ["A", "C"]
    assert [p.output_name for p in filter_profits(profits, only_using_holdings=True)] == ["A", "B"]
    assert [
        p.output_name for p in filter_profits(profits, only_profitable=True, only_using_holdings=True)
    ] == ["A"]
