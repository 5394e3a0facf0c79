from __future__ import annotations

from typing import Any, Iterable

import pytest

from moon_reactions.application.errors import PriceUnavailable, UnresolvableInput
from moon_reactions.domain.models import Formula, Inventory, MaterialQuantity, SourceType
from moon_reactions.infrastructure.formula_catalog import FormulaCatalog
from moon_reactions.infrastructure.price_oracle import StaticPriceOracle
from moon_reactions.infrastructure.reaction_analyzer import ReactionAnalyzer


X, Y, Z, P, Q, R = 1, 2, 3, 4, 5, 6


def _formula(fid: int, output: tuple[int, str, float], *inputs: tuple[int, str, float]) -> Formula:
    return Formula(
        formula_id=fid,
        name=f"{output[1]} Reaction Formula",
        inputs=tuple(MaterialQuantity(*i) for i in inputs),
        output=MaterialQuantity(*output),
    )


def _analyzer(formulas: Iterable[Formula], prices: dict[int, Any], **kwargs: Any) -> ReactionAnalyzer:
    return ReactionAnalyzer(FormulaCatalog(formulas), StaticPriceOracle(prices), **kwargs)


def _held(quantity: float) -> Inventory:
    return Inventory(quantities={X: quantity}, names={X: "X"})


class _UnreachableOracle:
    def fetch_prices(self, material_ids):
        raise PriceUnavailable("Appraisal service returned status 503")

    def price_of(self, material_id):
        return None

    def warm(self, material_ids):
        raise PriceUnavailable("Appraisal service returned status 503")


class _EditablePrices:
    def __init__(self, prices: dict[int, float]):
        self.prices = prices

    def fetch_prices(self, material_ids):
        return {mid: self.prices.get(mid) for mid in material_ids}

    def price_of(self, material_id):
        return self.prices.get(material_id)

    def warm(self, material_ids):
        return None


def test_holdings_priced_at_opportunity_cost():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 10_000))
    analyzer = _analyzer([formula], {X: 100, Y: 2_000_000})

    results = analyzer.analyze(_held(10_000)).profits

    assert len(results) == 1
    profit = results[0]
    assert profit.input_cost == pytest.approx(1_000_000)
    assert profit.output_value == pytest.approx(2_000_000)
    assert profit.profit == pytest.approx(1_000_000)
    assert profit.margin == pytest.approx(50.0)
    assert profit.uses_user_materials is True

    leaf = profit.tree.children[0]
    assert profit.tree.source is SourceType.OUTPUT
    assert leaf.source is SourceType.HOLDINGS
    assert leaf.held_quantity == pytest.approx(10_000)
    assert leaf.purchased_quantity == 0.0


def test_unpriced_and_unheld_input_excludes_formula():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 10_000))
    analyzer = _analyzer([formula], {Y: 2_000_000})

    result = analyzer.analyze(Inventory())

    assert result.profits == []
    assert [x.formula_id for x in result.exclusions] == [100]
    assert result.exclusions[0].formula_name == "Y Reaction Formula"


def test_unpriced_output_excludes_formula():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 1))
    analyzer = _analyzer([formula], {X: 5})

    assert analyzer.analyze(Inventory()).profits == []
    with pytest.raises(PriceUnavailable):
        analyzer.evaluate_formula(formula, Inventory())


def test_partial_holdings_record_purchased_shortfall():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 10_000))
    analyzer = _analyzer([formula], {X: 100, Y: 2_000_000})

    leaf = analyzer.analyze(_held(4_000)).profits[0].tree.children[0]

    assert leaf.source is SourceType.HOLDINGS
    assert leaf.held_quantity == pytest.approx(4_000)
    assert leaf.purchased_quantity == pytest.approx(6_000)
    assert leaf.total_price == pytest.approx(1_000_000)


def test_cycle_without_external_source_terminates_and_excludes():
    formulas = [
        _formula(1, (Q, "Q", 1), (P, "P", 1)),
        _formula(2, (P, "P", 1), (Q, "Q", 1)),
        _formula(3, (R, "R", 1), (P, "P", 1)),
    ]
    analyzer = _analyzer(formulas, {R: 10})

    result = analyzer.analyze(Inventory())

    assert result.profits == []
    assert sorted(x.formula_id for x in result.exclusions) == [1, 2, 3]

    with pytest.raises(UnresolvableInput):
        analyzer.resolve_material(P, "P", 1, frozenset({3}), Inventory())


def test_cycle_with_external_source_resolves_through_reaction():
    formulas = [
        _formula(1, (Q, "Q", 1), (P, "P", 1)),
        _formula(2, (P, "P", 1), (Q, "Q", 1)),
        _formula(3, (R, "R", 1), (P, "P", 1)),
    ]
    analyzer = _analyzer(formulas, {R: 10, Q: 1})

    result = analyzer.analyze(Inventory())
    results = {p.formula_id: p for p in result.profits}

    assert set(results) == {1, 3}
    assert [x.formula_id for x in result.exclusions] == [2]

    tree = results[3].tree
    p_node = tree.children[0]
    assert p_node.source is SourceType.REACTION
    assert p_node.formula_name == "P Reaction Formula"
    assert p_node.children[0].source is SourceType.PURCHASED
    assert results[3].profit == pytest.approx(9)
    assert results[3].margin == pytest.approx(90)


def test_tie_prefers_holdings_over_purchase():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 1))
    analyzer = _analyzer([formula], {X: 5, Y: 10})

    leaf = analyzer.analyze(_held(10)).profits[0].tree.children[0]

    assert leaf.source is SourceType.HOLDINGS


def test_tie_prefers_reaction_over_purchase():
    formulas = [
        _formula(100, (Y, "Y", 1), (X, "X", 1)),
        _formula(200, (X, "X", 1), (Z, "Z", 1)),
    ]
    analyzer = _analyzer(formulas, {X: 5, Y: 10, Z: 5})

    profit = next(p for p in analyzer.analyze(Inventory()).profits if p.formula_id == 100)

    assert profit.tree.children[0].source is SourceType.REACTION


def test_tie_prefers_holdings_over_reaction():
    formulas = [
        _formula(100, (Y, "Y", 1), (X, "X", 1)),
        _formula(200, (X, "X", 1), (Z, "Z", 1)),
    ]
    analyzer = _analyzer(formulas, {X: 5, Y: 10, Z: 5})

    profit = next(p for p in analyzer.analyze(_held(1)).profits if p.formula_id == 100)

    assert profit.tree.children[0].source is SourceType.HOLDINGS


def test_multi_stage_chain_scales_sub_reaction_quantities():
    A, B, C, D = 11, 12, 13, 14
    formulas = [
        _formula(1, (B, "B", 1), (A, "A", 2)),
        _formula(2, (D, "D", 1), (B, "B", 2), (C, "C", 1)),
    ]
    analyzer = _analyzer(formulas, {A: 1, B: 10, C: 3, D: 20})

    profit = next(p for p in analyzer.analyze(Inventory()).profits if p.formula_id == 2)

    b_node, c_node = profit.tree.children
    assert b_node.source is SourceType.REACTION
    assert b_node.quantity == pytest.approx(2)
    assert b_node.total_price == pytest.approx(4)
    assert b_node.unit_price == pytest.approx(2)
    assert b_node.children[0].quantity == pytest.approx(4)
    assert c_node.source is SourceType.PURCHASED
    assert profit.input_cost == pytest.approx(7)
    assert profit.profit == pytest.approx(13)
    assert profit.margin == pytest.approx(65)
    assert profit.uses_user_materials is False


def test_reaction_chosen_only_when_cheaper():
    A, B, D = 11, 12, 14
    formulas = [
        _formula(1, (B, "B", 1), (A, "A", 2)),
        _formula(2, (D, "D", 1), (B, "B", 1)),
    ]
    analyzer = _analyzer(formulas, {A: 100, B: 10, D: 20})

    profit = next(p for p in analyzer.analyze(Inventory()).profits if p.formula_id == 2)

    assert profit.tree.children[0].source is SourceType.PURCHASED


def test_more_holdings_never_decrease_profit():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 10_000))
    analyzer = _analyzer([formula], {X: 100, Y: 2_000_000})

    profits = [analyzer.analyze(_held(held)).profits[0].profit for held in (0, 5_000, 10_000, 20_000)]

    assert profits == sorted(profits)


def test_analyze_is_idempotent():
    catalog = FormulaCatalog.load()
    prices = {mid: (mid % 97 + 1) * 10 for mid in catalog.material_ids()}
    analyzer = ReactionAnalyzer(catalog, StaticPriceOracle(prices))
    inventory = Inventory(quantities={16633: 50_000, 16638: 1_000})

    first = [p.to_dict(include_plan=True) for p in analyzer.analyze(inventory).profits]
    second = [p.to_dict(include_plan=True) for p in analyzer.analyze(inventory).profits]

    assert first == second
    assert len(first) == len(catalog)


def test_parallel_matches_serial():
    catalog = FormulaCatalog.load()
    prices = {mid: (mid % 89 + 1) * 7 for mid in catalog.material_ids()}
    inventory = Inventory(quantities={16633: 10_000, 16640: 2_500})

    serial = ReactionAnalyzer(catalog, StaticPriceOracle(prices)).analyze(inventory).profits
    parallel = ReactionAnalyzer(catalog, StaticPriceOracle(prices), max_workers=4).analyze(inventory).profits

    assert [p.to_dict() for p in parallel] == [p.to_dict() for p in serial]
    assert [p.catalog_index for p in serial] == sorted(p.catalog_index for p in serial)


def test_unreachable_price_service_aborts_analysis():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 1))
    analyzer = ReactionAnalyzer(FormulaCatalog([formula]), _UnreachableOracle())

    with pytest.raises(PriceUnavailable):
        analyzer.analyze(Inventory())


def test_each_run_reports_its_own_exclusions():
    formula = _formula(100, (Y, "Y", 1), (X, "X", 10))
    oracle = _EditablePrices({Y: 1_000})
    analyzer = ReactionAnalyzer(FormulaCatalog([formula]), oracle)

    first = analyzer.analyze(Inventory())
    oracle.prices[X] = 5
    second = analyzer.analyze(Inventory())

    assert [x.formula_id for x in first.exclusions] == [100]
    assert first.profits == []
    assert second.exclusions == []
    assert [p.formula_id for p in second.profits] == [100]
