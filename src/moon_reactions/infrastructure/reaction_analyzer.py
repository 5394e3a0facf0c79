from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Optional

from moon_reactions.application.errors import PriceUnavailable, ServiceError, UnresolvableInput
from moon_reactions.domain.models import (
    AnalysisResult,
    Exclusion,
    Formula,
    Inventory,
    ReactionProfit,
    SourceType,
    SourcingNode,
)

if TYPE_CHECKING:
    from moon_reactions.infrastructure.formula_catalog import FormulaCatalog
    from moon_reactions.infrastructure.price_oracle import PriceOracle


# Tie-break order when candidate costs are equal.
_RANK_HOLDINGS = 0
_RANK_REACTION = 1
_RANK_PURCHASE = 2


def _margin(profit: float, value: float) -> float:
    if value == 0:
        return 0.0
    return profit / value * 100.0


class ReactionAnalyzer:
    """Least-cost sourcing search over the reaction formula graph.

    Every formula is evaluated for one full run. Each input is sourced from
    holdings (priced at its sell value, i.e. opportunity cost), bought at
    market, or produced by another formula, whichever is cheapest. The
    formula ids on the current path are carried down the recursion so a
    cyclic formula graph still yields a finite tree.

    Holdings are a snapshot valuation: nothing is reserved between branches.
    """

    def __init__(self, catalog: FormulaCatalog, price_oracle: PriceOracle, *, max_workers: int = 1):
        self._catalog = catalog
        self._prices = price_oracle
        self._max_workers = max(1, int(max_workers or 1))

    def _price(self, material_id: int) -> Optional[float]:
        try:
            return self._prices.price_of(material_id)
        except PriceUnavailable as e:
            logging.debug("Price lookup failed for %s: %s", material_id, e)
            return None

    def resolve_material(
        self,
        material_id: int,
        name: str,
        required_qty: float,
        visited_formula_ids: frozenset[int],
        inventory: Inventory,
    ) -> SourcingNode:
        """Cheapest SourcingNode for `required_qty` of a material.

        Raises UnresolvableInput when neither holdings, the market nor an
        off-path formula can supply it.
        """

        unit_price = self._price(material_id)
        candidates: list[tuple[float, int, SourcingNode]] = []

        held = inventory.quantity_of(material_id)
        if held > 0 and unit_price is not None:
            held_used = min(held, required_qty)
            total = required_qty * unit_price
            candidates.append(
                (
                    total,
                    _RANK_HOLDINGS,
                    SourcingNode(
                        source=SourceType.HOLDINGS,
                        material_id=material_id,
                        name=name,
                        quantity=required_qty,
                        unit_price=unit_price,
                        total_price=total,
                        held_quantity=held_used,
                        purchased_quantity=max(0.0, required_qty - held_used),
                    ),
                )
            )

        if unit_price is not None:
            total = required_qty * unit_price
            candidates.append(
                (
                    total,
                    _RANK_PURCHASE,
                    SourcingNode(
                        source=SourceType.PURCHASED,
                        material_id=material_id,
                        name=name,
                        quantity=required_qty,
                        unit_price=unit_price,
                        total_price=total,
                        purchased_quantity=required_qty,
                    ),
                )
            )

        blocked_by_cycle = False
        for formula in self._catalog.formulas_producing(material_id):
            if formula.formula_id in visited_formula_ids:
                blocked_by_cycle = True
                continue
            try:
                node = self._react(formula, required_qty, visited_formula_ids | {formula.formula_id}, inventory)
            except UnresolvableInput as e:
                logging.debug("%s cannot produce %s: %s", formula.name, name, e)
                continue
            candidates.append((node.total_price, _RANK_REACTION, node))

        if not candidates:
            reason = "only reachable through a reaction cycle" if blocked_by_cycle else "no price, holdings or formula"
            raise UnresolvableInput(f"Cannot source {name}: {reason}", material_id=material_id)

        # min() keeps the first of equal keys, i.e. catalog order among reactions.
        _, _, best = min(candidates, key=lambda c: (c[0], c[1]))
        return best

    def _resolve_inputs(
        self,
        formula: Formula,
        output_qty: float,
        visited_formula_ids: frozenset[int],
        inventory: Inventory,
    ) -> tuple[SourcingNode, ...]:
        runs = output_qty / formula.output.quantity
        return tuple(
            self.resolve_material(item.material_id, item.name, item.quantity * runs, visited_formula_ids, inventory)
            for item in formula.inputs
        )

    def _react(
        self,
        formula: Formula,
        output_qty: float,
        visited_formula_ids: frozenset[int],
        inventory: Inventory,
    ) -> SourcingNode:
        children = self._resolve_inputs(formula, output_qty, visited_formula_ids, inventory)
        total = sum(c.total_price for c in children)
        return SourcingNode(
            source=SourceType.REACTION,
            material_id=formula.output.material_id,
            name=formula.output.name,
            quantity=output_qty,
            unit_price=total / output_qty if output_qty else 0.0,
            total_price=total,
            formula_name=formula.name,
            children=children,
        )

    def evaluate_formula(self, formula: Formula, inventory: Inventory, *, catalog_index: int = 0) -> ReactionProfit:
        """Profit record for one full run of `formula`.

        Raises PriceUnavailable when the output has no market price and
        UnresolvableInput when some input cannot be sourced.
        """

        output = formula.output
        output_unit_price = self._price(output.material_id)
        if output_unit_price is None:
            raise PriceUnavailable(f"No market price for {output.name}", material_id=output.material_id)

        children = self._resolve_inputs(formula, output.quantity, frozenset({formula.formula_id}), inventory)

        output_value = output.quantity * output_unit_price
        input_cost = sum(c.total_price for c in children)
        profit = output_value - input_cost

        root = SourcingNode(
            source=SourceType.OUTPUT,
            material_id=output.material_id,
            name=output.name,
            quantity=output.quantity,
            unit_price=output_unit_price,
            total_price=output_value,
            formula_name=formula.name,
            children=children,
        )

        return ReactionProfit(
            formula_id=formula.formula_id,
            formula_name=formula.name,
            output_id=output.material_id,
            output_name=output.name,
            output_quantity=output.quantity,
            output_unit_price=output_unit_price,
            output_value=output_value,
            input_cost=input_cost,
            profit=profit,
            margin=_margin(profit, output_value),
            uses_user_materials=root.uses_holdings(),
            tree=root,
            catalog_index=catalog_index,
        )

    def _evaluate_or_exclude(
        self, indexed: tuple[int, Formula], inventory: Inventory
    ) -> tuple[Optional[ReactionProfit], Optional[str]]:
        index, formula = indexed
        try:
            return self.evaluate_formula(formula, inventory, catalog_index=index), None
        except (PriceUnavailable, UnresolvableInput) as e:
            logging.debug("Excluding %s: %s", formula.name, e)
            return None, str(e)

    def analyze(self, inventory: Inventory) -> AnalysisResult:
        """Evaluate every catalog formula; unpriced or unresolvable ones are reported as exclusions.

        Results are in catalog order regardless of `max_workers`.
        """

        formulas = list(enumerate(self._catalog.all_formulas()))

        # One batch up front; workers then only read the oracle's cache.
        try:
            self._prices.warm(self._catalog.material_ids())
        except ServiceError:
            logging.error("Price oracle unavailable; analysis aborted")
            raise

        if self._max_workers > 1 and len(formulas) > 1:
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                outcomes = list(pool.map(lambda f: self._evaluate_or_exclude(f, inventory), formulas))
        else:
            outcomes = [self._evaluate_or_exclude(f, inventory) for f in formulas]

        results: list[ReactionProfit] = []
        exclusions: list[Exclusion] = []
        for (_, formula), (profit, reason) in zip(formulas, outcomes):
            if profit is not None:
                results.append(profit)
            else:
                exclusions.append(Exclusion(formula.formula_id, formula.name, reason or ""))

        logging.info(
            "Analyzed %d formulas: %d result(s), %d excluded",
            len(formulas),
            len(results),
            len(exclusions),
        )
        return AnalysisResult(profits=results, exclusions=exclusions)
