from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from moon_reactions.domain.models import MaterialQuantity, SourceType, SourcingNode


@dataclass(frozen=True)
class PlanLine:
    material: MaterialQuantity
    total_price: float

    def to_dict(self) -> Dict[str, Any]:
        return {**self.material.to_dict(), "total_price": self.total_price}


@dataclass(frozen=True)
class ReactionStep:
    formula_name: str
    inputs: tuple[MaterialQuantity, ...]
    output: MaterialQuantity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "formula_name": self.formula_name,
            "inputs": [i.to_dict() for i in self.inputs],
            "output": self.output.to_dict(),
        }


@dataclass(frozen=True)
class SourcingPlan:
    extract: tuple[PlanLine, ...]
    purchase: tuple[PlanLine, ...]
    react: tuple[ReactionStep, ...]
    sell: PlanLine

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extract": [line.to_dict() for line in self.extract],
            "purchase": [line.to_dict() for line in self.purchase],
            "react": [step.to_dict() for step in self.react],
            "sell": self.sell.to_dict(),
        }


def _quantity(node: SourcingNode, qty: float | None = None) -> MaterialQuantity:
    return MaterialQuantity(material_id=node.material_id, name=node.name, quantity=node.quantity if qty is None else qty)


def sourcing_plan(tree: SourcingNode) -> SourcingPlan:
    """Flatten a sourcing tree into extract / purchase / react / sell steps.

    Reaction steps are ordered so every step's inputs are produced by an
    earlier step (deepest reactions first, the final formula last). The
    purchased shortfall of a partial holding shows up under purchase.
    """

    extract: list[PlanLine] = []
    purchase: list[PlanLine] = []
    reactions: list[ReactionStep] = []

    def _collect(node: SourcingNode) -> None:
        if node.source is SourceType.HOLDINGS:
            extract.append(PlanLine(_quantity(node, node.held_quantity), node.held_quantity * node.unit_price))
            if node.purchased_quantity > 0:
                purchase.append(
                    PlanLine(_quantity(node, node.purchased_quantity), node.purchased_quantity * node.unit_price)
                )
            return
        if node.source is SourceType.PURCHASED:
            purchase.append(PlanLine(_quantity(node), node.total_price))
            return

        for child in node.children:
            _collect(child)
        if node.children:
            reactions.append(
                ReactionStep(
                    formula_name=node.formula_name or node.name,
                    inputs=tuple(_quantity(c) for c in node.children),
                    output=_quantity(node),
                )
            )

    _collect(tree)

    return SourcingPlan(
        extract=tuple(extract),
        purchase=tuple(purchase),
        react=tuple(reactions),
        sell=PlanLine(_quantity(tree), tree.total_price),
    )
