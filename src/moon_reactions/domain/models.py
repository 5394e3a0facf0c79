from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class MaterialQuantity:
    material_id: int
    name: str
    quantity: float

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "MaterialQuantity":
        quantity = float(payload["quantity"])
        if quantity < 0:
            raise ValueError(f"Negative quantity for material {payload.get('name')!r}")
        return MaterialQuantity(
            material_id=int(payload["material_id"]),
            name=str(payload.get("name") or payload["material_id"]),
            quantity=quantity,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"material_id": self.material_id, "name": self.name, "quantity": self.quantity}


@dataclass(frozen=True)
class SiteComposition:
    """One surveyed site; material quantities are fractions of the site's yield."""

    name: str
    materials: tuple[MaterialQuantity, ...]
    warnings: tuple[str, ...] = ()

    @staticmethod
    def from_dict(payload: Mapping[str, Any]) -> "SiteComposition":
        name = str(payload["name"])
        materials = tuple(MaterialQuantity.from_dict(m) for m in payload.get("materials") or [])

        seen: set[int] = set()
        for material in materials:
            if material.quantity > 1.0:
                raise ValueError(f"Site {name!r}: quantity {material.quantity} for {material.name!r} is above 1.0")
            if material.material_id in seen:
                raise ValueError(f"Site {name!r}: material {material.material_id} listed more than once")
            seen.add(material.material_id)

        return SiteComposition(
            name=name,
            materials=materials,
            warnings=tuple(str(w) for w in payload.get("warnings") or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "materials": [m.to_dict() for m in self.materials],
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class Inventory:
    """Point-in-time holdings: material id -> absolute quantity."""

    quantities: Mapping[int, float] = field(default_factory=dict)
    names: Mapping[int, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantities", MappingProxyType(dict(self.quantities)))
        object.__setattr__(self, "names", MappingProxyType(dict(self.names)))

    def quantity_of(self, material_id: int) -> float:
        return float(self.quantities.get(int(material_id), 0.0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "materials": [
                {"material_id": mid, "name": self.names.get(mid, str(mid)), "quantity": qty}
                for mid, qty in sorted(self.quantities.items())
            ]
        }


@dataclass(frozen=True)
class Formula:
    formula_id: int
    name: str
    inputs: tuple[MaterialQuantity, ...]
    output: MaterialQuantity


class SourceType(str, Enum):
    HOLDINGS = "holdings"
    PURCHASED = "purchased"
    REACTION = "reaction"
    OUTPUT = "output"


@dataclass(frozen=True)
class SourcingNode:
    source: SourceType
    material_id: int
    name: str
    quantity: float
    unit_price: float
    total_price: float
    formula_name: Optional[str] = None
    children: tuple["SourcingNode", ...] = ()
    held_quantity: float = 0.0
    purchased_quantity: float = 0.0

    def iter_nodes(self):
        yield self
        for child in self.children:
            yield from child.iter_nodes()

    def uses_holdings(self) -> bool:
        return any(n.source is SourceType.HOLDINGS for n in self.iter_nodes())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.value,
            "material_id": self.material_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "total_price": self.total_price,
            "formula_name": self.formula_name,
            "held_quantity": self.held_quantity,
            "purchased_quantity": self.purchased_quantity,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass(frozen=True)
class ReactionProfit:
    formula_id: int
    formula_name: str
    output_id: int
    output_name: str
    output_quantity: float
    output_unit_price: float
    output_value: float
    input_cost: float
    profit: float
    margin: float
    uses_user_materials: bool
    tree: SourcingNode
    catalog_index: int = 0

    def to_dict(self, *, include_plan: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "formula_id": self.formula_id,
            "formula_name": self.formula_name,
            "output_id": self.output_id,
            "output_name": self.output_name,
            "output_quantity": self.output_quantity,
            "output_unit_price": self.output_unit_price,
            "output_value": self.output_value,
            "input_cost": self.input_cost,
            "profit": self.profit,
            "margin": self.margin,
            "uses_user_materials": self.uses_user_materials,
            "reaction_tree": self.tree.to_dict(),
        }
        if include_plan:
            # Local import: sourcing_plan depends on this module.
            from moon_reactions.domain.sourcing_plan import sourcing_plan

            payload["plan"] = sourcing_plan(self.tree).to_dict()
        return payload


@dataclass(frozen=True)
class Exclusion:
    formula_id: int
    formula_name: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {"formula_id": self.formula_id, "formula_name": self.formula_name, "reason": self.reason}


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of one analysis run: priced formulas plus the ones left out and why."""

    profits: list[ReactionProfit] = field(default_factory=list)
    exclusions: list[Exclusion] = field(default_factory=list)
