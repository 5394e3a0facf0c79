from __future__ import annotations

import pytest

from moon_reactions.domain.models import SourceType, SourcingNode
from moon_reactions.domain.sourcing_plan import sourcing_plan


def _tree() -> SourcingNode:
    a = SourcingNode(
        source=SourceType.PURCHASED, material_id=11, name="A", quantity=4, unit_price=1, total_price=4,
        purchased_quantity=4,
    )
    b = SourcingNode(
        source=SourceType.REACTION, material_id=12, name="B", quantity=2, unit_price=2, total_price=4,
        formula_name="B Reaction Formula", children=(a,),
    )
    c = SourcingNode(
        source=SourceType.HOLDINGS, material_id=13, name="C", quantity=1, unit_price=3, total_price=3,
        held_quantity=0.5, purchased_quantity=0.5,
    )
    return SourcingNode(
        source=SourceType.OUTPUT, material_id=14, name="D", quantity=1, unit_price=20, total_price=20,
        formula_name="D Reaction Formula", children=(b, c),
    )


def test_plan_groups_steps():
    plan = sourcing_plan(_tree())

    assert [(line.material.name, line.material.quantity) for line in plan.extract] == [("C", 0.5)]
    assert [(line.material.name, line.material.quantity) for line in plan.purchase] == [("A", 4), ("C", 0.5)]
    assert plan.purchase[1].total_price == pytest.approx(1.5)
    assert plan.sell.material.name == "D"
    assert plan.sell.total_price == pytest.approx(20)


def test_reaction_steps_run_deepest_first():
    plan = sourcing_plan(_tree())

    assert [step.formula_name for step in plan.react] == ["B Reaction Formula", "D Reaction Formula"]
    assert [i.name for i in plan.react[0].inputs] == ["A"]
    assert [i.name for i in plan.react[1].inputs] == ["B", "C"]
    assert plan.react[1].output.name == "D"


def test_plan_to_dict():
    payload = sourcing_plan(_tree()).to_dict()

    assert set(payload) == {"extract", "purchase", "react", "sell"}
    assert payload["react"][0]["output"] == {"material_id": 12, "name": "B", "quantity": 2}
    assert payload["sell"]["total_price"] == 20
