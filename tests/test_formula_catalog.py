from __future__ import annotations

import pytest

from moon_reactions.domain.models import Formula, MaterialQuantity
from moon_reactions.infrastructure.formula_catalog import FormulaCatalog, formula_from_dict


def _formula(fid: int, output: tuple[int, str, float], *inputs: tuple[int, str, float]) -> Formula:
    return Formula(
        formula_id=fid,
        name=f"{output[1]} Reaction Formula",
        inputs=tuple(MaterialQuantity(*i) for i in inputs),
        output=MaterialQuantity(*output),
    )


def test_bundled_catalog_loads():
    catalog = FormulaCatalog.load()

    assert len(catalog) == 36
    first = catalog.all_formulas()[0]
    assert first.formula_id == 46166
    assert first.output.name == "Titanium Chromide"
    assert [i.material_id for i in first.inputs] == [16638, 16641, 4312]


def test_bundled_catalog_lookups():
    catalog = FormulaCatalog.load()

    producing = catalog.formulas_producing(16654)
    assert [f.formula_id for f in producing] == [46166]
    assert catalog.formulas_producing(16638) == ()
    assert catalog.name_to_id("Titanium") == 16638
    assert catalog.material_name(4312) == "Oxygen Fuel Block"
    assert 4312 in catalog.material_ids()
    assert 16654 in catalog.material_ids()


def test_formulas_producing_keeps_insertion_order():
    a = _formula(1, (10, "Y", 1), (20, "X", 1))
    b = _formula(2, (30, "W", 1), (20, "X", 1))
    c = _formula(3, (10, "Y", 2), (40, "Z", 1))

    catalog = FormulaCatalog([a, b, c])

    assert catalog.all_formulas() == (a, b, c)
    assert catalog.formulas_producing(10) == (a, c)


def test_duplicate_formula_ids_rejected():
    a = _formula(1, (10, "Y", 1), (20, "X", 1))

    with pytest.raises(ValueError):
        FormulaCatalog([a, a])


def test_formula_from_dict_rejects_non_positive_quantities():
    raw = {
        "formula_id": 1,
        "formula_name": "Broken Reaction Formula",
        "output": {"id": 10, "name": "Y", "quantity": 0},
        "inputs": [{"id": 20, "name": "X", "quantity": 1}],
    }

    with pytest.raises(ValueError):
        formula_from_dict(raw)
