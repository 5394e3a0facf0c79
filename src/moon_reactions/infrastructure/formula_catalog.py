from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Mapping

from moon_reactions.domain.models import Formula, MaterialQuantity


_DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "reactions.json"


def _item(raw: Mapping[str, Any]) -> MaterialQuantity:
    quantity = float(raw["quantity"])
    if quantity <= 0:
        raise ValueError(f"Invalid quantity for {raw.get('name')!r}: {quantity}")
    return MaterialQuantity(material_id=int(raw["id"]), name=str(raw["name"]), quantity=quantity)


def formula_from_dict(raw: Mapping[str, Any]) -> Formula:
    return Formula(
        formula_id=int(raw["formula_id"]),
        name=str(raw["formula_name"]),
        inputs=tuple(_item(i) for i in raw.get("inputs") or []),
        output=_item(raw["output"]),
    )


class FormulaCatalog:
    """Immutable reaction formula knowledge base.

    Iteration order is the order of the source data and never changes, so
    analysis output and rankings are reproducible run to run.
    """

    def __init__(self, formulas: Iterable[Formula]):
        self._formulas: tuple[Formula, ...] = tuple(formulas)

        seen: set[int] = set()
        by_output: dict[int, list[Formula]] = {}
        names: dict[int, str] = {}
        for formula in self._formulas:
            if formula.formula_id in seen:
                raise ValueError(f"Duplicate formula id: {formula.formula_id}")
            seen.add(formula.formula_id)

            by_output.setdefault(formula.output.material_id, []).append(formula)
            names.setdefault(formula.output.material_id, formula.output.name)
            for item in formula.inputs:
                names.setdefault(item.material_id, item.name)

        self._by_output = {k: tuple(v) for k, v in by_output.items()}
        self._names = names
        self._ids_by_name = {v: k for k, v in names.items()}

    @classmethod
    def load(cls, path: Path | str | None = None) -> "FormulaCatalog":
        source = Path(path or _DATA_PATH)
        raw = json.loads(source.read_text(encoding="utf-8"))
        catalog = cls(formula_from_dict(r) for r in raw)
        logging.info("Loaded %d reaction formulas from %s", len(catalog), source.name)
        return catalog

    def __len__(self) -> int:
        return len(self._formulas)

    def all_formulas(self) -> tuple[Formula, ...]:
        return self._formulas

    def formulas_producing(self, material_id: int) -> tuple[Formula, ...]:
        return self._by_output.get(int(material_id), ())

    def material_ids(self) -> list[int]:
        return list(self._names.keys())

    def material_name(self, material_id: int) -> str | None:
        return self._names.get(int(material_id))

    def material_names(self) -> dict[int, str]:
        return dict(self._names)

    def name_to_id(self, name: str) -> int | None:
        return self._ids_by_name.get(str(name))
