from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from moon_reactions.application.errors import UnknownMaterial


_DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "ore_mappings.json"


@dataclass(frozen=True)
class OreInfo:
    type_id: int
    name: str
    tier: str
    # material_id -> units per refine portion
    yields: Mapping[int, float]


class OreMappings:
    """Bundled ore lookup table: survey ore names -> ore ids and refine yields."""

    def __init__(
        self,
        *,
        ores: Mapping[str, OreInfo],
        material_names: Mapping[int, str],
        variant_prefixes: tuple[str, ...] = (),
        portion_size: int = 100,
    ):
        if portion_size <= 0:
            raise ValueError(f"Invalid portion_size: {portion_size}")
        self._ores = dict(ores)
        self._ores_by_id = {o.type_id: o for o in self._ores.values()}
        self._material_names = dict(material_names)
        # Longest prefix wins.
        self._prefixes = tuple(sorted(variant_prefixes, key=len, reverse=True))
        self.portion_size = int(portion_size)

    @classmethod
    def load(cls, path: Path | str | None = None) -> "OreMappings":
        raw = json.loads(Path(path or _DATA_PATH).read_text(encoding="utf-8"))
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OreMappings":
        material_ids: dict[str, int] = {str(k): int(v) for k, v in (raw.get("materials") or {}).items()}

        ores: dict[str, OreInfo] = {}
        for tier, tier_ores in (raw.get("ores") or {}).items():
            for ore_name, ore in (tier_ores or {}).items():
                yields: dict[int, float] = {}
                for material_name, units in (ore.get("yields") or {}).items():
                    if material_name not in material_ids:
                        raise ValueError(f"Ore {ore_name!r} yields unknown material {material_name!r}")
                    yields[material_ids[material_name]] = float(units)
                ores[str(ore_name)] = OreInfo(
                    type_id=int(ore["type_id"]),
                    name=str(ore_name),
                    tier=str(tier),
                    yields=yields,
                )

        return cls(
            ores=ores,
            material_names={v: k for k, v in material_ids.items()},
            variant_prefixes=tuple(str(p) for p in raw.get("variant_prefixes") or []),
            portion_size=int(raw.get("portion_size") or 100),
        )

    def __len__(self) -> int:
        return len(self._ores)

    def base_ore_name(self, ore_name: str) -> str:
        name = " ".join(str(ore_name).split())
        for prefix in self._prefixes:
            if name.startswith(prefix + " "):
                return name[len(prefix) + 1 :]
        return name

    def lookup(self, ore_name: str) -> OreInfo:
        """Resolve a survey ore name (variants included) to its base ore.

        Raises UnknownMaterial when the base ore is not in the table.
        """

        base = self.base_ore_name(ore_name)
        ore = self._ores.get(base)
        if ore is None:
            raise UnknownMaterial(f"Unknown ore: {ore_name}", name=str(ore_name))
        return ore

    def ore_by_id(self, type_id: int) -> OreInfo | None:
        return self._ores_by_id.get(int(type_id))

    def material_name(self, material_id: int) -> str | None:
        return self._material_names.get(int(material_id))

    def refine(self, type_id: int, ore_units: float) -> dict[int, float] | None:
        """Refined material quantities for `ore_units` of an ore, or None if not an ore."""

        ore = self.ore_by_id(type_id)
        if ore is None:
            return None
        portions = float(ore_units) / float(self.portion_size)
        return {mid: portions * units for mid, units in ore.yields.items()}
