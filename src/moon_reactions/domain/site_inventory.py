from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable

from moon_reactions.application.errors import DuplicateSite, IndexOutOfRange
from moon_reactions.domain.models import Inventory, SiteComposition

if TYPE_CHECKING:
    from moon_reactions.infrastructure.ore_mappings import OreMappings


class SiteInventory:
    """Process-lifetime list of surveyed sites and the holdings they imply.

    Each site contributes `fraction * yield_per_site` ore units per material.
    Ores known to the refine table are converted into their reaction
    materials; anything else is held as-is.
    """

    def __init__(self, *, yield_per_site: float, ore_mappings: OreMappings | None = None):
        if yield_per_site <= 0:
            raise ValueError(f"Invalid yield_per_site: {yield_per_site}")
        self._yield_per_site = float(yield_per_site)
        self._ore_mappings = ore_mappings
        self._sites: list[SiteComposition] = []
        self._lock = threading.Lock()

    @property
    def yield_per_site(self) -> float:
        return self._yield_per_site

    def add_site(self, composition: SiteComposition) -> None:
        self.add_sites([composition])

    def add_sites(self, compositions: Iterable[SiteComposition]) -> None:
        """Append all compositions, or none of them if any site name is already taken."""

        compositions = list(compositions)
        with self._lock:
            taken = {site.name for site in self._sites}
            for composition in compositions:
                if composition.name in taken:
                    raise DuplicateSite(f"Site '{composition.name}' already exists", name=composition.name)
                taken.add(composition.name)
            self._sites.extend(compositions)
        for composition in compositions:
            logging.info("Added site '%s' (%d materials)", composition.name, len(composition.materials))

    def remove_site(self, index: int) -> SiteComposition:
        with self._lock:
            if not isinstance(index, int) or index < 0 or index >= len(self._sites):
                raise IndexOutOfRange(f"Invalid site index: {index}", index=index)
            removed = self._sites.pop(index)
        logging.info("Removed site '%s'", removed.name)
        return removed

    def list(self) -> list[SiteComposition]:
        with self._lock:
            return list(self._sites)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sites)

    def unique_materials(self) -> set[str]:
        return {m.name for site in self.list() for m in site.materials}

    def snapshot(self) -> Inventory:
        """Aggregate all current sites into an immutable Inventory."""

        sites = self.list()

        quantities: dict[int, float] = {}
        names: dict[int, str] = {}
        for site in sites:
            for material in site.materials:
                units = float(material.quantity) * self._yield_per_site
                refined = self._ore_mappings.refine(material.material_id, units) if self._ore_mappings else None
                if refined is None:
                    quantities[material.material_id] = quantities.get(material.material_id, 0.0) + units
                    names.setdefault(material.material_id, material.name)
                    continue
                for material_id, qty in refined.items():
                    quantities[material_id] = quantities.get(material_id, 0.0) + qty
                    names.setdefault(material_id, self._ore_mappings.material_name(material_id) or str(material_id))

        return Inventory(quantities=quantities, names=names)
