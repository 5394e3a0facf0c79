from __future__ import annotations

from typing import Any, Iterable, Optional

from moon_reactions.application.errors import ServiceError
from moon_reactions.domain.models import AnalysisResult, Inventory, SiteComposition
from moon_reactions.domain.ranking import SortDirection, SortField, filter_profits, rank
from moon_reactions.domain.survey import parse_survey


class ReactionService:
    """Operations the surrounding application calls, backed by the injected state.

    The state provides `site_inventory`, `ore_mappings` and `analyzer`.
    """

    def __init__(self, *, state: Any):
        self._state = state

    def parse_survey(self, text: str) -> list[SiteComposition]:
        return parse_survey(text, ore_mappings=self._state.ore_mappings)

    def add_sites(self, compositions: Iterable[SiteComposition]) -> None:
        self._state.site_inventory.add_sites(compositions)

    def add_survey(self, text: str) -> list[SiteComposition]:
        """Parse and add in one step; nothing is added if the text is malformed."""

        sites = self.parse_survey(text)
        self.add_sites(sites)
        return sites

    def remove_site(self, index: int) -> SiteComposition:
        return self._state.site_inventory.remove_site(index)

    def list_sites(self) -> list[SiteComposition]:
        return self._state.site_inventory.list()

    def unique_materials(self) -> set[str]:
        return self._state.site_inventory.unique_materials()

    def inventory(self) -> Inventory:
        return self._state.site_inventory.snapshot()

    def analyze(
        self,
        *,
        sort: Optional[str] = None,
        direction: Optional[str] = None,
        only_profitable: bool = False,
        only_using_holdings: bool = False,
    ) -> AnalysisResult:
        try:
            field = SortField.parse(sort) if sort else None
            order = SortDirection.parse(direction) if direction else SortDirection.DESC
        except ValueError as e:
            raise ServiceError(str(e), status_code=400) from e

        # Snapshot first: site edits during the run do not affect it.
        inventory = self.inventory()
        result = self._state.analyzer.analyze(inventory)
        profits = filter_profits(
            result.profits,
            only_profitable=only_profitable,
            only_using_holdings=only_using_holdings,
        )
        if field is not None:
            profits = rank(profits, field, order)
        return AnalysisResult(profits=profits, exclusions=result.exclusions)
