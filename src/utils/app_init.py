import logging
from typing import Any, Mapping, Optional

from moon_reactions.config.settings import (
    analysis_max_workers,
    price_api_url,
    price_cache_ttl_seconds,
    price_market,
    price_timeout_seconds,
    site_extraction_yield,
    user_agent,
)
from moon_reactions.domain.site_inventory import SiteInventory
from moon_reactions.infrastructure.formula_catalog import FormulaCatalog
from moon_reactions.infrastructure.ore_mappings import OreMappings
from moon_reactions.infrastructure.price_oracle import (
    AppraisalPriceOracle,
    MemoizingPriceOracle,
    PriceOracle,
    StaticPriceOracle,
)
from moon_reactions.infrastructure.reaction_analyzer import ReactionAnalyzer


def init_catalog() -> FormulaCatalog:
    """
    Load the bundled reaction formulas
    """
    try:
        return FormulaCatalog.load()
    except Exception as e:
        logging.error(f"Failed to load reaction formulas: {e}")
        raise e


def init_ore_mappings() -> OreMappings:
    """
    Load the bundled ore lookup table
    """
    try:
        return OreMappings.load()
    except Exception as e:
        logging.error(f"Failed to load ore mappings: {e}")
        raise e


def init_site_inventory(ore_mappings: OreMappings, yield_per_site: Optional[float] = None) -> SiteInventory:
    return SiteInventory(
        yield_per_site=float(yield_per_site or site_extraction_yield()),
        ore_mappings=ore_mappings,
    )


def init_price_oracle(catalog: FormulaCatalog, static_prices: Optional[Mapping[int, Any]] = None) -> PriceOracle:
    """
    Price oracle for the analyzer: fixed prices when given, otherwise the appraisal service behind a cache
    """
    if static_prices is not None:
        logging.debug("Using %d static price(s)", len(static_prices))
        return StaticPriceOracle(static_prices)

    logging.debug(f"Price API: {price_api_url()} (market={price_market()})")
    appraisal = AppraisalPriceOracle(
        catalog.material_names(),
        url=price_api_url(),
        market=price_market(),
        timeout_seconds=price_timeout_seconds(),
        user_agent=user_agent(),
    )
    return MemoizingPriceOracle(appraisal, ttl_seconds=price_cache_ttl_seconds())


def init_analyzer(catalog: FormulaCatalog, price_oracle: PriceOracle) -> ReactionAnalyzer:
    return ReactionAnalyzer(catalog, price_oracle, max_workers=analysis_max_workers())
