from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Sequence

import pandas as pd

from moon_reactions.application.errors import ServiceError
from moon_reactions.application.reactions.service import ReactionService
from moon_reactions.domain.models import ReactionProfit
from moon_reactions.domain.ranking import SortDirection, SortField
from moon_reactions.infrastructure.formula_catalog import FormulaCatalog
from utils.app_init import (
    init_analyzer,
    init_catalog,
    init_ore_mappings,
    init_price_oracle,
    init_site_inventory,
)
from utils.formatters import format_decimal_eu, format_isk_eu, format_pct_eu
from utils.logging_setup import configure_logging


_COLUMNS = {
    "output_name": "Output",
    "output_quantity": "Quantity",
    "input_cost": "Input Cost",
    "output_value": "Output Value",
    "profit": "Profit",
    "margin": "Margin",
    "uses_user_materials": "Uses Moons",
    "formula_name": "Formula",
}


def load_prices(path: Path | str, catalog: FormulaCatalog) -> dict[int, float]:
    """Read a JSON object of prices keyed by material id or material name."""

    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a JSON object of prices")

    prices: dict[int, float] = {}
    for key, value in raw.items():
        key = str(key).strip()
        material_id = int(key) if key.isdigit() else catalog.name_to_id(key)
        if material_id is None:
            logging.warning("Ignoring price for unknown material %r", key)
            continue
        prices[material_id] = float(value)
    return prices


def profits_frame(profits: Sequence[ReactionProfit]) -> pd.DataFrame:
    rows = [{col: getattr(p, attr) for attr, col in _COLUMNS.items()} for p in profits]
    return pd.DataFrame(rows, columns=list(_COLUMNS.values()))


def render(profits: Sequence[ReactionProfit], fmt: str) -> str:
    if fmt == "json":
        return json.dumps([p.to_dict(include_plan=True) for p in profits], indent=2)

    df = profits_frame(profits)
    if fmt == "csv":
        return df.to_csv(index=False)

    if df.empty:
        return "No reactions to show."
    df["Quantity"] = df["Quantity"].map(lambda v: format_decimal_eu(v, decimals=0))
    for col in ("Input Cost", "Output Value", "Profit"):
        df[col] = df[col].map(format_isk_eu)
    df["Margin"] = df["Margin"].map(format_pct_eu)
    df["Uses Moons"] = df["Uses Moons"].map(lambda v: "yes" if v else "")
    return df.to_string(index=False)


def run_analysis(args: argparse.Namespace) -> int:
    catalog = init_catalog()
    ore_mappings = init_ore_mappings()
    static_prices = load_prices(args.prices, catalog) if args.prices else None
    price_oracle = init_price_oracle(catalog, static_prices)

    state = SimpleNamespace(
        ore_mappings=ore_mappings,
        site_inventory=init_site_inventory(ore_mappings),
        analyzer=init_analyzer(catalog, price_oracle),
    )
    service = ReactionService(state=state)

    text = Path(args.survey_file).read_text(encoding="utf-8")
    sites = service.add_survey(text)
    logging.info("Loaded %d site(s) from %s", len(sites), args.survey_file)

    result = service.analyze(
        sort=args.sort,
        direction=args.direction,
        only_profitable=args.only_profitable,
        only_using_holdings=args.only_using_holdings,
    )
    for excluded in result.exclusions:
        logging.debug("Excluded %s: %s", excluded.formula_name, excluded.reason)

    print(render(result.profits, args.format))
    return 0


def run_serve(args: argparse.Namespace) -> int:
    # Imported here so `analyze` works without the web stack loaded.
    from flask_app.__main__ import run_server

    run_server(host=args.host, port=args.port)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="moon-reactions",
        description="Ranks EVE Online moon reactions by profit for your surveyed moons.",
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: %(default)s)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=None, help="Bind host (default: FLASK_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: FLASK_PORT)")
    serve.set_defaults(handler=run_serve)

    analyze = sub.add_parser("analyze", help="Analyze a survey file once and print the ranked reactions.")
    analyze.add_argument("survey_file", help="Moon survey text as copied from the game client.")
    analyze.add_argument(
        "--prices",
        default=None,
        help="JSON file of sell prices keyed by material id or name (default: query the appraisal service).",
    )
    analyze.add_argument(
        "--sort",
        default=SortField.MARGIN.value,
        choices=[f.value for f in SortField],
        help="Sort field (default: %(default)s)",
    )
    analyze.add_argument(
        "--direction",
        default=SortDirection.DESC.value,
        choices=[d.value for d in SortDirection],
        help="Sort direction (default: %(default)s)",
    )
    analyze.add_argument("--only-profitable", action="store_true", help="Hide reactions with profit <= 0.")
    analyze.add_argument(
        "--only-using-holdings",
        action="store_true",
        help="Hide reactions that use none of the surveyed materials.",
    )
    analyze.add_argument("--format", choices=["table", "csv", "json"], default="table")
    analyze.set_defaults(handler=run_analysis)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(default_level=str(args.log_level).upper())

    try:
        return args.handler(args)
    except ServiceError as e:
        logging.error("%s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        logging.error("Failed: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
