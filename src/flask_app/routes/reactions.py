from __future__ import annotations

import logging

from flask import Blueprint, request

from flask_app.bootstrap import require_ready
from flask_app.http import ok, error

from moon_reactions.application.errors import IndexOutOfRange
from moon_reactions.application.reactions.service import ReactionService
from moon_reactions.domain.models import SiteComposition


reactions_bp = Blueprint("reactions", __name__)


def _service() -> ReactionService:
    return ReactionService(state=require_ready())


def _flag(payload: dict, name: str) -> bool:
    raw = payload.get(name, request.args.get(name, False))
    if isinstance(raw, str):
        return raw.strip().lower() in {"1", "true", "yes", "y", "on"}
    return bool(raw)


@reactions_bp.post("/surveys/parse")
def parse_survey():
    payload = request.get_json(silent=True) or {}
    text = payload.get("text")
    if not isinstance(text, str):
        return error(message="Field `text` (string) is required", status_code=400)

    sites = _service().parse_survey(text)
    return ok(data=[s.to_dict() for s in sites])


@reactions_bp.post("/sites")
def add_sites():
    """Add sites from raw survey text or from already parsed compositions."""
    payload = request.get_json(silent=True) or {}
    service = _service()

    if isinstance(payload.get("text"), str):
        sites = service.add_survey(payload["text"])
    elif isinstance(payload.get("sites"), list):
        try:
            sites = [SiteComposition.from_dict(s) for s in payload["sites"]]
        except (KeyError, TypeError, ValueError) as e:
            return error(message=f"Invalid site composition: {e}", status_code=400)
        service.add_sites(sites)
    else:
        return error(message="Provide either `text` or `sites`", status_code=400)

    return ok(
        data=[s.to_dict() for s in sites],
        message=f"Added {len(sites)} site(s)",
        status_code=201,
        meta={"site_count": len(service.list_sites())},
    )


@reactions_bp.get("/sites")
def list_sites():
    sites = _service().list_sites()
    return ok(data=[{"index": i, **s.to_dict()} for i, s in enumerate(sites)])


@reactions_bp.delete("/sites/<index>")
def remove_site(index: str):
    try:
        idx = int(index)
    except ValueError:
        raise IndexOutOfRange(f"Invalid site index: {index}", data={"index": index}) from None

    removed = _service().remove_site(idx)
    return ok(data=removed.to_dict(), message=f"Removed site '{removed.name}'")


@reactions_bp.get("/materials")
def materials():
    return ok(data=sorted(_service().unique_materials()))


@reactions_bp.get("/inventory")
def inventory():
    return ok(data=_service().inventory().to_dict())


@reactions_bp.post("/analyze")
def analyze():
    payload = request.get_json(silent=True) or {}
    service = _service()

    result = service.analyze(
        sort=payload.get("sort", request.args.get("sort")),
        direction=payload.get("direction", request.args.get("direction")),
        only_profitable=_flag(payload, "only_profitable"),
        only_using_holdings=_flag(payload, "only_using_holdings"),
    )
    include_plan = _flag(payload, "include_plan")
    profits = result.profits
    logging.debug("Analyze returned %d result(s), %d excluded", len(profits), len(result.exclusions))

    return ok(
        data=[p.to_dict(include_plan=include_plan) for p in profits],
        meta={
            "count": len(profits),
            "excluded": [x.to_dict() for x in result.exclusions],
        },
    )
