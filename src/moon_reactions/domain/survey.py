from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from moon_reactions.application.errors import MalformedSurvey, UnknownMaterial
from moon_reactions.domain.models import MaterialQuantity, SiteComposition

if TYPE_CHECKING:
    from moon_reactions.infrastructure.ore_mappings import OreMappings


# Columns after the ore name: fraction, ore type id, system id, planet id, moon id.
_NUMERIC_FIELDS = 5
_MATERIAL_INDENT = 4


def _indent_width(line: str) -> int:
    expanded = line.expandtabs(_MATERIAL_INDENT)
    return len(expanded) - len(expanded.lstrip())


def _is_header(line: str) -> bool:
    # In-game copy starts with "Moon<TAB>Moon Product<TAB>Quantity<TAB>..."
    tokens = line.split()
    return len(tokens) >= 3 and tokens[0] == "Moon" and tokens[1] == "Moon" and tokens[2] == "Product"


def _parse_material_line(line: str) -> tuple[str, float]:
    parts = line.split()
    if len(parts) < _NUMERIC_FIELDS + 1:
        raise MalformedSurvey(
            f"Expected at least {_NUMERIC_FIELDS + 1} fields, got {len(parts)}: {line.strip()!r}",
            line=line,
        )

    name = " ".join(parts[:-_NUMERIC_FIELDS])
    numbers = parts[-_NUMERIC_FIELDS:]

    try:
        fraction = float(numbers[0])
    except ValueError:
        raise MalformedSurvey(f"Invalid quantity {numbers[0]!r}: {line.strip()!r}", line=line) from None

    for token in numbers[1:]:
        if not token.isdigit():
            raise MalformedSurvey(f"Invalid id {token!r}: {line.strip()!r}", line=line)

    if not (0.0 <= fraction <= 1.0):
        raise MalformedSurvey(f"Quantity {fraction} outside 0..1: {line.strip()!r}", line=line)

    return name, fraction


class _SiteBuilder:
    def __init__(self, name: str, line: str):
        self.name = name
        self.line = line
        self.lines_seen = 0
        # material_id -> MaterialQuantity, insertion ordered
        self.materials: dict[int, MaterialQuantity] = {}
        self.warnings: list[str] = []

    def add(self, material_id: int, name: str, fraction: float) -> None:
        existing = self.materials.get(material_id)
        if existing is not None:
            # Two variants of the same base ore on one site.
            self.materials[material_id] = MaterialQuantity(
                material_id=material_id,
                name=existing.name,
                quantity=existing.quantity + fraction,
            )
            return
        self.materials[material_id] = MaterialQuantity(material_id=material_id, name=name, quantity=fraction)

    def build(self) -> SiteComposition:
        if self.lines_seen == 0:
            raise MalformedSurvey(f"Site '{self.name}' has no materials", line=self.line)
        if not self.materials:
            raise MalformedSurvey(
                f"Site '{self.name}' has no recognized materials: " + "; ".join(self.warnings),
                line=self.line,
            )
        return SiteComposition(
            name=self.name,
            materials=tuple(self.materials.values()),
            warnings=tuple(self.warnings),
        )


def parse_survey(text: str, *, ore_mappings: OreMappings) -> list[SiteComposition]:
    """Parse a moon survey paste into one SiteComposition per surveyed site.

    Site lines are indented less than four columns, material lines four or
    more (tabs count as four). Several pasted surveys may follow each other.
    Unknown ores are recorded as warnings on their site; a site where no ore
    is recognized fails the whole parse.
    """

    sites: list[SiteComposition] = []
    current: _SiteBuilder | None = None

    for raw_line in (text or "").splitlines():
        if not raw_line.strip():
            continue
        if _is_header(raw_line):
            continue

        if _indent_width(raw_line) >= _MATERIAL_INDENT:
            if current is None:
                raise MalformedSurvey(
                    f"Material entry found before site name: {raw_line.strip()!r}",
                    line=raw_line,
                )
            name, fraction = _parse_material_line(raw_line)
            current.lines_seen += 1
            try:
                ore = ore_mappings.lookup(name)
            except UnknownMaterial as e:
                logging.warning("Survey '%s': %s", current.name, e)
                current.warnings.append(str(e))
                continue
            current.add(ore.type_id, name, fraction)
            continue

        if current is not None:
            sites.append(current.build())
        current = _SiteBuilder(raw_line.strip(), raw_line)

    if current is not None:
        sites.append(current.build())

    logging.debug("Parsed %d site(s) from survey text", len(sites))
    return sites
