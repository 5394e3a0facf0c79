from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ServiceError(Exception):
    message: str
    status_code: int = 500
    data: Any = None
    meta: Any = None

    def __str__(self) -> str:
        return self.message


@dataclass
class MalformedSurvey(ServiceError):
    """Survey text that cannot be turned into site compositions."""

    status_code: int = 400
    line: str | None = None

    def __post_init__(self) -> None:
        if self.data is None and self.line is not None:
            self.data = {"line": self.line}


@dataclass
class IndexOutOfRange(ServiceError):
    status_code: int = 404
    index: int | None = None

    def __post_init__(self) -> None:
        if self.data is None and self.index is not None:
            self.data = {"index": self.index}


@dataclass
class DuplicateSite(ServiceError):
    status_code: int = 409
    name: str | None = None

    def __post_init__(self) -> None:
        if self.data is None and self.name is not None:
            self.data = {"name": self.name}


@dataclass
class UnknownMaterial(ServiceError):
    """Ore name missing from the bundled lookup table.

    Non-fatal while parsing: the parser records it as a per-site warning.
    """

    status_code: int = 422
    name: str | None = None


@dataclass
class PriceUnavailable(ServiceError):
    status_code: int = 502
    material_id: int | None = None


@dataclass
class UnresolvableInput(ServiceError):
    """No holdings, market price or acyclic reaction can supply a material."""

    status_code: int = 422
    material_id: int | None = None
