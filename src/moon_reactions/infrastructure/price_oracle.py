from __future__ import annotations

import logging
import threading
import time
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol

import requests

from moon_reactions.application.errors import PriceUnavailable


def _positive_price(value: Any) -> Optional[float]:
    """A usable unit price, or None. Zero and negative prices count as unavailable."""

    if value is None:
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    return price if price > 0 else None


class PriceOracle(Protocol):
    def fetch_prices(self, material_ids: Iterable[int]) -> Dict[int, Optional[float]]: ...

    def price_of(self, material_id: int) -> Optional[float]: ...

    def warm(self, material_ids: Iterable[int]) -> None: ...


class StaticPriceOracle:
    """Fixed in-memory sell prices keyed by material id."""

    def __init__(self, prices: Mapping[int, Any] | None = None):
        self._prices = {int(k): _positive_price(v) for k, v in (prices or {}).items()}

    def fetch_prices(self, material_ids: Iterable[int]) -> Dict[int, Optional[float]]:
        return {int(mid): self._prices.get(int(mid)) for mid in material_ids}

    def price_of(self, material_id: int) -> Optional[float]:
        return self._prices.get(int(material_id))

    def warm(self, material_ids: Iterable[int]) -> None:
        return None


class AppraisalPriceOracle:
    """Jita sell prices from an appraisal service (Goonpraisal-compatible API).

    The service is queried by item name, one name per line, and answers with
    buy/sell percentiles per item. Only the sell percentile is used.
    """

    DEFAULT_URL = "https://appraise.gnf.lt/appraisal.json"

    def __init__(
        self,
        names: Mapping[int, str],
        *,
        url: str = DEFAULT_URL,
        market: str = "jita",
        timeout_seconds: float = 30,
        user_agent: str = "MOON-Reaction-Calculator/1.0",
        session: Any = None,
    ):
        self._names = {int(k): str(v) for k, v in names.items()}
        self._ids_by_name = {v: k for k, v in self._names.items()}
        self._url = url
        self._market = market
        self._timeout_seconds = timeout_seconds
        self._headers = {"User-Agent": user_agent, "Accept": "application/json"}
        self._session = session or requests.Session()

    def fetch_prices(self, material_ids: Iterable[int]) -> Dict[int, Optional[float]]:
        ids = [int(mid) for mid in material_ids]
        out: Dict[int, Optional[float]] = {mid: None for mid in ids}

        names = [self._names[mid] for mid in ids if mid in self._names]
        if not names:
            return out

        try:
            response = self._session.post(
                self._url,
                data={"market": self._market, "raw_textarea": "\n".join(names), "persist": "no"},
                headers=self._headers,
                timeout=self._timeout_seconds,
            )
        except requests.RequestException as e:
            raise PriceUnavailable(f"Failed to fetch prices: {e}") from e

        if not (200 <= response.status_code < 300):
            raise PriceUnavailable(f"Appraisal service returned status {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise PriceUnavailable(f"Failed to parse price response: {e}") from e

        items = ((payload or {}).get("appraisal") or {}).get("items") or []
        for item in items:
            if not isinstance(item, dict):
                continue
            mid = self._ids_by_name.get(str(item.get("typeName") or ""))
            if mid is None and item.get("typeID") is not None:
                try:
                    mid = int(item["typeID"])
                except (TypeError, ValueError):
                    mid = None
            if mid is None or mid not in out:
                continue
            sell = ((item.get("prices") or {}).get("sell") or {}).get("percentile")
            out[mid] = _positive_price(sell)

        missing = [self._names.get(mid, str(mid)) for mid, price in out.items() if price is None]
        if missing:
            logging.debug("No sell price for %d item(s): %s", len(missing), ", ".join(sorted(missing)))
        return out

    def price_of(self, material_id: int) -> Optional[float]:
        return self.fetch_prices([material_id]).get(int(material_id))

    def warm(self, material_ids: Iterable[int]) -> None:
        return None


class MemoizingPriceOracle:
    """Thread-safe cache in front of another oracle.

    Entries (including "unavailable") live for `ttl_seconds`; `warm` fetches
    every missing id in one batch so a parallel analysis only reads.
    """

    def __init__(self, inner: PriceOracle, *, ttl_seconds: float = 300):
        self._inner = inner
        self._ttl_seconds = float(ttl_seconds)
        # { material_id: (timestamp, price) }
        self._cache: Dict[int, tuple[float, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _fresh(self, material_id: int, now: float) -> bool:
        cached = self._cache.get(material_id)
        return cached is not None and (now - cached[0] < self._ttl_seconds)

    def fetch_prices(self, material_ids: Iterable[int]) -> Dict[int, Optional[float]]:
        ids = [int(mid) for mid in material_ids]
        self.warm(ids)
        with self._lock:
            return {mid: self._cache[mid][1] if mid in self._cache else None for mid in ids}

    def price_of(self, material_id: int) -> Optional[float]:
        return self.fetch_prices([material_id]).get(int(material_id))

    def warm(self, material_ids: Iterable[int]) -> None:
        with self._lock:
            now = time.time()
            missing = sorted({int(mid) for mid in material_ids if not self._fresh(int(mid), now)})
            if not missing:
                return
            logging.info("Fetching prices for %d material(s)", len(missing))
            fetched = self._inner.fetch_prices(missing)
            for mid in missing:
                self._cache[mid] = (now, fetched.get(mid))

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
