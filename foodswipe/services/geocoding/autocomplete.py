"""
Address autocomplete against a Photon-compatible geocoder.

Queries carry a fixed regional bias and results outside the configured
bounding box are dropped. Keystrokes are debounced, and every keystroke
cancels the lookup started for the previous one. A cancelled lookup never
publishes results, so a slow response for an old query cannot overwrite the
suggestions for a newer one.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import aiohttp
from pydantic import BaseModel

from foodswipe.config.settings import settings
from foodswipe.core.exceptions import FoodSwipeError, NetworkError, PayloadError
from foodswipe.schemas.order import GeoPoint

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 3


class AddressSuggestion(BaseModel):
    """One geocoder hit."""
    label: str
    location: GeoPoint
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postcode: Optional[str] = None


def in_bbox(point: GeoPoint, bbox: Sequence[float]) -> bool:
    """``bbox`` is (min_lng, min_lat, max_lng, max_lat)."""
    min_lng, min_lat, max_lng, max_lat = bbox
    return min_lng <= point.lng <= max_lng and min_lat <= point.lat <= max_lat


def parse_feature(feature: Dict[str, Any]) -> Optional[AddressSuggestion]:
    """Turn a GeoJSON feature into a suggestion; None when it has no point."""
    coordinates = (feature.get("geometry") or {}).get("coordinates") or []
    if len(coordinates) < 2:
        return None

    props = feature.get("properties") or {}
    street = " ".join(str(p) for p in (props.get("housenumber"), props.get("street")) if p)
    parts = [props.get("name"), street, props.get("city"), props.get("state"), props.get("country")]
    label = ", ".join(dict.fromkeys(str(p) for p in parts if p))
    if not label:
        return None

    return AddressSuggestion(
        label=label,
        location=GeoPoint(lat=coordinates[1], lng=coordinates[0]),
        city=props.get("city"),
        state=props.get("state"),
        country=props.get("country"),
        postcode=props.get("postcode"),
    )


class AddressAutocomplete:
    """Debounced, cancellable address search for the checkout form."""

    def __init__(
        self,
        url: str = None,
        bias: Optional[GeoPoint] = None,
        bbox: Optional[Sequence[float]] = None,
        limit: int = None,
        lang: Optional[str] = None,
        debounce: float = None,
        on_results: Optional[Callable[[List[AddressSuggestion]], Any]] = None,
    ):
        self.url = url or settings.GEOCODER_URL
        self.bias = bias or GeoPoint(lat=settings.GEOCODER_BIAS_LAT, lng=settings.GEOCODER_BIAS_LNG)
        self.bbox = list(bbox or settings.GEOCODER_BBOX)
        self.limit = limit or settings.GEOCODER_LIMIT
        self.lang = lang if lang is not None else settings.GEOCODER_LANG
        self.debounce = settings.ADDRESS_DEBOUNCE_SECONDS if debounce is None else debounce
        self.on_results = on_results
        self.results: List[AddressSuggestion] = []
        self.session: Optional[aiohttp.ClientSession] = None
        self._pending: Optional[asyncio.Task] = None

    async def _ensure_session(self):
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=10))

    async def close(self):
        self.cancel()
        if self.session and not self.session.closed:
            await self.session.close()

    async def search(self, query: str, limit: int = None) -> List[AddressSuggestion]:
        """One geocoder lookup, filtered to the bounding box."""
        await self._ensure_session()
        params = {
            "q": query,
            "limit": limit or self.limit,
            "lat": self.bias.lat,
            "lon": self.bias.lng,
        }
        if self.lang:
            params["lang"] = self.lang

        try:
            async with self.session.get(self.url, params=params) as response:
                if response.status >= 400:
                    raise NetworkError(f"Address lookup failed with status {response.status}")
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Address lookup error: {e!r}")
            raise NetworkError()
        except ValueError:
            raise PayloadError("Malformed address lookup response")

        suggestions = []
        for feature in (payload or {}).get("features", []):
            suggestion = parse_feature(feature)
            if suggestion is not None and in_bbox(suggestion.location, self.bbox):
                suggestions.append(suggestion)
        return suggestions

    async def geocode(self, address: str) -> Optional[GeoPoint]:
        """Best single match for a typed address, used when no suggestion was picked."""
        if len(address.strip()) <= 5:
            return None
        try:
            matches = await self.search(address, limit=1)
        except FoodSwipeError as e:
            logger.warning(f"Geocoding '{address}' failed: {e.message}")
            return None
        return matches[0].location if matches else None

    def update(self, query: str) -> Optional[asyncio.Task]:
        """Handle a keystroke; returns the lookup task, or None for short input."""
        self.cancel()
        if len(query.strip()) < MIN_QUERY_LENGTH:
            self._publish([])
            return None
        self._pending = asyncio.create_task(self._debounced(query.strip()))
        return self._pending

    def cancel(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None

    async def _debounced(self, query: str) -> None:
        await asyncio.sleep(self.debounce)
        try:
            results = await self.search(query)
        except FoodSwipeError as e:
            logger.warning(f"Address suggestions unavailable for '{query}': {e.message}")
            return
        self._publish(results)

    def _publish(self, results: List[AddressSuggestion]) -> None:
        self.results = results
        if self.on_results is not None:
            self.on_results(results)
