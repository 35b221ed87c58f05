"""
Nominatim reverse geocoder.

Respects the Nominatim usage policy: at most one request per second and
an identifying User-Agent.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional

import httpx

from ..models import Coordinate, ReverseGeocodeResult

logger = logging.getLogger(__name__)

DEFAULT_URL = "https://nominatim.openstreetmap.org/reverse"


def parse_reverse_response(data: Dict[str, Any]) -> Optional[ReverseGeocodeResult]:
    """Extract the place fields from a jsonv2 /reverse response."""
    if not data or "error" in data:
        return None

    address = data.get("address") or {}
    country_code = address.get("country_code")
    locality = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("municipality")
    )
    return ReverseGeocodeResult(
        country_code=country_code.upper() if country_code else None,
        locality=locality,
        postal_code=address.get("postcode"),
    )


class NominatimReverseGeocoder:
    """
    ReverseGeocoder backed by the Nominatim /reverse endpoint.

    Usage:
        geocoder = NominatimReverseGeocoder(user_agent="myapp (me@example.com)")
        place = await geocoder.reverse_geocode(Coordinate(35.68, 139.76))
    """

    def __init__(
        self,
        user_agent: str,
        base_url: str = DEFAULT_URL,
        client: Optional[httpx.AsyncClient] = None,
        min_interval: float = 1.0,
    ):
        self.user_agent = user_agent
        self.base_url = base_url
        self._client = client
        self._min_interval = min_interval
        self._last_request_ts = 0.0
        self._throttle_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=15.0)
        return self._client

    async def _throttle(self) -> None:
        async with self._throttle_lock:
            wait = self._last_request_ts + self._min_interval - time.monotonic()
            if wait > 0:
                await asyncio.sleep(wait)
            self._last_request_ts = time.monotonic()

    async def reverse_geocode(self, coordinate: Coordinate) -> Optional[ReverseGeocodeResult]:
        params = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "format": "jsonv2",
            "addressdetails": 1,
            "zoom": 18,
        }
        headers = {
            "User-Agent": self.user_agent,
            "Accept-Language": "en",
        }

        client = await self._get_client()
        await self._throttle()

        try:
            response = await client.get(self.base_url, params=params, headers=headers)
            response.raise_for_status()
            return parse_reverse_response(response.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocode failed: {e}")
            return None

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
