from __future__ import annotations

import logging
import os
from typing import Optional, Dict, Any, List
from urllib.parse import quote

import httpx

from cityinfo.errors import CityNotFound, SchemaMismatch, UpstreamUnavailable

logger = logging.getLogger(__name__)

API_BASE_URL = os.environ.get("CITYINFO_API_BASE_URL", "https://api-ugi2pflmha-ew.a.run.app")
API_KEY = os.environ.get("CITYINFO_API_KEY") or os.environ.get("API_KEY")
UPSTREAM_TIMEOUT_SECONDS = float(os.environ.get("CITYINFO_UPSTREAM_TIMEOUT_SECONDS", "10"))


class CitiesClient:
    """Client for the Cities provider (city insights + weather predictions).

    A fresh httpx.AsyncClient is opened per call; `transport` lets tests
    swap the network for an httpx.MockTransport.
    """

    def __init__(
        self,
        base_url: str = API_BASE_URL,
        api_key: Optional[str] = API_KEY,
        timeout: float = UPSTREAM_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    def _params(self, **params: str) -> Dict[str, str]:
        if self.api_key:
            params["apiKey"] = self.api_key
        return params

    async def _get(self, path: str, params: Dict[str, str]) -> httpx.Response:
        async with httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport) as client:
            try:
                return await client.get(path, params=params)
            except httpx.TimeoutException as e:
                logger.error("Cities provider timeout", extra={"path": path})
                raise UpstreamUnavailable(detail=f"timeout on {path}: {e!r}")
            except httpx.HTTPError as e:
                logger.error("Cities provider unreachable", extra={"path": path, "error": str(e)})
                raise UpstreamUnavailable(detail=f"transport error on {path}: {e!r}")

    @staticmethod
    def _json(r: httpx.Response, path: str) -> Any:
        try:
            return r.json()
        except ValueError:
            raise SchemaMismatch(detail=f"{path} returned non-JSON body: {r.text[:200]}")

    async def get_insights(self, city_id: str) -> Dict[str, Any]:
        path = f"/cities/{quote(city_id, safe='')}/insights"
        r = await self._get(path, self._params())
        # Any non-2xx from the insights endpoint means the provider does not know the city
        if not r.is_success:
            logger.info("City not found upstream", extra={"city_id": city_id, "status": r.status_code})
            raise CityNotFound(f"City '{city_id}' not found", detail=f"insights lookup: {r.status_code} {r.text[:200]}")
        data = self._json(r, path)
        if not isinstance(data, dict):
            raise SchemaMismatch(detail=f"insights payload is {type(data).__name__}, expected object")
        return data

    async def ensure_city(self, city_id: str) -> None:
        await self.get_insights(city_id)

    async def get_weather_predictions(self, city_id: str) -> List[Dict[str, Any]]:
        path = "/weather-predictions"
        r = await self._get(path, self._params(cityIdentifier=city_id))
        if not r.is_success:
            logger.warning("Cities provider weather failed", extra={"city_id": city_id, "status": r.status_code})
            raise UpstreamUnavailable(detail=f"weather lookup failed: {r.status_code} {r.text[:200]}")
        data = self._json(r, path)
        if not isinstance(data, list) or not data:
            raise SchemaMismatch(detail="weather predictions result set empty")
        first = data[0]
        predictions = first.get("predictions") if isinstance(first, dict) else None
        if not isinstance(predictions, list):
            raise SchemaMismatch(detail="weather predictions missing 'predictions' list")
        return predictions
