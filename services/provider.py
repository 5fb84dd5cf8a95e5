"""Client for the OpenWeatherMap current-weather endpoint."""

from __future__ import annotations

import logging
from decimal import InvalidOperation
from typing import Any, Mapping, Optional

import httpx

from models.records import CanonicalReading, FetchFailure, FetchOutcome, observation_date
from services.units import to_celsius

logger = logging.getLogger(__name__)


class ProviderFetchError(Exception):
    """Raised internally when a provider response cannot yield a reading."""


class OpenWeatherClient:
    """Fetches current conditions for one city and normalizes them."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = base_url
        self._api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def fetch_one(self, city: str) -> FetchOutcome:
        """Return a reading for ``city`` or a ``FetchFailure`` describing why not."""
        try:
            response = self._client.get(
                self.base_url, params={"q": city, "appid": self._api_key}
            )
            response.raise_for_status()
            return self._parse(city, response.json())
        except httpx.HTTPStatusError as exc:
            reason = f"provider returned status {exc.response.status_code}"
        except httpx.HTTPError as exc:
            reason = f"request failed: {exc}"
        except ValueError as exc:
            reason = f"invalid JSON body: {exc}"
        except ProviderFetchError as exc:
            reason = str(exc)

        logger.warning(
            "Error fetching weather data",
            extra={"city": city, "reason": reason},
        )
        return FetchFailure(city=city, reason=reason)

    @staticmethod
    def _parse(city: str, payload: Any) -> CanonicalReading:
        if not isinstance(payload, Mapping):
            raise ProviderFetchError("response body is not an object")

        main = payload.get("main")
        if not isinstance(main, Mapping):
            raise ProviderFetchError("missing 'main' section")
        kelvin = main.get("temp")
        if isinstance(kelvin, bool) or not isinstance(kelvin, (int, float)):
            raise ProviderFetchError("missing or non-numeric 'main.temp'")

        conditions = payload.get("weather")
        if not isinstance(conditions, list) or not conditions:
            raise ProviderFetchError("missing 'weather' conditions")
        primary = conditions[0]
        condition = primary.get("main") if isinstance(primary, Mapping) else None
        if not isinstance(condition, str) or not condition:
            raise ProviderFetchError("missing 'weather[0].main' category")

        observed_at = payload.get("dt")
        if isinstance(observed_at, bool) or not isinstance(observed_at, int):
            raise ProviderFetchError("missing or non-integer 'dt' timestamp")
        try:
            observation_date(observed_at)
        except (OverflowError, OSError, ValueError) as exc:
            raise ProviderFetchError(f"'dt' timestamp {observed_at} is out of range") from exc

        try:
            temperature = to_celsius(kelvin)
        except InvalidOperation as exc:
            raise ProviderFetchError(f"unusable temperature {kelvin!r}") from exc
        if not temperature.is_finite():
            raise ProviderFetchError(f"unusable temperature {kelvin!r}")

        return CanonicalReading(
            city=city,
            temperature_celsius=temperature,
            condition=condition,
            observed_at=observed_at,
        )
