"""Google Geocoding API adapter."""
from __future__ import annotations

import os
from typing import Any

import httpx
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential_jitter

from directory_dedupe.exceptions import DirectoryError
from directory_dedupe.logging import get_logger
from directory_dedupe.models import CandidateRecord, Coordinates

logger = get_logger(__name__)

GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(DirectoryError):
    """The geocoding service refused or failed the request."""


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, (httpx.TimeoutException, httpx.TransportError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429 or exc.response.status_code >= 500
    return False


def format_address(candidate: CandidateRecord) -> str:
    """One-line postal address, skipping absent parts."""
    region = " ".join(p for p in (candidate.state, candidate.zip_code) if p)
    return ", ".join(p for p in (candidate.address, candidate.city, region) if p)


class GoogleGeocoder:
    """GeoProvider backed by the Google Geocoding HTTP API.

    Without an API key every lookup returns None, so a deployment without
    geocoding simply runs the veto on whatever coordinates it already has.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        client: httpx.Client | None = None,
        timeout: float = 10.0,
        attempts: int = 3,
        backoff: float = 0.5,
    ) -> None:
        """
        Initialize the geocoder.

        Args:
            api_key: Geocoding API key; falls back to GOOGLE_GEOCODING_API_KEY
            client: Optional preconfigured httpx client (tests inject a MockTransport)
            timeout: Per-request timeout in seconds
            attempts: Total tries for transient failures
            backoff: Initial exponential backoff in seconds
        """
        self.api_key = api_key if api_key is not None else os.getenv("GOOGLE_GEOCODING_API_KEY")
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout
        self.attempts = attempts
        self.backoff = backoff

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def _request(self, address: str) -> dict[str, Any]:
        params = {"address": address, "key": self.api_key}
        for attempt in Retrying(
            reraise=True,
            stop=stop_after_attempt(self.attempts),
            wait=wait_exponential_jitter(initial=self.backoff, max=4.0, jitter=self.backoff),
            retry=retry_if_exception(_is_transient),
        ):
            with attempt:
                resp = self._get_client().get(GEOCODE_URL, params=params)
                resp.raise_for_status()
                return resp.json()
        raise GeocodingError("geocoding retries exhausted")

    def lookup_coordinates(self, candidate: CandidateRecord) -> Coordinates | None:
        if not self.is_configured():
            return None
        address = format_address(candidate)
        if not address:
            return None

        data = self._request(address)
        status = data.get("status")
        if status == "ZERO_RESULTS":
            logger.info("geocode.no_results", address=address)
            return None
        if status != "OK":
            detail = data.get("error_message")
            message = f"geocoding failed with status {status}"
            raise GeocodingError(f"{message}: {detail}" if detail else message)

        results = data.get("results") or []
        if not results:
            return None
        location = results[0].get("geometry", {}).get("location", {})
        try:
            coords = Coordinates(latitude=location["lat"], longitude=location["lng"])
        except (KeyError, ValueError) as e:
            raise GeocodingError(f"malformed geocoding response: {e}") from e
        logger.debug("geocode.resolved", address=address, lat=coords.latitude, lon=coords.longitude)
        return coords

    def close(self) -> None:
        if self._client is not None and self._owns_client:
            self._client.close()
        self._client = None

    def __enter__(self) -> GoogleGeocoder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
