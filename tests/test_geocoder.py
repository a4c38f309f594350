"""Tests for the Google geocoding adapter."""

from __future__ import annotations

import httpx
import pytest

from directory_dedupe.geo import GeocodingError, GoogleGeocoder, format_address
from directory_dedupe.models import CandidateRecord
from directory_dedupe.ports import GeoProvider

CANDIDATE = CandidateRecord(address="100 Main St", city="Lake Mary", state="FL", zip_code="32746")

OK_BODY = {
    "status": "OK",
    "results": [{"geometry": {"location": {"lat": 28.7589, "lng": -81.3178}}}],
}


def make_geocoder(handler, **kwargs) -> GoogleGeocoder:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GoogleGeocoder("test-key", client=client, backoff=0, **kwargs)


def test_is_a_geo_provider():
    assert isinstance(GoogleGeocoder("k"), GeoProvider)


def test_format_address():
    assert format_address(CANDIDATE) == "100 Main St, Lake Mary, FL 32746"
    assert format_address(CandidateRecord(city="Orlando")) == "Orlando"


def test_resolves_coordinates():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=OK_BODY)

    coords = make_geocoder(handler).lookup_coordinates(CANDIDATE)

    assert coords.latitude == pytest.approx(28.7589)
    assert coords.longitude == pytest.approx(-81.3178)
    assert seen[0].url.params["address"] == "100 Main St, Lake Mary, FL 32746"
    assert seen[0].url.params["key"] == "test-key"


def test_zero_results():
    geocoder = make_geocoder(lambda r: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))
    assert geocoder.lookup_coordinates(CANDIDATE) is None


def test_without_api_key_makes_no_request(monkeypatch):
    monkeypatch.delenv("GOOGLE_GEOCODING_API_KEY", raising=False)

    def handler(request):
        raise AssertionError("no request expected")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    assert GoogleGeocoder(client=client).lookup_coordinates(CANDIDATE) is None


def test_retries_server_errors():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        if calls["n"] < 3:
            return httpx.Response(503)
        return httpx.Response(200, json=OK_BODY)

    coords = make_geocoder(handler).lookup_coordinates(CANDIDATE)
    assert coords is not None
    assert calls["n"] == 3


def test_gives_up_after_attempts():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(500)

    with pytest.raises(httpx.HTTPStatusError):
        make_geocoder(handler, attempts=2).lookup_coordinates(CANDIDATE)
    assert calls["n"] == 2


def test_client_errors_not_retried():
    calls = {"n": 0}

    def handler(request):
        calls["n"] += 1
        return httpx.Response(400)

    with pytest.raises(httpx.HTTPStatusError):
        make_geocoder(handler).lookup_coordinates(CANDIDATE)
    assert calls["n"] == 1


def test_denied_request_raises():
    body = {"status": "REQUEST_DENIED", "error_message": "The provided API key is invalid."}
    geocoder = make_geocoder(lambda r: httpx.Response(200, json=body))
    with pytest.raises(GeocodingError, match="REQUEST_DENIED"):
        geocoder.lookup_coordinates(CANDIDATE)
