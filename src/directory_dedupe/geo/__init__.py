"""Geocoding adapters."""

from .google import GeocodingError, GoogleGeocoder, format_address

__all__ = ["GeocodingError", "GoogleGeocoder", "format_address"]
