"""
Deep links into Google Maps / Apple Maps for a stop or a leg of the route.

These only build URLs; nothing here talks to either service. Query strings are
encoded with httpx so they match what the HTTP clients would send.
"""

from __future__ import annotations

from typing import Literal, Sequence

import httpx

from tripsequence.core.geo import Coordinate
from tripsequence.domain.models import Stop

TravelMode = Literal["driving", "walking", "transit", "bicycling"]
MapsProvider = Literal["google", "apple"]

GOOGLE_DIRECTIONS_URL = "https://www.google.com/maps/dir/"
GOOGLE_SEARCH_URL = "https://www.google.com/maps/search/"
APPLE_MAPS_URL = "http://maps.apple.com/"

# Apple Maps has no cycling directions; walking is the closest.
_APPLE_DIRFLG: dict[str, str] = {"driving": "d", "walking": "w", "transit": "r", "bicycling": "w"}


def _latlng(c: Coordinate) -> str:
    return f"{c.lat},{c.lng}"


def _url(base: str, params: list[tuple[str, str]]) -> str:
    return f"{base}?{httpx.QueryParams(params)}"


def _check_mode(travel_mode: str) -> None:
    if travel_mode not in _APPLE_DIRFLG:
        raise ValueError(f"Unknown travel mode '{travel_mode}', expected one of {', '.join(_APPLE_DIRFLG)}")


def google_directions_url(
    destination: Coordinate,
    *,
    origin: Coordinate | None = None,
    destination_name: str | None = None,
    travel_mode: TravelMode = "driving",
) -> str:
    _check_mode(travel_mode)
    params = [("api", "1"), ("destination", _latlng(destination))]
    if destination_name:
        params.append(("destination_place_id", destination_name))
    if origin is not None:
        params.append(("origin", _latlng(origin)))
    params.append(("travelmode", travel_mode))
    return _url(GOOGLE_DIRECTIONS_URL, params)


def google_location_url(coordinate: Coordinate, place_name: str | None = None) -> str:
    params = [("api", "1"), ("query", _latlng(coordinate))]
    if place_name:
        params.append(("query_place_id", place_name))
    return _url(GOOGLE_SEARCH_URL, params)


def apple_directions_url(
    destination: Coordinate,
    *,
    origin: Coordinate | None = None,
    destination_name: str | None = None,
    travel_mode: TravelMode = "driving",
) -> str:
    _check_mode(travel_mode)
    params = [("daddr", _latlng(destination))]
    if destination_name:
        params.append(("dname", destination_name))
    if origin is not None:
        params.append(("saddr", _latlng(origin)))
    params.append(("dirflg", _APPLE_DIRFLG[travel_mode]))
    return _url(APPLE_MAPS_URL, params)


def apple_location_url(coordinate: Coordinate, place_name: str | None = None) -> str:
    return _url(APPLE_MAPS_URL, [("ll", _latlng(coordinate)), ("q", place_name or _latlng(coordinate))])


def directions_url(
    destination: Coordinate,
    *,
    provider: MapsProvider = "google",
    origin: Coordinate | None = None,
    destination_name: str | None = None,
    travel_mode: TravelMode = "driving",
) -> str:
    """Directions link for the chosen maps provider."""
    if provider == "apple":
        build = apple_directions_url
    elif provider == "google":
        build = google_directions_url
    else:
        raise ValueError(f"Unknown maps provider '{provider}', expected 'google' or 'apple'")
    return build(destination, origin=origin, destination_name=destination_name, travel_mode=travel_mode)


def leg_directions_urls(
    stops: Sequence[Stop],
    *,
    provider: MapsProvider = "google",
    travel_mode: TravelMode = "walking",
) -> list[str]:
    """One directions link per leg (stop i -> stop i+1) of an ordered route."""
    return [
        directions_url(
            b.coordinate,
            provider=provider,
            origin=a.coordinate,
            destination_name=b.name or None,
            travel_mode=travel_mode,
        )
        for a, b in zip(stops, stops[1:])
    ]
