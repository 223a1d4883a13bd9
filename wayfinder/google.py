"""Road snapping and walking directions via Google Maps web services."""

from typing import Optional

import requests

from .config import CONFIG
from .models import Coordinate, RouteSummary


class RouteError(Exception):
    """A route could not be obtained"""


class RouteNotFound(RouteError):
    """The routing service has no walking route to the destination"""


class RouteTransportError(RouteError):
    """Network, HTTP or decode failure talking to the routing service"""


# Directions API statuses that mean "no such route" rather than a service problem
NOT_FOUND_STATUSES = {"ZERO_RESULTS", "NOT_FOUND"}


class RoadSnapper:
    """Adjusts a raw fix onto the path network. Must never raise."""

    def snap(self, raw: Coordinate) -> Coordinate:
        raise NotImplementedError


class NullRoadSnapper(RoadSnapper):
    def snap(self, raw: Coordinate) -> Coordinate:
        return raw


class RouteProvider:
    """Fetches one walking route from an origin to a free-text destination"""

    def fetch_walking_route(self, origin: Coordinate, destination: str) -> RouteSummary:
        raise NotImplementedError


class GoogleRoadSnapper(RoadSnapper):
    """Snap a coordinate with the Roads API, falling back to the raw fix"""

    def __init__(self, api_key: str, timeout: Optional[float] = None,
                 url: Optional[str] = None):
        self.api_key = api_key
        self.timeout = timeout if timeout is not None else CONFIG["network_timeout"]
        self.url = url or CONFIG["roads_url"]

    def snap(self, raw: Coordinate) -> Coordinate:
        try:
            response = requests.get(
                self.url,
                params={"path": f"{raw.lat},{raw.lon}", "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return self.parse_response(response.json()) or raw
        except (requests.RequestException, ValueError) as e:
            print(f"Road snap error: {e}")
            return raw

    @staticmethod
    def parse_response(data: dict) -> Optional[Coordinate]:
        """First snapped point of a snapToRoads response, or None"""
        try:
            location = data["snappedPoints"][0]["location"]
            return Coordinate(float(location["latitude"]), float(location["longitude"]))
        except (KeyError, IndexError, TypeError, ValueError):
            return None


class GoogleDirectionsProvider(RouteProvider):
    """Walking directions from the Directions API"""

    def __init__(self, api_key: str, timeout: Optional[float] = None,
                 url: Optional[str] = None):
        self.api_key = api_key
        self.timeout = timeout if timeout is not None else CONFIG["network_timeout"]
        self.url = url or CONFIG["directions_url"]

    def fetch_walking_route(self, origin: Coordinate, destination: str) -> RouteSummary:
        params = {
            "origin": f"{origin.lat},{origin.lon}",
            "destination": destination,
            "mode": "walking",
            "alternatives": "true",
            "key": self.api_key,
        }
        try:
            response = requests.get(self.url, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            raise RouteTransportError(f"Directions request failed: {e}") from e
        except ValueError as e:
            raise RouteTransportError(f"Directions response is not JSON: {e}") from e

        return self.parse_response(data)

    @staticmethod
    def parse_response(data: dict) -> RouteSummary:
        """Decode a Directions response into a summary of its first route.

        Distance is summed over the legs, the terminal point is the last
        leg's end_location.
        """
        if not isinstance(data, dict):
            raise RouteTransportError("Directions response is not an object")

        status = data.get("status")
        if status in NOT_FOUND_STATUSES:
            raise RouteNotFound(f"No walking route ({status})")
        if status != "OK":
            message = data.get("error_message") or "no details"
            raise RouteTransportError(f"Directions status {status}: {message}")

        routes = data.get("routes") or []
        if not routes:
            raise RouteNotFound("Directions returned no routes")

        try:
            legs = routes[0]["legs"]
            if not legs:
                raise RouteNotFound("First route has no legs")
            total = sum(float(leg["distance"]["value"]) for leg in legs)
            duration_label = ", ".join(
                leg["duration"]["text"] for leg in legs if leg.get("duration")
            )
            distance_label = legs[0]["distance"].get("text", "")
            if len(legs) > 1:
                distance_label = f"{total / 1000:.1f} km"
            end = legs[-1]["end_location"]
            terminal = Coordinate(float(end["lat"]), float(end["lng"]))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise RouteTransportError(f"Malformed directions response: {e}") from e

        return RouteSummary(
            total_distance_m=total,
            duration_label=duration_label,
            terminal=terminal,
            distance_label=distance_label,
        )
