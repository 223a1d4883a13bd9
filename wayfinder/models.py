"""Data classes for Wayfinder."""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Optional

from .geo import is_valid_coordinate


@dataclass(frozen=True)
class Coordinate:
    lat: float
    lon: float

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "Coordinate":
        return cls(lat=d["lat"], lon=d["lon"])


@dataclass
class PositionFix:
    """A single reading from a position feed"""
    lat: float
    lon: float
    valid: bool = True
    accuracy: Optional[float] = None
    timestamp: Optional[float] = None

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lon)

    def is_usable(self) -> bool:
        """Only the feed's validity flag decides; (0, 0) is a real place."""
        return self.valid and is_valid_coordinate(self.lat, self.lon)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: dict) -> "PositionFix":
        return cls(
            lat=d["lat"],
            lon=d["lon"],
            valid=d.get("valid", True),
            accuracy=d.get("accuracy"),
            timestamp=d.get("timestamp"),
        )


@dataclass(frozen=True)
class RouteSummary:
    """First walking route alternative returned by the routing service"""
    total_distance_m: float
    duration_label: str
    terminal: Coordinate
    distance_label: str = ""


class NavState(Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    TRACKING = "tracking"
    FINAL_APPROACH = "final_approach"
    ARRIVED = "arrived"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (NavState.ARRIVED, NavState.FAILED)

    @property
    def is_navigating(self) -> bool:
        return self in (NavState.TRACKING, NavState.FINAL_APPROACH)


class FailureReason(Enum):
    NO_FIX = "no_fix"
    ROUTE_NOT_FOUND = "route_not_found"
    ROUTE_TRANSPORT_ERROR = "route_transport_error"
    EMPTY_ROUTE = "empty_route"


@dataclass
class NavigationSession:
    """Mutable state for one navigation attempt, owned by the tracker"""
    session_id: int
    destination: str
    state: NavState = NavState.IDLE
    origin: Optional[Coordinate] = None
    snapped_origin: Optional[Coordinate] = None
    target: Optional[Coordinate] = None
    route_distance_m: float = 0.0
    route_duration_label: str = ""
    route_distance_label: str = ""
    last_fix_at_route_time: Optional[Coordinate] = None
    is_final_approach: bool = False
    failure: Optional[FailureReason] = None
    status_label: str = "Waiting for command"
    reroute_count: int = 0
    reroute_error: Optional[str] = None
    last_remaining_m: Optional[float] = None

    def apply_route(self, route: RouteSummary, fix: Coordinate):
        """Replace all route-derived fields from a single fetch"""
        self.target = route.terminal
        self.route_distance_m = max(0.0, float(route.total_distance_m))
        self.route_duration_label = route.duration_label
        self.route_distance_label = route.distance_label
        self.last_fix_at_route_time = fix

    def latch_final_approach(self):
        self.is_final_approach = True
        if self.state == NavState.TRACKING:
            self.state = NavState.FINAL_APPROACH

    def fail(self, reason: FailureReason, message: str):
        self.state = NavState.FAILED
        self.failure = reason
        self.status_label = message


@dataclass(frozen=True)
class TickEvent:
    """Per-tick output handed to display, haptic and audio sinks"""
    session_id: int
    destination: str
    state: NavState
    is_final_approach: bool
    remaining_m: Optional[float]
    route_duration_label: str
    route_distance_label: str
    status_label: str
    failure: Optional[FailureReason] = None

    @classmethod
    def from_session(cls, session: NavigationSession) -> "TickEvent":
        return cls(
            session_id=session.session_id,
            destination=session.destination,
            state=session.state,
            is_final_approach=session.is_final_approach,
            remaining_m=session.last_remaining_m,
            route_duration_label=session.route_duration_label,
            route_distance_label=session.route_distance_label,
            status_label=session.status_label,
            failure=session.failure,
        )

    def to_dict(self) -> dict:
        d = asdict(self)
        d["state"] = self.state.value
        d["failure"] = self.failure.value if self.failure else None
        if self.remaining_m is not None:
            d["remaining_m"] = round(self.remaining_m, 1)
        return d
