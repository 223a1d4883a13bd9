"""Wayfinder - Pedestrian route tracking for head-worn displays."""

from .config import CONFIG
from .models import (
    Coordinate,
    PositionFix,
    RouteSummary,
    NavState,
    FailureReason,
    NavigationSession,
    TickEvent,
)
from .logger import Logger
from .geo import haversine_distance, distance, is_valid_coordinate, retry_with_backoff
from .gps import (
    PositionFeed,
    StaticPositionFeed,
    TermuxPositionFeed,
    FixRecorder,
    PlaybackPositionFeed,
)
from .google import (
    RoadSnapper,
    NullRoadSnapper,
    GoogleRoadSnapper,
    RouteProvider,
    GoogleDirectionsProvider,
    RouteError,
    RouteNotFound,
    RouteTransportError,
)
from .audio import Speaker
from .sinks import ConsoleSink, HapticSink, AudioSink, haptic_intensity, render_status
from .tracker import NavigationTracker
from .app import Wayfinder

__all__ = [
    "CONFIG",
    "Coordinate",
    "PositionFix",
    "RouteSummary",
    "NavState",
    "FailureReason",
    "NavigationSession",
    "TickEvent",
    "Logger",
    "haversine_distance",
    "distance",
    "is_valid_coordinate",
    "retry_with_backoff",
    "PositionFeed",
    "StaticPositionFeed",
    "TermuxPositionFeed",
    "FixRecorder",
    "PlaybackPositionFeed",
    "RoadSnapper",
    "NullRoadSnapper",
    "GoogleRoadSnapper",
    "RouteProvider",
    "GoogleDirectionsProvider",
    "RouteError",
    "RouteNotFound",
    "RouteTransportError",
    "Speaker",
    "ConsoleSink",
    "HapticSink",
    "AudioSink",
    "haptic_intensity",
    "render_status",
    "NavigationTracker",
    "Wayfinder",
]
