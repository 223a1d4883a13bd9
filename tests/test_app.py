import json
from unittest.mock import patch

import pytest

from wayfinder.app import Wayfinder
from wayfinder.google import NullRoadSnapper, RouteNotFound
from wayfinder.gps import PlaybackPositionFeed, StaticPositionFeed, TermuxPositionFeed
from wayfinder.models import FailureReason, NavState

from .fakes import ORIGIN, FakeRouter, offset, route_to


def playback_file(path, points):
    trace = [
        {"elapsed": i, "timestamp": 1700000000 + i,
         "location": {"lat": p.lat, "lon": p.lon, "valid": True} if p else None,
         "status": "GPS OK"}
        for i, p in enumerate(points)
    ]
    path.write_text(json.dumps({"recorded_at": "2024-01-01T00:00:00", "trace": trace}))
    return str(path)


class TestWayfinder:

    @pytest.mark.asyncio
    async def test_playback_walk_arrives(self, tmp_path):
        terminal = offset(ORIGIN, north_m=500)
        path = playback_file(tmp_path / "walk.json", [
            ORIGIN,
            offset(ORIGIN, north_m=200),
            None,
            offset(ORIGIN, north_m=400),
            offset(ORIGIN, north_m=495),
        ])
        app = Wayfinder("test-key", PlaybackPositionFeed(path), log_path=str(tmp_path / "nav.log"),
                        snap=False, speak=False, playback_speed=1000)
        app.tracker.router = FakeRouter(route_to(terminal, 520))

        event = await app.run_async("Taipei 101")
        app.logger.close()

        assert isinstance(app.snapper, NullRoadSnapper)
        assert event.state == NavState.ARRIVED
        log = (tmp_path / "nav.log").read_text()
        assert "Route fetched" in log
        assert "Arrived" in log

    @pytest.mark.asyncio
    async def test_playback_end_stops_navigation(self, tmp_path):
        terminal = offset(ORIGIN, north_m=500)
        path = playback_file(tmp_path / "short.json", [ORIGIN, offset(ORIGIN, north_m=10)])
        app = Wayfinder("test-key", PlaybackPositionFeed(path), snap=False, speak=False,
                        playback_speed=1000)
        app.tracker.router = FakeRouter(route_to(terminal, 520))

        event = await app.run_async("Taipei 101")

        assert event.state == NavState.TRACKING
        assert app.tracker.session.state == NavState.TRACKING

    def test_run_reports_failure_and_closes(self, tmp_path):
        app = Wayfinder("test-key", StaticPositionFeed(ORIGIN.lat, ORIGIN.lon),
                        log_path=str(tmp_path / "nav.log"), snap=False, speak=False)
        app.tracker.router = FakeRouter(RouteNotFound("ZERO_RESULTS"))

        event = app.run("Atlantis")

        assert event.state == NavState.FAILED
        assert event.failure == FailureReason.ROUTE_NOT_FOUND
        assert app.logger.file is None
        assert "Navigation summary" in (tmp_path / "nav.log").read_text()

    def test_run_static_fix_at_destination(self, tmp_path):
        app = Wayfinder("test-key", StaticPositionFeed(ORIGIN.lat, ORIGIN.lon),
                        snap=False, speak=False)
        app.tracker.router = FakeRouter(route_to(offset(ORIGIN, east_m=3), 4))

        event = app.run("Across the street")

        assert event.state == NavState.ARRIVED
        assert event.remaining_m < 8

    @pytest.mark.asyncio
    async def test_vibrates_inside_haptic_band(self, tmp_path):
        terminal = offset(ORIGIN, north_m=500)
        path = playback_file(tmp_path / "walk.json", [
            ORIGIN,
            offset(ORIGIN, north_m=480),
            offset(ORIGIN, north_m=495),
        ])
        pulses = []
        app = Wayfinder("test-key", PlaybackPositionFeed(path), snap=False, speak=False,
                        playback_speed=1000, vibrate=pulses.append)
        app.tracker.router = FakeRouter(route_to(terminal, 500))

        event = await app.run_async("Taipei 101")

        assert event.state == NavState.ARRIVED
        assert pulses == [0.4, 0.0]

    @patch.object(TermuxPositionFeed, "start")
    @patch("wayfinder.app.retry_with_backoff", return_value=None)
    def test_failed_warmup_is_logged_before_navigating(self, mock_retry, mock_start, tmp_path):
        app = Wayfinder("test-key", TermuxPositionFeed(), log_path=str(tmp_path / "nav.log"),
                        snap=False, speak=False)
        app.tracker.router = FakeRouter(route_to(offset(ORIGIN, north_m=100), 120))

        event = app.run("Taipei 101")

        mock_start.assert_called_once()
        assert event.failure == FailureReason.NO_FIX
        log = (tmp_path / "nav.log").read_text()
        assert "Could not get GPS location during warm-up" in log
        assert log.index("Starting navigation without a GPS fix") < log.index("Navigation requested")
