"""Main Wayfinder application."""

import asyncio
import time
from typing import Callable, Optional

from .audio import Speaker
from .config import CONFIG
from .geo import retry_with_backoff
from .google import GoogleDirectionsProvider, GoogleRoadSnapper, NullRoadSnapper
from .gps import FixRecorder, PlaybackPositionFeed, PositionFeed, TermuxPositionFeed
from .logger import Logger
from .models import TickEvent
from .sinks import AudioSink, ConsoleSink, HapticSink
from .tracker import NavigationTracker


class Wayfinder:
    """Wires a position feed, the Google adapters and the sinks to a tracker"""

    def __init__(self, api_key: str, feed: PositionFeed,
                 log_path: Optional[str] = None,
                 snap: bool = True,
                 speak: bool = True,
                 playback_speed: float = 1.0,
                 vibrate: Optional[Callable[[float], None]] = None):
        self.feed = feed
        self.logger = Logger(log_path)
        self.snapper = GoogleRoadSnapper(api_key) if snap else NullRoadSnapper()
        self.router = GoogleDirectionsProvider(api_key)
        self.tracker = NavigationTracker(
            feed, self.snapper, self.router, logger=self.logger,
            settings={"tick_interval": CONFIG["tick_interval"] / playback_speed},
        )
        self.tracker.add_listener(ConsoleSink())
        if vibrate is not None:
            self.tracker.add_listener(HapticSink(vibrate, self.tracker.settings))
        self.audio_sink: Optional[AudioSink] = None
        if speak:
            self.audio_sink = AudioSink(Speaker())
            self.tracker.add_listener(self.audio_sink)
        if isinstance(feed, PlaybackPositionFeed):
            self.tracker.add_listener(self._stop_when_playback_finished)
        self.start_time = 0.0

    @property
    def live_feed(self) -> PositionFeed:
        """The underlying feed when recording"""
        if isinstance(self.feed, FixRecorder):
            return self.feed.feed
        return self.feed

    def wait_for_fix(self) -> bool:
        """Start live GPS and wait for a first fix"""
        live = self.live_feed
        if not isinstance(live, TermuxPositionFeed):
            return True

        live.start()
        print("Getting GPS fix...")

        def try_gps():
            fix = live.current_fix()
            if fix and fix.is_usable():
                self.logger.log("GPS fix obtained", {"lat": fix.lat, "lon": fix.lon, "accuracy": fix.accuracy})
                return fix
            return None

        fix = retry_with_backoff(
            try_gps,
            max_time=CONFIG["gps_warmup_time"],
            initial_delay=1.0,
            max_delay=4.0,
            description="GPS fix"
        )
        if not fix:
            self.logger.log("Could not get GPS location during warm-up", {"status": live.get_status()})
            return False
        return True

    def _stop_when_playback_finished(self, event: TickEvent):
        if self.feed.is_finished() and not event.state.is_terminal:
            self.logger.log("Playback finished")
            self.tracker.stop()

    async def run_async(self, destination: str) -> Optional[TickEvent]:
        self.tracker.start_navigation_to(destination)
        try:
            await self.tracker.join()
        finally:
            await self.tracker.close()
        return self.tracker.last_event

    def run(self, destination: str) -> Optional[TickEvent]:
        """Navigate to destination, blocking until arrival, failure or Ctrl+C"""
        print(f"\n=== Wayfinder ===")
        print(f"Destination: {destination}")
        print("Press Ctrl+C to stop")
        print()

        if not self.wait_for_fix():
            # The session reports NO_FIX itself unless a fix lands before it starts
            self.logger.log("Starting navigation without a GPS fix")
        self.start_time = time.time()

        try:
            asyncio.run(self.run_async(destination))
        except KeyboardInterrupt:
            print("\nNavigation interrupted")
            self.logger.log("Navigation interrupted by user")
        finally:
            event = self.tracker.last_event
            session = self.tracker.session
            summary = {
                "state": event.state.value if event else "idle",
                "reroutes": session.reroute_count if session else 0,
                "duration": time.time() - self.start_time,
            }
            self.logger.log("Navigation summary", summary)

            self.feed.close()
            if self.audio_sink:
                self.audio_sink.flush()
                self.audio_sink.close()
            self.logger.close()

        return self.tracker.last_event
