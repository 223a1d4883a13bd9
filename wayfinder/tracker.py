"""Route-tracking engine: one navigation session at a time."""

import asyncio
import inspect
from typing import Callable, Optional

from .config import CONFIG
from .geo import distance
from .google import RoadSnapper, RouteProvider, RouteError, RouteNotFound, RouteTransportError
from .gps import PositionFeed
from .logger import Logger
from .models import (
    Coordinate,
    FailureReason,
    NavigationSession,
    NavState,
    RouteSummary,
    TickEvent,
)

Listener = Callable[[TickEvent], None]


class NavigationTracker:
    """Owns the navigation session state machine.

    Usage (inside a running event loop):
        tracker = NavigationTracker(feed, snapper, router)
        tracker.add_listener(sink)
        tracker.start_navigation_to("Taipei 101")
        await tracker.join()

    start_navigation_to() snaps the current fix, fetches a walking route and
    then calls tick() every CONFIG["tick_interval"] seconds until arrival.
    Reroutes run as a separate task so ticking never waits on the network.
    """

    def __init__(self, feed: PositionFeed, snapper: RoadSnapper, router: RouteProvider,
                 logger: Optional[Logger] = None, settings: Optional[dict] = None):
        self.feed = feed
        self.snapper = snapper
        self.router = router
        self.logger = logger or Logger()
        self.settings = {**CONFIG, **(settings or {})}

        self.session: Optional[NavigationSession] = None
        self.last_event: Optional[TickEvent] = None
        self._listeners: list[Listener] = []
        self._session_count = 0
        self._task: Optional[asyncio.Task] = None
        self._reroute_task: Optional[asyncio.Task] = None

    def add_listener(self, listener: Listener):
        self._listeners.append(listener)

    @property
    def reroute_in_flight(self) -> bool:
        return self._reroute_task is not None and not self._reroute_task.done()

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------

    def start_navigation_to(self, destination: str) -> NavigationSession:
        """Replace any active session with a new one heading to destination"""
        self._cancel_tasks()

        self._session_count += 1
        session = NavigationSession(
            session_id=self._session_count,
            destination=destination,
            state=NavState.INITIALIZING,
            status_label="Locating",
        )
        self.session = session
        self._log(session).log("Navigation requested", {"destination": destination})

        self._task = asyncio.create_task(self._run_session(session), name=f"navigation-{session.session_id}")
        return session

    def stop(self):
        """Forcibly end navigation, leaving the session as it was"""
        self._cancel_tasks()
        if self.session:
            self._log(self.session).log("Navigation stopped")

    async def join(self):
        """Wait until the current session finishes or is cancelled.

        Follows replacement sessions started while waiting. Exceptions raised
        inside the session task (including by listeners) are re-raised here.
        """
        while self._task is not None:
            task = self._task
            await asyncio.wait({task})
            if task is self._task:
                if not task.cancelled() and task.exception() is not None:
                    raise task.exception()
                return

    async def close(self):
        tasks = [t for t in (self._task, self._reroute_task) if t is not None]
        self._cancel_tasks()
        if tasks:
            await asyncio.wait(tasks)

    def _cancel_tasks(self):
        self._cancel_reroute()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _cancel_reroute(self):
        if self._reroute_task is not None and not self._reroute_task.done():
            self._reroute_task.cancel()
        self._reroute_task = None

    def _is_current(self, session: NavigationSession) -> bool:
        return session is self.session

    def _log(self, session: NavigationSession) -> Logger:
        return self.logger.bind(session=session.session_id)

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def _run_session(self, session: NavigationSession):
        if not await self.initialize(session):
            return

        interval = self.settings["tick_interval"]
        while self._is_current(session) and session.state.is_navigating:
            self.tick()
            if not session.state.is_navigating:
                break
            await asyncio.sleep(interval)

    async def initialize(self, session: NavigationSession) -> bool:
        """Locate, snap and fetch the first route. Any failure ends the session."""
        fix = self.feed.current_fix()
        if fix is None or not fix.is_usable():
            self._fail(session, FailureReason.NO_FIX, "No valid GPS fix")
            return False

        session.origin = fix.coordinate
        session.status_label = "Snapping to road"
        session.snapped_origin = await self._snap(session, session.origin)
        if not self._is_current(session):
            return False
        self._log(session).log("Origin", {
            "raw": session.origin.to_dict(),
            "snapped": session.snapped_origin.to_dict(),
        })

        session.status_label = "Fetching route"
        try:
            route = await self._fetch_route(session.snapped_origin, session.destination)
        except RouteNotFound as e:
            self._fail(session, FailureReason.ROUTE_NOT_FOUND, f"No route found: {e}")
            return False
        except RouteTransportError as e:
            self._fail(session, FailureReason.ROUTE_TRANSPORT_ERROR, f"Network failure: {e}")
            return False

        if not self._is_current(session):
            return False
        if route.total_distance_m <= 0:
            self._fail(session, FailureReason.EMPTY_ROUTE, "Route has no length")
            return False

        session.apply_route(route, session.origin)
        session.state = NavState.TRACKING
        session.status_label = self._status_for(session)
        self._log(session).log("Route fetched", {
            "distance": route.total_distance_m,
            "duration": route.duration_label,
            "target": route.terminal.to_dict(),
        })
        return True

    def _fail(self, session: NavigationSession, reason: FailureReason, message: str):
        if not self._is_current(session):
            return
        session.fail(reason, message)
        self._log(session).log("Navigation failed", {"reason": reason.value, "message": message})
        self._emit(session)

    # ------------------------------------------------------------------
    # Remote calls
    # ------------------------------------------------------------------

    async def _call_adapter(self, func, *args):
        """Run an adapter call off the loop with a bounded timeout"""
        if inspect.iscoroutinefunction(func):
            call = func(*args)
        else:
            call = asyncio.to_thread(func, *args)
        return await asyncio.wait_for(call, self.settings["network_timeout"])

    async def _snap(self, session: NavigationSession, raw: Coordinate) -> Coordinate:
        try:
            return await self._call_adapter(self.snapper.snap, raw)
        except asyncio.TimeoutError:
            self._log(session).log("Road snap timed out, using raw GPS")
            return raw

    async def _fetch_route(self, origin: Coordinate, destination: str) -> RouteSummary:
        try:
            return await self._call_adapter(self.router.fetch_walking_route, origin, destination)
        except asyncio.TimeoutError as e:
            raise RouteTransportError(
                f"Route request timed out after {self.settings['network_timeout']}s"
            ) from e

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def tick(self) -> Optional[TickEvent]:
        """Evaluate the latest fix against the active route.

        Order matters: arrival, then final approach, then reroute.
        """
        session = self.session
        if session is None or not session.state.is_navigating:
            return None

        fix = self.feed.current_fix()
        if fix is None or not fix.is_usable():
            session.status_label = "Waiting for GPS"
            return self._emit(session)

        position = fix.coordinate
        moved = distance(position, session.last_fix_at_route_time)
        straight = distance(position, session.target)

        if straight <= self.settings["arrival_radius"]:
            self._cancel_reroute()
            session.state = NavState.ARRIVED
            session.last_remaining_m = straight
            session.status_label = "Arrived"
            self._log(session).log("Arrived", {"distance_to_target": round(straight, 1)})
            return self._emit(session)

        if straight <= self.settings["final_approach_radius"]:
            if not session.is_final_approach:
                self._cancel_reroute()
                self._log(session).log("Final approach", {"distance_to_target": round(straight, 1)})
            session.latch_final_approach()
        elif not session.is_final_approach and moved >= self.settings["reroute_distance"]:
            self._start_reroute(session, position, moved)

        if session.is_final_approach:
            remaining = straight
        else:
            remaining = max(0.0, session.route_distance_m - moved)
        session.last_remaining_m = remaining
        session.status_label = self._status_for(session)
        return self._emit(session)

    def _status_for(self, session: NavigationSession) -> str:
        if session.is_final_approach:
            return "Final approach"
        if session.reroute_error:
            if self.reroute_in_flight:
                return f"Reroute failed: {session.reroute_error}, retrying"
            return f"Reroute failed: {session.reroute_error}"
        if self.reroute_in_flight:
            return "Rerouting"
        return "Navigating"

    def _start_reroute(self, session: NavigationSession, position: Coordinate, moved: float):
        if self.reroute_in_flight:
            return
        self._log(session).log("Rerouting", {"moved": round(moved, 1), "from": position.to_dict()})
        self._reroute_task = asyncio.create_task(
            self._reroute(session, position), name=f"reroute-{session.session_id}"
        )

    async def _reroute(self, session: NavigationSession, position: Coordinate):
        snapped = await self._snap(session, position)
        try:
            route = await self._fetch_route(snapped, session.destination)
        except RouteError as e:
            if self._is_current(session):
                session.reroute_error = str(e)
            self._log(session).log("Reroute failed", {"error": str(e)})
            return

        # Results for a replaced session, or one that has since latched or
        # arrived, are dropped
        if not self._is_current(session) or session.state != NavState.TRACKING:
            return
        if route.total_distance_m <= 0:
            session.reroute_error = "route has no length"
            self._log(session).log("Reroute failed", {"error": "empty route"})
            return

        session.apply_route(route, position)
        session.reroute_count += 1
        session.reroute_error = None
        self._log(session).log("Route updated", {
            "distance": route.total_distance_m,
            "duration": route.duration_label,
            "reroutes": session.reroute_count,
        })

    def _emit(self, session: NavigationSession) -> TickEvent:
        event = TickEvent.from_session(session)
        self.last_event = event
        for listener in list(self._listeners):
            listener(event)
        return event
