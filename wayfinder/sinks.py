"""Consumers of tracker events: status panel, haptics and spoken cues."""

import queue
import threading
from typing import Callable, Optional

from .audio import Speaker
from .config import CONFIG
from .models import NavState, TickEvent


def haptic_intensity(remaining_m: Optional[float], settings: Optional[dict] = None) -> float:
    """Vibration amplitude for a remaining distance.

    Vibrates while closing in (inside haptic_max_distance) and stops once
    inside the arrival radius. settings overrides CONFIG, as for the tracker.
    """
    cfg = {**CONFIG, **(settings or {})}
    if remaining_m is None:
        return 0.0
    if cfg["arrival_radius"] < remaining_m <= cfg["haptic_max_distance"]:
        return cfg["haptic_amplitude"]
    return 0.0


def render_status(event: TickEvent) -> str:
    """Multi-line status panel for a single event"""
    route_label = event.route_distance_label or "--"
    lines = [
        f"Destination: {event.destination} ({route_label})",
        f"[ {event.status_label} ]",
    ]
    if event.route_duration_label:
        lines.append(f"Estimated time: {event.route_duration_label}")
    if event.remaining_m is not None:
        marker = "straight line" if event.is_final_approach else "along route"
        lines.append(f"Remaining: {round(event.remaining_m)} m ({marker})")
    return "\n".join(lines)


class ConsoleSink:
    """Prints the status panel whenever it changes"""

    def __init__(self, printer: Callable[[str], None] = print):
        self.printer = printer
        self._last_text: Optional[str] = None

    def __call__(self, event: TickEvent):
        text = render_status(event)
        if text != self._last_text:
            self.printer("-" * 40 + "\n" + text)
            self._last_text = text


class HapticSink:
    """Drives a vibration motor from remaining distance"""

    def __init__(self, vibrate: Callable[[float], None], settings: Optional[dict] = None):
        self.vibrate = vibrate
        self.settings = settings
        self.current = 0.0

    def __call__(self, event: TickEvent):
        if event.state.is_terminal:
            amplitude = 0.0
        else:
            amplitude = haptic_intensity(event.remaining_m, self.settings)
        if amplitude != self.current:
            self.vibrate(amplitude)
            self.current = amplitude


class AudioSink:
    """Speaks arrival and failure once per session.

    Speech blocks, so it runs on a worker thread fed by a queue.
    """

    def __init__(self, speak: Optional[Callable[[str], None]] = None):
        self.speak = speak or Speaker()
        self._spoken: set[tuple[int, NavState]] = set()
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._thread = threading.Thread(target=self._worker, name="audio-sink", daemon=True)
        self._thread.start()

    def _worker(self):
        while True:
            text = self._queue.get()
            try:
                if text is None:
                    break
                self.speak(text)
            except Exception as e:
                print(f"Audio error: {e}")
            finally:
                self._queue.task_done()

    def __call__(self, event: TickEvent):
        if event.state == NavState.ARRIVED:
            text = CONFIG["arrival_message"]
        elif event.state == NavState.FAILED:
            text = event.status_label
        else:
            return

        key = (event.session_id, event.state)
        if key in self._spoken:
            return
        self._spoken.add(key)
        self._queue.put(text)

    def flush(self):
        """Block until queued speech has been spoken"""
        self._queue.join()

    def close(self):
        self._queue.put(None)
        self._thread.join(timeout=5)
