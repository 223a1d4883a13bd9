"""Position feeds: live GPS, fixed location, recording and playback."""

import json
import subprocess
import threading
import time
from datetime import datetime
from typing import Optional

from .config import CONFIG
from .models import PositionFix


class PositionFeed:
    """Source of the latest known position fix.

    current_fix() is called from the tracking loop and must not block.
    """

    def current_fix(self) -> Optional[PositionFix]:
        raise NotImplementedError

    def get_status(self) -> str:
        return "unknown"

    def close(self):
        pass


class StaticPositionFeed(PositionFeed):
    """Always reports the same location (testing without GPS)"""

    def __init__(self, lat: float, lon: float):
        self.fix = PositionFix(lat=lat, lon=lon, valid=True, accuracy=0)

    def current_fix(self) -> Optional[PositionFix]:
        return PositionFix(lat=self.fix.lat, lon=self.fix.lon, valid=True,
                           accuracy=0, timestamp=time.time())

    def get_status(self) -> str:
        return "Fixed location"


class TermuxPositionFeed(PositionFeed):
    """GPS access via Termux API.

    termux-location blocks for seconds per reading, so a daemon thread polls it
    and current_fix() hands back the most recent result.
    """

    def __init__(self, poll_interval: Optional[float] = None,
                 timeout: Optional[int] = None):
        self.poll_interval = poll_interval if poll_interval is not None else CONFIG["gps_poll_interval"]
        self.timeout = timeout if timeout is not None else CONFIG["gps_fix_timeout"]
        self.last_fix: Optional[PositionFix] = None
        self.consecutive_failures = 0
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self):
        if self._thread is None:
            self._thread = threading.Thread(target=self._poll_loop, name="termux-gps", daemon=True)
            self._thread.start()

    def close(self):
        self._stop.set()

    def _poll_loop(self):
        while not self._stop.is_set():
            fix = self.read_location()
            with self._lock:
                if fix:
                    self.last_fix = fix
                    self.consecutive_failures = 0
                else:
                    self.consecutive_failures += 1
            self._stop.wait(self.poll_interval)

    def read_location(self) -> Optional[PositionFix]:
        """Get one location using termux-location (blocking)"""
        try:
            result = subprocess.run(
                ["termux-location", "-p", "gps", "-r", "once"],
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
        except (subprocess.TimeoutExpired, FileNotFoundError):
            return None

        if result.returncode != 0 or not result.stdout or not result.stdout.strip():
            return None

        try:
            data = json.loads(result.stdout)
            return PositionFix(
                lat=data["latitude"],
                lon=data["longitude"],
                valid=True,
                accuracy=data.get("accuracy"),
                timestamp=time.time()
            )
        except (json.JSONDecodeError, KeyError, TypeError):
            return None

    def current_fix(self) -> Optional[PositionFix]:
        with self._lock:
            return self.last_fix

    def get_status(self) -> str:
        """Get GPS status string"""
        with self._lock:
            failures = self.consecutive_failures
            fix = self.last_fix
        if failures == 0:
            acc = f", accuracy {fix.accuracy:.0f}m" if fix and fix.accuracy else ""
            return f"GPS OK{acc}"
        return f"GPS: {failures} consecutive failures"


class FixRecorder(PositionFeed):
    """Records every fix handed out by another feed to a trace file"""

    def __init__(self, feed: PositionFeed, record_path: str):
        self.feed = feed
        self.record_path = record_path
        self.trace: list[dict] = []
        self.start_time = time.time()

    def current_fix(self) -> Optional[PositionFix]:
        fix = self.feed.current_fix()

        # Record missing fixes too so playback reproduces gaps
        self.trace.append({
            "elapsed": time.time() - self.start_time,
            "timestamp": time.time(),
            "location": fix.to_dict() if fix else None,
            "status": self.feed.get_status()
        })
        return fix

    def get_status(self) -> str:
        return self.feed.get_status()

    def save(self):
        """Save trace to file"""
        with open(self.record_path, "w") as f:
            json.dump({
                "recorded_at": datetime.now().isoformat(),
                "trace": self.trace
            }, f, indent=2)
        print(f"GPS trace saved to {self.record_path} ({len(self.trace)} entries)")

    def close(self):
        self.save()
        self.feed.close()


class PlaybackPositionFeed(PositionFeed):
    """Plays back a recorded trace, one entry per read"""

    def __init__(self, playback_path: str, speed: float = 1.0):
        self.playback_path = playback_path
        self.speed = speed
        self.index = 0
        self.last_fix: Optional[PositionFix] = None
        self.consecutive_failures = 0

        with open(playback_path) as f:
            data = json.load(f)
            self.trace: list[dict] = data["trace"]
        print(f"Loaded GPS trace from {playback_path} ({len(self.trace)} entries)")

    def current_fix(self) -> Optional[PositionFix]:
        if self.index >= len(self.trace):
            return None

        entry = self.trace[self.index]
        self.index += 1

        if entry.get("location"):
            fix = PositionFix.from_dict(entry["location"])
            self.last_fix = fix
            self.consecutive_failures = 0
            return fix
        self.consecutive_failures += 1
        return None

    def is_finished(self) -> bool:
        """Check if playback is complete"""
        return self.index >= len(self.trace)

    def get_status(self) -> str:
        progress = f"{self.index}/{len(self.trace)}"
        if self.consecutive_failures == 0:
            return f"Playback OK ({progress})"
        return f"Playback: {self.consecutive_failures} failures ({progress})"
