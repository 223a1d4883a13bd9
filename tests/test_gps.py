import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from wayfinder.gps import FixRecorder, PlaybackPositionFeed, StaticPositionFeed, TermuxPositionFeed
from wayfinder.models import PositionFix


def write_trace(path, locations):
    trace = [
        {"elapsed": i, "timestamp": 1700000000 + i, "location": loc, "status": "GPS OK"}
        for i, loc in enumerate(locations)
    ]
    path.write_text(json.dumps({"recorded_at": "2024-01-01T00:00:00", "trace": trace}))
    return str(path)


class TestStaticPositionFeed:

    def test_always_usable(self):
        feed = StaticPositionFeed(25.033, 121.5654)

        fix = feed.current_fix()

        assert fix.is_usable()
        assert (fix.lat, fix.lon) == (25.033, 121.5654)
        assert fix.timestamp is not None


class TestPlaybackPositionFeed:

    def test_replays_entries_in_order(self, tmp_path):
        path = write_trace(tmp_path / "trace.json", [
            {"lat": 1.0, "lon": 2.0},
            None,
            {"lat": 1.1, "lon": 2.1, "accuracy": 4.0},
        ])
        feed = PlaybackPositionFeed(path)

        first = feed.current_fix()
        gap = feed.current_fix()
        third = feed.current_fix()

        assert (first.lat, first.lon) == (1.0, 2.0)
        assert gap is None
        assert third.accuracy == 4.0
        assert feed.is_finished()
        assert feed.current_fix() is None

    def test_status_counts_gaps(self, tmp_path):
        path = write_trace(tmp_path / "trace.json", [None, None, {"lat": 1.0, "lon": 2.0}])
        feed = PlaybackPositionFeed(path)

        feed.current_fix()
        feed.current_fix()
        assert feed.get_status() == "Playback: 2 failures (2/3)"

        feed.current_fix()
        assert feed.get_status() == "Playback OK (3/3)"

    def test_invalid_recorded_fix_stays_invalid(self, tmp_path):
        path = write_trace(tmp_path / "trace.json", [{"lat": 1.0, "lon": 2.0, "valid": False}])

        fix = PlaybackPositionFeed(path).current_fix()

        assert not fix.is_usable()


class TestFixRecorder:

    def test_records_fixes_and_gaps(self, tmp_path):
        inner = MagicMock()
        inner.current_fix.side_effect = [PositionFix(lat=1.0, lon=2.0), None]
        inner.get_status.return_value = "GPS OK"
        recorder = FixRecorder(inner, str(tmp_path / "out.json"))

        recorder.current_fix()
        recorder.current_fix()
        recorder.close()

        saved = json.loads((tmp_path / "out.json").read_text())
        assert "recorded_at" in saved
        assert len(saved["trace"]) == 2
        assert saved["trace"][0]["location"]["lat"] == 1.0
        assert saved["trace"][1]["location"] is None
        inner.close.assert_called_once()

    def test_recording_plays_back(self, tmp_path):
        inner = StaticPositionFeed(25.033, 121.5654)
        recorder = FixRecorder(inner, str(tmp_path / "out.json"))
        recorder.current_fix()
        recorder.save()

        feed = PlaybackPositionFeed(str(tmp_path / "out.json"))

        fix = feed.current_fix()
        assert (fix.lat, fix.lon) == (25.033, 121.5654)


class TestTermuxPositionFeed:

    @patch("wayfinder.gps.subprocess.run")
    def test_parses_location(self, mock_run):
        mock_run.return_value = MagicMock(
            returncode=0,
            stdout=json.dumps({"latitude": 25.033, "longitude": 121.5654, "accuracy": 6.5}),
        )

        fix = TermuxPositionFeed().read_location()

        assert fix.is_usable()
        assert fix.accuracy == 6.5
        assert mock_run.call_args.args[0][0] == "termux-location"

    @pytest.mark.parametrize("returncode,stdout", [(1, ""), (0, ""), (0, "   "), (0, "not json"), (0, "{}")])
    @patch("wayfinder.gps.subprocess.run")
    def test_bad_output_is_no_fix(self, mock_run, returncode, stdout):
        mock_run.return_value = MagicMock(returncode=returncode, stdout=stdout)

        assert TermuxPositionFeed().read_location() is None

    @patch("wayfinder.gps.subprocess.run")
    def test_timeout_is_no_fix(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired("termux-location", 30)

        assert TermuxPositionFeed().read_location() is None

    @patch("wayfinder.gps.subprocess.run")
    def test_missing_binary_is_no_fix(self, mock_run):
        mock_run.side_effect = FileNotFoundError("termux-location")

        assert TermuxPositionFeed().read_location() is None

    def test_no_fix_before_first_poll(self):
        feed = TermuxPositionFeed()

        assert feed.current_fix() is None
        assert feed.get_status() == "GPS OK"
