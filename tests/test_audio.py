import subprocess
import sys
from unittest.mock import MagicMock, patch

from wayfinder.audio import Speaker


class TestSpeaker:

    @patch("wayfinder.audio.subprocess.run")
    @patch("wayfinder.audio.shutil.which", return_value="/usr/bin/espeak")
    def test_uses_espeak_when_installed(self, mock_which, mock_run):
        speaker = Speaker(rate=170)

        speaker("Arrived near your destination")
        speaker("again")

        assert speaker.backend == "espeak"
        assert mock_which.call_count == 1
        assert mock_run.call_args_list[0].args[0] == ["espeak", "-s", "170", "Arrived near your destination"]

    @patch("wayfinder.audio.shutil.which", return_value=None)
    def test_falls_back_to_pyttsx3(self, mock_which):
        engine = MagicMock()
        fake_module = MagicMock()
        fake_module.init.return_value = engine

        with patch.dict(sys.modules, {"pyttsx3": fake_module}):
            speaker = Speaker()
            speaker.speak("No valid GPS fix")

        assert speaker.backend == "pyttsx3"
        engine.say.assert_called_once_with("No valid GPS fix")
        engine.runAndWait.assert_called_once()

    @patch("wayfinder.audio.shutil.which", return_value=None)
    def test_prints_without_any_engine(self, mock_which, capsys):
        with patch.dict(sys.modules, {"pyttsx3": None}):
            speaker = Speaker()
            speaker.speak("Route has no length")

        assert speaker.backend == "print"
        assert "[AUDIO] Route has no length" in capsys.readouterr().out

    @patch("wayfinder.audio.subprocess.run", side_effect=subprocess.TimeoutExpired("espeak", 10))
    @patch("wayfinder.audio.shutil.which", return_value="/usr/bin/espeak")
    def test_espeak_timeout_prints_cue(self, mock_which, mock_run, capsys):
        Speaker().speak("Network failure")

        assert "[AUDIO] Network failure" in capsys.readouterr().out

    @patch("wayfinder.audio.subprocess.run")
    @patch("wayfinder.audio.shutil.which", return_value="/usr/bin/espeak")
    def test_callback_sees_every_cue(self, mock_which, mock_run):
        heard = []
        speaker = Speaker(callback=heard.append)

        speaker.speak("one")
        speaker.speak("two")

        assert heard == ["one", "two"]
