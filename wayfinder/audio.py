"""Spoken cues: espeak when installed, otherwise pyttsx3, otherwise stdout."""

import shutil
import subprocess
from typing import Callable, Optional

from .config import CONFIG


class Speaker:
    """Text-to-speech for arrival and failure cues.

    The backend is picked on first use and kept. Speech blocks until it has
    finished, so callers run it off the tracking loop (see sinks.AudioSink).
    """

    def __init__(self, rate: Optional[int] = None, timeout: Optional[float] = None,
                 callback: Optional[Callable[[str], None]] = None):
        self.rate = rate if rate is not None else CONFIG["speech_rate"]
        self.timeout = timeout if timeout is not None else CONFIG["speech_timeout"]
        self.callback = callback
        self.backend: Optional[str] = None
        self._engine = None

    def _select_backend(self) -> str:
        if shutil.which("espeak"):  # available in Termux
            return "espeak"
        try:
            import pyttsx3
            self._engine = pyttsx3.init()
            self._engine.setProperty("rate", self.rate)
            return "pyttsx3"
        except (ImportError, RuntimeError, OSError) as e:
            print(f"No speech engine ({e}), printing cues instead")
            return "print"

    def speak(self, text: str):
        if self.callback:
            self.callback(text)
        if self.backend is None:
            self.backend = self._select_backend()

        if self.backend == "espeak":
            try:
                subprocess.run(
                    ["espeak", "-s", str(self.rate), text],
                    capture_output=True,
                    timeout=self.timeout
                )
                return
            except (subprocess.SubprocessError, OSError) as e:
                print(f"Audio error: {e}")
        elif self.backend == "pyttsx3":
            self._engine.say(text)
            self._engine.runAndWait()
            return

        print(f"[AUDIO] {text}")

    __call__ = speak
