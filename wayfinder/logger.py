"""Logging module for Wayfinder."""

import json
from datetime import datetime
from typing import Optional, Callable


class Logger:
    """Timestamped event log to stdout, an optional file and a callback.

    Lines look like ``[2024-05-01T10:00:00.123456] Route fetched | {"session": 1}``.
    bind() returns a child logger that adds fixed fields to every entry and
    writes through its parent's file.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.context: dict = {}
        self.parent: Optional["Logger"] = None
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header()

    def _write_header(self):
        self.file.write(f"\n{'='*60}\n")
        self.file.write(f"Wayfinder Log - {datetime.now().isoformat()}\n")
        self.file.write(f"{'='*60}\n\n")
        self.file.flush()

    def bind(self, **context) -> "Logger":
        """Child logger whose entries always carry context"""
        child = Logger(callback=self.callback, echo=self.echo)
        child.log_path = self.log_path
        child.context = {**self.context, **context}
        child.parent = self
        return child

    def _root(self) -> "Logger":
        return self.parent._root() if self.parent else self

    def log(self, message: str, data: Optional[dict] = None):
        """Log a message with optional structured data"""
        payload = {**self.context, **(data or {})}
        line = f"[{datetime.now().isoformat()}] {message}"
        if payload:
            line += f" | {json.dumps(payload, default=str)}"
        if self.echo:
            print(line)

        root = self._root()
        if root.file:
            root.file.write(line + "\n")
            root.file.flush()
        if self.callback:
            self.callback(message, payload or None)

    def close(self):
        # Children share the root's file
        if self.parent is None and self.file:
            self.file.close()
            self.file = None
