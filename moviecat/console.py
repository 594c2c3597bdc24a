"""Line-oriented terminal I/O for the interactive session."""

from __future__ import annotations

from typing import Callable


class Console:
    """Reads answers and prints messages; swap the callables to script a session."""

    def __init__(
        self,
        *,
        reader: Callable[[str], str] = input,
        writer: Callable[[str], None] = print,
    ) -> None:
        self._reader = reader
        self._writer = writer

    def ask(self, prompt: str) -> str:
        """Prompt and return the answer stripped; raises EOFError at end of input."""
        return self._reader(prompt).strip()

    def say(self, text: str = "") -> None:
        self._writer(text)
