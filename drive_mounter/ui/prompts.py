"""Yes/no prompt collaborators for label and activation confirmations."""

from __future__ import annotations

import sys
from typing import Callable, Optional, Protocol, TextIO


class Prompter(Protocol):
    def confirm(self, message: str) -> bool:
        ...


class ConsolePrompter:
    """Ask on the terminal; anything but y/yes (including EOF) means no."""

    def __init__(
        self,
        input_func: Callable[[str], str] = input,
        output: Optional[TextIO] = None,
    ):
        self._input = input_func
        self._output = output or sys.stderr

    def confirm(self, message: str) -> bool:
        try:
            answer = self._input(f"{message} (y/n): ")
        except EOFError:
            self._output.write("\n")
            return False
        return answer.strip().lower() in ("y", "yes")


class AutoPrompter:
    """Answer every prompt with a fixed value (``--yes``)."""

    def __init__(self, answer: bool = True):
        self.answer = answer

    def confirm(self, message: str) -> bool:
        return self.answer
