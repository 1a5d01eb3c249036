# tests/fakes.py

from __future__ import annotations

from typing import Optional


class FakeOracle:
    """
    Deterministic oracle for tests.

    - Captures prompts (and whether JSON mode was requested)
    - Returns ``reply`` or raises ``error``
    """

    def __init__(self, reply: str = "ok", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[str, bool]] = []

    def generate(self, prompt: str, *, json_mode: bool = False) -> str:
        self.calls.append((prompt, json_mode))
        if self.error is not None:
            raise self.error
        return self.reply
