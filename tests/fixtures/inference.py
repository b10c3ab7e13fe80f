"""Scripted inference functions for deterministic engine tests."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ScriptExhaustedError(BaseException):
    """Raised when the engine asks for more rounds than were scripted.

    A ``BaseException`` so the engine's per-attempt error handling does
    not swallow it as a transport failure.
    """


class ScriptedInference:
    """Stateless inference stand-in returning scripted responses.

    Items that are exceptions are raised instead of returned. Records
    every call's arguments for assertion.
    """

    def __init__(
        self,
        responses: Sequence[str | Exception],
        *,
        cycle: bool = False,
        delay: float = 0.0,
    ) -> None:
        self._responses = list(responses)
        self._cycle = cycle
        self._delay = delay
        self.calls: list[tuple[str, str]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, instruction: str, isolated_input: str) -> str:
        index = len(self.calls)
        self.calls.append((instruction, isolated_input))
        if index >= len(self._responses) and not self._cycle:
            msg = f"Script has {len(self._responses)} responses, asked for {index + 1}"
            raise ScriptExhaustedError(msg)
        item = self._responses[index % len(self._responses)]

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
        finally:
            self.in_flight -= 1

        if isinstance(item, Exception):
            raise item
        return item
