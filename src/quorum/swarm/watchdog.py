"""Red-flag watchdog: fail-fast validation of a single attempt.

An attempt either produces a usable vote or it is killed. There is no
repair path: oversize output is not trimmed, malformed JSON is not
re-parsed out of code fences, a missing field is not guessed at.
"""

from __future__ import annotations

import json
import re

from quorum.swarm.models import Accepted, KillReason, Rejected, Verdict

DEFAULT_MAX_RESPONSE_CHARS = 3000
DEFAULT_MAX_KEY_CHARS = 200
DEFAULT_ANSWER_FIELD = "output"

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_answer(text: str, max_key_chars: int = DEFAULT_MAX_KEY_CHARS) -> str:
    """Return the voting bucket key for an answer.

    Strips, collapses whitespace runs to one space, lowercases, and
    truncates to *max_key_chars*.
    """
    collapsed = _WHITESPACE_RE.sub(" ", text.strip()).lower()
    return collapsed[:max_key_chars]


class RedFlagWatchdog:
    """Decides whether a raw inference response may vote."""

    def __init__(
        self,
        *,
        max_response_chars: int = DEFAULT_MAX_RESPONSE_CHARS,
        answer_field: str = DEFAULT_ANSWER_FIELD,
        max_key_chars: int = DEFAULT_MAX_KEY_CHARS,
    ) -> None:
        self.max_response_chars = max_response_chars
        self.answer_field = answer_field
        self.max_key_chars = max_key_chars

    def inspect(self, raw: str) -> Verdict:
        """Validate *raw* and return :class:`Accepted` or :class:`Rejected`.

        Rule 1: anything longer than ``max_response_chars`` is killed
        before parsing.  Rule 2: the text must be exactly one JSON
        object carrying a non-empty ``answer_field``.  Non-string
        answers are serialized back to compact JSON.
        """
        if len(raw) > self.max_response_chars:
            return Rejected(
                KillReason.OVERSIZE,
                f"{len(raw)} chars > {self.max_response_chars}",
            )

        try:
            payload = json.loads(raw)
        except (json.JSONDecodeError, RecursionError) as e:
            # Nesting deep enough to exhaust the decoder is malformed too.
            return Rejected(KillReason.MALFORMED, str(e) or type(e).__name__)

        if not isinstance(payload, dict):
            return Rejected(
                KillReason.MALFORMED, f"expected object, got {type(payload).__name__}"
            )

        value = payload.get(self.answer_field)
        if value is None:
            return Rejected(
                KillReason.MISSING_FIELD, f"missing '{self.answer_field}' key"
            )

        text = value if isinstance(value, str) else json.dumps(value)
        text = text.strip()
        if not text:
            return Rejected(KillReason.EMPTY, f"empty '{self.answer_field}'")

        return Accepted(text=text, key=normalize_answer(text, self.max_key_chars))
