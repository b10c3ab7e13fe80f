"""Prompt construction for stateless swarm attempts.

The builder takes the instruction and input as plain strings, not a
task or a run. There is nothing else it could put into the prompt.
"""

from __future__ import annotations

from quorum.providers.base import PromptMessage


def build_attempt_system_prompt(answer_field: str = "output") -> str:
    return (
        "You are a single worker executing one atomic task. You have no "
        "memory of other workers and no context beyond what is given.\n\n"
        f'Reply with a JSON object with a single key "{answer_field}" '
        "holding the result string. No prose outside the JSON.\n"
        "Be concise. Do not speculate beyond the input."
    )


def build_attempt_prompt(
    instruction: str,
    isolated_input: str,
    *,
    answer_field: str = "output",
) -> list[PromptMessage]:
    """Build the messages for one attempt.

    Identical arguments always yield identical messages.
    """
    user = f"INSTRUCTION: {instruction}\nINPUT_DATA: {isolated_input}"
    return [
        PromptMessage(role="system", content=build_attempt_system_prompt(answer_field)),
        PromptMessage(role="user", content=user),
    ]
