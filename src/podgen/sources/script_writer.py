"""
Dialogue generation with an OpenAI chat model.
"""
from __future__ import annotations

import os
from typing import Any, List, Optional, Sequence

import httpx

from podgen.core.config import ScriptConfig
from podgen.core.errors import ProviderError
from podgen.core.logging import debug, get_logger, info
from podgen.core.models import DialogueTurn, SourceItem
from podgen.sources.base import ScriptGenerator
from podgen.sources.openai_client import OpenAIChatClient
from podgen.sources.prompts import build_system_prompt, build_user_prompt
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.script")


def normalize_dialogue(raw: Any, roster: Sequence[str]) -> List[DialogueTurn]:
    """
    Turn a model reply into roster-conformant turns.

    Accepts ``{"dialogue": [...]}`` or a bare list. Speakers are
    lowercased; anything outside the roster is assigned to the first
    roster member. Turns with no text are dropped.

    Raises:
        ProviderError: No dialogue array in the reply.
    """
    dialogue = raw if isinstance(raw, list) else (raw.get("dialogue") if isinstance(raw, dict) else None)
    if not isinstance(dialogue, list):
        raise ProviderError(
            "Expected dialogue array in response",
            collaborator="openai",
            details={"keys": sorted(raw) if isinstance(raw, dict) else type(raw).__name__},
        )

    turns: List[DialogueTurn] = []
    for entry in dialogue:
        if not isinstance(entry, dict):
            continue
        speaker = str(entry.get("speaker") or "").strip().lower()
        if speaker not in roster:
            speaker = roster[0]
        text = str(entry.get("text") or "").strip()
        if text:
            turns.append(DialogueTurn(speaker=speaker, text=text))
    return turns


class OpenAIScriptWriter(ScriptGenerator):
    """
    Args:
        config: Model, token budget, requested turn range.
        timeout_s: Request timeout.
        client: Optional httpx.Client for the OpenAI calls.
    """

    def __init__(
        self,
        config: Optional[ScriptConfig] = None,
        timeout_s: float = 120.0,
        client: Optional[httpx.Client] = None,
    ):
        self._cfg = config or ScriptConfig()
        self._timeout_s = timeout_s
        self._client = client

    def generate(self, items: Sequence[SourceItem], roster: Sequence[str]) -> List[DialogueTurn]:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ProviderError("OPENAI_API_KEY must be set in environment", collaborator="openai")
        if not items:
            raise ProviderError("No source items provided for dialogue generation", collaborator="openai")
        if not roster:
            raise ProviderError("Empty speaker roster", collaborator="openai")

        system = build_system_prompt(roster)
        user = build_user_prompt(items, roster, self._cfg.turn_range)
        debug(_LOG, "prompt_built", system_chars=len(system), user_chars=len(user))

        chat = OpenAIChatClient(api_key, timeout_s=self._timeout_s, client=self._client)
        try:
            with timeit("script_generate") as t:
                raw = chat.complete_json(
                    model=self._cfg.model,
                    system=system,
                    user=user,
                    max_completion_tokens=self._cfg.max_completion_tokens,
                )
        finally:
            chat.close()

        turns = normalize_dialogue(raw, roster)
        if not turns:
            raise ProviderError("Model returned an empty dialogue", collaborator="openai")
        info(_LOG, "script_generated", turns=len(turns), items=len(items), seconds=t.seconds)
        return turns
