"""
Minimal OpenAI Chat Completions client (JSON mode) over httpx.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

import httpx

from podgen.core.errors import ProviderError
from podgen.core.logging import get_logger, verbose

_LOG = get_logger("podgen.openai")

OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"


class OpenAIChatClient:
    """
    Args:
        api_key: Bearer token.
        timeout_s: Request timeout.
        client: Optional pre-built httpx.Client.
    """

    def __init__(self, api_key: str, timeout_s: float = 120.0, client: Optional[httpx.Client] = None):
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout_s)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def complete_json(
        self,
        model: str,
        system: str,
        user: str,
        max_completion_tokens: int,
    ) -> Any:
        """
        One chat completion in JSON mode, parsed.

        Raises:
            ProviderError: Transport failure, non-2xx status, or a reply
                that is not a JSON object/array.
        """
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "response_format": {"type": "json_object"},
            "max_completion_tokens": max_completion_tokens,
        }
        try:
            resp = self._client.post(
                OPENAI_CHAT_URL,
                json=body,
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        except httpx.HTTPError as e:
            raise ProviderError(f"OpenAI request failed: {e}", collaborator="openai") from e

        if resp.status_code >= 400:
            raise ProviderError(
                f"OpenAI API error: {resp.status_code}",
                collaborator="openai",
                details={"status": resp.status_code, "body": resp.text[:500]},
            )

        try:
            data = resp.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError("No content in OpenAI response", collaborator="openai") from e
        if not content:
            raise ProviderError("No content in OpenAI response", collaborator="openai")

        usage = data.get("usage") or {}
        verbose(
            _LOG, "openai_usage",
            model=model,
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )

        try:
            return json.loads(content)
        except ValueError as e:
            raise ProviderError(
                "OpenAI returned invalid JSON",
                collaborator="openai",
                details={"content": content[:500]},
            ) from e
