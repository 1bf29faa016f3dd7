"""
Article enrichment.

For each source item: download the article, reduce the HTML to text,
and ask a small OpenAI model for a summary plus the details worth
talking about (names, quotes, numbers). Anything that goes wrong for an
item leaves it with its search snippet as the summary.

Without OPENAI_API_KEY enrichment is skipped and every item keeps its
snippet.
"""
from __future__ import annotations

import os
from typing import List, Optional, Sequence

import httpx

from podgen.core.config import EnrichmentConfig
from podgen.core.logging import get_logger, verbose, warn
from podgen.core.models import SourceItem
from podgen.sources.base import Enricher
from podgen.sources.openai_client import OpenAIChatClient
from podgen.sources.prompts import ENRICHMENT_SYSTEM_PROMPT, build_enrichment_prompt
from podgen.utils.text import html_to_text

_LOG = get_logger("podgen.enricher")

USER_AGENT = "Mozilla/5.0 (compatible; Podgen/1.0)"


def _str_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v]


class ArticleEnricher(Enricher):
    """
    Args:
        config: Batch size, fetch timeout, content limits, model.
        client: httpx.Client used for article downloads (and for OpenAI
            when ``chat`` is not given).
        chat: Optional pre-built OpenAIChatClient.
    """

    def __init__(
        self,
        config: Optional[EnrichmentConfig] = None,
        client: Optional[httpx.Client] = None,
        chat: Optional[OpenAIChatClient] = None,
    ):
        self._cfg = config or EnrichmentConfig()
        super().__init__(batch_size=self._cfg.batch_size)
        self._client = client or httpx.Client(timeout=self._cfg.fetch_timeout_s, follow_redirects=True)
        self._chat = chat
        if self._chat is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if api_key:
                self._chat = OpenAIChatClient(api_key, client=client)

    def fetch_article(self, url: str) -> Optional[str]:
        """Article text (first ``content_max_chars``), or None."""
        try:
            resp = self._client.get(
                url,
                headers={"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"},
                timeout=self._cfg.fetch_timeout_s,
            )
        except httpx.HTTPError as e:
            verbose(_LOG, "article_fetch_failed", url=url, error=str(e))
            return None
        if resp.status_code >= 400:
            verbose(_LOG, "article_fetch_failed", url=url, status=resp.status_code)
            return None
        return html_to_text(resp.text, self._cfg.content_max_chars)

    def enrich_item(self, item: SourceItem) -> SourceItem:
        content = self.fetch_article(item.url)
        if not content or len(content) < self._cfg.min_content_chars:
            verbose(_LOG, "article_too_short", url=item.url, chars=len(content or ""))
            return item.with_snippet_summary()

        result = self._chat.complete_json(
            model=self._cfg.model,
            system=ENRICHMENT_SYSTEM_PROMPT,
            user=build_enrichment_prompt(item.title, content),
            max_completion_tokens=500,
        )
        if not isinstance(result, dict):
            raise ValueError("summary is not a JSON object")

        enriched = SourceItem(
            title=item.title,
            snippet=item.snippet,
            url=item.url,
            origin=item.origin,
            published_at=item.published_at,
            detailed_summary=str(result.get("summary") or "") or item.snippet,
            key_details=_str_list(result.get("keyDetails")),
            quotes=_str_list(result.get("quotes")),
            numbers=_str_list(result.get("numbers")),
        )
        verbose(
            _LOG, "article_enriched",
            url=item.url,
            details=len(enriched.key_details),
            quotes=len(enriched.quotes),
            numbers=len(enriched.numbers),
        )
        return enriched

    def enrich(self, items: Sequence[SourceItem]) -> List[SourceItem]:
        if self._chat is None:
            warn(_LOG, "enrichment_skipped", reason="OPENAI_API_KEY not set")
            return [i.with_snippet_summary() for i in items]
        return super().enrich(items)
