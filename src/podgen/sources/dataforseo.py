"""
DataForSEO Google News collector.

One ``serp/google/news/live/advanced`` task per query, run in parallel.
Results are flattened in query order and deduplicated by URL.

Credentials: DATAFORSEO_LOGIN, DATAFORSEO_PASSWORD.
Docs: https://docs.dataforseo.com/v3/
"""
from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

import httpx

from podgen.core.config import SourcesConfig
from podgen.core.errors import ProviderError
from podgen.core.logging import debug, get_logger, info
from podgen.core.models import SourceItem
from podgen.sources.base import SourceCollector
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.dataforseo")

DATAFORSEO_URL = "https://api.dataforseo.com/v3"
_STATUS_OK = 20000


class DataForSEOCollector(SourceCollector):
    """
    Args:
        config: Search options (results per query, language, location).
        timeout_s: Per-request timeout.
        client: Optional pre-built httpx.Client.
    """

    def __init__(
        self,
        config: Optional[SourcesConfig] = None,
        timeout_s: float = 120.0,
        client: Optional[httpx.Client] = None,
    ):
        self._cfg = config or SourcesConfig()
        self._client = client or httpx.Client(timeout=timeout_s)

    def _auth(self) -> httpx.BasicAuth:
        login = os.getenv("DATAFORSEO_LOGIN")
        password = os.getenv("DATAFORSEO_PASSWORD")
        if not login or not password:
            raise ProviderError(
                "DATAFORSEO_LOGIN and DATAFORSEO_PASSWORD must be set in environment",
                collaborator="dataforseo",
            )
        return httpx.BasicAuth(login, password)

    def fetch_one(self, query: str, auth: httpx.BasicAuth) -> List[SourceItem]:
        limit = self._cfg.results_per_topic
        body = [{
            "keyword": query,
            "language_code": self._cfg.language_code,
            "location_code": self._cfg.location_code,
            "depth": limit,
        }]

        with timeit("dataforseo_news") as t:
            try:
                resp = self._client.post(f"{DATAFORSEO_URL}/serp/google/news/live/advanced", json=body, auth=auth)
            except httpx.HTTPError as e:
                raise ProviderError(f"DataForSEO request failed: {e}", collaborator="dataforseo") from e

        if resp.status_code >= 400:
            raise ProviderError(
                f"DataForSEO API error: {resp.status_code}",
                collaborator="dataforseo",
                details={"status": resp.status_code, "query": query},
            )
        try:
            data: Dict[str, Any] = resp.json()
        except ValueError as e:
            raise ProviderError("DataForSEO returned invalid JSON", collaborator="dataforseo") from e
        if data.get("status_code") != _STATUS_OK:
            raise ProviderError(
                f"DataForSEO error: {data.get('status_message')}",
                collaborator="dataforseo",
                details={"status_code": data.get("status_code"), "query": query},
            )

        try:
            raw_items = data["tasks"][0]["result"][0].get("items") or []
        except (KeyError, IndexError, TypeError, AttributeError):
            raw_items = []

        items = [
            SourceItem(
                title=str(it.get("title") or ""),
                snippet=str(it.get("snippet") or ""),
                url=str(it.get("url") or ""),
                origin=str(it.get("source") or "Unknown"),
                published_at=it.get("timestamp"),
            )
            for it in raw_items[:limit]
            if it.get("url")
        ]
        info(_LOG, "news_fetched", query=query, items=len(items), seconds=t.seconds)
        for i, item in enumerate(items, start=1):
            debug(_LOG, "headline", n=i, title=item.title, origin=item.origin)
        return items

    def fetch(self, queries: Sequence[str]) -> List[SourceItem]:
        if not queries:
            return []
        auth = self._auth()

        with ThreadPoolExecutor(max_workers=len(queries), thread_name_prefix="podgen-news") as pool:
            results = list(pool.map(lambda q: self.fetch_one(q, auth), queries))

        seen = set()
        out: List[SourceItem] = []
        for items in results:
            for item in items:
                if item.url not in seen:
                    seen.add(item.url)
                    out.append(item)

        info(_LOG, "news_collected", queries=len(queries), unique_items=len(out))
        return out
