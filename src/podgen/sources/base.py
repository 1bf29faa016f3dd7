"""
Collaborator Interfaces for the Text Stages.

    SourceCollector.fetch(queries)       -> List[SourceItem]
    Enricher.enrich(items)               -> List[SourceItem]  (same length/order)
    ScriptGenerator.generate(items, roster) -> List[DialogueTurn]

The pipeline only depends on these; concrete implementations live next
to this module (DataForSEO, article fetch + OpenAI, OpenAI dialogue).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from podgen.core.logging import get_logger, info, warn
from podgen.core.models import DialogueTurn, SourceItem
from podgen.utils.timeit import timeit

_LOG = get_logger("podgen.sources")


class SourceCollector(ABC):
    @abstractmethod
    def fetch(self, queries: Sequence[str]) -> List[SourceItem]:
        """
        Raises:
            ProviderError: The search backend failed.
        """


class ScriptGenerator(ABC):
    @abstractmethod
    def generate(self, items: Sequence[SourceItem], roster: Sequence[str]) -> List[DialogueTurn]:
        """
        Raises:
            ProviderError: The language model failed or returned no dialogue.
        """


class Enricher(ABC):
    """
    Adds detailed summaries to source items.

    Items are processed in batches of ``batch_size``: members of a batch
    run concurrently, batches run one after another. An item whose
    enrichment fails keeps its snippet as the summary; enrichment never
    fails as a whole.
    """

    def __init__(self, batch_size: int = 3):
        self.batch_size = max(1, int(batch_size))

    @abstractmethod
    def enrich_item(self, item: SourceItem) -> SourceItem:
        """Enrich one item. May raise; the caller falls back to the snippet."""

    def _enrich_or_fallback(self, item: SourceItem) -> SourceItem:
        try:
            return self.enrich_item(item)
        except Exception as e:
            warn(_LOG, "enrich_item_failed", url=item.url, error=str(e), error_type=type(e).__name__)
            return item.with_snippet_summary()

    def enrich(self, items: Sequence[SourceItem]) -> List[SourceItem]:
        out: List[SourceItem] = []
        with timeit("enrich") as t:
            with ThreadPoolExecutor(max_workers=self.batch_size, thread_name_prefix="podgen-enrich") as pool:
                for start in range(0, len(items), self.batch_size):
                    batch = items[start:start + self.batch_size]
                    out.extend(pool.map(self._enrich_or_fallback, batch))

        enriched = sum(1 for i in out if i.detailed_summary and i.detailed_summary != i.snippet)
        info(_LOG, "enrich_done", items=len(out), enriched=enriched, seconds=t.seconds)
        return out
