"""
Tests for the text-stage collaborators: news collection, enrichment,
OpenAI client and dialogue normalization.
"""
import json
import threading
from unittest.mock import Mock

import httpx
import pytest
from conftest import SnippetEnricher, make_items

from podgen.core.config import EnrichmentConfig, ScriptConfig, SourcesConfig
from podgen.core.errors import ProviderError
from podgen.core.models import DialogueTurn
from podgen.sources.dataforseo import DataForSEOCollector
from podgen.sources.enricher import ArticleEnricher
from podgen.sources.openai_client import OpenAIChatClient
from podgen.sources.prompts import build_system_prompt, build_user_prompt
from podgen.sources.script_writer import OpenAIScriptWriter, normalize_dialogue


def _mock_client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def _news_response(items, status_code=20000):
    return {
        "status_code": status_code,
        "status_message": "Ok." if status_code == 20000 else "Invalid credentials",
        "tasks": [{"result": [{"items": items}]}],
    }


def _news_item(n, url=True):
    item = {"title": f"Headline {n}", "snippet": f"Snippet {n}", "source": "Wire", "timestamp": "2026-01-01"}
    if url:
        item["url"] = f"https://news.test/{n}"
    return item


class TestDataForSEO:
    @pytest.fixture(autouse=True)
    def _credentials(self, monkeypatch):
        monkeypatch.setenv("DATAFORSEO_LOGIN", "login")
        monkeypatch.setenv("DATAFORSEO_PASSWORD", "secret")

    def test_fetch_limits_and_maps_items(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=_news_response([_news_item(i) for i in range(5)]))

        collector = DataForSEOCollector(SourcesConfig(results_per_topic=3), client=_mock_client(handler))
        items = collector.fetch(["AI"])

        assert [i.title for i in items] == ["Headline 0", "Headline 1", "Headline 2"]
        assert items[0].origin == "Wire"
        assert items[0].published_at == "2026-01-01"
        assert bodies[0][0]["keyword"] == "AI"
        assert bodies[0][0]["location_code"] == 2840

    def test_dedupes_across_queries(self):
        def handler(request):
            keyword = json.loads(request.content)[0]["keyword"]
            start = 0 if keyword == "AI" else 1
            return httpx.Response(200, json=_news_response([_news_item(i) for i in range(start, start + 2)]))

        items = DataForSEOCollector(client=_mock_client(handler)).fetch(["AI", "space"])
        assert [i.url for i in items] == ["https://news.test/0", "https://news.test/1", "https://news.test/2"]

    def test_skips_items_without_url(self):
        handler = lambda r: httpx.Response(200, json=_news_response([_news_item(0, url=False), _news_item(1)]))
        items = DataForSEOCollector(client=_mock_client(handler)).fetch(["AI"])
        assert [i.title for i in items] == ["Headline 1"]

    def test_api_status_error(self):
        handler = lambda r: httpx.Response(200, json=_news_response([], status_code=40100))
        with pytest.raises(ProviderError, match="Invalid credentials"):
            DataForSEOCollector(client=_mock_client(handler)).fetch(["AI"])

    def test_missing_credentials(self, monkeypatch):
        monkeypatch.delenv("DATAFORSEO_LOGIN")
        with pytest.raises(ProviderError) as exc_info:
            DataForSEOCollector(client=_mock_client(lambda r: httpx.Response(500))).fetch(["AI"])
        assert exc_info.value.collaborator == "dataforseo"

    def test_no_queries(self):
        assert DataForSEOCollector(client=_mock_client(lambda r: httpx.Response(500))).fetch([]) == []


class TestEnricherBatches:
    def test_batch_members_run_concurrently(self):
        """Three items per batch meet at a 3-party barrier; two batches pass it in turn."""
        barrier = threading.Barrier(3, timeout=5)

        class BarrierEnricher(SnippetEnricher):
            def enrich_item(self, item):
                barrier.wait()
                return super().enrich_item(item)

        items = make_items(6)
        out = BarrierEnricher(batch_size=3).enrich(items)
        assert [i.url for i in out] == [i.url for i in items]
        assert all(i.detailed_summary == f"Summary of {i.title}" for i in out)

    def test_failed_item_keeps_snippet(self):
        items = make_items(4)
        out = SnippetEnricher(fail_urls={items[2].url}).enrich(items)

        assert len(out) == 4
        assert out[2].url == items[2].url
        assert out[2].detailed_summary == items[2].snippet
        assert out[1].detailed_summary == "Summary of Story 1"


ARTICLE_HTML = (
    "<html><head><script>var x = 1;</script></head><body><nav>Menu</nav>"
    "<p>" + "The council approved the new transit plan. " * 20 + "</p></body></html>"
)


class TestArticleEnricher:
    def _client(self):
        def handler(request):
            if "short" in str(request.url):
                return httpx.Response(200, text="<p>Too short.</p>")
            if "gone" in str(request.url):
                return httpx.Response(404)
            return httpx.Response(200, text=ARTICLE_HTML)
        return _mock_client(handler)

    def test_enriches_with_summary(self):
        chat = Mock()
        chat.complete_json.return_value = {
            "summary": "Transit plan approved.",
            "keyDetails": ["council vote"],
            "quotes": [],
            "numbers": ["20"],
        }
        enricher = ArticleEnricher(EnrichmentConfig(), client=self._client(), chat=chat)
        out = enricher.enrich(make_items(1))

        assert out[0].detailed_summary == "Transit plan approved."
        assert out[0].key_details == ["council vote"]
        assert out[0].numbers == ["20"]
        user_prompt = chat.complete_json.call_args.kwargs["user"]
        assert "transit plan" in user_prompt
        assert "var x" not in user_prompt

    def test_summarizer_failure_falls_back_to_snippet(self):
        items = make_items(3)
        chat = Mock()
        chat.complete_json.side_effect = [
            {"summary": "A"},
            ProviderError("rate limited", collaborator="openai"),
            {"summary": "C"},
        ]
        enricher = ArticleEnricher(EnrichmentConfig(batch_size=1), client=self._client(), chat=chat)
        out = enricher.enrich(items)

        assert [i.url for i in out] == [i.url for i in items]
        assert out[0].detailed_summary == "A"
        assert out[1].detailed_summary == items[1].snippet
        assert out[2].detailed_summary == "C"

    def test_short_or_missing_article_uses_snippet(self):
        chat = Mock()
        enricher = ArticleEnricher(client=self._client(), chat=chat)
        item = make_items(1)[0]
        item.url = "https://news.test/short"
        assert enricher.enrich_item(item).detailed_summary == item.snippet
        item.url = "https://news.test/gone"
        assert enricher.enrich_item(item).detailed_summary == item.snippet
        chat.complete_json.assert_not_called()

    def test_without_api_key_skips_enrichment(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        enricher = ArticleEnricher(client=self._client())
        out = enricher.enrich(make_items(2))
        assert [i.detailed_summary for i in out] == [i.snippet for i in make_items(2)]


def _chat_handler(content, status=200):
    def handler(request):
        if status != 200:
            return httpx.Response(status, text="upstream error")
        return httpx.Response(200, json={
            "choices": [{"message": {"content": content}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5},
        })
    return handler


class TestOpenAIChatClient:
    def test_parses_json_content(self):
        client = OpenAIChatClient("sk-test", client=_mock_client(_chat_handler('{"ok": true}')))
        assert client.complete_json("m", "sys", "user", 10) == {"ok": True}

    def test_error_status(self):
        client = OpenAIChatClient("sk-test", client=_mock_client(_chat_handler("", status=429)))
        with pytest.raises(ProviderError) as exc_info:
            client.complete_json("m", "sys", "user", 10)
        assert exc_info.value.details["status"] == 429

    def test_invalid_json_content(self):
        client = OpenAIChatClient("sk-test", client=_mock_client(_chat_handler("not json")))
        with pytest.raises(ProviderError, match="invalid JSON"):
            client.complete_json("m", "sys", "user", 10)


class TestNormalizeDialogue:
    def test_dict_form(self):
        raw = {"dialogue": [{"speaker": "Alex", "text": " Hi. "}, {"speaker": "jordan", "text": "Hey."}]}
        assert normalize_dialogue(raw, ["alex", "jordan"]) == [
            DialogueTurn("alex", "Hi."),
            DialogueTurn("jordan", "Hey."),
        ]

    def test_unknown_speaker_and_empty_text(self):
        raw = [{"speaker": "narrator", "text": "Welcome."}, {"speaker": "alex", "text": ""}]
        assert normalize_dialogue(raw, ["jordan", "alex"]) == [DialogueTurn("jordan", "Welcome.")]

    def test_missing_dialogue(self):
        with pytest.raises(ProviderError, match="dialogue array"):
            normalize_dialogue({"script": "..."}, ["alex"])


class TestScriptWriter:
    def test_generates_turns(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        content = json.dumps({"dialogue": [{"speaker": "alex", "text": "Welcome to the show."}]})
        writer = OpenAIScriptWriter(ScriptConfig(), client=_mock_client(_chat_handler(content)))
        assert writer.generate(make_items(2), ["alex", "jordan"]) == [DialogueTurn("alex", "Welcome to the show.")]

    def test_empty_dialogue_is_error(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        writer = OpenAIScriptWriter(client=_mock_client(_chat_handler('{"dialogue": []}')))
        with pytest.raises(ProviderError, match="empty dialogue"):
            writer.generate(make_items(1), ["alex"])

    def test_missing_api_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ProviderError, match="OPENAI_API_KEY"):
            OpenAIScriptWriter().generate(make_items(1), ["alex"])


class TestPrompts:
    def test_system_prompt_names_hosts(self):
        prompt = build_system_prompt(["alex", "jordan", "casey"])
        assert "ALEX" in prompt and "CASEY" in prompt
        assert "ADDITIONAL HOSTS" in prompt

    def test_solo_prompt(self):
        assert "SOLO EPISODE" in build_system_prompt(["riley"])
        assert "Solo host only" in build_user_prompt(make_items(1), ["riley"])

    def test_user_prompt_lists_stories(self):
        prompt = build_user_prompt(make_items(2), ["alex", "jordan"], turn_range="40-50")
        assert '1. "Story 0"' in prompt
        assert "Generate 40-50 dialogue turns" in prompt
