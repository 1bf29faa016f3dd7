"""
Text-stage collaborators: source collection, enrichment, script writing.
"""
from podgen.sources.base import Enricher, ScriptGenerator, SourceCollector
from podgen.sources.dataforseo import DataForSEOCollector
from podgen.sources.enricher import ArticleEnricher
from podgen.sources.script_writer import OpenAIScriptWriter, normalize_dialogue

__all__ = [
    "SourceCollector",
    "Enricher",
    "ScriptGenerator",
    "DataForSEOCollector",
    "ArticleEnricher",
    "OpenAIScriptWriter",
    "normalize_dialogue",
]
