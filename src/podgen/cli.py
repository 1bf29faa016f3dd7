"""
Command-Line Interface for podgen.

Runs the pipeline without the HTTP server, and exposes the maintenance
and dry-run tools.

Usage Examples:
    # Generate an episode
    podgen generate "AI" "space exploration" --out episode.wav

    # Add a URL source and a search prompt, three hosts
    podgen generate "climate" --url https://example.com/story \\
        --prompt "heat pumps" --speakers alex,jordan,casey

    # Show how a dialogue would be chunked for the configured provider
    podgen plan --script dialogue.json --json

    # Cache maintenance
    podgen cache stats
    podgen cache sweep

    # Registered synthesis providers
    podgen providers

Environment Variables:
    PODGEN_SETTINGS: Settings file (default config/settings.yaml)
    PODGEN_SYNTHESIS_PROVIDER: Provider override
    PODGEN_CACHE_DIR: Cache directory override
"""
from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import List, Optional

from podgen.core.config import Settings, load_settings
from podgen.core.errors import PodgenError
from podgen.core.logging import configure_logging, get_logger, info
from podgen.core.models import CustomInput
from podgen.tts.cache import CacheStore


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="podgen", description="Topics in, podcast episode out")
    parser.add_argument("--settings", default=os.getenv("PODGEN_SETTINGS", "config/settings.yaml"),
                        help="Settings YAML path")
    parser.add_argument("--provider", help="Synthesis provider override")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Run the full pipeline")
    gen.add_argument("topics", nargs="*", help="Search topics")
    gen.add_argument("--url", action="append", default=[], help="Article URL to include (repeatable)")
    gen.add_argument("--prompt", action="append", default=[], help="Extra search prompt (repeatable)")
    gen.add_argument("--speakers", help="Comma-separated roster, e.g. alex,jordan")
    gen.add_argument("--out", help="Output file (extension follows the audio type)")
    gen.add_argument("--json", action="store_true", help="Print JSON summary")

    plan = sub.add_parser("plan", help="Dry-run chunk plan for a dialogue JSON file")
    plan.add_argument("--script", required=True, help='JSON file: {"dialogue": [...]} or a list of turns')
    plan.add_argument("--speakers", help="Comma-separated roster (default: speakers in the script)")
    plan.add_argument("--json", action="store_true", help="Print JSON summary")

    cache = sub.add_parser("cache", help="Stage cache maintenance")
    cache.add_argument("action", choices=["sweep", "stats"])

    sub.add_parser("providers", help="List synthesis providers")

    return parser.parse_args(argv)


def _load(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.settings)
    if args.provider:
        settings.raw.setdefault("synthesis", {})["provider"] = args.provider
    return settings


def _roster(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [s.strip() for s in value.split(",") if s.strip()]


def _print(payload: dict, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        for k, v in payload.items():
            print(f"{k}: {v}")


# =============================================================================
# Commands
# =============================================================================

def _cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    from podgen.services.pipeline import build_pipeline
    from podgen.services.validators import validate_roster, validate_topics

    log = get_logger("podgen.cli")
    inputs = [CustomInput("url", u) for u in args.url] + [CustomInput("prompt", p) for p in args.prompt]
    try:
        topics, inputs = validate_topics(args.topics, inputs)
        roster = validate_roster(_roster(args.speakers), default=settings.default_speakers)
        pipeline = build_pipeline(settings)
        result = pipeline.run_pipeline(topics, inputs, roster)
    except PodgenError as e:
        print(json.dumps(e.to_dict(), ensure_ascii=False), file=sys.stderr)
        return 1

    out = Path(args.out or f"episode-{result.episode_id}{result.audio.extension}")
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(result.audio.data)
    info(log, "episode_written", out=str(out), bytes=len(result.audio.data))

    _print({
        "ok": True,
        "episode_id": result.episode_id,
        "out": str(out),
        "mime_type": result.audio.mime_type,
        "duration_seconds": round(result.audio.duration_seconds, 1),
        "turns": len(result.dialogue),
        "sources": len(result.sources),
        "cache": result.cache,
    }, args.json)
    return 0


def _cmd_plan(args: argparse.Namespace, settings: Settings) -> int:
    from podgen.sources.script_writer import normalize_dialogue
    from podgen.tts.provider import create_provider
    from podgen.tts.synthesis import AudioSynthesisEngine

    raw = json.loads(Path(args.script).read_text(encoding="utf-8"))
    entries = raw if isinstance(raw, list) else raw.get("dialogue", [])
    roster = _roster(args.speakers)
    if roster is None:
        roster = []
        for e in entries:
            s = str(e.get("speaker", "")).strip().lower()
            if s and s not in roster:
                roster.append(s)
    if not roster:
        roster = settings.default_speakers
    turns = normalize_dialogue(raw, roster)

    config = settings.get_pipeline_config()
    provider = create_provider(config.synthesis.provider, config=config, options=config.synthesis.options)
    try:
        chunks = AudioSynthesisEngine(provider, chunking=config.chunking).plan(turns, roster)
    finally:
        provider.close()

    payload = {
        "ok": True,
        "provider": provider.name,
        "turns": len(turns),
        "chunks": [
            {"turns": len(c.turns), "chars": c.chars, "estimated_seconds": round(c.estimated_seconds, 1)}
            for c in chunks
        ],
    }
    _print(payload, args.json)
    print("PLAN_OK")
    return 0


def _cmd_cache(args: argparse.Namespace, settings: Settings) -> int:
    config = settings.get_pipeline_config()
    store = CacheStore(config.cache.base_dir, ttl_seconds=config.cache.ttl_seconds)
    if args.action == "sweep":
        _print({"ok": True, "removed": store.sweep_expired()}, as_json=True)
    else:
        _print(store.stats(), as_json=True)
    return 0


def _cmd_providers(args: argparse.Namespace, settings: Settings) -> int:
    from podgen.tts.provider import available_providers, provider_class

    selected = settings.synthesis_provider
    for name in available_providers():
        caps = provider_class(name).capabilities
        marker = "*" if name == selected else " "
        print(
            f"{marker} {name:<22} dialect={caps.dialect.value:<14} "
            f"whole_dialogue={caps.whole_dialogue!s:<5} reference_audio={caps.reference_audio!s:<5} "
            f"max_speakers={caps.max_speakers}"
        )
    return 0


_COMMANDS = {
    "generate": _cmd_generate,
    "plan": _cmd_plan,
    "cache": _cmd_cache,
    "providers": _cmd_providers,
}


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = _parse_args(argv)
    configure_logging()
    settings = _load(args)
    return _COMMANDS[args.command](args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
