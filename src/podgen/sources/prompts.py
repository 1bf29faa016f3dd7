"""
Prompts for enrichment and dialogue generation.

Dialogue is always written as plain text: every synthesis model we use
either reads bracketed tags aloud or has them stripped before synthesis,
so the writer conveys delivery through wording and punctuation alone.
"""
from __future__ import annotations

from typing import Dict, Sequence

from podgen.core.models import SourceItem

PODCAST_NAME = "The Daily Pulse"

HOST_PERSONAS: Dict[str, Dict[str, str]] = {
    "alex": {
        "name": "Alex",
        "role": "The Enthusiast",
        "personality": (
            "Curious tech optimist who gets excited about implications. Asks 'what if' "
            "questions, reaches for analogies, sometimes gets carried away and needs grounding."
        ),
    },
    "jordan": {
        "name": "Jordan",
        "role": "The Skeptic",
        "personality": (
            "Analytical journalist who plays devil's advocate. Asks 'who benefits?', questions "
            "hype, dry humor, pushes back but respects a good argument."
        ),
    },
    "casey": {
        "name": "Casey",
        "role": "The Connector",
        "personality": (
            "Links stories together and zooms out to the bigger picture. Keeps the conversation "
            "moving and clarifies context."
        ),
    },
    "riley": {
        "name": "Riley",
        "role": "The Culture Lens",
        "personality": (
            "Brings human impact and cultural context: sentiment, ethics, lived experience. "
            "Warm, but willing to challenge assumptions."
        ),
    },
}

ENRICHMENT_SYSTEM_PROMPT = """You extract key information from news articles for podcast discussion. Be concise but keep the details that make for good conversation.

Output JSON with:
- summary: 2-3 sentence summary with the most newsworthy facts
- keyDetails: array of 3-5 specific details (names, places, facts)
- quotes: array of 1-2 notable quotes from the article (if any)
- numbers: array of specific numbers or statistics mentioned

Favor details that spark discussion: surprises, controversies, implications, who is involved."""


def build_enrichment_prompt(title: str, content: str) -> str:
    return f'Article title: "{title}"\n\nArticle content:\n{content}'


def persona(speaker: str) -> Dict[str, str]:
    """Persona for a roster id; unknown ids get a neutral co-host."""
    return HOST_PERSONAS.get(speaker, {
        "name": speaker.capitalize(),
        "role": "The Co-Host",
        "personality": "Engaged, curious co-host who reacts honestly and asks follow-ups.",
    })


def _host_lines(roster: Sequence[str]) -> str:
    lines = []
    for speaker in roster:
        p = persona(speaker)
        lines.append(f"- {p['name'].upper()} ({p['role']}): {p['personality']}")
    return "\n".join(lines)


def build_system_prompt(roster: Sequence[str]) -> str:
    """System prompt naming the hosts in ``roster``."""
    hosts = _host_lines(roster)
    first = roster[0] if roster else "alex"
    names = ", ".join(persona(s)["name"] for s in roster)

    prompt = f"""You are writing a script for "{PODCAST_NAME}", a conversational news podcast that sounds unscripted.

THE HOSTS:
{hosts}

FORMAT:
The script is synthesized by a content-aware voice model. It infers delivery from the words themselves.
Do NOT use bracketed tags like [laughs] or [pause], and no (parenthetical stage directions); they would be read aloud.
Convey emotion with punctuation (ellipses, dashes, exclamation marks), filler words, false starts,
repeated words for emphasis, and CAPS on key words.

VARIETY:
- Mix one-word reactions ("Huh." "Wait, what?") with longer rambling turns.
- Short acknowledgments are their own turns ("Mmhmm." "Right, right.").
- Let one host run for a few turns, then flip.

CONTENT:
- Open with a brief, natural intro where a host greets listeners and names {names}.
- For each story, first explain what happened, then react and analyze: what it means, who wins, who loses.
- Include genuine disagreement and friendly banter.
- Connect stories when you can; any order is fine.
- End with a quick sign-off.

OUTPUT FORMAT:
{{"dialogue": [{{"speaker": "{first}", "text": "..."}}, ...]}}
Speaker values must be one of: {", ".join(roster)}."""

    if len(roster) == 1:
        prompt += f"""

SOLO EPISODE:
Every turn has "speaker": "{first}". No other hosts are mentioned; keep it a single-host monologue with occasional self-checks."""
    elif len(roster) > 2:
        prompt += """

ADDITIONAL HOSTS:
Use ALL hosts throughout the dialogue and rotate naturally; avoid long monologues by a single host."""
    return prompt


def build_user_prompt(items: Sequence[SourceItem], roster: Sequence[str], turn_range: str = "80-100") -> str:
    """User prompt listing the stories and the turn budget."""
    names = [persona(s)["name"] for s in roster]
    if len(roster) == 1:
        mode = f'SPEAKER MODE: Solo host only. Every turn has "speaker": "{roster[0]}".'
    else:
        mode = f"SPEAKER MODE: {len(roster)} hosts ({', '.join(names)}). Use all of them and rotate naturally."

    stories = "\n\n".join(
        f'{i}. "{item.title}" ({item.origin})\n   {item.summary_text}'
        + (f"\n   Details: {'; '.join(item.key_details)}" if item.key_details else "")
        + (f"\n   Quotes: {' | '.join(item.quotes)}" if item.quotes else "")
        + (f"\n   Numbers: {', '.join(item.numbers)}" if item.numbers else "")
        for i, item in enumerate(items, start=1)
    )

    return f"""{mode}

Here are today's stories to discuss:

{stories}

REQUIREMENTS:
- Generate {turn_range} dialogue turns.
- Explain each story before discussing it; use the specific names, numbers and quotes above.
- Plain text only, no [tags].

Output the JSON object with the "dialogue" array."""
