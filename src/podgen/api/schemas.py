"""
API Request/Response Schemas.

Pydantic models for the episode endpoints. Content limits are enforced
by services/validators.py so that violations are reported as
INVALID_INPUT (400) like every other input error.

Example Request:
    {
        "topics": ["AI", "space exploration"],
        "custom_inputs": [{"kind": "url", "value": "https://example.com/story"}],
        "speakers": ["alex", "jordan"]
    }
"""
from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class CustomInputModel(BaseModel):
    kind: str = Field(..., description="'url' or 'prompt'")
    value: str


class EpisodeRequest(BaseModel):
    """
    Attributes:
        topics: Search topics (up to 5 together with custom_inputs).
        custom_inputs: URLs to include directly or prompts to search for.
        speakers: Ordered roster of 1-4 speaker ids. None uses
            ``podcast.speakers`` from settings.
    """
    topics: List[str] = Field(default_factory=list)
    custom_inputs: List[CustomInputModel] = Field(default_factory=list)
    speakers: Optional[List[str]] = None


class TurnModel(BaseModel):
    speaker: str
    text: str


class SourceModel(BaseModel):
    title: str
    snippet: str
    url: str
    origin: str
    published_at: Optional[str] = None
    detailed_summary: Optional[str] = None
    key_details: List[str] = Field(default_factory=list)
    quotes: List[str] = Field(default_factory=list)
    numbers: List[str] = Field(default_factory=list)


class EpisodeResponse(BaseModel):
    """
    Attributes:
        episode_id: Id of the durable episode record.
        audio_b64: Base64 of the finished audio file.
        mime_type: ``audio/wav`` or ``audio/mpeg``.
        duration_seconds: Playback length (estimated for encoded audio).
        estimated_seconds: Speaking-time estimate from the word count.
        cache: Per-stage ``hit`` / ``miss``.
    """
    ok: bool = True
    episode_id: str
    audio_b64: str
    mime_type: str
    duration_seconds: float
    estimated_seconds: float
    dialogue: List[TurnModel]
    sources: List[SourceModel]
    cache: Dict[str, str]


class EpisodeRecordModel(BaseModel):
    id: str
    created_at: float
    title: str
    topics: List[str]
    roster: List[str]
    provider: str
    duration_seconds: float
    turns: int
    source_titles: List[str] = Field(default_factory=list)
    audio_key: Optional[str] = None
    mime_type: Optional[str] = None
