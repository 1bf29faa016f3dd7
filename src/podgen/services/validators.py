"""
Input Validation for Episode Requests.

Validation runs before any cache lookup or remote call so that bad
requests never cost anything.

Validation Rules:
    - Topics + custom inputs: 1-5 combined, each non-empty, max 200 chars
    - Custom input kind: "url" or "prompt"; URLs must be http(s) with a host
    - Speaker roster: 1-4 distinct ids matching [a-z][a-z0-9_-]*

Error Handling:
    ValidationError is an InvalidInputError (HTTP 400). ``reason`` is a
    field-specific code:
        - {FIELD}_REQUIRED: missing required field
        - {FIELD}_TOO_LONG / TOO_MANY_*: exceeds a limit
        - {FIELD}_INVALID_{REASON}: format/content invalid

Usage:
    topics = validate_topics(req.topics, req.custom_inputs)
    roster = validate_roster(req.speakers)
"""
from __future__ import annotations

import re
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from podgen.core.errors import InvalidInputError
from podgen.core.models import INPUT_KINDS, CustomInput

MAX_INPUTS = 5
MAX_INPUT_CHARS = 200
MAX_SPEAKERS = 4

_SPEAKER_ID = re.compile(r"^[a-z][a-z0-9_-]*$")


class ValidationError(InvalidInputError):
    """
    Attributes:
        reason: Machine-readable reason, e.g. ``TOPIC_TOO_LONG``.
    """

    def __init__(self, message: str, reason: str = "VALIDATION_ERROR"):
        self.reason = reason
        super().__init__(message, details={"reason": reason})


def _validate_value(value: str, field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{field.capitalize()} must not be empty", f"{field.upper()}_REQUIRED")
    if len(value) > MAX_INPUT_CHARS:
        raise ValidationError(
            f"{field.capitalize()} exceeds maximum length ({len(value)} > {MAX_INPUT_CHARS})",
            f"{field.upper()}_TOO_LONG",
        )
    return value


def validate_custom_input(item: CustomInput) -> CustomInput:
    kind = (item.kind or "").strip().lower()
    if kind not in INPUT_KINDS:
        raise ValidationError(
            f"Custom input kind must be one of {', '.join(INPUT_KINDS)}, got {item.kind!r}",
            "INPUT_INVALID_KIND",
        )
    value = _validate_value(item.value, "input")
    if kind == "url":
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValidationError(f"Not an http(s) URL: {value}", "INPUT_INVALID_URL")
    return CustomInput(kind=kind, value=value)


def validate_topics(
    topics: Sequence[str],
    custom_inputs: Sequence[CustomInput] = (),
) -> tuple[List[str], List[CustomInput]]:
    """
    Validate topics and custom inputs together.

    Returns:
        (topics, custom_inputs), stripped and normalized.

    Raises:
        ValidationError: If validation fails.
    """
    total = len(topics) + len(custom_inputs)
    if total == 0:
        raise ValidationError("At least one topic or custom input is required", "TOPICS_REQUIRED")
    if total > MAX_INPUTS:
        raise ValidationError(
            f"Maximum {MAX_INPUTS} topics and custom inputs combined (got {total})",
            "TOO_MANY_INPUTS",
        )
    return (
        [_validate_value(t, "topic") for t in topics],
        [validate_custom_input(c) for c in custom_inputs],
    )


def validate_roster(speakers: Optional[Sequence[str]], default: Sequence[str] = ("alex", "jordan")) -> List[str]:
    """
    Validate a speaker roster; None or empty falls back to ``default``.

    Raises:
        ValidationError: If validation fails.
    """
    roster = [s.strip().lower() for s in (speakers or default)]
    if not roster:
        raise ValidationError("Speaker roster is required", "SPEAKERS_REQUIRED")
    if len(roster) > MAX_SPEAKERS:
        raise ValidationError(
            f"Maximum {MAX_SPEAKERS} speakers (got {len(roster)})",
            "TOO_MANY_SPEAKERS",
        )
    for s in roster:
        if not _SPEAKER_ID.match(s):
            raise ValidationError(f"Invalid speaker id: {s!r}", "SPEAKER_INVALID_ID")
    if len(set(roster)) != len(roster):
        raise ValidationError("Speaker ids must be distinct", "SPEAKER_INVALID_DUPLICATE")
    return roster
