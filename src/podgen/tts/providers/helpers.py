"""
Shared Plumbing for Remote Synthesis Providers.

    RemoteProvider     base class owning an httpx.Client
    fal_run            synchronous call to a fal.ai model
    replicate_run      Replicate prediction with ``Prefer: wait`` + polling
    download_audio     fetch a result URL and wrap it as an AudioBuffer
    wav_data_uri       inline reference audio for APIs that take URLs

Every transport or protocol failure is raised as SynthesisError with the
provider name attached, so the pipeline reports which provider broke.
"""
from __future__ import annotations

import base64
import os
import time
from typing import Any, Dict, List, Optional, Sequence

import httpx

from podgen.core.config import PipelineConfig
from podgen.core.errors import SynthesisError
from podgen.core.logging import debug, verbose
from podgen.core.models import AudioBuffer
from podgen.tts.container import ContainerCodec, is_container
from podgen.tts.provider import SynthesisProvider

FAL_RUN_URL = "https://fal.run"
REPLICATE_API_URL = "https://api.replicate.com/v1"

_MIME_BY_SUFFIX = {
    ".wav": "audio/wav",
    ".mp3": "audio/mpeg",
}


def credential(*names: str) -> Optional[str]:
    """First non-empty environment variable among ``names``."""
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def wav_data_uri(wav_bytes: bytes) -> str:
    return "data:audio/wav;base64," + base64.b64encode(wav_bytes).decode("ascii")


def _guess_mime(url: str, content_type: str) -> str:
    ctype = content_type.split(";")[0].strip().lower()
    if ctype.startswith("audio/"):
        return "audio/mpeg" if ctype in ("audio/mp3", "audio/mpeg") else ctype
    path = url.split("?", 1)[0].lower()
    for suffix, mime in _MIME_BY_SUFFIX.items():
        if path.endswith(suffix):
            return mime
    return "application/octet-stream"


class RemoteProvider(SynthesisProvider):
    """
    Base for providers behind an HTTP API.

    Args:
        config: Pipeline configuration (HTTP timeouts).
        options: Provider section of the synthesis settings.
        client: Optional pre-built httpx.Client (tests pass one with a
            MockTransport).
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        options: Optional[Dict[str, Any]] = None,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(config=config, options=options)
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=self.config.http.timeout_s, follow_redirects=True)
        self._codec = ContainerCodec()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _fail(self, message: str, **details: Any) -> SynthesisError:
        return SynthesisError(message, provider=self.name, details=details or None)

    def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise self._fail(f"{self.name} request failed: {e}", url=url) from e
        if resp.status_code >= 400:
            raise self._fail(
                f"{self.name} API error: {resp.status_code}",
                status=resp.status_code,
                body=resp.text[:500],
            )
        try:
            return resp.json()
        except ValueError as e:
            raise self._fail(f"{self.name} returned invalid JSON", status=resp.status_code) from e

    # ─────────────────────────────────────────────────────────────────────────
    # fal.ai
    # ─────────────────────────────────────────────────────────────────────────

    def fal_run(self, model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST to ``https://fal.run/<model>`` and return the JSON result."""
        key = credential("FAL_KEY", "FAL_API_KEY")
        if not key:
            raise self._fail("FAL_KEY must be set in environment")
        data = self._request_json(
            "POST",
            f"{FAL_RUN_URL}/{model}",
            json=payload,
            headers={"Authorization": f"Key {key}"},
        )
        if not isinstance(data, dict):
            raise self._fail("unexpected fal.ai response", response=str(data)[:200])
        return data

    def fal_audio_url(self, result: Dict[str, Any]) -> str:
        audio = result.get("audio")
        url = audio.get("url") if isinstance(audio, dict) else None
        if not url:
            raise self._fail("no audio URL in response", keys=sorted(result))
        return str(url)

    # ─────────────────────────────────────────────────────────────────────────
    # Replicate
    # ─────────────────────────────────────────────────────────────────────────

    def replicate_run(self, model: str, payload: Dict[str, Any]) -> Any:
        """
        Run a Replicate model and return its ``output``.

        The create call asks the API to hold the connection until the
        prediction finishes; unfinished predictions are polled every
        ``http.poll_interval_s`` up to ``http.max_wait_s``.
        """
        token = credential("REPLICATE_API_TOKEN")
        if not token:
            raise self._fail("REPLICATE_API_TOKEN must be set in environment")
        headers = {"Authorization": f"Bearer {token}"}

        prediction = self._request_json(
            "POST",
            f"{REPLICATE_API_URL}/models/{model}/predictions",
            json={"input": payload},
            headers={**headers, "Prefer": "wait"},
        )

        deadline = time.monotonic() + self.config.http.max_wait_s
        while prediction.get("status") not in ("succeeded", "failed", "canceled"):
            poll_url = (prediction.get("urls") or {}).get("get")
            if not poll_url:
                raise self._fail("prediction has no poll URL", id=prediction.get("id"))
            if time.monotonic() > deadline:
                raise self._fail("prediction timed out", id=prediction.get("id"))
            time.sleep(self.config.http.poll_interval_s)
            prediction = self._request_json("GET", poll_url, headers=headers)
            debug(self.logger, "replicate_poll", id=prediction.get("id"), status=prediction.get("status"))

        if prediction["status"] != "succeeded":
            raise self._fail(
                f"prediction {prediction['status']}",
                id=prediction.get("id"),
                error=str(prediction.get("error"))[:500],
            )
        return prediction.get("output")

    # ─────────────────────────────────────────────────────────────────────────
    # Results
    # ─────────────────────────────────────────────────────────────────────────

    def download_audio(self, url: str) -> AudioBuffer:
        """
        Fetch a result file.

        WAV files are decoded to raw samples; anything else (MP3) is kept
        as an opaque encoded buffer.
        """
        try:
            resp = self._client.get(url)
        except httpx.HTTPError as e:
            raise self._fail(f"audio download failed: {e}", url=url) from e
        if resp.status_code >= 400:
            raise self._fail(f"audio download failed: {resp.status_code}", url=url, status=resp.status_code)

        data = resp.content
        if not data:
            raise self._fail("empty audio download", url=url)
        verbose(self.logger, "audio_downloaded", bytes=len(data))

        if is_container(data):
            return self._codec.decode(data)
        return AudioBuffer(payload=data, format=None, mime_type=_guess_mime(url, resp.headers.get("content-type", "")))

    def presets_for(self, speakers: Sequence[str]) -> List[Optional[str]]:
        """
        Voice preset per speaker from ``options.presets``.

        Speakers without a preset reuse the voice two places before them,
        so a four-host roster alternates the two configured voices.
        """
        presets: Dict[str, str] = dict(self.options.get("presets") or {})
        configured = list(presets.values())
        out: List[Optional[str]] = []
        for i, speaker in enumerate(speakers):
            preset = presets.get(speaker)
            if preset is None:
                if i >= 2:
                    preset = out[i - 2]
                elif configured:
                    preset = configured[i % len(configured)]
            out.append(preset)
        return out
