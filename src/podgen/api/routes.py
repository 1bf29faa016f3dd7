"""
Episode API Routes.

Endpoints:
    POST /v1/episodes        - Run the pipeline, return audio + script as JSON
    GET  /v1/episodes        - Recent episode records
    GET  /v1/episodes/{id}   - One episode record
    GET  /v1/episodes/{id}/audio - Audio of a past episode (404 once expired)
    GET  /v1/sources         - Source preview for comma-separated topics
    GET  /health             - Provider and cache status

Error Handling:
    Errors are JSON in the PodgenError format:
    {
        "ok": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>",
        "details": {"stage": "collecting_sources", ...}
    }

    HTTP status codes come from the error code:
        - INVALID_INPUT -> 400
        - EMPTY_RESULT -> 404
        - PROVIDER_FAILED / SYNTHESIS_FAILED -> 503
        - FORMAT_MISMATCH -> 502
        - anything else -> 500

Example:
    curl -X POST http://localhost:8000/v1/episodes \\
        -H "Content-Type: application/json" \\
        -d '{"topics": ["AI", "space"]}'
"""
from __future__ import annotations

import base64

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from podgen import __version__
from podgen.api.dependencies import get_pipeline, get_settings
from podgen.api.schemas import EpisodeRecordModel, EpisodeRequest, EpisodeResponse, SourceModel
from podgen.core.config import Settings
from podgen.core.errors import ErrorCode, PodgenError, http_status
from podgen.core.logging import error, get_logger, get_request_id
from podgen.core.models import CustomInput
from podgen.services.pipeline import PipelineOrchestrator
from podgen.services.validators import validate_roster, validate_topics

router = APIRouter()

_LOG = get_logger("podgen.api")


def _error_response(err: PodgenError) -> JSONResponse:
    return JSONResponse(status_code=http_status(err.code), content=err.to_dict())


@router.post("/v1/episodes")
def create_episode(
    req: EpisodeRequest,
    response: Response,
    pipeline: PipelineOrchestrator = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
):
    """Generate an episode. Blocks until audio is ready."""
    try:
        topics, inputs = validate_topics(
            req.topics,
            [CustomInput(kind=c.kind, value=c.value) for c in req.custom_inputs],
        )
        roster = validate_roster(req.speakers, default=settings.default_speakers)
        result = pipeline.run_pipeline(topics, inputs, roster)
    except PodgenError as e:
        return _error_response(e)
    except Exception as e:
        error(_LOG, "unhandled_error", error=str(e), error_type=type(e).__name__)
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error": ErrorCode.INTERNAL_ERROR,
                "message": "Internal server error",
                "request_id": get_request_id(),
            },
        )

    response.headers["X-Request-Id"] = get_request_id()
    return EpisodeResponse(
        episode_id=result.episode_id,
        audio_b64=base64.b64encode(result.audio.data).decode("ascii"),
        mime_type=result.audio.mime_type,
        duration_seconds=round(result.audio.duration_seconds, 2),
        estimated_seconds=round(result.estimated_seconds, 1),
        dialogue=[t.to_dict() for t in result.dialogue],
        sources=[s.to_dict() for s in result.sources],
        cache=result.cache,
    )


@router.get("/v1/episodes")
def list_episodes(limit: int = 20, pipeline: PipelineOrchestrator = Depends(get_pipeline)):
    if pipeline.history is None:
        return {"episodes": []}
    records = pipeline.history.list(limit=max(1, min(limit, 200)))
    return {"episodes": [EpisodeRecordModel(**r.to_dict()) for r in records]}


@router.get("/v1/episodes/{episode_id}")
def get_episode(episode_id: str, pipeline: PipelineOrchestrator = Depends(get_pipeline)):
    record = pipeline.history.get(episode_id) if pipeline.history is not None else None
    if record is None:
        return JSONResponse(
            status_code=404,
            content={"ok": False, "error": "NOT_FOUND", "message": f"Episode not found: {episode_id}"},
        )
    return EpisodeRecordModel(**record.to_dict())


@router.get("/v1/episodes/{episode_id}/audio")
def get_episode_audio(episode_id: str, pipeline: PipelineOrchestrator = Depends(get_pipeline)):
    """Replay a past episode. The audio lives in the stage cache and expires with it."""
    audio = pipeline.episode_audio(episode_id)
    if audio is None:
        return JSONResponse(
            status_code=404,
            content={"ok": False, "error": "NOT_FOUND", "message": f"Episode audio not available: {episode_id}"},
        )
    return Response(content=audio.data, media_type=audio.mime_type)


@router.get("/v1/sources")
def preview_sources(topics: str = "", pipeline: PipelineOrchestrator = Depends(get_pipeline)):
    """Collected sources for ``?topics=a,b`` without generating an episode."""
    try:
        names, _ = validate_topics([t for t in topics.split(",") if t.strip()])
        items = pipeline.preview_sources(names)
    except PodgenError as e:
        return _error_response(e)
    return {
        "topics": names,
        "sources": [SourceModel(**i.to_dict()) for i in items],
        "count": len(items),
    }


@router.get("/health")
def health(pipeline: PipelineOrchestrator = Depends(get_pipeline)):
    return {
        "status": "ok",
        "version": __version__,
        "provider": pipeline.engine.provider.describe(),
        "cache": pipeline.cache.stats(),
    }
