"""HTTP routes: upload, analyze, refine, generate and image retrieval."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, Request, UploadFile
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from styledna.errors import RateLimitError
from styledna.service import StyleStudio
from styledna.stores import RateLimiter
from styledna.types import GenerationSettings, PreserveMode

logger = logging.getLogger("styledna.web")

IMAGE_CACHE_CONTROL = "public, max-age=3600"

router = APIRouter(prefix="/api", tags=["styledna"])


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class AnalyzePayload(_Payload):
    """Body of ``POST /api/analyze``."""

    image_id: str = Field(alias="imageId", min_length=1)
    preserve_mode: PreserveMode = Field(default="style", alias="preserveMode")


class RefinePayload(_Payload):
    """Body of ``POST /api/refine``."""

    image_id: str = Field(alias="imageId", min_length=1)
    preserve_mode: PreserveMode = Field(default="style", alias="preserveMode")
    locked: dict[str, bool] = Field(default_factory=dict)
    current_values: dict[str, str] = Field(default_factory=dict, alias="currentValues")


class GeneratePayload(_Payload):
    """Body of ``POST /api/generate``.

    ``settings`` stays a plain mapping and is validated by
    ``GenerationSettings.from_dict`` so field errors carry ``settings.*`` paths.
    """

    image_id: str = Field(alias="imageId", min_length=1)
    preserve_mode: PreserveMode = Field(default="style", alias="preserveMode")
    values: dict[str, str] = Field(default_factory=dict)
    negative_prompt: str = Field(default="", alias="negativePrompt")
    settings: dict[str, object] = Field(default_factory=dict)


def get_studio(request: Request) -> StyleStudio:
    """Return the studio attached to the application."""
    return request.app.state.studio


def get_limiter(request: Request) -> RateLimiter:
    """Return the rate limiter attached to the application."""
    return request.app.state.limiter


def client_address(request: Request) -> str:
    """Identify the caller: first ``x-forwarded-for`` hop, then ``x-real-ip``, then the peer."""
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",", 1)[0].strip()
    if first_hop:
        return first_hop
    real_ip = request.headers.get("x-real-ip", "").strip()
    if real_ip:
        return real_ip
    if request.client is not None and request.client.host:
        return request.client.host
    return "unknown"


def enforce_rate_limit(
    limiter: Annotated[RateLimiter, Depends(get_limiter)],
    client: Annotated[str, Depends(client_address)],
) -> None:
    """Count the request against the caller's window; raise RateLimitError when exhausted."""
    decision = limiter.check_and_consume(client)
    if not decision.allowed:
        logger.info("rate limit exceeded for %s", client)
        raise RateLimitError(client, limiter.retry_after(decision))


Studio = Annotated[StyleStudio, Depends(get_studio)]
RateLimited = Depends(enforce_rate_limit)


def _degraded_fields(degraded: bool, reason: str | None) -> dict[str, object]:
    fields: dict[str, object] = {"degraded": degraded}
    if degraded:
        fields["degradedReason"] = reason
    return fields


@router.post("/upload", dependencies=[RateLimited])
def upload_image(studio: Studio, file: Annotated[UploadFile, File()]) -> JSONResponse:
    """Store an uploaded reference image."""
    # Read one byte past the limit so oversized uploads are rejected without buffering them whole.
    data = file.file.read(studio.max_upload_bytes + 1)
    stored = studio.upload(data, file.filename, file.content_type)
    return JSONResponse({"imageId": stored.id, "previewUrl": stored.url, "hash": stored.content_hash})


@router.post("/analyze", dependencies=[RateLimited])
def analyze_image(studio: Studio, payload: AnalyzePayload) -> JSONResponse:
    """Extract the style analysis of a stored image."""
    outcome = studio.analyze(payload.image_id, payload.preserve_mode)
    return JSONResponse({**outcome.value.to_dict(), **_degraded_fields(outcome.degraded, outcome.reason)})


@router.post("/refine", dependencies=[RateLimited])
def refine_analysis(studio: Studio, payload: RefinePayload) -> JSONResponse:
    """Refine the unlocked variables of a cached analysis."""
    outcome = studio.refine(payload.image_id, payload.preserve_mode, payload.locked, payload.current_values)
    return JSONResponse({**outcome.value.to_dict(), **_degraded_fields(outcome.degraded, outcome.reason)})


@router.post("/generate", dependencies=[RateLimited])
def generate_image(studio: Studio, payload: GeneratePayload) -> JSONResponse:
    """Generate a new image from the cached analysis and the edited values."""
    settings = GenerationSettings.from_dict(payload.settings)
    outcome = studio.generate(
        payload.image_id,
        payload.preserve_mode,
        payload.values,
        payload.negative_prompt,
        settings,
    )
    generated = outcome.value
    return JSONResponse(
        {
            "outputImageId": generated.image_id,
            "outputUrl": generated.url,
            "revisedPrompt": generated.revised_prompt,
            "finalPrompt": generated.final_prompt,
            "boundTemplate": generated.bound_template,
            **_degraded_fields(outcome.degraded, outcome.reason),
        }
    )


@router.get("/images/{image_id}")
def get_image(studio: Studio, image_id: str) -> Response:
    """Serve stored image bytes."""
    data, media_type = studio.image(image_id)
    return Response(content=data, media_type=media_type, headers={"Cache-Control": IMAGE_CACHE_CONTROL})
