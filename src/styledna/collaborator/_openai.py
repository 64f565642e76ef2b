"""OpenAI collaborator: chat completions for analysis, images.generate for output.

Request building (``plan_*``) and response parsing (``parse_*``) are pure
functions; ``OpenAICollaborator`` only wires them to the OpenAI SDK.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import TYPE_CHECKING

import openai

from styledna.collaborator._protocol import GeneratedArtwork
from styledna.collaborator._util import _to_dict, first_choice_content, load_json_content
from styledna.errors import CollaboratorError, ValidationError
from styledna.plan import ExcludedItem, RequestPlan
from styledna.refine import is_locked
from styledna.types import Analysis, Refinement

if TYPE_CHECKING:
    from styledna.types import GenerationSettings, PreserveMode

logger = logging.getLogger("styledna.collaborator")

DEFAULT_ANALYSIS_MODEL = "gpt-4o"
DEFAULT_IMAGE_MODEL = "dall-e-3"

SQUARE_SIZE = "1024x1024"
IMAGE_SIZES: Mapping[str, str] = {
    "1:1": SQUARE_SIZE,
    "4:5": "1024x1792",
    "16:9": "1792x1024",
}

ANALYZE_SYSTEM_PROMPT = """\
You analyze a reference image and extract its visual style DNA.
Return ONLY a JSON object with this structure:

{
  "style_dna": "compact description of the core visual style; never name living artists",
  "prompt_template": "template with placeholders such as {subject}, {palette}, {lighting}",
  "variables": [
    {
      "key": "subject",
      "label": "Subject",
      "type": "text",
      "suggestedValue": "description of the main subject",
      "lockedDefault": false,
      "confidence": 0.9
    }
  ],
  "negative_prompt": "things to avoid",
  "recommended_settings": {"aspect_ratio": "1:1", "steps": 50, "guidance": 7.5, "notes": "optional"},
  "palette": {"name": "palette name", "colors": ["#RRGGBB"]},
  "composition": {"shot_type": "close-up", "angle": "eye-level", "focal_length_guess": "50mm", "framing": "centered"},
  "warnings": []
}

Extract 6-10 editable variables (subject, scene, palette, lighting, camera, mood, details, key props).
Every variable needs a confidence between 0 and 1. Palette colors are 6-digit hex codes."""

REFINE_SYSTEM_PROMPT = """\
You refine an existing analysis of an image. Some variables are locked by the user.
Only refine UNLOCKED variables and keep locked variables exactly as they are.
Return ONLY a JSON object:

{
  "variables": [Variable objects for UNLOCKED keys only],
  "prompt_template": "updated template string"
}"""


def size_for(aspect_ratio: str) -> str:
    """Map an aspect ratio to an output size; unknown ratios fall back to square."""
    return IMAGE_SIZES.get(aspect_ratio.strip(), SQUARE_SIZE)


def _image_content(image: bytes, media_type: str) -> dict[str, object]:
    """Build an ``image_url`` content part carrying the image as a data URL."""
    encoded = base64.b64encode(image).decode("ascii")
    return {"type": "image_url", "image_url": {"url": f"data:{media_type};base64,{encoded}"}}


def plan_analyze(
    image: bytes,
    preserve_mode: PreserveMode,
    *,
    media_type: str = "image/jpeg",
    model: str = DEFAULT_ANALYSIS_MODEL,
) -> RequestPlan:
    """Build a chat.completions request that asks for a style analysis."""
    user_text = (
        f"Analyze this image and extract its style DNA. Preserve mode: {preserve_mode}. "
        "Return the JSON object as specified."
    )
    return RequestPlan(
        request={
            "model": model,
            "messages": [
                {"role": "system", "content": ANALYZE_SYSTEM_PROMPT},
                {"role": "user", "content": [{"type": "text", "text": user_text}, _image_content(image, media_type)]},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.3,
        },
        included=("system instruction", "reference image", f"preserve mode {preserve_mode}"),
    )


def locked_variables(locks: Mapping[str, bool], current_values: Mapping[str, str]) -> list[dict[str, str | None]]:
    """List locked keys with their current values, in a stable order."""
    keys = dict.fromkeys((*current_values, *locks))
    return [{"key": key, "value": current_values.get(key)} for key in keys if is_locked(key, locks)]


def plan_refine(
    image: bytes,
    preserve_mode: PreserveMode,
    locks: Mapping[str, bool],
    current_values: Mapping[str, str],
    *,
    media_type: str = "image/jpeg",
    model: str = DEFAULT_ANALYSIS_MODEL,
) -> RequestPlan:
    """Build a chat.completions request that refines unlocked variables only."""
    locked = locked_variables(locks, current_values)
    user_text = (
        f"Refine the analysis for this image. Preserve mode: {preserve_mode}.\n"
        f"Locked variables (DO NOT change these): {json.dumps(locked, ensure_ascii=False)}\n"
        f"Current values: {json.dumps(dict(current_values), ensure_ascii=False)}\n"
        "Only return variables for UNLOCKED fields."
    )
    return RequestPlan(
        request={
            "model": model,
            "messages": [
                {"role": "system", "content": REFINE_SYSTEM_PROMPT},
                {"role": "user", "content": [{"type": "text", "text": user_text}, _image_content(image, media_type)]},
            ],
            "response_format": {"type": "json_object"},
            "temperature": 0.5,
        },
        included=("system instruction", "reference image", f"{len(locked)} locked variables"),
    )


def plan_generate(
    final_prompt: str,
    negative_prompt: str,
    settings: GenerationSettings,
    *,
    model: str = DEFAULT_IMAGE_MODEL,
) -> RequestPlan:
    """Build an images.generate request for an assembled prompt."""
    excluded: list[ExcludedItem] = []
    warnings: list[str] = []

    if settings.aspect_ratio.strip() not in IMAGE_SIZES:
        warnings.append(f"aspect ratio {settings.aspect_ratio!r} is not supported; using {SQUARE_SIZE}")
    if settings.seed:
        excluded.append(
            ExcludedItem(description="seed", reason="images.generate does not support deterministic sampling seed")
        )
    if negative_prompt:
        excluded.append(
            ExcludedItem(
                description="negative_prompt",
                reason="images.generate has no negative prompt parameter; it travels in the prompt text",
            )
        )

    return RequestPlan(
        request={
            "model": model,
            "prompt": final_prompt,
            "size": size_for(settings.aspect_ratio),
            "quality": "hd" if settings.quality == "hd" else "standard",
            "n": 1,
        },
        included=("prompt", "size", "quality"),
        excluded=tuple(excluded),
        warnings=tuple(warnings),
    )


def parse_analysis(response: object) -> Analysis:
    """Parse and validate a chat completion carrying an analysis JSON object."""
    payload = load_json_content(first_choice_content(response))
    try:
        return Analysis.from_dict(payload)
    except ValidationError as exc:
        msg = f"Collaborator analysis does not match the schema: {exc}"
        raise CollaboratorError(msg, kind="malformed") from exc


def parse_refinement(response: object) -> Refinement:
    """Parse and validate a chat completion carrying refined variables."""
    payload = load_json_content(first_choice_content(response))
    try:
        return Refinement.from_dict(payload)
    except ValidationError as exc:
        msg = f"Collaborator refinement does not match the schema: {exc}"
        raise CollaboratorError(msg, kind="malformed") from exc


def parse_generation(response: object) -> GeneratedArtwork:
    """Read the first image of an images.generate response."""
    data = _to_dict(response)
    items = data.get("data")
    if not isinstance(items, list) or not items:
        msg = "Failed to generate image: response has no image data."
        raise CollaboratorError(msg, kind="malformed")

    item = _to_dict(items[0])
    image_url = item.get("url") if isinstance(item.get("url"), str) and item.get("url") else None
    revised_prompt = item.get("revised_prompt") if isinstance(item.get("revised_prompt"), str) else None

    image_data: bytes | None = None
    b64_json = item.get("b64_json")
    if isinstance(b64_json, str) and b64_json:
        try:
            image_data = base64.b64decode(b64_json, validate=True)
        except (binascii.Error, ValueError) as exc:
            msg = "Failed to generate image: b64_json payload is not valid base64."
            raise CollaboratorError(msg, kind="malformed") from exc

    if image_url is None and image_data is None:
        msg = "Failed to generate image: response item has neither url nor b64_json."
        raise CollaboratorError(msg, kind="malformed")
    return GeneratedArtwork(image_url=image_url, revised_prompt=revised_prompt, image_data=image_data)


def translate_error(exc: openai.OpenAIError) -> CollaboratorError:
    """Map an OpenAI SDK exception to a typed CollaboratorError."""
    if isinstance(exc, openai.RateLimitError):
        kind = "quota"
    elif isinstance(exc, openai.APIConnectionError):
        kind = "unavailable"
    elif isinstance(exc, openai.APIStatusError):
        kind = "quota" if exc.status_code == 429 else "failed"
    elif isinstance(exc, openai.APIError):
        kind = "failed"
    else:
        # Client construction errors, e.g. a missing API key.
        kind = "unavailable"
    return CollaboratorError(str(exc) or type(exc).__name__, kind=kind)


@contextmanager
def _translated_errors(operation: str) -> Iterator[None]:
    """Re-raise OpenAI SDK errors as CollaboratorError."""
    try:
        yield
    except openai.OpenAIError as exc:
        error = translate_error(exc)
        logger.warning("openai %s failed (%s): %s", operation, error.kind, error)
        raise error from exc


class OpenAICollaborator:
    """StyleCollaborator backed by the OpenAI SDK.

    Usage::

        from openai import OpenAI
        collaborator = OpenAICollaborator(OpenAI())
        analysis = collaborator.analyze(image_bytes, "style")
    """

    def __init__(
        self,
        client: openai.OpenAI | None = None,
        *,
        api_key: str | None = None,
        analysis_model: str = DEFAULT_ANALYSIS_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
    ) -> None:
        """Initialize with an SDK client, or create one lazily from ``api_key``."""
        self._client = client
        self._api_key = api_key
        self.analysis_model = analysis_model
        self.image_model = image_model

    def _get_client(self) -> openai.OpenAI:
        """Return the SDK client, constructing it on first use."""
        if self._client is None:
            self._client = openai.OpenAI(api_key=self._api_key)
        return self._client

    def _log_plan(self, operation: str, plan: RequestPlan) -> None:
        for warning in plan.warning_messages():
            logger.info("openai %s: %s", operation, warning)

    def analyze(self, image: bytes, preserve_mode: PreserveMode, *, media_type: str = "image/jpeg") -> Analysis:
        """Ask the chat model for a style analysis of ``image``."""
        plan = plan_analyze(image, preserve_mode, media_type=media_type, model=self.analysis_model)
        with _translated_errors("analyze"):
            response = self._get_client().chat.completions.create(**plan.request)
        return parse_analysis(response)

    def refine(
        self,
        image: bytes,
        preserve_mode: PreserveMode,
        locks: Mapping[str, bool],
        current_values: Mapping[str, str],
        *,
        media_type: str = "image/jpeg",
    ) -> Refinement:
        """Ask the chat model for new suggestions for unlocked variables."""
        plan = plan_refine(
            image,
            preserve_mode,
            locks,
            current_values,
            media_type=media_type,
            model=self.analysis_model,
        )
        with _translated_errors("refine"):
            response = self._get_client().chat.completions.create(**plan.request)
        return parse_refinement(response)

    def generate(self, final_prompt: str, negative_prompt: str, settings: GenerationSettings) -> GeneratedArtwork:
        """Generate one image with the images API."""
        plan = plan_generate(final_prompt, negative_prompt, settings, model=self.image_model)
        self._log_plan("generate", plan)
        with _translated_errors("generate"):
            response = self._get_client().images.generate(**plan.request)
        return parse_generation(response)
