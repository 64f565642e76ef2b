"""StyleStudio: upload, analyze, refine and generate on top of the stores."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

import httpx

from styledna.collaborator import DemoCollaborator, OpenAICollaborator
from styledna.errors import CollaboratorError, NotFoundError, ValidationError
from styledna.prompt import assemble_prompt, bind
from styledna.refine import apply_refinement
from styledna.stores import AnalysisCache, FileImageStore, InMemoryImageStore, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from styledna.collaborator import GeneratedArtwork, StyleCollaborator
    from styledna.config import Settings
    from styledna.stores import ImageStore, StoredImage
    from styledna.stores._ttl import Clock
    from styledna.types import Analysis, GenerationSettings, PreserveMode

T = TypeVar("T")

logger = logging.getLogger("styledna.service")

ALLOWED_MEDIA_TYPES: frozenset[str] = frozenset({"image/png", "image/jpeg", "image/jpg", "image/webp"})
_EXTENSION_BY_MEDIA_TYPE = {"image/png": "png", "image/jpeg": "jpg", "image/jpg": "jpg", "image/webp": "webp"}
DOWNLOAD_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True, slots=True)
class Outcome(Generic[T]):
    """Result of a collaborator-backed operation.

    ``degraded`` is set when the collaborator failed and demo data was served
    instead; ``reason`` then carries the collaborator error kind.
    """

    value: T
    degraded: bool = False
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class GeneratedImage:
    """A generated image and the prompt that produced it."""

    image_id: str
    url: str
    final_prompt: str
    bound_template: str
    revised_prompt: str | None = None


class StyleStudio:
    """Coordinate the image store, analysis cache and AI collaborator.

    Each operation runs to completion on the calling thread. The
    upload → analyze → cache sequence is not atomic: a failure after analysis
    simply leaves nothing cached and the client analyzes again.
    """

    def __init__(
        self,
        *,
        images: ImageStore,
        analyses: AnalysisCache,
        collaborator: StyleCollaborator,
        fallback: StyleCollaborator | None = None,
        http_client: httpx.Client | None = None,
        max_upload_bytes: int = 10 * 1024 * 1024,
    ) -> None:
        """Initialize with stores, the primary collaborator and an optional demo fallback."""
        self.images = images
        self.analyses = analyses
        self._collaborator = collaborator
        self._fallback = fallback
        self._http_client = http_client
        self._owned_http: httpx.Client | None = None
        self._max_upload_bytes = max_upload_bytes

    @property
    def max_upload_bytes(self) -> int:
        """Return the largest accepted upload in bytes."""
        return self._max_upload_bytes

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        clock: Clock = utc_now,
        collaborator: StyleCollaborator | None = None,
        http_client: httpx.Client | None = None,
    ) -> StyleStudio:
        """Build a studio with stores and collaborators configured from ``settings``."""
        images: ImageStore
        if settings.storage_dir is not None:
            images = FileImageStore(settings.storage_dir, ttl=settings.image_ttl, clock=clock)
        else:
            images = InMemoryImageStore(ttl=settings.image_ttl, clock=clock)
        if collaborator is None:
            collaborator = OpenAICollaborator(
                api_key=settings.openai_api_key,
                analysis_model=settings.analysis_model,
                image_model=settings.image_model,
            )
        return cls(
            images=images,
            analyses=AnalysisCache(ttl=settings.analysis_ttl, clock=clock),
            collaborator=collaborator,
            fallback=DemoCollaborator() if settings.demo_fallback else None,
            http_client=http_client,
            max_upload_bytes=settings.max_upload_bytes,
        )

    def start(self) -> None:
        """Start background expiry of images and analyses."""
        self.images.start()
        self.analyses.start()

    def stop(self) -> None:
        """Stop background expiry."""
        self.images.stop()
        self.analyses.stop()

    def close(self) -> None:
        """Stop background expiry and release the HTTP client the studio created.

        An injected ``http_client`` belongs to the caller and stays open. The
        studio can be used again after ``close``; a new client is created on
        the next download.
        """
        self.stop()
        if self._owned_http is not None:
            self._owned_http.close()
            self._owned_http = None

    def _http(self) -> httpx.Client:
        if self._http_client is not None:
            return self._http_client
        if self._owned_http is None:
            self._owned_http = httpx.Client(timeout=DOWNLOAD_TIMEOUT_SECONDS)
        return self._owned_http

    def _with_fallback(
        self,
        operation: str,
        primary: Callable[[StyleCollaborator], T],
        degraded: Callable[[StyleCollaborator], T] | None = None,
    ) -> Outcome[T]:
        """Run ``primary`` and fall back to the demo collaborator on CollaboratorError."""
        try:
            return Outcome(primary(self._collaborator))
        except CollaboratorError as exc:
            if self._fallback is None:
                raise
            logger.warning("%s failed (%s: %s); serving demo data", operation, exc.kind, exc)
            run = degraded if degraded is not None else primary
            return Outcome(run(self._fallback), degraded=True, reason=exc.kind)

    def _require_image(self, image_id: str) -> bytes:
        data = self.images.retrieve(image_id)
        if data is None:
            raise NotFoundError("image", image_id)
        return data

    def _require_analysis(self, image_id: str) -> Analysis:
        analysis = self.analyses.get(image_id)
        if analysis is None:
            raise NotFoundError("analysis", image_id)
        return analysis

    def upload(self, data: bytes, filename: str | None, content_type: str | None) -> StoredImage:
        """Validate and store an uploaded image."""
        if not data:
            raise ValidationError("file", "No file provided")
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type not in ALLOWED_MEDIA_TYPES:
            raise ValidationError("file", "Invalid file type. Only PNG, JPG, and WEBP are allowed.")
        if len(data) > self._max_upload_bytes:
            limit_mib = self._max_upload_bytes // (1024 * 1024)
            raise ValidationError("file", f"File size exceeds {limit_mib}MB limit")
        name = filename if filename and "." in filename else f"upload.{_EXTENSION_BY_MEDIA_TYPE[media_type]}"
        stored = self.images.store(data, name)
        logger.info("stored upload %s (%d bytes)", stored.id, stored.size)
        return stored

    def image(self, image_id: str) -> tuple[bytes, str]:
        """Return stored image bytes and their media type."""
        return self._require_image(image_id), self.images.media_type(image_id)

    def analyze(self, image_id: str, preserve_mode: PreserveMode) -> Outcome[Analysis]:
        """Analyze a stored image and cache the result."""
        image = self._require_image(image_id)
        media_type = self.images.media_type(image_id)
        outcome = self._with_fallback(
            "analyze",
            lambda collaborator: collaborator.analyze(image, preserve_mode, media_type=media_type),
        )
        self.analyses.put(image_id, outcome.value)
        return outcome

    def refine(
        self,
        image_id: str,
        preserve_mode: PreserveMode,
        locks: Mapping[str, bool],
        current_values: Mapping[str, str],
    ) -> Outcome[Analysis]:
        """Refine unlocked variables of the cached analysis and cache the merge."""
        image = self._require_image(image_id)
        cached = self._require_analysis(image_id)
        media_type = self.images.media_type(image_id)
        outcome = self._with_fallback(
            "refine",
            lambda collaborator: collaborator.refine(
                image, preserve_mode, locks, current_values, media_type=media_type
            ),
        )
        merged = apply_refinement(cached, outcome.value, locks)
        self.analyses.put(image_id, merged)
        return Outcome(merged, degraded=outcome.degraded, reason=outcome.reason)

    def generate(
        self,
        image_id: str,
        preserve_mode: PreserveMode,
        values: Mapping[str, str],
        negative_prompt: str,
        settings: GenerationSettings,
    ) -> Outcome[GeneratedImage]:
        """Assemble the final prompt, generate an image and store the result."""
        self._require_image(image_id)
        analysis = self._require_analysis(image_id)
        bound_template = bind(analysis.prompt_template, values)
        final_prompt = assemble_prompt(analysis.style_dna, values, preserve_mode, negative_prompt)

        def _generate(collaborator: StyleCollaborator) -> GeneratedImage:
            artwork = collaborator.generate(final_prompt, negative_prompt, settings)
            stored = self.images.store(self._artwork_bytes(artwork), "generated.png")
            return GeneratedImage(
                image_id=stored.id,
                url=stored.url,
                final_prompt=final_prompt,
                bound_template=bound_template,
                revised_prompt=artwork.revised_prompt,
            )

        def _placeholder(collaborator: StyleCollaborator) -> GeneratedImage:
            artwork = collaborator.generate(final_prompt, negative_prompt, settings)
            return GeneratedImage(
                image_id=f"demo-{uuid.uuid4().hex}",
                url=artwork.image_url or "",
                final_prompt=final_prompt,
                bound_template=bound_template,
                revised_prompt=artwork.revised_prompt,
            )

        return self._with_fallback("generate", _generate, _placeholder)

    def _artwork_bytes(self, artwork: GeneratedArtwork) -> bytes:
        """Return generated image bytes, downloading them when only a URL was returned."""
        if artwork.image_data is not None:
            return artwork.image_data
        if artwork.image_url is None:
            msg = "Generated artwork has no image."
            raise CollaboratorError(msg, kind="malformed")
        try:
            response = self._http().get(artwork.image_url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            msg = f"Failed to download generated image: {exc}"
            raise CollaboratorError(msg, kind="unavailable") from exc
        return response.content
