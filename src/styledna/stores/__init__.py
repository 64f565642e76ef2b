"""Ephemeral stores: TTL map, rate limiter, image blobs and analysis cache."""

from styledna.stores._analysis import DEFAULT_ANALYSIS_TTL, AnalysisCache
from styledna.stores._images import (
    DEFAULT_IMAGE_TTL,
    FileImageStore,
    ImageStore,
    InMemoryImageStore,
    StoredImage,
    content_hash,
    extension_for,
    image_id_for,
    media_type_for,
)
from styledna.stores._rate_limit import RateDecision, RateLimiter, RateWindow
from styledna.stores._ttl import CacheEntry, TTLStore, utc_now

__all__ = [
    "DEFAULT_ANALYSIS_TTL",
    "DEFAULT_IMAGE_TTL",
    "AnalysisCache",
    "CacheEntry",
    "FileImageStore",
    "ImageStore",
    "InMemoryImageStore",
    "RateDecision",
    "RateLimiter",
    "RateWindow",
    "StoredImage",
    "TTLStore",
    "content_hash",
    "extension_for",
    "image_id_for",
    "media_type_for",
    "utc_now",
]
