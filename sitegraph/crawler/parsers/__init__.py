"""Parser package exports."""

from .links import ExtractedLink, LinkExtractor, LinkExtractorConfig
from .metadata import extract_metadata, strip_tags

__all__ = [
    "ExtractedLink",
    "LinkExtractor",
    "LinkExtractorConfig",
    "extract_metadata",
    "strip_tags",
]
