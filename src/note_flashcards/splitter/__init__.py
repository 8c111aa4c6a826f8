"""Document splitting."""

from .document_splitter import (
    DocumentMetadata,
    extract_metadata,
    get_split_stats,
    split_document,
)

__all__ = ["DocumentMetadata", "extract_metadata", "get_split_stats", "split_document"]
