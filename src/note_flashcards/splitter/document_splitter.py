"""Split markdown notes into semantically bounded chunks."""

import re
from dataclasses import dataclass, field
from typing import Optional

from ..models import Chunk

MIN_CHUNK_SIZE = 200  # Chunks shorter than this get merged with their neighbour
MIN_SECTION_SIZE = 50  # Header sections shorter than this are dropped
DEFAULT_MAX_LENGTH = 500

HEADER_PATTERN = re.compile(r"^(#{1,6})\s+(.+?)\s*$", re.MULTILINE)
PARAGRAPH_PATTERN = re.compile(r"\n\s*\n+")
SENTENCE_PATTERN = re.compile(r"(?<=[。！？.?!])\s+")


@dataclass
class Section:
    """A markdown heading."""

    title: str
    level: int
    position: int


@dataclass
class DocumentMetadata:
    """Title and heading outline of a document."""

    title: Optional[str] = None
    sections: list[Section] = field(default_factory=list)


def split_document(content: str, max_length: int = DEFAULT_MAX_LENGTH) -> list[Chunk]:
    """
    Split a document into ordered chunks of at most ``max_length`` characters.

    Headers are the preferred boundaries. Documents without headers are packed
    paragraph by paragraph. Small neighbouring chunks are merged and chunks that
    are still too long are split on sentence boundaries.

    Args:
        content: Full document text (markdown)
        max_length: Target maximum characters per chunk

    Returns:
        Chunks indexed 0..n-1 in document order
    """
    if not content or not content.strip():
        return []

    if len(content) <= max_length:
        return [Chunk(index=0, content=content.strip())]

    chunks = split_by_headers(content, max_length)
    if len(chunks) > 1:
        chunks = merge_small_chunks(chunks, max_length)

    split: list[Chunk] = []
    for chunk in chunks:
        if chunk.length <= max_length:
            split.append(chunk)
        else:
            split.extend(split_long_chunk(chunk, max_length))

    return [chunk.model_copy(update={"index": i}) for i, chunk in enumerate(split)]


def split_by_headers(content: str, max_length: int = DEFAULT_MAX_LENGTH) -> list[Chunk]:
    """Split on markdown headers, falling back to paragraphs when there are none."""
    headers = list(HEADER_PATTERN.finditer(content))
    if not headers:
        return split_by_paragraphs(content, max_length)

    chunks: list[Chunk] = []

    # Text before the first heading
    preamble = content[: headers[0].start()].strip()
    if len(preamble) >= MIN_SECTION_SIZE:
        chunks.append(Chunk(index=0, content=preamble))

    for i, header in enumerate(headers):
        end = headers[i + 1].start() if i + 1 < len(headers) else len(content)
        section = content[header.end() : end].strip()
        if len(section) < MIN_SECTION_SIZE:
            continue
        chunks.append(
            Chunk(
                index=len(chunks),
                title=header.group(2).strip(),
                content=f"{header.group(0).strip()}\n\n{section}",
            )
        )

    return chunks


def split_by_paragraphs(content: str, max_length: int = DEFAULT_MAX_LENGTH) -> list[Chunk]:
    """Pack consecutive paragraphs into chunks of at most ``max_length`` characters."""
    chunks: list[Chunk] = []
    current = ""

    for paragraph in PARAGRAPH_PATTERN.split(content):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        if current and len(current) + len(paragraph) + 2 <= max_length:
            current += "\n\n" + paragraph
            continue

        if current:
            chunks.append(Chunk(index=len(chunks), content=current))
        # An over-long paragraph is split by sentence later
        current = paragraph

    if current:
        chunks.append(Chunk(index=len(chunks), content=current))

    return chunks


def merge_small_chunks(chunks: list[Chunk], max_length: int) -> list[Chunk]:
    """Merge chunks shorter than MIN_CHUNK_SIZE into their successor while they fit."""
    if len(chunks) <= 1:
        return chunks

    merged: list[Chunk] = []
    current = chunks[0]

    for following in chunks[1:]:
        fits = current.length + following.length + 2 <= max_length
        if fits and current.length < MIN_CHUNK_SIZE:
            current = current.model_copy(
                update={"content": f"{current.content}\n\n{following.content}"}
            )
        else:
            merged.append(current.model_copy(update={"index": len(merged)}))
            current = following

    merged.append(current.model_copy(update={"index": len(merged)}))
    return merged


def split_long_chunk(chunk: Chunk, max_length: int) -> list[Chunk]:
    """Split an over-long chunk on sentence boundaries, keeping its title."""
    pieces: list[Chunk] = []
    current = ""

    for sentence in SENTENCE_PATTERN.split(chunk.content):
        sentence = sentence.strip()
        if not sentence:
            continue
        if current and len(current) + 1 + len(sentence) > max_length:
            pieces.append(Chunk(index=len(pieces), title=chunk.title, content=current))
            current = sentence
        else:
            current = f"{current} {sentence}" if current else sentence

    if current:
        pieces.append(Chunk(index=len(pieces), title=chunk.title, content=current))

    return pieces


def extract_metadata(content: str) -> DocumentMetadata:
    """Extract the document title (first heading) and its heading outline."""
    metadata = DocumentMetadata()
    for position, match in enumerate(HEADER_PATTERN.finditer(content)):
        title = match.group(2).strip()
        if metadata.title is None:
            metadata.title = title
        metadata.sections.append(
            Section(title=title, level=len(match.group(1)), position=position)
        )
    return metadata


def get_split_stats(chunks: list[Chunk]) -> dict:
    """
    Get statistics about chunk sizes.

    Returns dict with total_chunks, total_length, average_length,
    min_length and max_length.
    """
    if not chunks:
        return {
            "total_chunks": 0,
            "total_length": 0,
            "average_length": 0,
            "min_length": 0,
            "max_length": 0,
        }

    lengths = [chunk.length for chunk in chunks]
    total = sum(lengths)
    return {
        "total_chunks": len(chunks),
        "total_length": total,
        "average_length": round(total / len(chunks)),
        "min_length": min(lengths),
        "max_length": max(lengths),
    }
