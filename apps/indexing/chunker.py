"""
Page-aware chunking of extracted document text.

Every chunk belongs to exactly one page so chat answers can cite it.
Chunk indices run across the whole document, and the same pages always
give the same chunks, which keeps vector ids (document id + index) stable.
"""
import re
import logging
from dataclasses import dataclass
from typing import Iterator, List, Sequence, Tuple

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1000  # characters
CHUNK_OVERLAP = 150
MIN_TAIL = 100  # shorter page remainders are folded into the previous chunk
SPLIT_WINDOW = 100

# Split points, most preferred first: paragraph, sentence or sub-clause, phrase, word
BOUNDARIES = (
    re.compile(r'\n\n'),
    re.compile(r'[.!?;]\s'),
    re.compile(r'[,:]\s'),
    re.compile(r'\s'),
)


@dataclass
class TextChunk:
    index: int
    page: int
    text: str
    start_char: int
    end_char: int


def clean_page(text: str) -> str:
    """Collapse runs of spaces and tabs, trim lines, keep single paragraph breaks."""
    text = text.replace('\r\n', '\n').replace('\r', '\n')
    text = re.sub(r'[^\S\n]+', ' ', text)
    text = '\n'.join(line.strip() for line in text.split('\n'))
    return re.sub(r'\n{3,}', '\n\n', text).strip()


def split_point(text: str, target: int) -> int:
    """Offset near target where a chunk should end."""
    if target >= len(text):
        return len(text)

    low = max(0, target - SPLIT_WINDOW // 2)
    region = text[low:target + SPLIT_WINDOW // 2]
    for pattern in BOUNDARIES:
        ends = [low + m.end() for m in pattern.finditer(region)]
        if ends:
            return min(ends, key=lambda end: abs(end - target))
    return target


def page_spans(text: str, size: int, overlap: int) -> Iterator[Tuple[int, int]]:
    start = 0
    while start < len(text):
        end = split_point(text, start + size)
        if end <= start:
            end = min(len(text), start + size)
        if len(text) - end < MIN_TAIL:
            end = len(text)
        yield start, end
        if end == len(text):
            return
        start = max(end - overlap, start + 1)


def chunk_pages(
    pages: Sequence[str],
    chunk_size: int = CHUNK_SIZE,
    chunk_overlap: int = CHUNK_OVERLAP,
) -> List[TextChunk]:
    """
    Chunk a document page by page.

    Args:
        pages: Extracted page texts, in order
        chunk_size: Target chunk length in characters
        chunk_overlap: Characters repeated at the start of the next chunk on the same page

    Returns:
        Chunks in document order. Blank pages produce none; offsets refer
        to the cleaned page text.
    """
    chunks: List[TextChunk] = []
    for page_number, raw in enumerate(pages, start=1):
        text = clean_page(raw)
        for start, end in page_spans(text, chunk_size, chunk_overlap):
            piece = text[start:end].strip()
            if piece:
                chunks.append(TextChunk(
                    index=len(chunks),
                    page=page_number,
                    text=piece,
                    start_char=start,
                    end_char=end,
                ))

    logger.debug(f"Created {len(chunks)} chunks from {len(pages)} pages")
    return chunks
