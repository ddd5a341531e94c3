"""
Glossary highlighting for the document viewer.

Finds every case-insensitive occurrence of each glossary term in a page
of text, keeps a non-overlapping subset (earliest start wins), and splits
the page into plain and highlighted segments.
"""
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class GlossaryMatch:
    start: int
    end: int
    term_id: str
    term: str
    definition: str


@dataclass
class Segment:
    text: str
    term_id: Optional[str] = None
    term: Optional[str] = None
    definition: Optional[str] = None

    def to_dict(self) -> dict:
        data = {'text': self.text}
        if self.term_id is not None:
            data.update({
                'termId': self.term_id,
                'term': self.term,
                'definition': self.definition,
            })
        return data


def find_glossary_matches(text: str, terms: Sequence) -> List[GlossaryMatch]:
    """
    Locate glossary terms in text.

    Args:
        text: Page text
        terms: GlossaryTerm-like objects with id, term and display_definition

    Returns:
        Non-overlapping matches in text order. When two matches start at
        the same position, the term listed first wins.
    """
    candidates = []

    for order, term in enumerate(terms):
        if not term.term:
            continue
        # Offsets must index the original text; lower() can change its length
        for found in re.finditer(re.escape(term.term), text, flags=re.IGNORECASE):
            candidates.append((found.start(), order, GlossaryMatch(
                start=found.start(),
                end=found.end(),
                term_id=str(term.id),
                term=term.term,
                definition=term.display_definition,
            )))

    candidates.sort(key=lambda c: (c[0], c[1]))

    matches = []
    last_end = 0
    for _, _, match in candidates:
        if match.start >= last_end:
            matches.append(match)
            last_end = match.end
    return matches


def highlight_segments(text: str, terms: Sequence) -> List[Segment]:
    """Split text into segments; joining every segment's text gives back the input."""
    segments = []
    cursor = 0
    for match in find_glossary_matches(text, terms):
        if match.start > cursor:
            segments.append(Segment(text=text[cursor:match.start]))
        segments.append(Segment(
            text=text[match.start:match.end],
            term_id=match.term_id,
            term=match.term,
            definition=match.definition,
        ))
        cursor = match.end
    if cursor < len(text):
        segments.append(Segment(text=text[cursor:]))
    return segments
