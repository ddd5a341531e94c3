"""
Tests for glossary highlighting.
"""
from dataclasses import dataclass

from apps.docs.glossary import find_glossary_matches, highlight_segments


@dataclass
class Term:
    id: str
    term: str
    display_definition: str


# ============================================================================
# Matching
# ============================================================================

class TestFindGlossaryMatches:

    def test_finds_every_occurrence_case_insensitively(self):
        text = "The Lessee pays rent. The lessee keeps the LESSEE copy."
        matches = find_glossary_matches(text, [Term('1', 'lessee', 'The tenant')])

        assert [text[m.start:m.end] for m in matches] == ['Lessee', 'lessee', 'LESSEE']

    def test_matches_are_in_text_order_across_terms(self):
        text = "Indemnity and liability; liability before indemnity."
        terms = [Term('1', 'indemnity', 'd1'), Term('2', 'liability', 'd2')]

        matches = find_glossary_matches(text, terms)

        assert [m.term_id for m in matches] == ['1', '2', '2', '1']
        assert [m.start for m in matches] == sorted(m.start for m in matches)

    def test_overlapping_match_is_dropped(self):
        text = "force majeure event"
        terms = [Term('1', 'force majeure', 'd1'), Term('2', 'majeure event', 'd2')]

        matches = find_glossary_matches(text, terms)

        assert len(matches) == 1
        assert matches[0].term_id == '1'

    def test_same_start_keeps_first_listed_term(self):
        text = "Security deposit is refundable."
        terms = [Term('1', 'security', 'short'), Term('2', 'security deposit', 'long')]

        matches = find_glossary_matches(text, terms)

        assert [m.term_id for m in matches] == ['1']

    def test_offsets_survive_characters_that_grow_when_lowercased(self):
        text = "İİ: the lease is binding"
        matches = find_glossary_matches(text, [Term('1', 'lease', 'A rental contract')])

        assert [text[m.start:m.end] for m in matches] == ['lease']

    def test_regex_characters_in_terms_are_literal(self):
        text = "See clause 4.2(a) and clause 4x2(a)."
        matches = find_glossary_matches(text, [Term('1', '4.2(a)', 'd')])

        assert [text[m.start:m.end] for m in matches] == ['4.2(a)']

    def test_empty_terms_are_ignored(self):
        assert find_glossary_matches("anything", [Term('1', '', 'd')]) == []


# ============================================================================
# Segments
# ============================================================================

class TestHighlightSegments:

    def test_segments_rebuild_the_page(self):
        text = "The Licensor grants the licensee a licence."
        terms = [Term('a', 'licensor', 'Owner'), Term('b', 'licensee', 'User')]

        segments = highlight_segments(text, terms)

        assert ''.join(s.text for s in segments) == text
        highlighted = [s for s in segments if s.term_id]
        assert [s.text for s in highlighted] == ['Licensor', 'licensee']
        assert highlighted[0].definition == 'Owner'

    def test_highlighted_segment_after_dotted_capital_i(self):
        text = "İİ: the lease is binding"

        segments = highlight_segments(text, [Term('1', 'lease', 'A rental contract')])

        assert ''.join(s.text for s in segments) == text
        assert [s.text for s in segments if s.term_id] == ['lease']

    def test_plain_segment_dict_has_only_text(self):
        segments = highlight_segments("no terms here", [Term('a', 'arbitration', 'd')])

        assert [s.to_dict() for s in segments] == [{'text': 'no terms here'}]

    def test_highlighted_segment_dict(self):
        segments = highlight_segments("Arbitration", [Term('a', 'arbitration', 'Private court')])

        assert segments[0].to_dict() == {
            'text': 'Arbitration',
            'termId': 'a',
            'term': 'arbitration',
            'definition': 'Private court',
        }

    def test_empty_text(self):
        assert highlight_segments("", [Term('a', 'x', 'd')]) == []
