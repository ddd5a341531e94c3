"""
Tests for page-aware chunking and page extraction.
"""
from apps.indexing.chunker import MIN_TAIL, chunk_pages, clean_page, split_point
from apps.indexing.extractor import (
    ExtractionError,
    delete_pages,
    extract_pages,
    load_pages,
    save_pages,
)

import pytest


def sentence_page(prefix: str, sentences: int = 40) -> str:
    return ' '.join(f"{prefix} clause number {i} applies to both parties." for i in range(sentences))


class TestChunkPages:

    def test_short_page_is_one_chunk(self):
        chunks = chunk_pages(["The tenant shall pay rent monthly."])

        assert len(chunks) == 1
        assert chunks[0].index == 0
        assert chunks[0].page == 1

    def test_long_page_is_split_with_stable_indices(self):
        pages = [sentence_page('Lease')]

        first = chunk_pages(pages, chunk_size=300, chunk_overlap=50)
        second = chunk_pages(pages, chunk_size=300, chunk_overlap=50)

        assert len(first) > 1
        assert [c.index for c in first] == list(range(len(first)))
        assert [c.text for c in first] == [c.text for c in second]

    def test_chunks_on_a_page_overlap(self):
        chunks = chunk_pages([sentence_page('Lease')], chunk_size=300, chunk_overlap=50)

        for previous, current in zip(chunks, chunks[1:]):
            assert current.start_char < previous.end_char

    def test_chunks_end_on_sentence_boundaries(self):
        chunks = chunk_pages([sentence_page('Lease')], chunk_size=300, chunk_overlap=0)

        assert all(c.text.endswith('.') for c in chunks)

    def test_short_remainder_is_folded_into_last_chunk(self):
        text = 'A' * 290 + ' ' + 'B' * (MIN_TAIL - 20)

        chunks = chunk_pages([text], chunk_size=300, chunk_overlap=0)

        assert len(chunks) == 1
        assert chunks[0].end_char == len(text)

    def test_chunks_carry_page_numbers(self):
        pages = ["First page text.", sentence_page('Second', 30)]

        chunks = chunk_pages(pages, chunk_size=300, chunk_overlap=50)

        assert chunks[0].page == 1
        assert {c.page for c in chunks[1:]} == {2}
        assert [c.index for c in chunks] == list(range(len(chunks)))

    def test_blank_pages_are_skipped(self):
        chunks = chunk_pages(["", "   \n\n ", "Only page three has text."])

        assert len(chunks) == 1
        assert chunks[0].page == 3
        assert chunks[0].index == 0


class TestCleaning:

    def test_clean_page_keeps_paragraphs(self):
        assert clean_page("a  b\r\n\r\n\r\n c") == "a b\n\nc"

    def test_split_point_prefers_paragraph_break(self):
        text = 'x' * 95 + '\n\n' + 'y. ' * 40

        assert split_point(text, 100) == 97

    def test_split_point_past_end(self):
        assert split_point("short", 50) == 5


class TestExtractor:

    def test_text_file_is_one_page(self, tmp_path):
        path = tmp_path / 'contract.txt'
        path.write_text("Clause 1. Payment.", encoding='utf-8')

        assert extract_pages(path) == ["Clause 1. Payment."]

    def test_form_feeds_split_pages(self, tmp_path):
        path = tmp_path / 'contract.md'
        path.write_text("# Page one\fPage two", encoding='utf-8')

        assert extract_pages(path) == ["# Page one", "Page two"]

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / 'contract.docx'
        path.write_bytes(b'PK')

        with pytest.raises(ExtractionError):
            extract_pages(path)

    def test_sidecar_round_trip_and_delete(self, tmp_path):
        save_pages('doc-1', ["one", "two"], tmp_path)

        assert load_pages('doc-1', tmp_path) == ["one", "two"]

        delete_pages('doc-1', tmp_path)
        assert load_pages('doc-1', tmp_path) is None
