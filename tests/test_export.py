"""Tests for BibTeX export."""

from __future__ import annotations

from scidigest.export import cite_key, generate_bibtex, to_bibtex
from scidigest.models import Article, FeedSourceType


def _paper(**overrides) -> Article:
    fields = dict(
        title="Quantum Computing: A Gentle Introduction",
        authors=["John Smith", "Jane Doe"],
        date="2023-05-15",
        abstract="Line one.\nLine two.",
        source=FeedSourceType.NATURE,
        rating=8,
        notes="Must read.",
    )
    fields.update(overrides)
    return Article(**fields)


class TestCiteKey:
    def test_surname_year_word(self):
        assert cite_key(_paper()) == "smith2023quantum"

    def test_falls_back_to_year_field(self):
        assert cite_key(_paper(date="", year="2019")) == "smith2019quantum"

    def test_unknown_author_and_year(self):
        assert cite_key(_paper(authors=[], date="", year="")) == "unknown0000quantum"

    def test_strips_punctuation(self):
        assert cite_key(_paper(title="Deep-Learning, revisited")) == "smith2023deeplearning"


class TestBibtex:
    def test_entry_fields(self):
        entry = to_bibtex(_paper())
        assert entry.startswith("@article{smith2023quantum,\n")
        assert "  author = {John Smith and Jane Doe},\n" in entry
        assert "  year = {2023},\n" in entry
        assert "  journal = {Nature},\n" in entry
        assert "  abstract = {Line one. Line two.},\n" in entry
        assert "  note = {Rating: 8/10. Must read.}\n" in entry
        assert entry.endswith("}\n")

    def test_bibliography_joins_entries(self):
        text = generate_bibtex([_paper(), _paper(title="Another Paper")])
        assert text.count("@article{") == 2
        assert "smith2023another" in text

    def test_empty_library(self):
        assert generate_bibtex([]) == ""

    def test_free_text_source_as_journal(self):
        entry = to_bibtex(_paper(source="Academic Repository"))
        assert "  journal = {Academic Repository},\n" in entry
