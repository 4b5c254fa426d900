"""BibTeX export for Zotero, Mendeley and LaTeX."""

from __future__ import annotations

import re

from .models import Article

_NON_ALPHA = re.compile(r"[^a-z]")


def cite_key(article: Article) -> str:
    """``<first author surname><year><first title word>``, lowercase."""
    first_author = article.authors[0] if article.authors else "Unknown"
    surname = (first_author.split(" ")[-1] or "unknown").lower()
    year = (article.date.split("-")[0] if article.date else "") or article.year or "0000"
    first_word = _NON_ALPHA.sub("", (article.title.split(" ")[0] if article.title else "").lower())
    return f"{surname}{year}{first_word}"


def to_bibtex(article: Article) -> str:
    """Render one article as a BibTeX ``@article`` entry."""
    year = (article.date.split("-")[0] if article.date else "") or article.year or "0000"
    abstract = " ".join(article.abstract.split("\n"))
    return (
        f"@article{{{cite_key(article)},\n"
        f"  title = {{{article.title}}},\n"
        f"  author = {{{' and '.join(article.authors)}}},\n"
        f"  year = {{{year}}},\n"
        f"  journal = {{{article.source_label}}},\n"
        f"  abstract = {{{abstract}}},\n"
        f"  note = {{Rating: {article.rating}/10. {article.notes}}}\n"
        f"}}\n"
    )


def generate_bibtex(articles: list[Article]) -> str:
    """Render *articles* as a BibTeX bibliography."""
    return "\n".join(to_bibtex(a) for a in articles)
