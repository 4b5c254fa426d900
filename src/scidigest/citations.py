"""
Soft citation links between articles.

Article references are stored as titles, not ids, and resolved against
the library when needed. Matching is approximate: a reference resolves
to the first article whose title contains it, or is contained in it,
ignoring case. Short or generic titles can therefore link to the wrong
paper; treat the result as a hint, never as an exact citation.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel

from .models import Article


class CitationLink(BaseModel):
    """A directed edge: *source_id* cites *target_id*."""

    source_id: str
    target_id: str
    reference: str


def resolve_reference(articles: Iterable[Article], reference: str) -> Optional[Article]:
    """Best-effort lookup of the article a reference title points to.

    Args:
        articles: The library to search, in priority order.
        reference: A cited title as extracted from a paper.

    Returns:
        The first matching article, or None. Blank references never match.
    """
    needle = reference.strip().lower()
    if not needle:
        return None
    for article in articles:
        title = article.title.strip().lower()
        if not title:
            continue
        if needle in title or title in needle:
            return article
    return None


def citation_links(articles: list[Article]) -> list[CitationLink]:
    """Resolve every article's references into article-to-article edges.

    Self references and duplicate edges are dropped.
    """
    links: list[CitationLink] = []
    seen: set[tuple[str, str]] = set()
    for article in articles:
        for reference in article.references or []:
            target = resolve_reference(articles, reference)
            if target is None or target.id == article.id:
                continue
            edge = (article.id, target.id)
            if edge in seen:
                continue
            seen.add(edge)
            links.append(CitationLink(source_id=article.id, target_id=target.id, reference=reference))
    return links
