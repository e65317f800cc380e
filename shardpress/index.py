"""
Canonical ordering and the listing index.

Order: publish_date descending, then id ascending. This is the only order
pages are ever built from; discovery or thread completion order never leaks
into it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from .errors import ConfigError
from .models import Document, DocumentSummary

logger = logging.getLogger(__name__)

POSTS_DIR = "posts"


def detail_key(slug: str) -> str:
    return f"{POSTS_DIR}/{slug}.json"


def canonical_key(doc: Document) -> Tuple[int, str]:
    return (-doc.publish_date.toordinal(), doc.id)


def page_count_for(total: int, page_size: int) -> int:
    if page_size <= 0:
        raise ConfigError(f"page size must be a positive integer, got {page_size}")
    return (total + page_size - 1) // page_size


@dataclass(frozen=True)
class CorpusIndex:
    summaries: Tuple[DocumentSummary, ...]
    page_size: int
    page_count: int
    tags: Dict[str, Tuple[str, ...]]

    @property
    def total(self) -> int:
        return len(self.summaries)


def order_documents(documents: Iterable[Document]) -> List[Document]:
    return sorted(documents, key=canonical_key)


def build_tag_index(summaries: Iterable[DocumentSummary]) -> Dict[str, Tuple[str, ...]]:
    """
    tag -> slugs in canonical order; tags sorted lexicographically.
    """
    grouped: Dict[str, List[str]] = {}
    for s in summaries:
        for tag in s.tags:
            grouped.setdefault(tag, []).append(s.slug)
    return {tag: tuple(grouped[tag]) for tag in sorted(grouped)}


def build_index(documents: Iterable[Document], page_size: int) -> CorpusIndex:
    ordered = order_documents(documents)
    summaries = tuple(DocumentSummary.from_document(d, detail_key(d.slug)) for d in ordered)
    index = CorpusIndex(
        summaries=summaries,
        page_size=page_size,
        page_count=page_count_for(len(summaries), page_size),
        tags=build_tag_index(summaries),
    )
    logger.info("Indexed %d documents into %d pages of %d", index.total, index.page_count, page_size)
    return index
