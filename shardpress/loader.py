"""
Discover and load every source document under a source root.

- Discovery order is the sorted relative POSIX path; this order decides
  which of two duplicates wins
- Excluded: dot-prefixed paths, _drafts/**, _templates/**
- A subdirectory that cannot be listed becomes an UnreadableSource diagnostic
- Reading and parsing run on a thread pool with no shared state; each unit
  yields either a Document or a Diagnostic
- Duplicate id/slug reconciliation is one sequential pass after the pool
  finishes, over results in discovery order
"""
from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import DocumentRejected, SourceRootError
from .models import Diagnostic, Document, Reason
from .parser import parse_document

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = {"_drafts", "_templates"}


@dataclass(frozen=True)
class LoadResult:
    documents: Tuple[Document, ...]
    diagnostics: Tuple[Diagnostic, ...]
    source_count: int


# (source reference, parsed document or None, diagnostic or None)
UnitResult = Tuple[str, Optional[Document], Optional[Diagnostic]]


def source_ref(path: Path, source_root: Path) -> str:
    try:
        return path.relative_to(source_root).as_posix()
    except ValueError:
        return path.as_posix()


def iter_sources(source_root: Path) -> Iterable[Path]:
    """
    Yield source files in discovery order. A subdirectory that cannot be
    listed is yielded too, so loading reports it instead of skipping it.
    """
    try:
        with os.scandir(source_root):
            pass
    except OSError as e:
        raise SourceRootError(f"Source root is not a readable directory: {source_root}: {e}") from e

    unlistable: List[Path] = []
    candidates: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(source_root, onerror=lambda e: unlistable.append(Path(e.filename))):
        dirnames[:] = [d for d in dirnames if not d.startswith(".") and d not in EXCLUDED_DIRS]
        candidates.extend(Path(dirpath) / name for name in filenames if name.endswith(".md") and not name.startswith("."))

    if source_root in unlistable:
        raise SourceRootError(f"Cannot enumerate source root {source_root}")
    for p in unlistable:
        logger.warning("Cannot list source directory %s", p)

    yield from sorted(candidates + unlistable, key=lambda p: source_ref(p, source_root))


def discover_sources(source_root: Path) -> List[Path]:
    return list(iter_sources(source_root))


def read_source(path: Path) -> str:
    if path.is_dir():
        # only directories the walk could not list are enumerated
        with os.scandir(path):
            pass
        raise IsADirectoryError(f"Is a directory: {path}")
    return path.read_text(encoding="utf-8")


def load_unit(path: Path, source: str) -> UnitResult:
    try:
        text = read_source(path)
    except (OSError, UnicodeDecodeError) as e:
        return source, None, Diagnostic(
            source=source,
            reason=Reason.UNREADABLE_SOURCE,
            message=f"Cannot read source: {e}",
        )
    try:
        return source, parse_document(text), None
    except DocumentRejected as e:
        return source, None, e.to_diagnostic(source)


def reconcile(results: Iterable[UnitResult]) -> Tuple[List[Document], List[Diagnostic]]:
    """
    Fold per-unit results into (documents, diagnostics) in the given order.
    The first unit to claim an id or slug keeps it; later claimants are
    rejected with DuplicateKey. Slugs that differ only in case collide.
    """
    documents: List[Document] = []
    diagnostics: List[Diagnostic] = []
    seen_ids: Dict[str, str] = {}
    seen_slugs: Dict[str, str] = {}

    for source, doc, diagnostic in results:
        if doc is None:
            diagnostics.append(diagnostic)
            continue
        if doc.id in seen_ids:
            diagnostics.append(Diagnostic(
                source=source,
                reason=Reason.DUPLICATE_KEY,
                message=f"duplicate id '{doc.id}' also in {seen_ids[doc.id]}",
                field="id",
            ))
            continue
        slug_key = doc.slug.casefold()
        if slug_key in seen_slugs:
            diagnostics.append(Diagnostic(
                source=source,
                reason=Reason.DUPLICATE_KEY,
                message=f"duplicate slug '{doc.slug}' also in {seen_slugs[slug_key]}",
                field="slug",
            ))
            continue
        seen_ids[doc.id] = source
        seen_slugs[slug_key] = source
        documents.append(doc)

    return documents, diagnostics


def load_documents(
    sources: Sequence[Path],
    source_root: Path,
    *,
    workers: Optional[int] = None,
) -> LoadResult:
    """
    Parse the given sources in parallel and reconcile them in the order given.
    """
    refs = [source_ref(p, source_root) for p in sources]
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="shardpress-load") as executor:
        results = list(executor.map(load_unit, sources, refs))

    documents, diagnostics = reconcile(results)
    for d in diagnostics:
        logger.debug("rejected %s", d)
    logger.info("Loaded %d of %d source documents (%d rejected)", len(documents), len(sources), len(diagnostics))
    return LoadResult(
        documents=tuple(documents),
        diagnostics=tuple(diagnostics),
        source_count=len(sources),
    )


def load_corpus(source_root: Path, *, workers: Optional[int] = None) -> LoadResult:
    sources = discover_sources(source_root)
    logger.info("Found %d markdown files under %s", len(sources), source_root)
    return load_documents(sources, source_root, workers=workers)
