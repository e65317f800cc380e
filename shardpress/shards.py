"""
Partition the ordered index into fixed-size pages and describe them in a manifest.

Outputs (keys relative to the output root):
- pages/page-<n>.json, n = 1..page_count, keyed by page number only
- manifest.json

N documents with page size P give ceil(N / P) pages; every page but the last
holds exactly P entries. An empty corpus gives a manifest with zero pages and
no page files.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import SiteInfo
from .errors import ArtifactIntegrityError
from .index import CorpusIndex
from .jsonio import dump_json, load_json
from .models import DocumentSummary

logger = logging.getLogger(__name__)

PAGES_DIR = "pages"
MANIFEST_KEY = "manifest.json"


@dataclass(frozen=True)
class Shard:
    number: int
    entries: Tuple[DocumentSummary, ...]

    def to_dict(self) -> Dict:
        return {
            "page": self.number,
            "entries": [e.to_dict() for e in self.entries],
        }


def page_key(number: int) -> str:
    return f"{PAGES_DIR}/page-{number}.json"


def paginate(index: CorpusIndex) -> List[Shard]:
    size = index.page_size
    return [
        Shard(number=i + 1, entries=index.summaries[i * size:(i + 1) * size])
        for i in range(index.page_count)
    ]


def manifest_dict(index: CorpusIndex, site: SiteInfo, generated_at: Optional[str] = None) -> Dict:
    manifest: Dict = {
        "document_count": index.total,
        "page_size": index.page_size,
        "page_count": index.page_count,
        "pages": [page_key(n) for n in range(1, index.page_count + 1)],
        "tags": {tag: list(slugs) for tag, slugs in index.tags.items()},
        "site": site.to_dict(),
    }
    if generated_at:
        manifest["generated_at"] = generated_at
    return manifest


def render_pages(index: CorpusIndex) -> Dict[str, bytes]:
    shards = paginate(index)
    logger.debug("Rendering %d page shards", len(shards))
    return {page_key(s.number): dump_json(s.to_dict()) for s in shards}


def render_listing(index: CorpusIndex, site: SiteInfo, generated_at: Optional[str] = None) -> Dict[str, bytes]:
    artifacts = render_pages(index)
    artifacts[MANIFEST_KEY] = dump_json(manifest_dict(index, site, generated_at))
    return artifacts


def verify_listing(out_dir: Path, index: CorpusIndex) -> None:
    """
    Read the manifest and pages back and check they partition the index in order.
    """
    try:
        manifest = load_json(out_dir / MANIFEST_KEY)
        if manifest["document_count"] != index.total or manifest["page_count"] != index.page_count:
            raise ArtifactIntegrityError(
                f"{MANIFEST_KEY}: declares {manifest['document_count']} documents in "
                f"{manifest['page_count']} pages, expected {index.total} in {index.page_count}"
            )
        listed: List[str] = []
        for number in range(1, index.page_count + 1):
            page = load_json(out_dir / page_key(number))
            if page["page"] != number:
                raise ArtifactIntegrityError(f"{page_key(number)}: declares page {page['page']}")
            listed.extend(entry["slug"] for entry in page["entries"])
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise ArtifactIntegrityError(f"listing artifacts do not read back: {e}") from e

    if listed != [s.slug for s in index.summaries]:
        raise ArtifactIntegrityError("page entries do not partition the index in canonical order")
