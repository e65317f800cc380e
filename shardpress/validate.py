#!/usr/bin/env python3
"""
Validate Markdown sources without writing any artifacts:
- required YAML front matter and schema compliance
- valid publish dates
- unique ids and slugs

Warnings (do not affect the exit code):
- publish date in the future
- the same title on more than one document

Exit code:
- 0 if every source would be accepted by a build
- 1 if any source would be rejected, or the source root is unusable
"""
from __future__ import annotations

import argparse
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .errors import SourceRootError
from .loader import LoadResult, load_corpus
from .logging_setup import configure_logging


def collect_warnings(loaded: LoadResult, today: date) -> List[str]:
    warnings: List[str] = []
    titles: Dict[str, List[str]] = {}

    for doc in loaded.documents:
        if doc.publish_date > today:
            warnings.append(f"{doc.slug}: date {doc.publish_date.isoformat()} is in the future")
        titles.setdefault(doc.title.strip().lower(), []).append(doc.slug)

    for title_lc, slugs in titles.items():
        if len(slugs) > 1:
            warnings.append(f"Duplicate title '{title_lc}' in {', '.join(slugs)}")
    return warnings


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Validate Markdown sources without building.")
    parser.add_argument("--source-root", default="posts", help="Directory of Markdown sources")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    try:
        loaded = load_corpus(Path(args.source_root))
    except SourceRootError as e:
        print("ERRORS:")
        print(f"  - {e}")
        return 1

    warnings = collect_warnings(loaded, date.today())
    if warnings:
        print("WARNINGS:")
        for w in warnings:
            print(f"  - {w}")
        print()

    if loaded.diagnostics:
        print("ERRORS:")
        for d in loaded.diagnostics:
            print(f"  - {d}")
        return 1

    print(f"OK: {len(loaded.documents)} documents passed validation")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
