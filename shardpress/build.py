#!/usr/bin/env python3
"""
Compile a Markdown corpus into paginated JSON artifacts.

Stages: Idle -> Loading -> Indexing -> Sharding+Emitting -> Publishing -> Succeeded | Failed

Outputs (in --out-dir):
- manifest.json (counts, page keys, tag index, site metadata)
- pages/page-<n>.json (ordered document summaries)
- posts/<slug>.json (one full document per valid source)
- diagnostics.json (every rejected source and why)

Rejected documents are warnings; the build fails only on structural errors:
unreadable source root, unwritable output, artifacts that do not read back,
or an empty corpus when require_documents is set.

Notes:
- Set BUILD_TIMESTAMP_UTC to stamp the manifest; without it repeated builds
  of the same corpus are byte-identical.
- Artifacts are staged inside the output root and swapped in only after
  they verify, so a failed build leaves the previous output in place.
  Only manifest.json, diagnostics.json, pages/ and posts/ are replaced;
  anything else in the output root is left alone.
"""
from __future__ import annotations

import argparse
import logging
import os
import shutil
import tempfile
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import DEFAULT_CONFIG_NAME, BuildConfig, load_config
from .details import render_details, verify_details
from .errors import ConfigError, EmptyCorpusError, PublishError, ShardpressError
from .index import POSTS_DIR, CorpusIndex, build_index
from .jsonio import dump_json, write_artifacts
from .loader import LoadResult, discover_sources, load_documents
from .logging_setup import configure_logging
from .models import Diagnostic, diagnostics_report
from .shards import MANIFEST_KEY, PAGES_DIR, render_listing, verify_listing

logger = logging.getLogger(__name__)

DIAGNOSTICS_KEY = "diagnostics.json"

# Top-level entries of the output root that a build owns and replaces.
PUBLISHED_ENTRIES = (POSTS_DIR, PAGES_DIR, DIAGNOSTICS_KEY, MANIFEST_KEY)
STAGING_PREFIX = ".shardpress-staging-"
PREVIOUS_DIR = ".previous"


class BuildState(str, Enum):
    IDLE = "Idle"
    LOADING = "Loading"
    INDEXING = "Indexing"
    SHARDING = "Sharding+Emitting"
    PUBLISHING = "Publishing"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


@dataclass
class BuildReport:
    state: BuildState = BuildState.IDLE
    diagnostics: Tuple[Diagnostic, ...] = ()
    error: Optional[ShardpressError] = None
    source_count: int = 0
    document_count: int = 0
    page_count: int = 0
    artifact_count: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state is BuildState.SUCCEEDED

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


def swap_into_place(staging: Path, output_root: Path) -> None:
    """
    Move each published entry of staging into output_root, keeping the
    entries it replaces under staging until every move has succeeded.
    Entries the build does not own are left alone.
    """
    backup = staging / PREVIOUS_DIR
    backup.mkdir()
    moved_aside: List[str] = []
    installed: List[str] = []
    try:
        for name in PUBLISHED_ENTRIES:
            target = output_root / name
            if target.exists() or target.is_symlink():
                os.replace(target, backup / name)
                moved_aside.append(name)
            staged = staging / name
            if staged.exists():
                os.replace(staged, target)
                installed.append(name)
    except OSError:
        for name in reversed(installed):
            os.replace(output_root / name, staging / name)
        for name in reversed(moved_aside):
            os.replace(backup / name, output_root / name)
        raise


def publish(output_root: Path, artifacts: Dict[str, bytes], verify: Callable[[Path], None]) -> None:
    """
    Write artifacts to a staging directory inside output_root, verify them
    there, then rename the published entries into place.
    """
    created = not output_root.exists()
    try:
        output_root.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=output_root))
        staging.chmod(0o755)
    except OSError as e:
        raise PublishError(f"Output root is not writable: {output_root}: {e}") from e

    published = False
    try:
        write_artifacts(staging, artifacts)
        verify(staging)
        swap_into_place(staging, output_root)
        published = True
    except OSError as e:
        raise PublishError(f"Failed to publish artifacts to {output_root}: {e}") from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)
        if created and not published:
            shutil.rmtree(output_root, ignore_errors=True)


class BuildOrchestrator:
    """
    Runs one whole-corpus build. An instance runs once; a retry is a new
    instance and reprocesses everything.
    """

    def __init__(self, config: BuildConfig, sources: Optional[Sequence[Path]] = None) -> None:
        self.config = config
        self.sources = sources
        self.state = BuildState.IDLE
        self.history: List[BuildState] = [BuildState.IDLE]

    def _enter(self, state: BuildState) -> None:
        logger.debug("build state %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def _load(self) -> LoadResult:
        root = self.config.source_root
        sources = discover_sources(root) if self.sources is None else list(self.sources)
        return load_documents(sources, root, workers=self.config.workers)

    def _render(self, index: CorpusIndex, loaded: LoadResult) -> Dict[str, bytes]:
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="shardpress-emit") as executor:
            listing = executor.submit(render_listing, index, self.config.site, self.config.build_timestamp)
            details = executor.submit(render_details, loaded.documents)
            artifacts = dict(listing.result())
            artifacts.update(details.result())
        artifacts[DIAGNOSTICS_KEY] = dump_json(diagnostics_report(list(loaded.diagnostics)))
        return artifacts

    def run(self) -> BuildReport:
        if self.state is not BuildState.IDLE:
            raise RuntimeError("BuildOrchestrator.run() may only be called once")

        report = BuildReport()
        try:
            self._enter(BuildState.LOADING)
            self.config.check_layout()
            loaded = self._load()
            report.diagnostics = loaded.diagnostics
            report.source_count = loaded.source_count

            self._enter(BuildState.INDEXING)
            if not loaded.documents and self.config.require_documents:
                raise EmptyCorpusError(
                    f"No valid documents among {loaded.source_count} sources "
                    f"in {self.config.source_root} (require_documents is set)"
                )
            index = build_index(loaded.documents, self.config.page_size)
            report.document_count = index.total
            report.page_count = index.page_count

            self._enter(BuildState.SHARDING)
            artifacts = self._render(index, loaded)

            self._enter(BuildState.PUBLISHING)

            def verify(staging: Path) -> None:
                verify_listing(staging, index)
                verify_details(staging, loaded.documents)

            publish(self.config.output_root, artifacts, verify)
        except ShardpressError as e:
            logger.error("Build failed during %s: %s", self.state.value, e)
            report.error = e
            self._enter(BuildState.FAILED)
        else:
            report.artifact_count = len(artifacts)
            self._enter(BuildState.SUCCEEDED)

        report.state = self.state
        return report


def build(config: BuildConfig, sources: Optional[Sequence[Path]] = None) -> BuildReport:
    return BuildOrchestrator(config, sources=sources).run()


def print_report(report: BuildReport, output_root: Path) -> None:
    if report.diagnostics:
        print("WARNINGS:")
        for d in report.diagnostics:
            print(f"  - {d}")
        print()

    if report.error is not None:
        print("ERRORS:")
        print(f"  - {report.error}")
        if report.document_count:
            print(f"Compiled {report.document_count} docs, {report.page_count} pages; nothing was published.")
        return

    print(
        f"Built site: {report.document_count} docs, {report.page_count} pages, "
        f"{len(report.diagnostics)} rejected -> {output_root}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Compile a Markdown corpus into paginated JSON artifacts.")
    parser.add_argument("--source-root", default="posts", help="Directory of Markdown sources")
    parser.add_argument("--out-dir", default="dist/site", help="Output directory")
    parser.add_argument("--config", default=None, help=f"YAML config file (default: ./{DEFAULT_CONFIG_NAME} if present)")
    parser.add_argument("--page-size", type=int, default=None, help="Documents per page")
    parser.add_argument("--workers", type=int, default=None, help="Parser worker threads")
    parser.add_argument(
        "--require-documents",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail the build when no valid documents remain (default: from config, else off)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    config_path = Path(args.config) if args.config else None
    if config_path is None and Path(DEFAULT_CONFIG_NAME).is_file():
        config_path = Path(DEFAULT_CONFIG_NAME)

    try:
        config = load_config(Path(args.source_root), Path(args.out_dir), config_path).with_overrides(
            page_size=args.page_size,
            workers=args.workers,
            require_documents=args.require_documents,
        )
    except ConfigError as e:
        print("ERRORS:")
        print(f"  - {e}")
        return 1

    report = build(config)
    print_report(report, config.output_root)
    return report.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
