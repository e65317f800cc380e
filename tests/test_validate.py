from __future__ import annotations

import subprocess
import sys
import tempfile
import unittest
from datetime import date
from pathlib import Path
from textwrap import dedent

from shardpress.loader import load_corpus
from shardpress.validate import collect_warnings

REPO_ROOT = Path(__file__).resolve().parents[1]


def run_validate(source_root: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [sys.executable, "-m", "shardpress.validate", "--source-root", str(source_root)],
        cwd=str(REPO_ROOT),
        text=True,
        capture_output=True,
        check=False,
    )


class ValidateTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.source_root = Path(self._tmp.name) / "posts"
        self.source_root.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write_doc(self, relpath: str, content: str) -> Path:
        path = self.source_root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dedent(content).lstrip(), encoding="utf-8")
        return path

    def test_accepts_valid_doc(self) -> None:
        self.write_doc(
            "valid.md",
            """
            ---
            id: "2024-001"
            title: Valid post
            slug: valid-post
            date: 2024-02-10
            tags: [api, architecture]
            summary: Valid document.
            ---

            # Valid post

            This document is valid.
            """,
        )

        result = run_validate(self.source_root)

        self.assertEqual(result.returncode, 0, msg=result.stdout + result.stderr)
        self.assertIn("OK: 1 documents passed validation", result.stdout)

    def test_rejects_invalid_date(self) -> None:
        self.write_doc(
            "bad-date.md",
            """
            ---
            id: "2024-002"
            title: Bad date
            slug: bad-date
            date: 10/02/2024
            ---

            Date should fail validation.
            """,
        )

        result = run_validate(self.source_root)

        self.assertEqual(result.returncode, 1)
        self.assertIn("bad-date.md: [InvalidDate]", result.stdout)

    def test_rejects_duplicate_id(self) -> None:
        for name in ("one", "two"):
            self.write_doc(
                f"{name}.md",
                f"""
                ---
                id: "dup"
                title: {name}
                slug: {name}
                date: 2024-02-10
                ---

                Body.
                """,
            )

        result = run_validate(self.source_root)

        self.assertEqual(result.returncode, 1)
        self.assertIn("two.md: [DuplicateKey] duplicate id 'dup' also in one.md", result.stdout)

    def test_missing_source_root(self) -> None:
        result = run_validate(self.source_root / "absent")

        self.assertEqual(result.returncode, 1)
        self.assertIn("Source root is not a readable directory", result.stdout)

    def test_warns_on_future_date_and_duplicate_title(self) -> None:
        for slug, day in (("a", "2024-01-01"), ("b", "2999-01-01")):
            self.write_doc(
                f"{slug}.md",
                f"""
                ---
                id: "{slug}"
                title: Same Title
                slug: {slug}
                date: "{day}"
                ---

                Body.
                """,
            )

        warnings = collect_warnings(load_corpus(self.source_root), date(2026, 1, 1))

        self.assertEqual(
            warnings,
            [
                "b: date 2999-01-01 is in the future",
                "Duplicate title 'same title' in a, b",
            ],
        )


if __name__ == "__main__":
    unittest.main()
