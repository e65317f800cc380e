from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from textwrap import dedent

from shardpress.details import decode_detail, render_details, verify_details
from shardpress.errors import ArtifactIntegrityError
from shardpress.jsonio import write_artifacts
from shardpress.parser import parse_document

SOURCE = dedent(
    """
    ---
    id: "42"
    title: "Ünïcödé & friends"
    slug: unicode
    date: 2024-02-29
    tags: [b, a]
    summary: Leap day.
    ---

    ## Section

    Text with `code`.

    ```rust
    fn main() {}
    ```

    ![alt](pic.png)

    | key | value |
    |-----|:-----:|
    | a   | 1     |

    <details><summary>More</summary></details>

    $$
    \\int_0^1 x\\,dx
    $$
    """
).lstrip()


class DetailEmitterTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.out = Path(self._tmp.name)
        self.doc = parse_document(SOURCE)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_keyed_by_slug(self) -> None:
        self.assertEqual(list(render_details([self.doc])), ["posts/unicode.json"])

    def test_round_trip_reconstructs_document(self) -> None:
        payload = render_details([self.doc])["posts/unicode.json"]
        self.assertEqual(decode_detail(payload), self.doc)

    def test_payload_is_stable_and_unescaped(self) -> None:
        first = render_details([self.doc])["posts/unicode.json"]
        second = render_details([parse_document(SOURCE)])["posts/unicode.json"]

        self.assertEqual(first, second)
        self.assertIn("Ünïcödé".encode("utf-8"), first)
        self.assertTrue(first.endswith(b"\n"))
        self.assertEqual(json.loads(first)["tags"], ["b", "a"])

    def test_table_html_and_math_nodes_serialize(self) -> None:
        body = json.loads(render_details([self.doc])["posts/unicode.json"])["body"]

        self.assertEqual([n["type"] for n in body[-3:]], ["table", "html", "math"])
        table, html, math = body[-3:]
        head_row = table["children"][0]["children"][0]
        self.assertEqual(
            head_row["children"],
            [
                {"type": "table_cell", "children": [{"type": "text", "text": "key"}]},
                {"type": "table_cell", "align": "center", "children": [{"type": "text", "text": "value"}]},
            ],
        )
        self.assertEqual(html, {"type": "html", "text": "<details><summary>More</summary></details>\n"})
        self.assertEqual(math, {"type": "math", "display": True, "text": "\\int_0^1 x\\,dx"})

    def test_nested_nodes_round_trip(self) -> None:
        doc = parse_document(
            SOURCE
            + dedent(
                """
                - [x] done *soon*
                  1. see [docs](https://example.com "Docs")
                - [ ] later

                > quoted ~~old~~ **new**
                """
            )
        )
        payload = render_details([doc])["posts/unicode.json"]
        body = json.loads(payload)["body"]

        self.assertEqual(decode_detail(payload), doc)
        items = body[-2]["children"]
        self.assertEqual(items[0]["children"][0], {"type": "task_marker", "checked": True})
        nested = items[0]["children"][-1]
        self.assertEqual((nested["type"], nested["ordered"]), ("list", True))
        link = nested["children"][0]["children"][-1]
        self.assertEqual(
            link,
            {
                "type": "link",
                "url": "https://example.com",
                "title": "Docs",
                "children": [{"type": "text", "text": "docs"}],
            },
        )
        self.assertEqual(body[-1]["type"], "blockquote")

    def test_verify_accepts_written_artifacts(self) -> None:
        write_artifacts(self.out, render_details([self.doc]))
        verify_details(self.out, [self.doc])

    def test_verify_detects_tampered_artifact(self) -> None:
        write_artifacts(self.out, render_details([self.doc]))
        path = self.out / "posts" / "unicode.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        data["title"] = "Something else"
        path.write_text(json.dumps(data), encoding="utf-8")

        with self.assertRaises(ArtifactIntegrityError):
            verify_details(self.out, [self.doc])

    def test_verify_detects_schema_violation(self) -> None:
        write_artifacts(self.out, render_details([self.doc]))
        path = self.out / "posts" / "unicode.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        data["body"].append({"type": "video", "src": "clip.mp4"})
        path.write_text(json.dumps(data), encoding="utf-8")

        with self.assertRaises(ArtifactIntegrityError) as ctx:
            verify_details(self.out, [self.doc])
        self.assertIn("schema", str(ctx.exception))

    def test_verify_detects_missing_or_truncated_artifact(self) -> None:
        with self.assertRaises(ArtifactIntegrityError):
            verify_details(self.out, [self.doc])

        (self.out / "posts").mkdir()
        (self.out / "posts" / "unicode.json").write_bytes(b'{"id": ')
        with self.assertRaises(ArtifactIntegrityError):
            verify_details(self.out, [self.doc])


if __name__ == "__main__":
    unittest.main()
