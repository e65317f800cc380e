"""
Parse one Markdown source unit into a Document.

Policies (strict):
- YAML front matter bounded by '---' lines is required at the top of the file
- Required fields: id, title, slug, date (checked in that order)
- date must be a YYYY-MM-DD calendar date
- Remaining field shapes are enforced by schema/front_matter.schema.json
- Unknown front matter keys are ignored

The body becomes a tree of Nodes (see body.py); no HTML is generated.

Every function here is pure: the same text always yields the same Document or
the same DocumentRejected.
"""
from __future__ import annotations

import json
import re
from datetime import date
from pathlib import Path
from typing import Dict, Tuple

import yaml
from jsonschema import Draft202012Validator

from .body import parse_body
from .errors import DocumentRejected
from .models import Document, Reason

RE_FRONT_MATTER = re.compile(r"\A---[ \t]*\n(.*?)\n?^---[ \t]*(?:\n|\Z)", re.DOTALL | re.MULTILINE)
RE_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
RE_SLUG = re.compile(r"[A-Za-z0-9][A-Za-z0-9_-]*")

REQUIRED_FIELDS = ("id", "title", "slug", "date")

SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "front_matter.schema.json"
FRONT_MATTER_VALIDATOR = Draft202012Validator(json.loads(SCHEMA_PATH.read_text(encoding="utf-8")))

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class FrontMatterLoader(yaml.SafeLoader):
    """SafeLoader that keeps timestamps as plain strings; dates are validated here."""


FrontMatterLoader.yaml_implicit_resolvers = {
    first: [(tag, rx) for tag, rx in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def one_line(text: str) -> str:
    return " ".join(str(text).split())


def split_front_matter(text: str) -> Tuple[Dict, str]:
    m = RE_FRONT_MATTER.match(text)
    if not m:
        raise DocumentRejected(
            Reason.MALFORMED_FRONT_MATTER,
            "Missing YAML front matter bounded by '---' at top of file.",
        )
    try:
        fm = yaml.load(m.group(1), Loader=FrontMatterLoader)
    except (yaml.YAMLError, ValueError) as e:
        raise DocumentRejected(
            Reason.MALFORMED_FRONT_MATTER, f"Invalid YAML front matter: {one_line(e)}"
        ) from e
    if fm is None:
        fm = {}
    if not isinstance(fm, dict):
        raise DocumentRejected(
            Reason.MALFORMED_FRONT_MATTER,
            f"Front matter must be a mapping, got {type(fm).__name__}.",
        )
    return fm, text[m.end():]


def parse_date(value) -> date:
    if isinstance(value, str) and RE_DATE.match(value.strip()):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            pass
    raise DocumentRejected(
        Reason.INVALID_DATE,
        f"date {value!r} is not a valid YYYY-MM-DD calendar date",
        field="date",
    )


def validate_front_matter(fm: Dict) -> None:
    missing = [name for name in REQUIRED_FIELDS if fm.get(name) is None]
    if missing:
        raise DocumentRejected(
            Reason.MISSING_FIELD,
            f"missing required field(s): {', '.join(missing)}",
            field=missing[0],
        )

    errors = sorted(FRONT_MATTER_VALIDATOR.iter_errors(fm), key=lambda e: [str(p) for p in e.path])
    if errors:
        first = errors[0]
        location = ".".join(str(p) for p in first.path) or "<root>"
        raise DocumentRejected(
            Reason.INVALID_FIELD,
            f"front matter schema error at {location}: {one_line(first.message)}",
            field=str(first.path[0]) if first.path else None,
        )
    if not RE_SLUG.fullmatch(fm["slug"]):
        raise DocumentRejected(Reason.INVALID_FIELD, f"slug {fm['slug']!r} is not URL-safe", field="slug")


def parse_document(text: str) -> Document:
    """
    Parse raw source text into a Document or raise DocumentRejected.
    """
    text = text.lstrip("\ufeff").replace("\r\n", "\n")
    fm, body = split_front_matter(text)
    validate_front_matter(fm)
    publish_date = parse_date(fm["date"])

    tags = fm.get("tags") or []
    return Document(
        id=str(fm["id"]).strip(),
        slug=fm["slug"],
        title=fm["title"].strip(),
        publish_date=publish_date,
        tags=tuple(dict.fromkeys(t.strip() for t in tags)),
        summary=(fm.get("summary") or "").strip(),
        body=parse_body(body),
    )
