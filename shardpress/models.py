"""
In-memory data model shared by every build stage.

- Document: one parsed source unit (immutable)
- DocumentSummary: listing projection of a Document
- Node: one node of the body tree; rendering is left to the client
- Diagnostic: one rejected source unit and why
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, List, Optional, Tuple


class Reason(str, Enum):
    MISSING_FIELD = "MissingField"
    INVALID_DATE = "InvalidDate"
    INVALID_FIELD = "InvalidField"
    MALFORMED_FRONT_MATTER = "MalformedFrontMatter"
    UNREADABLE_SOURCE = "UnreadableSource"
    DUPLICATE_KEY = "DuplicateKey"


@dataclass(frozen=True)
class Diagnostic:
    source: str
    reason: Reason
    message: str
    field: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "source": self.source,
            "reason": self.reason.value,
            "field": self.field,
            "message": self.message,
        }

    def __str__(self) -> str:
        return f"{self.source}: [{self.reason.value}] {self.message}"


# Optional attributes per node kind, in serialization order; children come last.
NODE_ATTRS = (
    "level", "anchor", "classes", "ordered", "start", "lang", "display", "checked",
    "align", "url", "title", "alt", "text",
)


@dataclass(frozen=True)
class Node:
    """
    One node of a document body tree.

    Containers (paragraph, heading, list, list_item, blockquote, emphasis,
    strong, strikethrough, link, table, table_head, table_body, table_row,
    table_cell) carry children. Leaves (text, inline_code, code, html, math,
    task_marker, rule, image) carry text or attributes only.
    """
    kind: str
    text: Optional[str] = None
    level: Optional[int] = None
    anchor: Optional[str] = None
    classes: Optional[Tuple[str, ...]] = None
    ordered: Optional[bool] = None
    start: Optional[int] = None
    lang: Optional[str] = None
    display: Optional[bool] = None
    checked: Optional[bool] = None
    align: Optional[str] = None
    url: Optional[str] = None
    title: Optional[str] = None
    alt: Optional[str] = None
    children: Optional[Tuple["Node", ...]] = None

    def to_dict(self) -> Dict:
        out: Dict = {"type": self.kind}
        for name in NODE_ATTRS:
            value = getattr(self, name)
            if value is None:
                continue
            out[name] = list(value) if isinstance(value, tuple) else value
        if self.children is not None:
            out["children"] = [c.to_dict() for c in self.children]
        return out

    @classmethod
    def from_dict(cls, data: Dict) -> "Node":
        kwargs = {name: data[name] for name in NODE_ATTRS if data.get(name) is not None}
        if "classes" in kwargs:
            kwargs["classes"] = tuple(kwargs["classes"])
        if "children" in data:
            kwargs["children"] = tuple(cls.from_dict(c) for c in data["children"])
        return cls(kind=data["type"], **kwargs)

    def plain_text(self) -> str:
        if self.children is None:
            return self.text or ""
        return "".join(c.plain_text() for c in self.children)


@dataclass(frozen=True)
class Document:
    id: str
    slug: str
    title: str
    publish_date: date
    tags: Tuple[str, ...] = ()
    summary: str = ""
    body: Tuple[Node, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "date": self.publish_date.isoformat(),
            "tags": list(self.tags),
            "summary": self.summary,
            "body": [b.to_dict() for b in self.body],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Document":
        return cls(
            id=data["id"],
            slug=data["slug"],
            title=data["title"],
            publish_date=date.fromisoformat(data["date"]),
            tags=tuple(data.get("tags") or ()),
            summary=data.get("summary") or "",
            body=tuple(Node.from_dict(b) for b in data.get("body") or ()),
        )


@dataclass(frozen=True)
class DocumentSummary:
    id: str
    slug: str
    title: str
    publish_date: date
    tags: Tuple[str, ...]
    summary: str
    path: str

    @classmethod
    def from_document(cls, doc: Document, path: str) -> "DocumentSummary":
        return cls(
            id=doc.id,
            slug=doc.slug,
            title=doc.title,
            publish_date=doc.publish_date,
            tags=tuple(doc.tags),
            summary=doc.summary,
            path=path,
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "date": self.publish_date.isoformat(),
            "tags": list(self.tags),
            "summary": self.summary,
            "path": self.path,
        }


def diagnostics_report(diagnostics: List[Diagnostic]) -> List[Dict]:
    return [d.to_dict() for d in diagnostics]
