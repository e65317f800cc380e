"""
Turn a Markdown body into a tree of Nodes.

markdown-it-py does the tokenizing: CommonMark plus tables and strikethrough,
with the mdit-py-plugins dollar-math and task-list rules. NodeBuilder folds the
flat token stream into nested Nodes with a stack of open containers. No HTML
is rendered; the client renders the tree.

- Tight list items hold their inline content directly (no paragraph node)
- Soft breaks become a space, hard breaks a newline; adjacent text is merged
- A trailing `{#id .class}` on a heading sets its anchor and classes;
  otherwise the anchor is the slugified heading text
- Code and math text is kept exactly as written
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from markdown_it import MarkdownIt
from markdown_it.token import Token
from mdit_py_plugins.dollarmath import dollarmath_plugin
from mdit_py_plugins.tasklists import tasklists_plugin

from .models import Node

RE_HEADING_ATTRS = re.compile(r"[ \t]*\{([^}]*)\}[ \t]*$")
RE_ALIGN = re.compile(r"text-align:\s*(left|center|right)")

MD = (
    MarkdownIt("commonmark", {"html": True})
    .enable(["table", "strikethrough"])
    .use(dollarmath_plugin, allow_space=False, allow_digits=False)
    .use(tasklists_plugin)
)

# opening token type -> container node kind
CONTAINERS = {
    "paragraph_open": "paragraph",
    "heading_open": "heading",
    "bullet_list_open": "list",
    "ordered_list_open": "list",
    "list_item_open": "list_item",
    "blockquote_open": "blockquote",
    "em_open": "emphasis",
    "strong_open": "strong",
    "s_open": "strikethrough",
    "link_open": "link",
    "table_open": "table",
    "thead_open": "table_head",
    "tbody_open": "table_body",
    "tr_open": "table_row",
    "th_open": "table_cell",
    "td_open": "table_cell",
}

# math token type -> display flag
MATH_TOKENS = {
    "math_inline": False,
    "math_inline_double": True,
    "math_block": True,
    "math_block_label": True,
}

TASK_CHECKBOX = "task-list-item-checkbox"


def slugify(s: str) -> str:
    s = s.strip().lower()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    s = re.sub(r"-{2,}", "-", s).strip("-")
    return s or "section"


def container_attrs(token: Token) -> Dict:
    if token.type == "heading_open":
        return {"level": int(token.tag[1:])}
    if token.type in ("bullet_list_open", "ordered_list_open"):
        attrs: Dict = {"ordered": token.type == "ordered_list_open"}
        start = token.attrGet("start")
        if start is not None:
            attrs["start"] = int(start)
        return attrs
    if token.type == "link_open":
        return {"url": str(token.attrGet("href") or ""), "title": token.attrGet("title") or None}
    if token.type in ("th_open", "td_open"):
        m = RE_ALIGN.search(str(token.attrGet("style") or ""))
        return {"align": m.group(1)} if m else {}
    return {}


def alt_text(token: Token) -> str:
    return "".join(child.content for child in token.children or ())


def heading_attributes(children: List[Node]) -> Tuple[List[Node], Optional[str], Tuple[str, ...]]:
    """
    Split a trailing `{#id .class ...}` off the heading's last text node.
    """
    if not children or children[-1].kind != "text":
        return children, None, ()
    last = children[-1].text or ""
    m = RE_HEADING_ATTRS.search(last)
    if not m:
        return children, None, ()

    anchor = None
    classes: List[str] = []
    for attr in m.group(1).split():
        if attr.startswith("#") and len(attr) > 1:
            anchor = attr[1:]
        elif attr.startswith(".") and len(attr) > 1:
            classes.append(attr[1:])

    head = children[:-1]
    remainder = last[: m.start()]
    if remainder:
        head.append(Node(kind="text", text=remainder))
    return head, anchor, tuple(classes)


@dataclass
class Frame:
    # None marks a token container with no node of its own; its children
    # are spliced into the parent
    kind: Optional[str]
    attrs: Dict
    children: List[Node] = field(default_factory=list)


class NodeBuilder:
    """Stack machine folding markdown-it tokens into a Node tree."""

    def __init__(self) -> None:
        self.stack: List[Frame] = [Frame(kind="root", attrs={})]

    def feed(self, tokens: Iterable[Token]) -> None:
        for token in tokens:
            if token.type == "inline":
                self.feed(token.children or ())
            elif token.nesting == 1:
                if not token.hidden:
                    self.stack.append(Frame(kind=CONTAINERS.get(token.type), attrs=container_attrs(token)))
            elif token.nesting == -1:
                if not token.hidden:
                    self.close()
            else:
                self.leaf(token)

    def finish(self) -> Tuple[Node, ...]:
        while len(self.stack) > 1:
            self.close()
        return tuple(self.stack[0].children)

    def close(self) -> None:
        frame = self.stack.pop()
        if frame.kind is None:
            for child in frame.children:
                self.append(child)
            return

        children = frame.children
        attrs = dict(frame.attrs)
        if frame.kind == "heading":
            children, anchor, classes = heading_attributes(children)
            attrs["anchor"] = anchor or slugify("".join(c.plain_text() for c in children))
            attrs["classes"] = classes or None
        self.append(Node(kind=frame.kind, children=tuple(children), **attrs))

    def append(self, node: Node) -> None:
        siblings = self.stack[-1].children
        if node.kind == "text" and siblings:
            previous = siblings[-1]
            if previous.kind == "task_marker":
                node = Node(kind="text", text=(node.text or "").lstrip())
                if not node.text:
                    return
            elif previous.kind == "text":
                siblings[-1] = Node(kind="text", text=(previous.text or "") + (node.text or ""))
                return
        siblings.append(node)

    def leaf(self, token: Token) -> None:
        kind = token.type
        if kind == "text":
            node = Node(kind="text", text=token.content)
        elif kind == "softbreak":
            node = Node(kind="text", text=" ")
        elif kind == "hardbreak":
            node = Node(kind="text", text="\n")
        elif kind == "code_inline":
            node = Node(kind="inline_code", text=token.content)
        elif kind in ("fence", "code_block"):
            info = token.info.split()
            node = Node(kind="code", lang=info[0] if info else None, text=token.content)
        elif kind in MATH_TOKENS:
            node = Node(kind="math", display=MATH_TOKENS[kind], text=token.content.strip("\n"))
        elif kind == "html_inline" and TASK_CHECKBOX in token.content:
            node = Node(kind="task_marker", checked='checked="checked"' in token.content)
        elif kind in ("html_block", "html_inline"):
            node = Node(kind="html", text=token.content)
        elif kind == "hr":
            node = Node(kind="rule")
        elif kind == "image":
            node = Node(
                kind="image",
                url=str(token.attrGet("src") or ""),
                title=token.attrGet("title") or None,
                alt=alt_text(token),
            )
        else:
            return
        self.append(node)


def parse_body(body: str) -> Tuple[Node, ...]:
    builder = NodeBuilder()
    builder.feed(MD.parse(body))
    return builder.finish()
