"""
Canonical JSON encoding for every emitted artifact.

Same value in, same bytes out: UTF-8, two-space indent, no ASCII escaping,
trailing newline. Key order is whatever the caller built, so callers build
their dicts in a fixed order.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict


def dump_json(obj: Any) -> bytes:
    return (json.dumps(obj, indent=2, ensure_ascii=False) + "\n").encode("utf-8")


def load_json(path: Path) -> Any:
    return json.loads(path.read_text(encoding="utf-8"))


def write_artifacts(out_dir: Path, artifacts: Dict[str, bytes]) -> None:
    """
    Write {relative key: payload} under out_dir, in sorted key order.
    """
    for key in sorted(artifacts):
        path = out_dir / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(artifacts[key])
