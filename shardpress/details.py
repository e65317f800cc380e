"""
One detail artifact per valid document, keyed by slug: posts/<slug>.json.

Artifacts follow schema/document.schema.json. After publishing to the staging
directory every artifact is read back, validated and compared with the
Document it came from; any mismatch is an ArtifactIntegrityError.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Iterable

from jsonschema import Draft202012Validator

from .errors import ArtifactIntegrityError
from .index import detail_key
from .jsonio import dump_json
from .models import Document

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema" / "document.schema.json"
DOCUMENT_VALIDATOR = Draft202012Validator(json.loads(SCHEMA_PATH.read_text(encoding="utf-8")))


def render_detail(doc: Document) -> bytes:
    return dump_json(doc.to_dict())


def render_details(documents: Iterable[Document]) -> Dict[str, bytes]:
    artifacts: Dict[str, bytes] = {}
    for doc in documents:
        artifacts[detail_key(doc.slug)] = render_detail(doc)
    logger.debug("Rendered %d detail artifacts", len(artifacts))
    return artifacts


def decode_detail(payload: bytes) -> Document:
    """
    Rebuild a Document from detail artifact bytes, validating against the shared schema.
    """
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ArtifactIntegrityError(f"detail artifact is not valid JSON: {e}") from e
    errors = sorted(DOCUMENT_VALIDATOR.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if errors:
        first = errors[0]
        raise ArtifactIntegrityError(
            f"detail artifact schema error at {list(first.path)}: {first.message}"
        )
    return Document.from_dict(data)


def verify_details(out_dir: Path, documents: Iterable[Document]) -> None:
    for doc in documents:
        path = out_dir / detail_key(doc.slug)
        try:
            payload = path.read_bytes()
        except OSError as e:
            raise ArtifactIntegrityError(f"{detail_key(doc.slug)}: cannot read back artifact: {e}") from e
        try:
            restored = decode_detail(payload)
        except ArtifactIntegrityError as e:
            raise ArtifactIntegrityError(f"{detail_key(doc.slug)}: {e}") from e
        if restored != doc:
            raise ArtifactIntegrityError(
                f"{detail_key(doc.slug)}: artifact does not round-trip to document '{doc.id}'"
            )
