"""Compile a Markdown corpus into immutable, paginated JSON artifacts."""

from .build import BuildOrchestrator, BuildReport, BuildState, build
from .config import BuildConfig, SiteInfo, load_config
from .errors import ShardpressError
from .models import Diagnostic, Document, DocumentSummary, Node, Reason
from .parser import parse_document

__all__ = [
    "BuildConfig",
    "BuildOrchestrator",
    "BuildReport",
    "BuildState",
    "Diagnostic",
    "Document",
    "DocumentSummary",
    "Node",
    "Reason",
    "ShardpressError",
    "SiteInfo",
    "build",
    "load_config",
    "parse_document",
]

__version__ = "0.1.0"
