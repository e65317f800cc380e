"""
Exception taxonomy.

Per-document problems raise DocumentRejected inside the parser and are turned
into Diagnostics by the loader. Everything deriving from ShardpressError is
structural and ends the build in the Failed state.
"""
from __future__ import annotations

from typing import Optional

from .models import Diagnostic, Reason


class DocumentRejected(Exception):
    def __init__(self, reason: Reason, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.field = field

    def to_diagnostic(self, source: str) -> Diagnostic:
        return Diagnostic(source=source, reason=self.reason, message=self.message, field=self.field)


class ShardpressError(Exception):
    """Base class for build-fatal errors."""


class ConfigError(ShardpressError):
    pass


class SourceRootError(ShardpressError):
    pass


class PublishError(ShardpressError):
    pass


class EmptyCorpusError(ShardpressError):
    pass


class ArtifactIntegrityError(ShardpressError):
    """An emitted artifact did not read back as the value it was written from."""
