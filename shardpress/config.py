"""
Build configuration.

Sources, lowest precedence first:
- defaults below
- an optional YAML config file (page_size, require_documents, workers, site)
- command-line flags
- BUILD_TIMESTAMP_UTC environment variable for the manifest timestamp

Without a timestamp the manifest carries none, so repeated builds of the same
corpus are byte-identical.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError

DEFAULT_PAGE_SIZE = 10
DEFAULT_CONFIG_NAME = "shardpress.yaml"
TIMESTAMP_ENV = "BUILD_TIMESTAMP_UTC"


@dataclass(frozen=True)
class SiteInfo:
    title: str = ""
    subtitle: str = ""
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "subtitle": self.subtitle, "description": self.description}


@dataclass(frozen=True)
class BuildConfig:
    source_root: Path
    output_root: Path
    page_size: int = DEFAULT_PAGE_SIZE
    require_documents: bool = False
    workers: Optional[int] = None
    site: SiteInfo = field(default_factory=SiteInfo)
    build_timestamp: Optional[str] = None

    def __post_init__(self) -> None:
        check_positive_int("page_size", self.page_size)
        if self.workers is not None:
            check_positive_int("workers", self.workers)

    def with_overrides(self, **changes: Any) -> "BuildConfig":
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def check_layout(self) -> None:
        """
        Publishing replaces the artifact entries of the output root, so the
        sources must not live there.
        """
        source = self.source_root.resolve()
        output = self.output_root.resolve()
        if source == output or output in source.parents:
            raise ConfigError(
                f"Source root {self.source_root} must not be the output root or sit inside it ({self.output_root})"
            )


def check_positive_int(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{name} must be a positive integer, got {value!r}")


def read_config_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def site_from_mapping(raw: Any) -> SiteInfo:
    if raw is None:
        return SiteInfo()
    if not isinstance(raw, dict):
        raise ConfigError(f"'site' must be a mapping, got {type(raw).__name__}")
    return SiteInfo(
        title=str(raw.get("title") or ""),
        subtitle=str(raw.get("subtitle") or ""),
        description=str(raw.get("description") or ""),
    )


def load_config(
    source_root: Path,
    output_root: Path,
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BuildConfig:
    """
    Assemble a BuildConfig from an optional config file and the environment.
    Unknown keys in the file are ignored.
    """
    env = os.environ if environ is None else environ
    data: Dict[str, Any] = {}
    if config_path is not None:
        data = read_config_file(config_path)

    require_documents = data.get("require_documents", False)
    if not isinstance(require_documents, bool):
        raise ConfigError(f"require_documents must be true or false, got {require_documents!r}")

    return BuildConfig(
        source_root=source_root,
        output_root=output_root,
        page_size=data.get("page_size", DEFAULT_PAGE_SIZE),
        require_documents=require_documents,
        workers=data.get("workers"),
        site=site_from_mapping(data.get("site")),
        build_timestamp=env.get(TIMESTAMP_ENV) or None,
    )
