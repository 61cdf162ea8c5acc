"""Toolchain configuration: TOML file under ``DEPSNAP_HOME`` plus env overrides."""

from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml

logger = logging.getLogger(__name__)

BASE_DIR = Path(os.environ.get("DEPSNAP_HOME", str(Path.home() / ".depsnap"))).expanduser()
CONFIG_FILE = BASE_DIR / "config.toml"

# Optimisation and inlining off so every symbol used in source survives linking.
DEFAULT_GCFLAGS = "all=-N -l"


@dataclass
class ToolchainConfig:
    """Commands and flags used to talk to the Go toolchain."""
    go: str = "go"
    gofmt: str = "gofmt"
    gcflags: str = DEFAULT_GCFLAGS
    build_flags: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolchainConfig":
        build_flags = data.get("build_flags", [])
        if isinstance(build_flags, str):
            build_flags = shlex.split(build_flags)
        return cls(
            go=data.get("go", "go"),
            gofmt=data.get("gofmt", "gofmt"),
            gcflags=data.get("gcflags", DEFAULT_GCFLAGS),
            build_flags=list(build_flags),
        )


def load_full_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load the entire TOML config; empty when the file is absent or invalid."""
    path = path or CONFIG_FILE
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as exc:
        logger.warning("Ignoring malformed config %s: %s", path, exc)
        return {}


def load_config(path: Optional[Path] = None) -> ToolchainConfig:
    """Resolve the toolchain configuration.

    Precedence, highest first: ``DEPSNAP_GO`` / ``DEPSNAP_GOFMT`` environment
    variables, the ``[toolchain]`` section of the config file, built-in
    defaults.
    """
    cfg = ToolchainConfig.from_dict(load_full_config(path).get("toolchain", {}))
    cfg.go = os.environ.get("DEPSNAP_GO", cfg.go)
    cfg.gofmt = os.environ.get("DEPSNAP_GOFMT", cfg.gofmt)
    return cfg
