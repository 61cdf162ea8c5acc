"""Core data models shared by the loader, pruner and renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

# Read-only set of linked symbol names, e.g. ``main.FooType.PtrMethod``.
LivenessSet = FrozenSet[str]

MAIN_PACKAGE = "main"


@dataclass(frozen=True)
class GoModule:
    """Module metadata attached to a package, as reported by ``go list``."""
    path: str
    version: str = ""
    main: bool = False
    dir: str = ""
    go_mod: str = ""
    go_version: str = ""
    replace: Optional[str] = None

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "GoModule":
        replace = data.get("Replace") or {}
        return cls(
            path=data.get("Path", ""),
            version=data.get("Version", ""),
            main=bool(data.get("Main", False)),
            dir=data.get("Dir", ""),
            go_mod=data.get("GoMod", ""),
            go_version=data.get("GoVersion", ""),
            replace=replace.get("Path"),
        )

    def describe(self) -> str:
        parts = [
            f"Path:{self.path}",
            f"Version:{self.version}",
            f"Main:{str(self.main).lower()}",
            f"GoVersion:{self.go_version}",
        ]
        if self.replace:
            parts.append(f"Replace:{self.replace}")
        return "{" + " ".join(parts) + "}"


@dataclass(frozen=True)
class PackageNode:
    """One loaded package. Created once per import path, never mutated."""
    path: str
    name: str
    go_files: Tuple[str, ...] = ()
    other_files: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()
    sources: Dict[str, bytes] = field(default_factory=dict, compare=False, repr=False)
    syntax: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    module: Optional[GoModule] = None

    @property
    def symbol_prefix(self) -> str:
        """Prefix the linker puts in front of this package's symbols."""
        if self.name == MAIN_PACKAGE:
            return MAIN_PACKAGE
        return escape_package_path(self.path)


@dataclass
class PackageGraph:
    """Packages keyed by import path, plus the entry packages in load order."""
    packages: Dict[str, PackageNode] = field(default_factory=dict)
    roots: List[str] = field(default_factory=list)

    def __contains__(self, path: str) -> bool:
        return path in self.packages

    def __getitem__(self, path: str) -> PackageNode:
        return self.packages[path]

    def __len__(self) -> int:
        return len(self.packages)

    def add(self, node: PackageNode) -> bool:
        """Insert *node* unless its path is already known. Returns True if added."""
        if node.path in self.packages:
            return False
        self.packages[node.path] = node
        return True


@dataclass(frozen=True, order=True)
class DeletionRange:
    """Half-open byte interval ``[start, end)`` into a file's original source."""
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"invalid deletion range [{self.start}, {self.end})")


def escape_package_path(path: str) -> str:
    """Escape an import path the way the Go linker does for symbol names.

    Control characters, spaces, ``%``, ``"`` and non-ASCII bytes are
    percent-escaped everywhere; ``.`` is escaped only in the last path
    element so it cannot be confused with the symbol separator.
    """
    raw = path.encode("utf-8")
    last_slash = raw.rfind(b"/")
    out: List[str] = []
    for i, byte in enumerate(raw):
        ch = chr(byte)
        if byte <= 0x20 or byte >= 0x7F or ch in '%"' or (ch == "." and i > last_slash):
            out.append(f"%{byte:02x}")
        else:
            out.append(ch)
    return "".join(out)
