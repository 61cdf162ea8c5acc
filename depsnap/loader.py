"""Package graph loader built on ``go list -json -deps``.

Nothing is compiled or executed: ``go list`` reports names, files, imports
and module information for the entry package and everything it imports,
and each Go file is then read and parsed with Tree-sitter.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from .errors import MetadataError, SourceReadError
from .gosyntax import GoParser
from .models import GoModule, PackageGraph, PackageNode
from .toolchain import GoToolchain

logger = logging.getLogger(__name__)

# cgo's pseudo-package never appears as a loaded package.
_PSEUDO_IMPORTS = {"C"}

_OTHER_FILE_FIELDS = (
    "CFiles", "CXXFiles", "MFiles", "HFiles", "FFiles",
    "SFiles", "SwigFiles", "SwigCXXFiles", "SysoFiles",
)


def decode_package_stream(text: str) -> Iterator[Dict[str, Any]]:
    """Yield each JSON object from the concatenated ``go list -json`` output."""
    decoder = json.JSONDecoder()
    pos = 0
    end = len(text)
    while True:
        while pos < end and text[pos].isspace():
            pos += 1
        if pos >= end:
            return
        try:
            obj, pos = decoder.raw_decode(text, pos)
        except json.JSONDecodeError as exc:
            raise MetadataError(f"malformed package metadata: {exc}") from exc
        yield obj


def _package_errors(meta: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    err = meta.get("Error")
    if err:
        errors.append(err.get("Err", str(err)))
    for dep_err in meta.get("DepsErrors") or []:
        errors.append(dep_err.get("Err", str(dep_err)))
    return errors


def _abs_files(meta: Dict[str, Any], fields: Tuple[str, ...]) -> List[str]:
    directory = meta.get("Dir", "")
    files: List[str] = []
    for name in fields:
        for f in meta.get(name) or []:
            files.append(f if os.path.isabs(f) else os.path.join(directory, f))
    return files


class PackageLoader:
    """Loads the package graph reachable from one entry point."""

    def __init__(
        self,
        toolchain: Optional[GoToolchain] = None,
        parser: Optional[GoParser] = None,
    ) -> None:
        self.toolchain = toolchain or GoToolchain()
        self.parser = parser or GoParser()

    def load(self, entry: str) -> PackageGraph:
        metas = list(decode_package_stream(self.toolchain.list_packages(entry)))
        if not metas:
            raise MetadataError(f"no packages matched {entry!r}")

        by_path: Dict[str, Dict[str, Any]] = {}
        for meta in metas:
            path = meta.get("ImportPath", "")
            errors = _package_errors(meta)
            if errors:
                raise MetadataError(f"errors reading {path!r}: {errors!r}")
            by_path.setdefault(path, meta)

        graph = PackageGraph()
        visited: Set[str] = set()
        for meta in metas:
            if meta.get("DepOnly"):
                continue
            path = meta["ImportPath"]
            if path not in graph.roots:
                graph.roots.append(path)
            self._visit(path, by_path, graph, visited)

        logger.info("Loaded %d packages for %s", len(graph), entry)
        return graph

    def _visit(
        self,
        path: str,
        by_path: Dict[str, Dict[str, Any]],
        graph: PackageGraph,
        visited: Set[str],
    ) -> None:
        if path in visited:
            return
        visited.add(path)

        meta = by_path.get(path)
        if meta is None:
            raise MetadataError(f"package {path!r} was imported but not loaded")
        node = self._build_node(meta)
        graph.add(node)
        for dep in node.imports:
            self._visit(dep, by_path, graph, visited)

    def _resolve_imports(self, meta: Dict[str, Any]) -> List[str]:
        import_map = meta.get("ImportMap") or {}
        resolved: List[str] = []
        for imp in meta.get("Imports") or []:
            if imp in _PSEUDO_IMPORTS:
                continue
            target = import_map.get(imp, imp)
            if target not in resolved:
                resolved.append(target)
        return resolved

    def _build_node(self, meta: Dict[str, Any]) -> PackageNode:
        go_files = _abs_files(meta, ("GoFiles", "CgoFiles"))
        sources: Dict[str, bytes] = {}
        syntax: Dict[str, Any] = {}
        for file_name in go_files:
            try:
                src = Path(file_name).read_bytes()
            except OSError as exc:
                raise SourceReadError(f"reading {file_name}: {exc}") from exc
            sources[file_name] = src
            syntax[file_name] = self.parser.parse(src, file_name)

        module = meta.get("Module")
        return PackageNode(
            path=meta["ImportPath"],
            name=meta.get("Name", ""),
            go_files=tuple(go_files),
            other_files=tuple(_abs_files(meta, _OTHER_FILE_FIELDS)),
            imports=tuple(self._resolve_imports(meta)),
            sources=sources,
            syntax=syntax,
            module=GoModule.from_json(module) if module else None,
        )


def load(entry: str, toolchain: Optional[GoToolchain] = None, parser: Optional[GoParser] = None) -> PackageGraph:
    """Load the full package graph for *entry*; fails on any package error."""
    return PackageLoader(toolchain, parser).load(entry)
