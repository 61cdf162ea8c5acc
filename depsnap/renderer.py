"""Source renderer: the deterministic text report for a pruned package graph."""

from __future__ import annotations

import io
import json
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional, Set, TextIO

from .buffer import PrunedBuffer
from .errors import FormatError
from .models import PackageGraph, PackageNode

logger = logging.getLogger(__name__)

Formatter = Callable[[bytes], bytes]
PrunedGraph = Mapping[str, Mapping[str, PrunedBuffer]]


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _identity(source: bytes) -> bytes:
    return source


@dataclass
class _RenderContext:
    """Per-render traversal state; each package is emitted on first visit only."""
    graph: PackageGraph
    pruned: PrunedGraph
    out: TextIO
    emitted: Set[str] = field(default_factory=set)


class SourceRenderer:
    """Writes packages depth-first from the entry roots."""

    def __init__(self, formatter: Optional[Formatter] = None) -> None:
        self.formatter = formatter or _identity

    def render(self, graph: PackageGraph, pruned: PrunedGraph, out: TextIO) -> None:
        ctx = _RenderContext(graph=graph, pruned=pruned, out=out)
        for root in graph.roots:
            self._render_package(ctx, graph[root])

    def render_to_string(self, graph: PackageGraph, pruned: PrunedGraph) -> str:
        buf = io.StringIO()
        self.render(graph, pruned, buf)
        return buf.getvalue()

    def format_source(self, file_name: str, source: bytes) -> bytes:
        """Canonical formatting, or the unformatted source if that fails."""
        try:
            return self.formatter(source)
        except FormatError as exc:
            logger.warning("Could not format %s, emitting it unformatted: %s", file_name, exc)
            return source

    def _render_package(self, ctx: _RenderContext, pkg: PackageNode) -> None:
        if pkg.path in ctx.emitted:
            return
        ctx.emitted.add(pkg.path)

        imports = sorted(pkg.imports)
        w = ctx.out.write
        w(f"\n### PACKAGE {pkg.path}\n")
        for f in pkg.go_files:
            w(f"file.go {_quote(f)}\n")
        for f in pkg.other_files:
            w(f"file.other {_quote(f)}\n")
        for imp in imports:
            w(f"import {_quote(pkg.path)} => {_quote(imp)}\n")
        w(f"Syntax: {len(pkg.syntax)}\n")
        w(f"Modules: {pkg.module.describe() if pkg.module else '<nil>'}\n")

        buffers: Mapping[str, PrunedBuffer] = ctx.pruned.get(pkg.path, {})
        for file_name in pkg.go_files:
            buf = buffers.get(file_name)
            if buf is not None:
                source = buf.bytes()
            else:
                logger.warning("No pruning result for %s, emitting it unpruned", file_name)
                source = pkg.sources[file_name]
            text = self.format_source(file_name, source).decode("utf-8", "replace")
            w(f"// Source of {file_name}:\n\n{text}\n")

        for imp in imports:
            self._render_package(ctx, ctx.graph[imp])


def render(
    graph: PackageGraph,
    pruned: Dict[str, Dict[str, PrunedBuffer]],
    out: TextIO,
    formatter: Optional[Formatter] = None,
) -> None:
    """Write the report for *graph* to *out*."""
    SourceRenderer(formatter).render(graph, pruned, out)
