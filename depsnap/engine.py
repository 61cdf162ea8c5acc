"""Run orchestration: load + liveness in parallel, then prune and render."""

from __future__ import annotations

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Optional, TextIO, Tuple

from .buffer import PrunedBuffer
from .gosyntax import GoParser
from .liveness import compute_liveness
from .loader import PackageLoader
from .models import LivenessSet, PackageGraph
from .pruner import DeclarationPruner
from .renderer import SourceRenderer
from .toolchain import GoToolchain

logger = logging.getLogger(__name__)


class SnapshotEngine:
    """Coordinates the loader, liveness oracle, pruner and renderer."""

    def __init__(
        self,
        toolchain: Optional[GoToolchain] = None,
        parser: Optional[GoParser] = None,
    ) -> None:
        self.toolchain = toolchain or GoToolchain()
        self.loader = PackageLoader(self.toolchain, parser)

    def collect(self, entry: str) -> Tuple[PackageGraph, LivenessSet]:
        """Load the graph and compute liveness concurrently; fail if either fails."""
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="depsnap") as pool:
            live_future = pool.submit(compute_liveness, entry, self.toolchain)
            graph_future = pool.submit(self.loader.load, entry)
            graph = graph_future.result()
            live = live_future.result()
        return graph, live

    def prune(self, graph: PackageGraph, live: LivenessSet) -> Dict[str, Dict[str, PrunedBuffer]]:
        pruner = DeclarationPruner(live)
        return {path: pruner.prune_package(pkg) for path, pkg in graph.packages.items()}

    def dump(self, entry: str, out: TextIO) -> None:
        graph, live = self.collect(entry)
        pruned = self.prune(graph, live)
        deleted = sum(len(buf) for files in pruned.values() for buf in files.values())
        logger.info("Pruned %d dead declarations across %d packages", deleted, len(graph))
        SourceRenderer(self.toolchain.gofmt).render(graph, pruned, out)

    def dump_to_string(self, entry: str) -> str:
        buf = io.StringIO()
        self.dump(entry, buf)
        return buf.getvalue()


def dump_source(entry: str, out: TextIO, toolchain: Optional[GoToolchain] = None) -> None:
    """Write the pruned source snapshot of *entry* to *out*."""
    SnapshotEngine(toolchain).dump(entry, out)
