"""Declaration pruner: delete top-level declarations the linker dropped.

Only types, functions and methods are tested against the liveness set;
``var``/``const``/``import`` declarations are always kept. Deletions are
recorded as byte ranges over the original file and applied in one batch,
so comments inside a removed declaration disappear with it instead of
surfacing at file level.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from .buffer import PrunedBuffer
from .gosyntax import node_text, owned_span
from .models import DeletionRange, LivenessSet, PackageNode

logger = logging.getLogger(__name__)

_TYPE_SPECS = {"type_spec", "type_alias"}
_FUNC_DECLS = {"function_declaration", "method_declaration"}


def receiver_type_name(receiver_text: str) -> str:
    """Reduce a receiver type such as ``*List[T]`` to its bare name ``List``."""
    name = re.sub(r"\s+", "", receiver_text)
    name = name.split("[", 1)[0]
    return name.strip("()*")


class DeclarationPruner:
    """Computes and applies deletions for one package at a time."""

    def __init__(self, live: LivenessSet) -> None:
        self.live = live

    def dead(self, sym: str) -> bool:
        if sym in self.live:
            return False
        logger.debug("DEAD: %r", sym)
        return True

    # ------------------------------------------------------------------
    # Symbol names
    # ------------------------------------------------------------------

    @staticmethod
    def type_name(pkg: PackageNode, spec: Any, source: bytes) -> Optional[str]:
        name = spec.child_by_field_name("name")
        if name is None:
            return None
        return f"{pkg.symbol_prefix}.{node_text(name, source)}"

    @staticmethod
    def func_name(pkg: PackageNode, decl: Any, source: bytes) -> Optional[str]:
        name = decl.child_by_field_name("name")
        if name is None:
            return None
        func = node_text(name, source)
        receiver = decl.child_by_field_name("receiver")
        if receiver is None:
            return f"{pkg.symbol_prefix}.{func}"

        params = [c for c in receiver.named_children if c.type == "parameter_declaration"]
        if not params:
            return None
        typ = params[0].child_by_field_name("type")
        if typ is None:
            return None
        recv = receiver_type_name(node_text(typ, source))
        return f"{pkg.symbol_prefix}.{recv}.{func}"

    # ------------------------------------------------------------------
    # Deletion ranges
    # ------------------------------------------------------------------

    def deletions(self, pkg: PackageNode, root: Any, source: bytes) -> List[DeletionRange]:
        """Ranges to delete from one file, in source order."""
        ranges: List[DeletionRange] = []
        for decl in root.children:
            if decl.type == "type_declaration":
                ranges.extend(self._type_group_deletions(pkg, decl, source))
            elif decl.type in _FUNC_DECLS:
                name = self.func_name(pkg, decl, source)
                if name is not None and self.dead(name):
                    # Dead bodies are dropped wholesale, never walked.
                    ranges.append(DeletionRange(*owned_span(decl)))
        return ranges

    def _type_group_deletions(self, pkg: PackageNode, decl: Any, source: bytes) -> List[DeletionRange]:
        specs = [c for c in decl.named_children if c.type in _TYPE_SPECS]
        dels: List[DeletionRange] = []
        for spec in specs:
            name = self.type_name(pkg, spec, source)
            if name is not None and self.dead(name):
                dels.append(DeletionRange(*owned_span(spec)))

        if len(dels) == len(specs):
            # Nothing live left: drop the whole group, doc comment included.
            return [DeletionRange(*owned_span(decl))]
        return dels

    # ------------------------------------------------------------------
    # Files and packages
    # ------------------------------------------------------------------

    def prune_file(self, pkg: PackageNode, file_name: str) -> PrunedBuffer:
        source = pkg.sources[file_name]
        buf = PrunedBuffer(source)
        for rng in self.deletions(pkg, pkg.syntax[file_name].root_node, source):
            logger.debug("Deleting %s[%d:%d]", file_name, rng.start, rng.end)
            buf.delete(rng.start, rng.end)
        return buf

    def prune_package(self, pkg: PackageNode) -> Dict[str, PrunedBuffer]:
        return {file_name: self.prune_file(pkg, file_name) for file_name in pkg.go_files}


def prune(pkg: PackageNode, live: LivenessSet) -> Dict[str, PrunedBuffer]:
    """Pruned buffers for every Go file of *pkg*, keyed by file path."""
    return DeclarationPruner(live).prune_package(pkg)
