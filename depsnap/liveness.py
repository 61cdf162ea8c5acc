"""Liveness oracle: which symbols survive compiling and linking the entry point.

The entry point is built with optimisation and inlining disabled, the symbol
table of the resulting executable is dumped, synthetic entries are dropped
by :data:`SYMBOL_RULES`, and the rest is normalised into the names the
pruner computes from source (``pkg.Func``, ``pkg.Type``, ``pkg.Type.Method``).
"""

from __future__ import annotations

import json
import logging
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Set

from .models import LivenessSet
from .toolchain import GoToolchain

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SymbolRule:
    """Deny rule for symbol-table entries that have no source declaration."""
    name: str
    matches: Callable[[str], bool]
    reason: str


SYMBOL_RULES: List[SymbolRule] = [
    SymbolRule(
        "double-dot",
        lambda sym: ".." in sym,
        "generated algorithms, init tasks, anonymous functions",
    ),
    SymbolRule(
        "itab",
        lambda sym: "," in sym,
        "interface dispatch table (interface type, concrete type)",
    ),
    SymbolRule(
        "float-pool",
        lambda sym: sym.startswith("$"),
        "floating point literal pool",
    ),
]

_TYPE_DESCRIPTOR_PREFIXES = ("type:", "type.")
_POINTER_RECEIVER = re.compile(r"\(\*([^()]*)\)")


def denied_by(sym: str) -> Optional[SymbolRule]:
    """Return the first rule rejecting *sym*, or None if it is kept."""
    for rule in SYMBOL_RULES:
        if rule.matches(sym):
            return rule
    return None


def strip_type_arguments(sym: str) -> str:
    """Drop every ``[...]`` instantiation list, nested ones included."""
    out: List[str] = []
    depth = 0
    for ch in sym:
        if ch == "[":
            depth += 1
        elif ch == "]" and depth:
            depth -= 1
        elif not depth:
            out.append(ch)
    return "".join(out)


def normalize_symbol(sym: str) -> str:
    """Rewrite a linker symbol into the source-level naming scheme.

    >>> normalize_symbol("main.(*FooType).PtrMethod")
    'main.FooType.PtrMethod'
    >>> normalize_symbol("type:*example.com/x.List[go.shape.int]")
    'example.com/x.List'
    """
    sym = strip_type_arguments(sym)
    for prefix in _TYPE_DESCRIPTOR_PREFIXES:
        if sym.startswith(prefix):
            sym = sym[len(prefix):]
            break
    sym = sym.lstrip("*")
    return _POINTER_RECEIVER.sub(r"\1", sym)


def owner_names(sym: str) -> List[str]:
    """Every enclosing declaration name implied by *sym*, outermost first.

    ``pkg.T.M`` implies ``pkg.T``; ``pkg.init.0`` implies ``pkg.init``.
    Dots inside the import path are not separators.
    """
    slash = sym.rfind("/")
    dot = sym.find(".", slash + 1)
    if dot < 0:
        return []
    pkg, rest = sym[:dot], sym[dot + 1:]
    parts = rest.split(".")
    return [f"{pkg}.{'.'.join(parts[:i])}" for i in range(1, len(parts))]


def parse_symbols(lines: Iterable[str]) -> LivenessSet:
    """Build the liveness set from ``(address, kind, name)`` dump lines."""
    live: Set[str] = set()
    for line in lines:
        fields = line.split()
        if len(fields) != 3:
            continue
        raw = fields[2]
        rule = denied_by(strip_type_arguments(raw))
        if rule is not None:
            continue
        name = normalize_symbol(raw)
        if not name:
            continue
        live.add(name)
        live.update(owner_names(name))
    return frozenset(live)


def compute_liveness(entry: str, toolchain: Optional[GoToolchain] = None) -> LivenessSet:
    """Build *entry* and return the set of linked top-level symbol names."""
    toolchain = toolchain or GoToolchain()
    with tempfile.TemporaryDirectory(prefix="depsnap-") as tmp:
        binary = Path(tmp) / "entry.bin"
        toolchain.build(entry, binary)
        live = parse_symbols(toolchain.symbols(binary))

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("live: %s", json.dumps(sorted(live), indent="\t"))
    logger.info("Liveness: %d symbols linked into %s", len(live), entry)
    return live
