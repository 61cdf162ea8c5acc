"""Error taxonomy for a snapshot run.

Every class except :class:`FormatError` is fatal: it aborts the run and no
partial report is written.
"""

from __future__ import annotations


class DepsnapError(Exception):
    """Base class for all errors raised by depsnap."""


class ToolchainError(DepsnapError):
    """A required external tool (``go``, ``gofmt``) could not be started."""


class MetadataError(DepsnapError):
    """A package in the import graph failed to load cleanly."""


class BuildError(DepsnapError):
    """Compiling the entry point failed."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output

    def __str__(self) -> str:
        base = super().__str__()
        if self.output:
            return f"{base}\n{self.output.rstrip()}"
        return base


class SymbolDumpError(DepsnapError):
    """The symbol table dump failed or produced unreadable output."""


class SourceReadError(DepsnapError):
    """A package source file could not be read."""


class FormatError(DepsnapError):
    """Reformatting a pruned buffer failed. Non-fatal."""
