"""Thin wrapper over the external Go tools a snapshot run depends on.

Every collaborator the engine treats as opaque (package metadata, the
compiler, the symbol dumper and the formatter) is reached through
:class:`GoToolchain`, so tests can swap in a fake with the same methods.
"""

from __future__ import annotations

import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Iterator, List, Optional

from .config import ToolchainConfig
from .errors import BuildError, FormatError, MetadataError, SymbolDumpError, ToolchainError

logger = logging.getLogger(__name__)


class GoToolchain:
    """Runs ``go list``, ``go build``, ``go tool nm`` and ``gofmt``."""

    def __init__(
        self,
        config: Optional[ToolchainConfig] = None,
        workdir: Optional[Path] = None,
    ) -> None:
        self.config = config or ToolchainConfig()
        self.workdir = workdir

    def _cwd(self) -> Optional[str]:
        return str(self.workdir) if self.workdir else None

    def _run(self, cmd: List[str], stdin: Optional[bytes] = None) -> subprocess.CompletedProcess:
        logger.debug("Running %s", " ".join(cmd))
        try:
            return subprocess.run(
                cmd,
                cwd=self._cwd(),
                input=stdin,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolchainError(f"cannot run {cmd[0]!r}: {exc}") from exc

    # ------------------------------------------------------------------
    # Package metadata
    # ------------------------------------------------------------------

    def list_packages(self, entry: str) -> str:
        """Return the ``go list -json -deps`` object stream for *entry*."""
        cmd = [self.config.go, "list", "-e", "-json", "-deps", *self.config.build_flags, entry]
        result = self._run(cmd)
        if result.returncode != 0:
            raise MetadataError(
                f"go list {entry} failed: {result.stderr.decode('utf-8', 'replace').strip()}"
            )
        return result.stdout.decode("utf-8")

    # ------------------------------------------------------------------
    # Build + symbol dump
    # ------------------------------------------------------------------

    def build(self, entry: str, output: Path) -> None:
        """Compile *entry* to *output* with optimisations disabled."""
        cmd = [
            self.config.go, "build",
            "-o", str(output),
            f"-gcflags={self.config.gcflags}",
            *self.config.build_flags,
            entry,
        ]
        result = self._run(cmd)
        if result.returncode != 0:
            combined = (result.stdout + result.stderr).decode("utf-8", "replace")
            raise BuildError(f"{' '.join(cmd)}: exit status {result.returncode}", combined)

    def symbols(self, binary: Path) -> Iterator[str]:
        """Yield the lines of ``go tool nm`` for *binary* as they are produced.

        stderr goes to a temporary file rather than a pipe, so a chatty
        ``nm`` cannot block while stdout is still being read.
        """
        cmd = [self.config.go, "tool", "nm", str(binary)]
        logger.debug("Running %s", " ".join(cmd))
        with tempfile.TemporaryFile() as errors:
            try:
                proc = subprocess.Popen(
                    cmd,
                    cwd=self._cwd(),
                    stdout=subprocess.PIPE,
                    stderr=errors,
                )
            except FileNotFoundError as exc:
                raise ToolchainError(f"cannot run {cmd[0]!r}: {exc}") from exc

            with proc:
                for raw in proc.stdout:
                    try:
                        yield raw.decode("utf-8")
                    except UnicodeDecodeError as exc:
                        raise SymbolDumpError(f"unreadable symbol dump output: {exc}") from exc
            if proc.returncode != 0:
                errors.seek(0)
                stderr = errors.read().decode("utf-8", "replace")
                raise SymbolDumpError(
                    f"{' '.join(cmd)}: exit status {proc.returncode}: {stderr.strip()}"
                )

    # ------------------------------------------------------------------
    # Formatting
    # ------------------------------------------------------------------

    def gofmt(self, source: bytes) -> bytes:
        """Reformat *source* into canonical Go style."""
        try:
            result = self._run([self.config.gofmt], stdin=source)
        except ToolchainError as exc:
            raise FormatError(str(exc)) from exc
        if result.returncode != 0:
            raise FormatError(result.stderr.decode("utf-8", "replace").strip())
        return result.stdout
