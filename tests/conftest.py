"""Pytest configuration and fixtures for depsnap tests."""

import json
import sys
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import pytest

from depsnap.errors import BuildError
from depsnap.gosyntax import GoParser
from depsnap.models import PackageNode

SMALLBIN_LIVE = frozenset({
    "main.main",
    "main.Foo",
    "main.FooType",
    "main.FooType.ValueMethod",
    "main.FooType.PtrMethod",
    "main.UsedFactoredType",
})

SMALLBIN_NM = """\
  401000 T main.main
  401100 T main.Foo
  401200 T main.FooType.ValueMethod
  401300 T main.(*FooType).PtrMethod
  4a0000 R go:itab.*main.FooType,error
  4a0100 R $f64.3ff0000000000000
  4a0200 D main..inittask
  4b0000 R type:*main.FooType
  4b0100 R type:main.UsedFactoredType
           U runtime.morestack
"""


class FakeToolchain:
    """Stands in for GoToolchain without needing a Go installation."""

    def __init__(
        self,
        packages: Optional[List[dict]] = None,
        nm_output: str = "",
        build_error: Optional[BuildError] = None,
        format_error: Optional[Exception] = None,
    ) -> None:
        self.packages = packages or []
        self.nm_output = nm_output
        self.build_error = build_error
        self.format_error = format_error
        self.built: List[Path] = []
        self.listed: List[str] = []

    def list_packages(self, entry: str) -> str:
        self.listed.append(entry)
        return "\n".join(json.dumps(p, indent="\t") for p in self.packages)

    def build(self, entry: str, output: Path) -> None:
        self.built.append(output)
        if self.build_error is not None:
            raise self.build_error
        output.write_bytes(b"\x7fELF")

    def symbols(self, binary: Path) -> Iterator[str]:
        assert binary.exists()
        yield from self.nm_output.splitlines(keepends=True)

    def gofmt(self, source: bytes) -> bytes:
        if self.format_error is not None:
            raise self.format_error
        return source


@pytest.fixture
def go_parser() -> GoParser:
    return GoParser()


@pytest.fixture
def fixtures_dir() -> Path:
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def smallbin_dir(fixtures_dir: Path) -> Path:
    return fixtures_dir / "smallbin"


@pytest.fixture
def smallbin_source(smallbin_dir: Path) -> bytes:
    return (smallbin_dir / "smallbin.go").read_bytes()


@pytest.fixture
def make_package(go_parser: GoParser):
    """Build a PackageNode from in-memory Go sources."""

    def _make(
        files: Dict[str, bytes],
        name: str = "main",
        path: str = "example.com/smallbin",
        imports: tuple = (),
    ) -> PackageNode:
        return PackageNode(
            path=path,
            name=name,
            go_files=tuple(files),
            imports=imports,
            sources=dict(files),
            syntax={f: go_parser.parse(src, f) for f, src in files.items()},
        )

    return _make


@pytest.fixture
def smallbin_meta(smallbin_dir: Path) -> dict:
    """``go list -json`` record for the fixture program."""
    return {
        "Dir": str(smallbin_dir),
        "ImportPath": "example.com/smallbin",
        "Name": "main",
        "GoFiles": ["smallbin.go"],
        "Module": {
            "Path": "example.com/smallbin",
            "Main": True,
            "Dir": str(smallbin_dir),
            "GoMod": str(smallbin_dir / "go.mod"),
            "GoVersion": "1.21",
        },
    }


@pytest.fixture
def stub_tool(tmp_path: Path):
    """Write an executable shell script standing in for ``go`` or ``gofmt``."""
    if sys.platform == "win32":
        pytest.skip("stub tools are POSIX shell scripts")

    def _make(name: str, body: str) -> Path:
        script = tmp_path / "bin" / name
        script.parent.mkdir(exist_ok=True)
        script.write_text(f"#!/bin/sh\n{body}\n")
        script.chmod(0o755)
        return script

    return _make
