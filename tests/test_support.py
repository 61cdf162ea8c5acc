"""Tests for configuration, the deletion buffer, models and the toolchain wrapper."""

from pathlib import Path

import pytest

from depsnap.buffer import PrunedBuffer
from depsnap.config import DEFAULT_GCFLAGS, ToolchainConfig, load_config
from depsnap.errors import BuildError, FormatError, MetadataError, SymbolDumpError, ToolchainError
from depsnap.models import DeletionRange, PackageNode, escape_package_path
from depsnap.toolchain import GoToolchain


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

def test_defaults_when_config_missing(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("DEPSNAP_GO", raising=False)
    monkeypatch.delenv("DEPSNAP_GOFMT", raising=False)
    cfg = load_config(tmp_path / "absent.toml")
    assert cfg.go == "go"
    assert cfg.gofmt == "gofmt"
    assert cfg.gcflags == DEFAULT_GCFLAGS == "all=-N -l"


def test_config_file_and_env_override(tmp_path: Path, monkeypatch):
    path = tmp_path / "config.toml"
    path.write_text('[toolchain]\ngo = "/opt/go/bin/go"\ngofmt = "/opt/go/bin/gofmt"\nbuild_flags = "-tags netgo"\n')
    monkeypatch.delenv("DEPSNAP_GO", raising=False)
    monkeypatch.setenv("DEPSNAP_GOFMT", "/usr/local/bin/gofmt")

    cfg = load_config(path)
    assert cfg.go == "/opt/go/bin/go"
    assert cfg.gofmt == "/usr/local/bin/gofmt"
    assert cfg.build_flags == ["-tags", "netgo"]


def test_malformed_config_falls_back_to_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("DEPSNAP_GO", raising=False)
    path = tmp_path / "config.toml"
    path.write_text("[toolchain\ngo = ")
    assert load_config(path).go == "go"


# ---------------------------------------------------------------------------
# PrunedBuffer
# ---------------------------------------------------------------------------

def test_deletions_apply_in_offset_order():
    buf = PrunedBuffer(b"0123456789")
    buf.delete(6, 8)
    buf.delete(1, 3)
    assert buf.bytes() == b"034589"
    assert buf.deletions == [DeletionRange(1, 3), DeletionRange(6, 8)]


def test_overlapping_deletions_rejected():
    buf = PrunedBuffer(b"0123456789")
    buf.delete(1, 5)
    buf.delete(4, 6)
    with pytest.raises(ValueError, match="overlapping"):
        buf.bytes()


def test_deletion_past_end_rejected():
    with pytest.raises(ValueError):
        PrunedBuffer(b"abc").delete(1, 4)


def test_invalid_range_rejected():
    with pytest.raises(ValueError):
        DeletionRange(5, 2)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("path,expected", [
    ("example.com/x", "example.com/x"),
    ("gopkg.in/yaml.v3", "gopkg.in/yaml%2ev3"),
    ("example.com/100%", "example.com/100%25"),
    ("fmt", "fmt"),
])
def test_escape_package_path(path: str, expected: str):
    assert escape_package_path(path) == expected


def test_main_package_symbol_prefix():
    assert PackageNode(path="example.com/cmd/tool", name="main").symbol_prefix == "main"
    assert PackageNode(path="gopkg.in/yaml.v3", name="yaml").symbol_prefix == "gopkg.in/yaml%2ev3"


# ---------------------------------------------------------------------------
# Toolchain
# ---------------------------------------------------------------------------

MISSING = ToolchainConfig(go="depsnap-no-such-go-binary", gofmt="depsnap-no-such-gofmt")


def test_missing_go_binary_is_toolchain_error(tmp_path: Path):
    with pytest.raises(ToolchainError):
        GoToolchain(MISSING).build("./x", tmp_path / "bin")
    with pytest.raises(ToolchainError):
        next(GoToolchain(MISSING).symbols(tmp_path / "bin"))


def test_missing_gofmt_is_format_error():
    with pytest.raises(FormatError):
        GoToolchain(MISSING).gofmt(b"package x\n")


def test_build_error_carries_output():
    err = BuildError("go build ./x: exit status 1", "x.go:1: syntax error\n")
    assert str(err) == "go build ./x: exit status 1\nx.go:1: syntax error"
    assert err.output.startswith("x.go:1")


def test_build_disables_optimisation_and_inlining(stub_tool, tmp_path: Path):
    argv_file = tmp_path / "argv.txt"
    go = stub_tool("go", f'printf "%s\\n" "$@" > "{argv_file}"')
    output = tmp_path / "out" / "entry.bin"

    GoToolchain(ToolchainConfig(go=str(go))).build("./x", output)

    assert argv_file.read_text().splitlines() == [
        "build", "-o", str(output), "-gcflags=all=-N -l", "./x",
    ]


def test_build_passes_configured_flags_before_entry(stub_tool, tmp_path: Path):
    argv_file = tmp_path / "argv.txt"
    go = stub_tool("go", f'printf "%s\\n" "$@" > "{argv_file}"')
    cfg = ToolchainConfig(go=str(go), build_flags=["-tags", "netgo"])

    GoToolchain(cfg).build("./x", tmp_path / "entry.bin")

    assert argv_file.read_text().splitlines()[-3:] == ["-tags", "netgo", "./x"]


def test_build_failure_is_build_error_with_output(stub_tool, tmp_path: Path):
    go = stub_tool("go", 'echo "x.go:3:1: syntax error" >&2\nexit 1')
    with pytest.raises(BuildError) as excinfo:
        GoToolchain(ToolchainConfig(go=str(go))).build("./x", tmp_path / "entry.bin")
    assert "exit status 1" in str(excinfo.value)
    assert "x.go:3:1: syntax error" in excinfo.value.output


def test_list_failure_is_metadata_error(stub_tool):
    go = stub_tool("go", 'echo "pattern ./nope: directory not found" >&2\nexit 1')
    with pytest.raises(MetadataError, match="directory not found"):
        GoToolchain(ToolchainConfig(go=str(go))).list_packages("./nope")


def test_list_returns_json_stream(stub_tool):
    go = stub_tool("go", 'echo \'{"ImportPath": "example.com/x"}\'')
    out = GoToolchain(ToolchainConfig(go=str(go))).list_packages("./x")
    assert '"ImportPath": "example.com/x"' in out


def test_symbols_yields_lines(stub_tool, tmp_path: Path):
    go = stub_tool("go", 'echo "  401000 T main.main"\necho "  401100 T main.Foo"')
    lines = list(GoToolchain(ToolchainConfig(go=str(go))).symbols(tmp_path / "entry.bin"))
    assert lines == ["  401000 T main.main\n", "  401100 T main.Foo\n"]


def test_symbol_dump_failure_is_symbol_dump_error(stub_tool, tmp_path: Path):
    go = stub_tool("go", 'echo "go tool nm: unrecognized object file" >&2\nexit 1')
    with pytest.raises(SymbolDumpError, match="unrecognized object file"):
        list(GoToolchain(ToolchainConfig(go=str(go))).symbols(tmp_path / "entry.bin"))


def test_undecodable_symbol_dump_is_symbol_dump_error(stub_tool, tmp_path: Path):
    go = stub_tool("go", "printf '  401000 T main.\\377\\376\\n'")
    with pytest.raises(SymbolDumpError, match="unreadable"):
        list(GoToolchain(ToolchainConfig(go=str(go))).symbols(tmp_path / "entry.bin"))


def test_symbols_survive_large_stderr(stub_tool, tmp_path: Path):
    # More than a pipe buffer of warnings before any symbol is printed.
    go = stub_tool("go", 'head -c 262144 /dev/zero >&2\necho "  401000 T main.main"')
    lines = list(GoToolchain(ToolchainConfig(go=str(go))).symbols(tmp_path / "entry.bin"))
    assert lines == ["  401000 T main.main\n"]


def test_gofmt_pipes_source_through(stub_tool):
    gofmt = stub_tool("gofmt", "cat")
    assert GoToolchain(ToolchainConfig(gofmt=str(gofmt))).gofmt(b"package x\n") == b"package x\n"


def test_gofmt_failure_is_format_error(stub_tool):
    gofmt = stub_tool("gofmt", 'cat > /dev/null\necho "<standard input>:2:7: expected \')\'" >&2\nexit 2')
    with pytest.raises(FormatError, match="expected"):
        GoToolchain(ToolchainConfig(gofmt=str(gofmt))).gofmt(b"package p\nfunc (\n")
