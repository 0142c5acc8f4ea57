"""
Unit tests for the capnpgen command line.

Tests cover:
- generate to stdout and to a file
- compile with a stubbed capnp binary
- check against a baseline
- exit codes
"""

import subprocess
import sys

import pytest

from capnpgen import build
from capnpgen.tools import schema_cli

V1 = """
file: demo.capnp
id: 0xfbb45a811fbe71f5
types:
  - struct: UserProfile
    fields:
      - {name: username, id: 0, type: Text}
      - {name: old_user_id, id: 1, type: UInt64}
"""

V2_RETIRED = """
file: demo.capnp
id: 0xfbb45a811fbe71f5
types:
  - struct: UserProfile
    fields:
      - {name: username, id: 0, type: Text}
      - {name: email, id: 2, type: Text}
    extras:
      - "oldUserId @1 :UInt64"
"""

V2_REMOVED = """
file: demo.capnp
id: 0xfbb45a811fbe71f5
types:
  - struct: UserProfile
    fields:
      - {name: username, id: 0, type: Text}
"""

DUPLICATE = """
file: demo.capnp
id: 0xfbb45a811fbe71f5
types:
  - struct: UserProfile
    fields:
      - {name: a, id: 3, type: Text}
      - {name: b, id: 3, type: Text}
"""


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    """Keep the CLI from replacing the test's log handlers."""
    monkeypatch.setattr(schema_cli, "setup_logging", lambda level="INFO": None)


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, "argv", ["capnpgen", *args])
    schema_cli.main()


def write(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    return str(path)


class TestGenerate:
    """Tests for the generate command."""

    def test_stdout(self, tmp_path, monkeypatch, capsys):
        """Schema text is printed to stdout."""
        schema = write(tmp_path, "v1.yaml", V1)

        run_cli(monkeypatch, "generate", schema)

        out = capsys.readouterr().out
        assert out.startswith("@0xfbb45a811fbe71f5;\n\nstruct UserProfile {\n")
        assert "  oldUserId @1 :UInt64;\n" in out

    def test_output_file(self, tmp_path, monkeypatch, capsys):
        """-o writes the schema to a file."""
        schema = write(tmp_path, "v1.yaml", V1)
        output = tmp_path / "gen" / "demo.capnp"

        run_cli(monkeypatch, "generate", schema, "-o", str(output), "--fingerprint")

        captured = capsys.readouterr()
        assert output.read_text().startswith("@0xfbb45a811fbe71f5;")
        assert "sha256:" in captured.err

    def test_validation_error_exits_1(self, tmp_path, monkeypatch, capsys):
        """Identifier errors exit with status 1."""
        schema = write(tmp_path, "dup.yaml", DUPLICATE)

        with pytest.raises(SystemExit) as exc_info:
            run_cli(monkeypatch, "generate", schema)

        assert exc_info.value.code == 1
        assert "Duplicate identifier @3" in capsys.readouterr().err

    def test_missing_file_exits_1(self, tmp_path, monkeypatch):
        """A missing document exits with status 1."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli(monkeypatch, "generate", str(tmp_path / "nope.yaml"))

        assert exc_info.value.code == 1


class TestCompile:
    """Tests for the compile command."""

    def test_compile(self, tmp_path, monkeypatch, capsys):
        """The schema is written under --output-dir and compiled."""
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return subprocess.CompletedProcess(cmd, 0, stdout="", stderr="")

        monkeypatch.setattr(build.subprocess, "run", fake_run)
        schema = write(tmp_path, "v1.yaml", V1)
        out_dir = tmp_path / "out"

        run_cli(monkeypatch, "compile", schema, "--lang", "c++", "--output-dir", str(out_dir))

        assert (out_dir / "demo.capnp").exists()
        assert calls[0][:2] == ["capnp", "compile"]
        assert "Schema compiled" in capsys.readouterr().out


class TestCheck:
    """Tests for the check command."""

    def test_compatible(self, tmp_path, monkeypatch, capsys):
        """Retiring a field to an extra clause passes."""
        old = write(tmp_path, "v1.yaml", V1)
        new = write(tmp_path, "v2.yaml", V2_RETIRED)

        run_cli(monkeypatch, "check", "--baseline", old, new)

        assert "compatible with baseline" in capsys.readouterr().out

    def test_breaking_exits_1(self, tmp_path, monkeypatch, capsys):
        """Dropping an ordinal fails with status 1."""
        old = write(tmp_path, "v1.yaml", V1)
        new = write(tmp_path, "v2.yaml", V2_REMOVED)

        with pytest.raises(SystemExit) as exc_info:
            run_cli(monkeypatch, "check", "--baseline", old, new)

        assert exc_info.value.code == 1
        assert "FIELD_REMOVED: UserProfile@1" in capsys.readouterr().out


class TestMisc:
    """Tests for id and usage errors."""

    def test_id(self, monkeypatch, capsys):
        """id prints a capnp file id line."""
        run_cli(monkeypatch, "id")

        line = capsys.readouterr().out.strip()
        assert line.startswith("@0x")
        assert line.endswith(";")
        assert int(line[3:-1], 16) >> 63 == 1

    def test_usage_error_exits_2(self, monkeypatch):
        """Unknown commands are usage errors."""
        with pytest.raises(SystemExit) as exc_info:
            run_cli(monkeypatch, "frobnicate")

        assert exc_info.value.code == 2
