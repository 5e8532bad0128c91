"""
Tests for the patentvault command line interface.
"""

import os
import sys

import pytest

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import cli
from encryption import hash_content


class TestParser:
    """Tests for argument parsing."""

    def test_serve_options(self):
        args = cli.build_parser().parse_args(
            ["serve", "--host", "127.0.0.1", "--port", "5000", "--production", "--workers", "2"]
        )
        assert args.command == "serve"
        assert args.host == "127.0.0.1"
        assert args.port == 5000
        assert args.production is True
        assert args.workers == 2

    def test_hash_requires_file(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["hash"])

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])
        assert exc_info.value.code == 0
        assert cli.__version__ in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 1
        assert "usage: patentvault" in capsys.readouterr().out


class TestCommands:
    """Tests for individual commands."""

    def test_hash(self, tmp_path, capsys):
        path = tmp_path / "claims.txt"
        path.write_bytes(b"a widget that does things")

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["hash", str(path)])

        assert exc_info.value.code == 0
        assert capsys.readouterr().out.strip() == f"{hash_content(b'a widget that does things')}  {path}"

    def test_hash_missing_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["hash", str(tmp_path / "missing.pdf")])
        assert exc_info.value.code == 1
        assert "Error" in capsys.readouterr().err

    def test_check_with_memory_storage(self, monkeypatch, capsys):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        exit_code = cli.cmd_check(None)
        out = capsys.readouterr().out
        assert exit_code == 0
        assert "Storage (MemoryBackend): OK" in out

    def test_info(self, monkeypatch, capsys):
        monkeypatch.setenv("STORAGE_BACKEND", "memory")
        assert cli.cmd_info(None) == 0
        out = capsys.readouterr().out
        assert "STORAGE_BACKEND: memory" in out
        assert "backend_type: MemoryBackend" in out
