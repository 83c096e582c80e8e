"""Tests for the fsprocessor command line."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from fsprocessor import __version__
from fsprocessor.cli.main import app
from fsprocessor.config import reset_config

from factories import read_file_chain

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    monkeypatch.delenv("FSPROCESSOR_CONFIG_FILE", raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def capture_file(tmp_path):
    path = tmp_path / "capture.json"
    records = [[a.id, a.to_raw()] for a in read_file_chain(10, fd=20, functions=True)]
    path.write_text(json.dumps(records))
    return path


class TestCli:
    """Tests for the process and kinds commands."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_process_table(self, capture_file) -> None:
        result = runner.invoke(app, ["process", str(capture_file)])

        assert result.exit_code == 0
        assert "fs.readFile" in result.stdout
        assert "1 operation(s)" in result.stdout

    def test_process_json(self, capture_file) -> None:
        result = runner.invoke(app, ["process", "--json", str(capture_file)])

        assert result.exit_code == 0
        assert '"kind": "fs.readFile"' in result.stdout
        assert '"propertyPaths"' in result.stdout

    def test_process_kind_filter(self, capture_file) -> None:
        result = runner.invoke(app, ["process", "--kind", "fs.writeFile", str(capture_file)])

        assert result.exit_code == 0
        assert "No file system operations found" in result.stdout

    def test_invalid_capture(self, tmp_path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("[[10, {]")

        result = runner.invoke(app, ["process", str(path)])

        assert result.exit_code == 1

    def test_kinds(self) -> None:
        result = runner.invoke(app, ["kinds"])

        assert result.exit_code == 0
        for kind in ("fs.readFile", "fs.createReadStream", "fs.createWriteStream", "fs.writeFile"):
            assert kind in result.stdout
