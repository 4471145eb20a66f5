"""
Unit tests for the CLI.

Model loading is replaced by the mock backend, so these run without
downloading anything.
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from guided_json import __version__
from guided_json.backends import BackendFactory
from guided_json.cli import app
from guided_json.cli.commands import load_schema_file


runner = CliRunner()

USER_SCHEMA = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "active": {"type": "boolean"},
    },
    "required": ["name", "active"],
}


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(json.dumps(USER_SCHEMA))
    return path


@pytest.fixture
def mock_factory(monkeypatch, make_backend):
    """Make BackendFactory.create return mock backends and record the calls."""
    calls = []

    def create(model_id, backend_type=None, device=None, **kwargs):
        calls.append({"model_id": model_id, "backend_type": backend_type, "device": device, **kwargs})
        return make_backend(script=["x"])

    monkeypatch.setattr(BackendFactory, "create", staticmethod(create))
    return calls


def test_cli_files_exist():
    """Test that all CLI files exist."""
    cli_dir = Path(__file__).parent.parent.parent / "guided_json" / "cli"

    for filename in ["__init__.py", "main.py", "commands.py", "display.py"]:
        assert (cli_dir / filename).exists(), f"Missing CLI file: {filename}"


class TestHelpAndVersion:
    """Test top-level options."""

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "generate" in result.output
        assert "validate" in result.output
        assert "inspect-vocab" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_unknown_log_level(self, schema_file):
        result = runner.invoke(app, ["--log-level", "LOUD", "validate", "--json", str(schema_file), "--schema", str(schema_file)])

        assert result.exit_code == 2


class TestLoadSchemaFile:
    """Test schema file loading."""

    def test_load_valid(self, schema_file):
        assert load_schema_file(schema_file) == USER_SCHEMA

    def test_load_missing(self, tmp_path):
        with pytest.raises(ValueError, match="not found"):
            load_schema_file(tmp_path / "missing.json")

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Invalid JSON"):
            load_schema_file(path)


class TestValidateCommand:
    """Test `guided-json validate`."""

    def test_valid_file(self, tmp_path, schema_file):
        data = tmp_path / "data.json"
        data.write_text(json.dumps({"name": "Alice", "active": True}))

        result = runner.invoke(app, ["validate", "--json", str(data), "--schema", str(schema_file)])

        assert result.exit_code == 0

    def test_invalid_file(self, tmp_path, schema_file):
        data = tmp_path / "data.json"
        data.write_text(json.dumps({"name": "Alice"}))

        result = runner.invoke(app, ["validate", "--json", str(data), "--schema", str(schema_file)])

        assert result.exit_code == 1

    def test_malformed_json_file(self, tmp_path, schema_file):
        data = tmp_path / "data.json"
        data.write_text("{oops")

        result = runner.invoke(app, ["validate", "--json", str(data), "--schema", str(schema_file)])

        assert result.exit_code == 1


class TestGenerateCommand:
    """Test `guided-json generate` against the mock backend."""

    def test_generate_writes_output(self, tmp_path, schema_file, mock_factory):
        output = tmp_path / "out" / "result.json"

        result = runner.invoke(app, [
            "generate",
            "--schema", str(schema_file),
            "--prompt", "A user:",
            "--model", "mock-model",
            "--output", str(output),
        ])

        assert result.exit_code == 0
        assert json.loads(output.read_text()) == {"active": False, "name": "x"}
        assert mock_factory[0]["model_id"] == "mock-model"

    def test_sampling_options_reach_backend(self, schema_file, mock_factory):
        from guided_json.backends import GreedySampler, MultinomialSampler

        runner.invoke(app, ["generate", "--schema", str(schema_file)])
        runner.invoke(app, ["generate", "--schema", str(schema_file), "--temperature", "0.7", "--seed", "3"])

        assert isinstance(mock_factory[0]["sampler"], GreedySampler)
        assert isinstance(mock_factory[1]["sampler"], MultinomialSampler)
        assert mock_factory[1]["sampler"].seed == 3

    def test_budget_too_small_fails(self, schema_file, mock_factory):
        result = runner.invoke(app, ["generate", "--schema", str(schema_file), "--max-tokens", "2"])

        assert result.exit_code == 1

    def test_unsupported_schema_fails(self, tmp_path, mock_factory):
        path = tmp_path / "schema.json"
        path.write_text(json.dumps({"allOf": [{"type": "string"}]}))

        result = runner.invoke(app, ["generate", "--schema", str(path)])

        assert result.exit_code == 1

    def test_model_load_failure(self, schema_file, monkeypatch):
        def create(*args, **kwargs):
            raise OSError("no such model")

        monkeypatch.setattr(BackendFactory, "create", staticmethod(create))

        result = runner.invoke(app, ["generate", "--schema", str(schema_file)])

        assert result.exit_code == 1


class TestInspectVocabCommand:
    """Test `guided-json inspect-vocab`."""

    def test_inspect_mock_vocabulary(self, mock_factory):
        result = runner.invoke(app, ["inspect-vocab", "--model", "mock-model"])

        assert result.exit_code == 0
        assert mock_factory[0]["model_id"] == "mock-model"
