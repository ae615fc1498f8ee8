"""Pytest configuration and fixtures for CLI tests."""

import json

import pytest
from click.testing import CliRunner


@pytest.fixture
def cli_runner():
    """Click CLI test runner invoking the memsearch command group."""

    class MemsearchCliRunner(CliRunner):
        def invoke(self, args, **kwargs):  # type: ignore
            from memsearch.cli.main import cli

            if isinstance(args, list):
                return super().invoke(cli, args, **kwargs)
            return super().invoke(args, **kwargs)

    return MemsearchCliRunner()


@pytest.fixture
def memorials_file(tmp_path, sample_records):
    """Sample memorials written to a JSON file."""
    path = tmp_path / "memorials.json"
    path.write_text(json.dumps(sample_records, ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def imported(cli_runner, memorials_file):
    """CLI runner whose default database holds the sample memorials."""
    result = cli_runner.invoke(["import", str(memorials_file)])
    assert result.exit_code == 0, result.output
    return cli_runner
