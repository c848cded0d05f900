"""
Tests for the click job entry points.
"""

import json

import pytest
from click.testing import CliRunner

from passcut.jobs.run import cli


@pytest.fixture(autouse=True)
def keep_test_logging(monkeypatch):
    """The CLI reconfigures root logging onto the runner's stdout otherwise."""
    monkeypatch.setattr("passcut.jobs.run.setup_logging", lambda: None)


def last_line(output: str) -> str:
    return output.strip().splitlines()[-1]


def test_pass_cut_auto_release_job(db, exam):
    result = CliRunner().invoke(cli, ["pass_cut_auto_release", "--exam-id", str(exam.id)])
    assert result.exit_code == 0
    payload = json.loads(last_line(result.output))
    assert payload["reason"] == "disabled"
    assert "rows" not in payload


def test_rescore_job(db, exam):
    result = CliRunner().invoke(cli, ["rescore", "--exam-id", str(exam.id), "--track", "PUBLIC"])
    assert result.exit_code == 0
    assert json.loads(last_line(result.output))["rescored_count"] == 0


def test_rescore_job_unknown_exam(db):
    result = CliRunner().invoke(cli, ["rescore", "--exam-id", "999"])
    assert result.exit_code == 1
    assert "NOT_FOUND" in result.output
