import json

import pytest
from typer.testing import CliRunner

from conftest import KAUFLAND_TEXT
from receiptscan.cli import app

runner = CliRunner()


def _json(output: str):
    # log lines may share the stream with the payload
    start = min(i for i in (output.find("{"), output.find("[")) if i >= 0)
    return json.loads(output[start:])


@pytest.fixture
def env(tmp_path, monkeypatch):
    monkeypatch.setenv("RECEIPTSCAN_PATTERN_DIR", str(tmp_path / "patterns"))
    monkeypatch.delenv("RECEIPTSCAN_PG_DSN", raising=False)
    return tmp_path


def test_extract_text_prints_fields(env):
    text_file = env / "receipt.txt"
    text_file.write_text(KAUFLAND_TEXT, encoding="utf-8")

    result = runner.invoke(app, ["extract-text", "--text-file", str(text_file), "--today", "2024-06-01"])

    assert result.exit_code == 0, result.output
    fields = _json(result.stdout)
    assert fields["merchant_name"] == "Kaufland"
    assert fields["amount"] == pytest.approx(8.70)
    assert fields["date"] == "2024-03-12"


def test_correct_unknown_pattern_fails(env):
    result = runner.invoke(app, ["correct", "--pattern-id", "nope", "--amount", "3.5"])
    assert result.exit_code == 1


def test_report_and_anomalies(env):
    result = runner.invoke(app, ["report", "--out-path", str(env / "report.md")])
    assert result.exit_code == 0, result.output
    assert (env / "report.md").exists()

    csv_path = env / "expenses.csv"
    rows = ["amount,category,date"] + ["10,Food & Drinks,2024-05-06"] * 9 + ["100,Transport,2024-05-08"]
    csv_path.write_text("\n".join(rows), encoding="utf-8")
    result = runner.invoke(app, ["anomalies", "--expenses-csv", str(csv_path)])
    assert result.exit_code == 0, result.output
    flagged = _json(result.stdout)
    assert [r["amount"] for r in flagged] == [100]
