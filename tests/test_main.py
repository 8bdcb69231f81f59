"""Tests for the command-line interface."""

import json

from click.testing import CliRunner

from main import main


def test_messages_in_memory():
    runner = CliRunner()
    result = runner.invoke(main, [
        "--backend", "memory",
        "-m", "Legen wir los",
        "-m", "Open Society Foundations",
        "--show",
    ])

    assert result.exit_code == 0, result.output
    assert "organization_name" in result.output
    assert "Grundlagen" in result.output


def test_state_persists_between_runs(tmp_path):
    runner = CliRunner()
    args = ["--backend", "file", "--storage-dir", str(tmp_path)]

    runner.invoke(main, args + ["-m", "Open Society Foundations"])
    result = runner.invoke(main, args + ["--show"])

    assert result.exit_code == 0, result.output
    assert "Open Society Foundations" in result.output


def test_draft_export_and_import(tmp_path):
    runner = CliRunner()
    args = ["--backend", "file", "--storage-dir", str(tmp_path / "store")]

    result = runner.invoke(main, args + ["-m", "Open Society Foundations", "--save-draft", "Basics"])
    assert result.exit_code == 0, result.output

    index = json.loads((tmp_path / "store" / "drafts%3Aindex.json").read_text(encoding="utf-8"))
    export_path = tmp_path / "draft.json"
    result = runner.invoke(main, args + ["--export-draft", index[0], "--output", str(export_path)])
    assert result.exit_code == 0, result.output
    assert json.loads(export_path.read_text(encoding="utf-8"))["formatVersion"] == 1

    result = runner.invoke(main, args + ["--import-draft", str(export_path), "--stats"])
    assert result.exit_code == 0, result.output
    assert "Imported - Basics" in result.output


def test_unknown_draft_fails():
    runner = CliRunner()
    result = runner.invoke(main, ["--backend", "memory", "--load-draft", "draft_missing"])
    assert result.exit_code == 1
    assert "not found" in result.output
