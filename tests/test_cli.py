# tests/test_cli.py

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from typer.testing import CliRunner

from due_lens.cli import main as cli_main
from due_lens.core.models import TaskRecord

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DUELENS_DATA_DIR", str(tmp_path / "data"))
    # Empty values also keep a stray .env from supplying a key.
    monkeypatch.setenv("DUELENS_API_KEY", "")
    monkeypatch.setenv("MOTION_API_KEY", "")

    # The CLI reconfigures the root logger; put the test harness handlers back afterwards.
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
        if h not in saved[0]:
            h.close()
    for h in saved[0]:
        root.addHandler(h)
    root.setLevel(saved[1])


def test_root_help_lists_commands() -> None:
    result = runner.invoke(cli_main.app, ["--help"])
    assert result.exit_code == 0
    assert "annotate" in result.stdout
    assert "tasks" in result.stdout


def test_annotate_without_key_exits_with_error(tmp_path: Path) -> None:
    page = tmp_path / "page.html"
    page.write_text("<div></div>", "utf-8")

    result = runner.invoke(cli_main.app, ["annotate", str(page)])

    assert result.exit_code == 1


def test_tasks_without_key_exits_with_error() -> None:
    result = runner.invoke(cli_main.app, ["tasks"])
    assert result.exit_code == 1


def test_annotate_writes_output_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = []

    async def fake_annotate(html, *, settings, credentials):
        calls.append((html, credentials.get_api_key()))
        return "<p>annotated</p>"

    monkeypatch.setattr(cli_main, "annotate_snapshot", fake_annotate)
    page = tmp_path / "page.html"
    page.write_text("<p>raw</p>", "utf-8")
    out = tmp_path / "out.html"

    result = runner.invoke(cli_main.app, ["annotate", str(page), "-o", str(out), "--api-key", "cli-key"])

    assert result.exit_code == 0
    assert out.read_text("utf-8") == "<p>annotated</p>"
    assert calls == [("<p>raw</p>", "cli-key")]
    assert (tmp_path / "data" / "logs" / "due-lens.log").exists()


def test_tasks_prints_id_label_and_name(monkeypatch: pytest.MonkeyPatch) -> None:
    seen_keys = []

    async def fake_load(settings, api_key):
        seen_keys.append(api_key)
        return (
            TaskRecord("t1", "Write report", datetime.now(UTC) + timedelta(days=3, hours=1)),
            TaskRecord("t2", "Someday", None),
        )

    monkeypatch.setattr(cli_main, "_load_tasks", fake_load)

    result = runner.invoke(cli_main.app, ["tasks", "--api-key", "cli-key"])

    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert "t1\t3d\tWrite report" in lines
    assert "t2\t-\tSomeday" in lines
    assert seen_keys == ["cli-key"]
