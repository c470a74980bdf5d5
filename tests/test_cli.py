"""CLI smoke tests through click's CliRunner against a temporary state file."""

import json

import pytest
from click.testing import CliRunner

from breakbuddy.cli import cli, next_mood
from breakbuddy.timer.models import Mood
from breakbuddy.timer.persistence import STORAGE_KEY


@pytest.fixture
def runner(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    state_path = tmp_path / "state.json"
    env = {
        "BREAKBUDDY_STATE_PATH": str(state_path),
        "BREAKBUDDY_NOTIFICATIONS": "false",
        "GEMINI_API_KEY": "",
    }
    return CliRunner(env=env), state_path


def test_durations_are_saved(runner):
    cli_runner, state_path = runner
    result = cli_runner.invoke(cli, ["durations", "--focus", "45", "--short", "10"])
    assert result.exit_code == 0, result.output
    assert "Focus 45m" in result.output

    envelope = json.loads(state_path.read_text())
    assert envelope["key"] == STORAGE_KEY
    assert envelope["state"]["durations"] == {"focus": 2700, "shortBreak": 600, "longBreak": 900}


def test_durations_rejects_zero(runner):
    cli_runner, _ = runner
    result = cli_runner.invoke(cli, ["durations", "--focus", "0"])
    assert result.exit_code != 0


def test_auto_brew_toggle(runner):
    cli_runner, state_path = runner
    result = cli_runner.invoke(cli, ["auto-brew", "off"])
    assert result.exit_code == 0, result.output
    assert json.loads(state_path.read_text())["state"]["autoBrewEnabled"] is False


def test_stats_on_fresh_install(runner):
    cli_runner, _ = runner
    result = cli_runner.invoke(cli, ["stats"])
    assert result.exit_code == 0, result.output
    assert "Last 7 days" in result.output
    assert "0 sprints" in result.output


def test_history_empty(runner):
    cli_runner, _ = runner
    result = cli_runner.invoke(cli, ["history"])
    assert result.exit_code == 0
    assert "No focus sprints" in result.output


def test_history_lists_entries(runner):
    cli_runner, state_path = runner
    state_path.write_text(json.dumps({
        "key": STORAGE_KEY,
        "state": {
            "sessionHistory": [
                {
                    "id": "a",
                    "completedAt": "2026-03-10T09:25:00.000Z",
                    "focusMinutes": 25,
                    "mood": "🧠",
                    "suggestion": "Refill the water bottle.",
                    "cycle": 1,
                }
            ]
        },
    }))
    result = cli_runner.invoke(cli, ["history", "--limit", "5"])
    assert result.exit_code == 0, result.output
    assert "Refill" in result.output


def test_brew_without_key_reports_error(runner):
    cli_runner, _ = runner
    result = cli_runner.invoke(cli, ["brew"])
    assert result.exit_code == 1
    assert "GEMINI_API_KEY" in result.output


def test_invalid_config_is_reported(runner):
    cli_runner, _ = runner
    result = cli_runner.invoke(cli, ["stats"], env={"BREAKBUDDY_TICK_MS": "-5"})
    assert result.exit_code == 1
    assert "BREAKBUDDY_TICK_MS" in result.output


def test_next_mood_cycles():
    assert next_mood(None) is Mood.COOL
    assert next_mood(Mood.LOVING) is Mood.COOL
    assert next_mood(Mood.COOL) is Mood.SLEEPY
