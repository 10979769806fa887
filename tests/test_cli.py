from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
from typer.testing import CliRunner

from cli.app import app
from cli.config import load_config


def _alarm_payload(alarm_id: str = "alarm-1", resolved: bool = False) -> Dict[str, Any]:
    return {
        "id": alarm_id,
        "user_id": "user-1",
        "sensor_id": 1,
        "alarm_type": "DAILY_CONSUMPTION",
        "severity": "WARNING",
        "title": "Daily limit exceeded",
        "description": "Daily consumption (4000.00L) exceeded the configured limit (3000L)",
        "value": 4000.0,
        "threshold": 3000.0,
        "timestamp": "2024-05-15T12:00:00Z",
        "resolved": resolved,
    }


class StubClient:
    def __init__(self, config) -> None:
        self.config = config
        self.summary: Dict[str, Any] = {
            "pass_id": "abc123",
            "completed": True,
            "sensors_evaluated": 3,
            "alarms_created": ["alarm-1"],
            "alarms_suppressed": 2,
            "error": None,
        }
        self.alarms: List[Dict[str, Any]] = [_alarm_payload()]
        self.list_filters: List[Optional[bool]] = []
        self.actions: List[tuple[str, str, str]] = []
        self.closed = False

    def run_check(self) -> Dict[str, Any]:
        return self.summary

    def list_alarms(self, resolved: Optional[bool] = None) -> List[Dict[str, Any]]:
        self.list_filters.append(resolved)
        return self.alarms

    def acknowledge(self, alarm_id: str, actor: str) -> Dict[str, Any]:
        self.actions.append(("acknowledge", alarm_id, actor))
        return _alarm_payload(alarm_id)

    def resolve(self, alarm_id: str, actor: str) -> Dict[str, Any]:
        self.actions.append(("resolve", alarm_id, actor))
        return _alarm_payload(alarm_id, resolved=True)

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


def _install_stub(monkeypatch) -> StubClient:
    stub = StubClient(config=None)

    def factory(config):
        stub.config = config
        return stub

    monkeypatch.setattr("cli.app.ApiClient", factory)
    return stub


def test_check_renders_summary(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 0
    assert "Evaluation Pass" in result.stdout
    assert "alarms_created: 1" in result.stdout
    assert "alarms_suppressed: 2" in result.stdout
    assert stub.closed is True


def test_check_exits_non_zero_when_pass_aborts(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)
    stub.summary["completed"] = False
    stub.summary["error"] = "AggregationReadError: readings unavailable"

    result = runner.invoke(app, ["check"])

    assert result.exit_code == 1
    assert "readings unavailable" in result.stdout


def test_alarms_lists_unresolved_only_when_asked(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)

    runner.invoke(app, ["alarms"])
    result = runner.invoke(app, ["alarms", "--unresolved"])

    assert result.exit_code == 0
    assert "alarm-1" in result.stdout
    assert "DAILY_CONSUMPTION" in result.stdout
    assert stub.list_filters == [None, False]


def test_alarms_reports_empty_history(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)
    stub.alarms = []

    result = runner.invoke(app, ["alarms"])

    assert result.exit_code == 0
    assert "No alarms recorded." in result.stdout


def test_resolve_and_acknowledge_pass_actor(monkeypatch, runner: CliRunner) -> None:
    stub = _install_stub(monkeypatch)

    ack = runner.invoke(app, ["--actor", "operator", "acknowledge", "alarm-7"])
    res = runner.invoke(app, ["resolve", "alarm-7"])

    assert ack.exit_code == 0
    assert res.exit_code == 0
    assert "Alarm alarm-7 resolved." in res.stdout
    assert stub.actions == [
        ("acknowledge", "alarm-7", "operator"),
        ("resolve", "alarm-7", "cli"),
    ]


def test_load_config_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("API_BASE_URL", "http://monitor:9000/")
    monkeypatch.setenv("CLI_TIMEOUT", "not-a-number")
    monkeypatch.setenv("CLI_ACTOR", "night-shift")

    config = load_config()

    assert config.base_url == "http://monitor:9000"
    assert config.timeout == 30.0
    assert config.actor == "night-shift"
