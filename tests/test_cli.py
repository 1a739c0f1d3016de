import json

from typer.testing import CliRunner

from relaybot import __version__
from relaybot.cli.commands import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_onboard_writes_default_config(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYBOT_HOME", str(tmp_path))

    result = runner.invoke(app, ["onboard"])

    assert result.exit_code == 0
    data = json.loads((tmp_path / "config.json").read_text())
    assert data["agent"]["autoSync"] is True


def test_onboard_keeps_existing_config_when_declined(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYBOT_HOME", str(tmp_path))
    (tmp_path / "config.json").write_text('{"agent": {"autoSync": false}}')

    result = runner.invoke(app, ["onboard"], input="n\n")

    assert result.exit_code == 0
    assert json.loads((tmp_path / "config.json").read_text()) == {"agent": {"autoSync": False}}


def test_config_json_reflects_file(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYBOT_HOME", str(tmp_path))
    (tmp_path / "config.json").write_text('{"reconnect": {"maxAttempts": 2}}')

    result = runner.invoke(app, ["config", "--json"])

    assert result.exit_code == 0
    assert json.loads(result.output)["reconnect"]["maxAttempts"] == 2


def test_config_table(tmp_path, monkeypatch):
    monkeypatch.setenv("RELAYBOT_HOME", str(tmp_path))
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0
    assert "agent.auto_sync" in result.output
