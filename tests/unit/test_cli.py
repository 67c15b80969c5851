from __future__ import annotations

import json

from typer.testing import CliRunner

from sql_middleware import main as cli
from sql_middleware.config import MASKED_PASSWORD

runner = CliRunner()


def test_info_masks_password(monkeypatch, test_settings):
    monkeypatch.setattr(cli, "get_settings", lambda: test_settings)

    result = runner.invoke(cli.app, ["info"])

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["db_config"]["password"] == MASKED_PASSWORD
    assert payload["db_config"]["host"] == "db.test"
    assert "s3cret" not in result.output


def test_ping_exits_non_zero_when_disconnected(monkeypatch, test_settings):
    async def fake_ping():
        return {"connected": False, "message": "Database connection failed after 1 attempt(s)"}

    monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
    monkeypatch.setattr(cli, "_ping", fake_ping)

    result = runner.invoke(cli.app, ["ping"])

    assert result.exit_code == 1
    assert json.loads(result.output)["connected"] is False


def test_serve_runs_uvicorn_factory(monkeypatch, test_settings):
    calls = {}
    monkeypatch.setattr(cli, "get_settings", lambda: test_settings)
    monkeypatch.setattr(cli.uvicorn, "run", lambda target, **kwargs: calls.update(target=target, **kwargs))

    result = runner.invoke(cli.app, ["serve", "--port", "8088"])

    assert result.exit_code == 0
    assert calls["target"] == "sql_middleware.api.app:create_app"
    assert calls["factory"] is True
    assert calls["port"] == 8088
    assert calls["host"] == "0.0.0.0"
