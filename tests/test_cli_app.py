from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from botrelay.cli import app
from botrelay.framework import RelayFramework


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BOTRELAY_LOG_LEVEL", "WARNING")


def _write_turn(tmp_path: Path, request: dict[str, object]) -> Path:
    turn_file = tmp_path / "turn.json"
    turn_file.write_text(
        json.dumps({"request": request, "response": {"message": "One. Two.", "type": "PlainText"}}),
        encoding="utf-8",
    )
    return turn_file


def test_run_prints_delivery_payload(tmp_path: Path) -> None:
    turn_file = _write_turn(tmp_path, {"question": "hi", "_type": "ALEXA", "session": {"n": 1}})

    result = CliRunner().invoke(app, ["run", str(turn_file)])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["response"]["outputSpeech"]["text"] == "One. Two."
    assert payload["sessionAttributes"] == {"n": "1"}


def test_run_applies_request_settings(tmp_path: Path) -> None:
    turn_file = _write_turn(
        tmp_path,
        {
            "question": "hi",
            "_type": "LEX",
            "_clientType": "LEX.AmazonConnect.Voice",
            "_settings": {"CONNECT_ENABLE_VOICE_RESPONSE_INTERRUPT": "true"},
        },
    )

    result = CliRunner().invoke(app, ["run", str(turn_file), "--full"])

    assert result.exit_code == 0, result.output
    response = json.loads(result.stdout)
    assert response["message"] == "One."
    assert response["session"]["nextPrompt"] == " Two."


def test_run_rejects_unreadable_file(tmp_path: Path) -> None:
    result = CliRunner().invoke(app, ["run", str(tmp_path / "missing.json")])

    assert result.exit_code != 0


def test_hooks_command_lists_encoders() -> None:
    result = CliRunner().invoke(app, ["hooks"])

    assert result.exit_code == 0
    assert "encode_response: builtin:lex, builtin:alexa" in result.stdout


def test_hooks_command_releases_transports(monkeypatch: pytest.MonkeyPatch) -> None:
    closed: list[RelayFramework] = []
    original = RelayFramework.aclose

    async def recording_aclose(self: RelayFramework) -> None:
        closed.append(self)
        await original(self)

    monkeypatch.setattr(RelayFramework, "aclose", recording_aclose)

    result = CliRunner().invoke(app, ["hooks"])

    assert result.exit_code == 0
    assert len(closed) == 1


def test_settings_command_prints_defaults() -> None:
    result = CliRunner().invoke(app, ["settings"])

    assert result.exit_code == 0
    assert json.loads(result.stdout)["bot_router_exit_msgs"] == "exit,quit,goodbye,leave"
