"""botrelay command line."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

import typer

from botrelay.config import Settings, get_settings
from botrelay.envelope import field_of, response_to_payload
from botrelay.framework import RelayFramework, TurnResult
from botrelay.logging_utils import configure_logging

app = typer.Typer(name="botrelay", help="Turn post-processing and delegate bot routing", add_completion=False)


def _load_event(turn_file: Path) -> dict[str, Any]:
    try:
        event = json.loads(turn_file.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(f"cannot read turn file: {exc}") from exc
    if not isinstance(event, dict):
        raise typer.BadParameter("turn file must hold a JSON object")
    return event


def _settings_for(event: dict[str, Any]) -> Settings:
    deployment = field_of(field_of(event, "request") or {}, "_settings") or {}
    return Settings.from_deployment(deployment, base=get_settings())


async def _run_event(framework: RelayFramework, event: dict[str, Any]) -> TurnResult:
    try:
        return await framework.process_event(event)
    finally:
        await framework.aclose()


@app.command("run")
def run(
    turn_file: Path = typer.Argument(..., help="JSON file holding {request, response}"),  # noqa: B008
    full: bool = typer.Option(False, "--full", help="Print the whole response, not only the delivery payload"),
) -> None:
    """Replay one turn through routing and assembly."""

    event = _load_event(turn_file)
    settings = _settings_for(event)
    configure_logging(profile=settings.log_profile, level=settings.log_level)
    result = asyncio.run(_run_event(RelayFramework(settings), event))
    output = response_to_payload(result.response) if full else result.payload
    typer.echo(json.dumps(output, indent=2, ensure_ascii=False))


@app.command("hooks")
def list_hooks() -> None:
    """Show hook implementation mapping."""

    framework = RelayFramework(get_settings())
    try:
        report = framework.hook_report()
    finally:
        asyncio.run(framework.aclose())
    if not report:
        typer.echo("(no hook implementations)")
        return
    for hook_name, adapter_names in report.items():
        typer.echo(f"{hook_name}: {', '.join(adapter_names)}")


@app.command("settings")
def show_settings() -> None:
    """Print effective settings."""

    settings = get_settings()
    data = settings.model_dump()
    if data.get("transport_api_key"):
        data["transport_api_key"] = "***"
    typer.echo(json.dumps(data, indent=2, default=str))
