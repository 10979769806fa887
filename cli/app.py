from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import typer

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_alarm, render_alarms, render_summary


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Utilities for interacting with the consumption alarm monitor.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Monitor API base URL (defaults to API_BASE_URL env or http://localhost:8000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for each HTTP request.",
    ),
    actor: Optional[str] = typer.Option(
        None,
        "--actor",
        help="Name recorded when acknowledging or resolving alarms.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout, actor=actor)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("check")
def check_command(ctx: typer.Context) -> None:
    """Run an evaluation pass now."""
    state = _get_state(ctx)
    typer.echo(f"Running evaluation pass on {state.config.base_url} ...")
    summary = state.client.run_check()
    render_summary(summary)
    if not summary.get("completed"):
        raise typer.Exit(code=1)


@app.command("alarms")
def alarms_command(
    ctx: typer.Context,
    unresolved: bool = typer.Option(
        False,
        "--unresolved",
        help="Only list alarms that have not been resolved.",
    ),
) -> None:
    """List recorded alarms, newest first."""
    state = _get_state(ctx)
    payloads = state.client.list_alarms(resolved=False if unresolved else None)
    render_alarms(payloads)


@app.command("acknowledge")
def acknowledge_command(
    ctx: typer.Context,
    alarm_id: str = typer.Argument(..., help="Identifier of the alarm."),
) -> None:
    """Acknowledge an alarm."""
    state = _get_state(ctx)
    payload = state.client.acknowledge(alarm_id, actor=state.config.actor)
    typer.secho(f"Alarm {alarm_id} acknowledged.", fg=typer.colors.GREEN)
    render_alarm(payload)


@app.command("resolve")
def resolve_command(
    ctx: typer.Context,
    alarm_id: str = typer.Argument(..., help="Identifier of the alarm."),
) -> None:
    """Resolve an alarm."""
    state = _get_state(ctx)
    payload = state.client.resolve(alarm_id, actor=state.config.actor)
    typer.secho(f"Alarm {alarm_id} resolved.", fg=typer.colors.GREEN)
    render_alarm(payload)
