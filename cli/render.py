from __future__ import annotations

from typing import Any, Dict, Iterable, List

import typer

_SEVERITY_COLORS = {
    "INFO": typer.colors.BLUE,
    "WARNING": typer.colors.YELLOW,
    "CRITICAL": typer.colors.RED,
    "EMERGENCY": typer.colors.BRIGHT_RED,
}


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_summary(payload: Dict[str, Any]) -> None:
    echo_heading("Evaluation Pass")
    created = payload.get("alarms_created") or []
    echo_key_values(
        [
            ("pass_id", payload.get("pass_id")),
            ("completed", payload.get("completed")),
            ("sensors_evaluated", payload.get("sensors_evaluated")),
            ("alarms_created", len(created)),
            ("alarms_suppressed", payload.get("alarms_suppressed")),
        ]
    )
    if payload.get("error"):
        typer.secho(f"error: {payload['error']}", fg=typer.colors.RED)


def render_alarm(payload: Dict[str, Any]) -> None:
    severity = payload.get("severity") or "INFO"
    state = "resolved" if payload.get("resolved") else "open"
    typer.secho(
        f"[{severity}] {payload.get('id')} {payload.get('alarm_type')} ({state})",
        fg=_SEVERITY_COLORS.get(severity),
    )
    typer.echo(f"  {payload.get('description')}")
    typer.echo(
        f"  sensor={payload.get('sensor_id')} user={payload.get('user_id')} at {payload.get('timestamp')}"
    )


def render_alarms(payloads: List[Dict[str, Any]]) -> None:
    echo_heading("Alarms")
    if not payloads:
        typer.echo("No alarms recorded.")
        return
    for payload in payloads:
        render_alarm(payload)
