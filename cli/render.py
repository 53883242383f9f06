from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

import typer

from models.readings import HistoryEntry, Reading, Severity
from services.supervisor import ConnectionState

SEVERITY_COLORS = {
    Severity.SAFE: typer.colors.GREEN,
    Severity.MODERATE: typer.colors.BLUE,
    Severity.WARNING: typer.colors.YELLOW,
    Severity.HAZARD: typer.colors.RED,
}

STATE_COLORS = {
    ConnectionState.connected: typer.colors.GREEN,
    ConnectionState.connecting: typer.colors.CYAN,
    ConnectionState.disconnected: typer.colors.YELLOW,
    ConnectionState.failed: typer.colors.RED,
    ConnectionState.idle: typer.colors.WHITE,
}

SPARK_CHARS = " ▁▂▃▄▅▆▇█"


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def sparkline(entries: Sequence[HistoryEntry], width: int = 40) -> str:
    """Render the most recent values on a fixed 0-100 scale."""
    chars = []
    for entry in entries[-width:]:
        clamped = min(100.0, max(0.0, entry.value))
        chars.append(SPARK_CHARS[round(clamped / 100 * (len(SPARK_CHARS) - 1))])
    return "".join(chars)


class TerminalDisplay:
    """Display sink that prints one line per reading and per status change."""

    def show_reading(
        self, reading: Reading, severity: Severity, history: Sequence[HistoryEntry]
    ) -> None:
        stamp = reading.observed_at.astimezone().strftime("%H:%M:%S")
        typer.secho(
            f"[{stamp}] {reading.value:5.1f}%  {severity.label:<15} {sparkline(history)}",
            fg=SEVERITY_COLORS[severity],
            bold=severity is Severity.HAZARD,
        )
        if severity is Severity.HAZARD:
            typer.secho(
                "FLOOD HAZARD DETECTED! Water level is dangerously high.",
                fg=typer.colors.RED,
                bold=True,
            )

    def show_status(self, state: ConnectionState, diagnostic: Optional[str]) -> None:
        message = f"Connection: {state.value}"
        if diagnostic:
            message = f"{message} - {diagnostic}"
        typer.secho(message, fg=STATE_COLORS[state], err=True)


def render_health(payload: Dict[str, Any]) -> None:
    echo_heading("Alert Relay Health")
    telegram = payload.get("telegram") or {}
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("timestamp", payload.get("timestamp")),
            ("telegram_configured", telegram.get("configured")),
            ("cooldown", telegram.get("cooldown")),
        ]
    )
