from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import typer

from cli.client import AlertNotifier, ApiClient
from cli.config import CLIConfig, load_config
from cli.render import TerminalDisplay, render_health
from logging_config import configure_logging
from models.readings import Thresholds
from services.alert_engine import AlertEngine, DedupStrategy
from services.errors import InvalidTargetError
from services.history import HistoryBuffer
from services.session import MonitorSession
from services.transports import WebSocketTransport


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Water level monitor and alert relay utilities.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Alert relay base URL (defaults to ALERT_API_URL env or http://localhost:3001).",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


async def run_monitor(
    config: CLIConfig,
    host: str,
    port: int | str,
    thresholds: Thresholds,
    alerts_enabled: bool,
) -> None:
    """Run one monitoring session until cancelled."""
    notifier = AlertNotifier(config)
    session = MonitorSession(
        transport_factory=WebSocketTransport,
        notifier=notifier,
        display=TerminalDisplay(),
        thresholds=thresholds,
        engine=AlertEngine(
            strategy=config.dedup_strategy,
            cooldown=timedelta(seconds=config.cooldown_seconds),
        ),
        history=HistoryBuffer(config.history_capacity),
        alerts_enabled=alerts_enabled,
        connect_timeout=config.connect_timeout,
        reconnect_delay=config.reconnect_delay,
    )
    try:
        session.start(host, port)
        await asyncio.Event().wait()
    finally:
        session.stop()
        await session.drain()
        await notifier.aclose()


@app.command("monitor")
def monitor_command(
    ctx: typer.Context,
    host: str = typer.Argument(..., help="Sensor IP address or hostname."),
    port: str = typer.Argument("81", help="Sensor WebSocket port."),
    alerts: bool = typer.Option(True, "--alerts/--no-alerts", help="Send Telegram alerts at 70%+."),
    warning: float = typer.Option(70.0, "--warning", help="Warning threshold in percent."),
    hazard: float = typer.Option(80.0, "--hazard", help="Default flood hazard threshold in percent."),
    dedup: Optional[DedupStrategy] = typer.Option(
        None,
        "--dedup",
        case_sensitive=False,
        help="Alert deduplication strategy (defaults to ALERT_DEDUP_STRATEGY env or combined).",
    ),
    connect_timeout: Optional[float] = typer.Option(None, "--connect-timeout", help="Seconds to wait for the sensor."),
    reconnect_delay: Optional[float] = typer.Option(None, "--reconnect-delay", help="Seconds between reconnects."),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Stream readings from a sensor, render them and raise alerts."""
    configure_logging(log_level.upper() if log_level else None)
    state = _get_state(ctx)
    config = load_config(
        base_url=state.config.base_url,
        connect_timeout=connect_timeout,
        reconnect_delay=reconnect_delay,
        dedup_strategy=dedup,
    )
    typer.echo(f"Monitoring ws://{host}:{port}/ (alerts {'on' if alerts else 'off'}). Ctrl+C to stop.")
    try:
        asyncio.run(
            run_monitor(
                config,
                host,
                port,
                Thresholds(warning=warning, hazard=hazard),
                alerts,
            )
        )
    except InvalidTargetError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)
    except KeyboardInterrupt:
        typer.echo("Stopped.")


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Show alert relay health and Telegram configuration."""
    state = _get_state(ctx)
    render_health(state.client.health())


@app.command("test-telegram")
def test_telegram_command(ctx: typer.Context) -> None:
    """Ask the relay to send a Telegram test message."""
    state = _get_state(ctx)
    payload = state.client.test_telegram()
    typer.secho(payload.get("message", "Test message sent."), fg=typer.colors.GREEN)
