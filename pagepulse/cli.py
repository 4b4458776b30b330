"""PagePulse CLI — run the ingest server or simulate a tracked page visit."""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

import click
from rich.console import Console
from rich.table import Table

from .client.geolocation import FixedGeolocator, parse_coordinates
from .client.lifecycle import BEFORE_UNLOAD, PAGE_HIDE, UNLOAD, PageLifecycle
from .client.storage import JsonFileStorage, MemoryStorage
from .client.throttle import utc_now
from .client.tracker import ClientConfig, PageEnvironment, SessionTracker
from .client.transport import BeaconTransport, RecordingTransport
from .useragent import classify_device, is_handheld

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)
EXIT_SIGNALS = ("close", "hidden", BEFORE_UNLOAD, UNLOAD, PAGE_HIDE)


class SimulatedClock:
    """Wall clock that can be moved forward without waiting."""

    def __init__(self, start: Optional[datetime] = None):
        self._now = start or utc_now()

    def __call__(self) -> datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)


@dataclass
class VisitReport:
    ingest_url: str
    user_agent: str
    armed: bool
    sent: bool
    state: str
    payload: dict = field(default_factory=dict)
    status_code: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ingestUrl": self.ingest_url,
            "device": classify_device(self.user_agent).value,
            "armed": self.armed,
            "sent": self.sent,
            "state": self.state,
            "statusCode": self.status_code,
            "payload": self.payload or None,
        }


async def simulate_visit(
    ingest_url: str,
    page: PageEnvironment,
    *,
    seconds: float,
    exit_signal: str,
    storage,
    environment: str = "production",
    location: Optional[tuple[float, float]] = None,
    dry_run: bool = False,
) -> VisitReport:
    clock = SimulatedClock()
    transport = RecordingTransport() if dry_run else BeaconTransport(user_agent=page.user_agent)
    geolocator = FixedGeolocator(*location) if location else None
    tracker = SessionTracker(
        ClientConfig(environment=environment, rest_url=ingest_url),
        page,
        storage,
        transport,
        geolocator=geolocator,
        clock=clock,
    )
    lifecycle = PageLifecycle()

    armed = tracker.start()
    if armed:
        tracker.attach(lifecycle)
        # Give the location lookup a turn of the loop before the page closes.
        await asyncio.sleep(0)

    clock.advance(seconds)
    if exit_signal == "close":
        lifecycle.close(handheld=is_handheld(page.user_agent))
    elif exit_signal == "hidden":
        lifecycle.set_visibility("hidden")
    else:
        lifecycle.dispatch(exit_signal)

    status_code = None
    if isinstance(transport, BeaconTransport):
        await transport.drain()
        await transport.aclose()
        if transport.responses:
            status_code = transport.responses[-1].status_code

    event = tracker.last_event
    return VisitReport(
        ingest_url=ingest_url,
        user_agent=page.user_agent,
        armed=armed,
        sent=event is not None,
        state=tracker.state.value,
        payload=event.to_wire() if event is not None else {},
        status_code=status_code,
    )


def print_visit(report: VisitReport, *, dry_run: bool) -> None:
    console = Console()

    console.print()
    console.print(f"[bold]📈 PagePulse visit — {report.ingest_url}[/]")
    console.print("[dim]" + "━" * 50 + "[/]")
    console.print(f"Device: {classify_device(report.user_agent).value}")
    console.print(f"Session: {'[green]armed[/]' if report.armed else '[yellow]not armed[/]'} → {report.state}")

    if report.payload:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Field")
        table.add_column("Value")
        for key, value in report.payload.items():
            table.add_row(key, str(value))
        console.print(table)

    console.print("[dim]" + "━" * 50 + "[/]")
    if not report.sent:
        console.print("Result: [bold yellow]SUPPRESSED[/] (no payload sent)")
    elif dry_run:
        console.print("Result: [bold green]SENT[/] (dry run, nothing left this machine)")
    elif report.status_code is None:
        console.print("Result: [bold green]SENT[/] (no response observed)")
    else:
        console.print(f"Result: [bold green]SENT[/] (ingest answered HTTP {report.status_code})")
    console.print()


@click.group()
def main() -> None:
    """PagePulse — anonymous page-visit telemetry."""


@main.command()
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--port", default=8080, show_default=True, type=int)
@click.option("--reload", is_flag=True, help="Reload on code changes (development).")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the ingest server."""
    import uvicorn
    uvicorn.run("pagepulse.server:app", host=host, port=port, reload=reload, log_level="info")


@main.command()
@click.argument("ingest_url")
@click.option("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent of the simulated visitor.")
@click.option("--title", default="PagePulse test page", show_default=True, help="Page title.")
@click.option("--seconds", default=5.0, show_default=True, type=float, help="Time spent on the page.")
@click.option("--exit-signal", type=click.Choice(EXIT_SIGNALS), default="close", show_default=True,
              help="How the visit ends; 'close' replays every signal a closing page emits.")
@click.option("--location", default=None, help="Resolve geolocation to LAT,LON.")
@click.option("--environment", default="production", show_default=True, help="Environment the page reports.")
@click.option("--storage", "storage_path", default=None, type=click.Path(dir_okay=False),
              help="Persist page storage (throttle state) to this JSON file.")
@click.option("--dry-run", is_flag=True, help="Build the payload but don't send it.")
@click.option("--json", "json_output", is_flag=True, help="Output the result as JSON.")
def visit(
    ingest_url: str,
    user_agent: str,
    title: str,
    seconds: float,
    exit_signal: str,
    location: str | None,
    environment: str,
    storage_path: str | None,
    dry_run: bool,
    json_output: bool,
) -> None:
    """Simulate one tracked page visit against INGEST_URL.

    Exits 0 when a payload was sent and 1 when the session was suppressed.
    """
    try:
        coordinates = parse_coordinates(location) if location else None
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--location")

    page = PageEnvironment(
        user_agent=user_agent,
        title=title,
        screen_width=1920,
        screen_height=1080,
        language="en-US",
        timezone="UTC",
        platform=sys.platform,
    )
    storage = JsonFileStorage(storage_path) if storage_path else MemoryStorage()

    report = asyncio.run(
        simulate_visit(
            ingest_url,
            page,
            seconds=seconds,
            exit_signal=exit_signal,
            storage=storage,
            environment=environment,
            location=coordinates,
            dry_run=dry_run,
        )
    )

    if json_output:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        print_visit(report, dry_run=dry_run)

    sys.exit(0 if report.sent else 1)


if __name__ == "__main__":
    main()
