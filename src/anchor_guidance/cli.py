"""CLI entry point for the anchor guidance engine."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from anchor_guidance.api.server import GuidanceAPIServer
from anchor_guidance.core.engine import GuidanceEngine
from anchor_guidance.core.interfaces import RecordStore
from anchor_guidance.memory import InMemoryRecordStore, PersistentRecordStore
from anchor_guidance.metrics.logging import GuidanceLogWriter, load_guidance_requests
from anchor_guidance.modules.geodesy import format_distance
from anchor_guidance.modules.signal_scorer import score_detailed
from anchor_guidance.schemas import DirectionalScanRequest, NetworkObservation
from anchor_guidance.utils.config import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    SESSION_IDLE_TTL_SECONDS,
    EngineConfig,
    ServerConfig,
)

app = typer.Typer(
    name="anchor-guidance",
    help="Indoor object guidance from WiFi fingerprints and compass heading",
    add_completion=False,
)

console = Console()

_NETWORK_LIST = TypeAdapter(list[NetworkObservation])


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _open_store(path: Path | None) -> RecordStore:
    if path is None:
        return InMemoryRecordStore()
    return PersistentRecordStore(path)


def _load_networks(path: Path) -> list[NetworkObservation]:
    """Read a scan file: a list of networks or an object with ``networks``."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("networks") or []
    return _NETWORK_LIST.validate_python(data)


@app.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, "--host", help="Interface to bind"),
    port: int = typer.Option(DEFAULT_PORT, "--port", "-p", help="Port to listen on"),
    store_path: Optional[Path] = typer.Option(
        None,
        "--store",
        "-s",
        help="JSON record store (in-memory when omitted)",
    ),
    session_ttl: float = typer.Option(
        SESSION_IDLE_TTL_SECONDS,
        "--session-ttl",
        help="Seconds before an idle smoothing session is evicted",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Append every guidance poll to this JSONL file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Serve the guidance JSON API."""
    setup_logging(verbose)

    server_config = ServerConfig(host=host, port=port)
    engine = GuidanceEngine(
        _open_store(store_path),
        config=EngineConfig(session_idle_ttl_seconds=session_ttl),
    )
    writer = GuidanceLogWriter(log_file) if log_file else None
    server = GuidanceAPIServer(
        engine,
        host=server_config.host,
        port=server_config.port,
        log_writer=writer,
    )

    typer.echo(f"Serving guidance API on {server.url}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        typer.echo("\nShutting down")
    finally:
        if writer is not None:
            writer.close()


@app.command()
def score(
    live: Path = typer.Argument(..., exists=True, dir_okay=False, help="Live scan JSON"),
    stored: Path = typer.Argument(..., exists=True, dir_okay=False, help="Stored fingerprint JSON"),
) -> None:
    """Print the similarity breakdown of two scans."""
    try:
        live_scan = _load_networks(live)
        stored_scan = _load_networks(stored)
    except (json.JSONDecodeError, ValidationError) as e:
        typer.echo(f"Invalid scan file: {e}", err=True)
        raise typer.Exit(code=1)

    breakdown = score_detailed(live_scan, stored_scan)

    table = Table(title="Signal similarity")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Match key", breakdown.match_key.value)
    table.add_row("Common networks", str(breakdown.common_count))
    table.add_row("Cosine", f"{breakdown.cosine:.3f}")
    table.add_row("Coverage", f"{breakdown.coverage:.3f}")
    table.add_row("Penalty", f"{breakdown.deviation_penalty:.3f}")
    if breakdown.mean_abs_delta_dbm is not None:
        table.add_row("Mean |delta| dBm", f"{breakdown.mean_abs_delta_dbm:.1f}")
    table.add_row("Score", f"[bold]{breakdown.score:.3f}[/bold]")
    console.print(table)


@app.command()
def scan(
    lat: float = typer.Option(..., "--lat", help="Current latitude"),
    lng: float = typer.Option(..., "--lng", help="Current longitude"),
    heading: float = typer.Option(..., "--heading", help="Current compass heading"),
    anchor_id: Optional[str] = typer.Option(None, "--anchor-id", help="Restrict to one anchor"),
    store_path: Path = typer.Option(..., "--store", "-s", help="JSON record store"),
) -> None:
    """Print directional guidance toward stored objects."""
    engine = GuidanceEngine(PersistentRecordStore(store_path))
    response = engine.directional_scan(
        DirectionalScanRequest(
            anchor_id=anchor_id,
            current_heading=heading,
            current_latitude=lat,
            current_longitude=lng,
        )
    )

    if not response.objects:
        typer.echo("No objects found")
        return

    table = Table(title="Directional scan")
    table.add_column("Object", style="cyan")
    table.add_column("State")
    table.add_column("Delta", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Proximity")
    table.add_column("Distance hint")
    table.add_column("Elevation")
    for entry in response.objects:
        g = entry.guidance
        table.add_row(
            entry.label,
            g.state.value,
            f"{g.angle_delta}°",
            f"{g.target_heading}°",
            g.proximity_state.value,
            g.distance_hint,
            g.elevation_hint or "",
        )
    console.print(table)

    closest = response.objects[0].guidance.distance_to_anchor
    typer.echo(f"Anchor distance: {format_distance(closest)}")


@app.command()
def replay(
    requests_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Guidance requests JSONL"),
    store_path: Path = typer.Option(..., "--store", "-s", help="JSON record store"),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write request/response pairs to this JSONL file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
) -> None:
    """Feed recorded guidance requests through one engine.

    Smoothing state carries across requests exactly as it would on a
    live server.
    """
    setup_logging(verbose)
    engine = GuidanceEngine(PersistentRecordStore(store_path))
    writer = GuidanceLogWriter(output) if output else None

    count = 0
    try:
        for request in load_guidance_requests(requests_file):
            response = engine.guide(request)
            count += 1
            if writer is not None:
                writer.write(request, response)
            typer.echo(
                f"[{count:04d}] {request.target_object_id} "
                f"raw={response.raw_similarity:.2f} conf={response.confidence:.2f} "
                f"phase={response.phase.value} action={response.direction.action.value}"
            )
    finally:
        if writer is not None:
            writer.close()

    typer.echo(f"Replayed {count} requests")


@app.command()
def version() -> None:
    """Show version information."""
    from anchor_guidance import __version__
    typer.echo(f"anchor-guidance v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
