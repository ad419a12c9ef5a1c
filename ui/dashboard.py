"""
Rich-based terminal presentation.

Formatting helpers live in ``bench.stats`` -- this module only does
presentation via the ``rich`` library.
"""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bench.directory import ServerCatalog
from bench.locator import ClientInfo
from bench.orchestrator import BenchmarkReport
from bench.stats import format_latency, format_speed

console = Console()


def print_header() -> None:
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]Speedbench[/bold cyan]\n"
            "[dim]Throughput and latency against the nearest speedtest.net servers[/dim]",
            border_style="cyan",
        )
    )
    console.print()


def print_client_info(client: ClientInfo) -> None:
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column(style="dim")
    table.add_column(style="bold")
    table.add_row("IP Address:", client.ip)
    table.add_row("ISP:", client.isp)
    table.add_row(
        "Location:",
        f"{client.coordinate.latitude:.4f}, {client.coordinate.longitude:.4f}",
    )
    if client.country:
        table.add_row("Country:", client.country)
    console.print(Panel(table, title="[bold]Client Info[/bold]", border_style="blue"))


def print_server_list(catalog: ServerCatalog) -> None:
    """Table of catalog entries, nearest first."""
    table = Table(title="Available Servers", box=box.ROUNDED)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Country")
    table.add_column("Sponsor")
    table.add_column("Distance", justify="right")

    for s in catalog:
        table.add_row(s.id, s.name, s.country, s.sponsor, f"{s.distance_km:.2f} km")

    console.print(table)


def print_result_table(report: BenchmarkReport) -> None:
    """Per-target summary including latency, which the report lines omit."""
    table = Table(title="Results", box=box.ROUNDED)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Server", style="bold")
    table.add_column("Latency", justify="right")
    table.add_column("Download", justify="right", style="green")
    table.add_column("Upload", justify="right", style="blue")

    def _cell(ok: bool, text: str) -> str:
        return text if ok else "[red]failed[/red]"

    for r in report.results:
        table.add_row(
            r.server_id,
            f"{r.server.name} ({r.server.sponsor})",
            _cell(r.latency.ok, format_latency(r.latency.value)),
            _cell(r.download.ok, format_speed(r.download.value)),
            _cell(r.upload.ok, format_speed(r.upload.value)),
        )

    if report.average is not None:
        table.add_row(
            "",
            "[bold]Average[/bold]",
            "",
            format_speed(report.average.download_mbps),
            format_speed(report.average.upload_mbps),
        )

    console.print(table)
