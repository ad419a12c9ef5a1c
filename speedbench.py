#!/usr/bin/env python3
"""
Speedbench CLI -- benchmark the nearest (or chosen) speedtest.net servers.

Usage::

    python speedbench.py                      # nearest server
    python speedbench.py --list               # list servers by distance
    python speedbench.py -s 1234 -s 5678      # benchmark several servers
    python speedbench.py --log-file run.log   # report to a file
    python speedbench.py --json               # JSON to stdout
    python speedbench.py -o result.json       # save JSON to file
    python speedbench.py --saving-mode        # one connection, small buffers
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional

from bench import __version__
from bench.config import load_config
from bench.constants import (
    MAX_CONCURRENCY,
    MAX_CONNECTIONS,
    MAX_DURATION,
    MAX_PING_COUNT,
    MAX_PROBE_TIMEOUT,
    MIN_CONCURRENCY,
    MIN_CONNECTIONS,
    MIN_DURATION,
    MIN_PING_COUNT,
    MIN_PROBE_TIMEOUT,
)
from bench.directory import ServerDirectory
from bench.errors import SpeedbenchError
from bench.logging_config import configure_logging
from bench.orchestrator import BenchmarkOrchestrator, ReportSink
from bench.probes import SpeedtestProbes
from bench.selector import select_targets
from ui.dashboard import (
    console,
    print_client_info,
    print_header,
    print_result_table,
    print_server_list,
)
from ui.output import create_result_json, save_json
from ui.sinks import ConsoleSink, FileSink, MemorySink

logger = logging.getLogger("speedbench")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _validate(
    ping_count: int,
    download_duration: float,
    upload_duration: float,
    connections: int,
    probe_timeout: float,
    concurrency: int,
) -> None:
    """Raise ``ValueError`` if any parameter is out of range."""
    if not MIN_PING_COUNT <= ping_count <= MAX_PING_COUNT:
        raise ValueError(f"Ping count must be between {MIN_PING_COUNT} and {MAX_PING_COUNT}")
    if not MIN_DURATION <= download_duration <= MAX_DURATION:
        raise ValueError(f"Download duration must be between {MIN_DURATION} and {MAX_DURATION} s")
    if not MIN_DURATION <= upload_duration <= MAX_DURATION:
        raise ValueError(f"Upload duration must be between {MIN_DURATION} and {MAX_DURATION} s")
    if not MIN_CONNECTIONS <= connections <= MAX_CONNECTIONS:
        raise ValueError(f"Connections must be between {MIN_CONNECTIONS} and {MAX_CONNECTIONS}")
    if not MIN_PROBE_TIMEOUT <= probe_timeout <= MAX_PROBE_TIMEOUT:
        raise ValueError(f"Probe timeout must be between {MIN_PROBE_TIMEOUT} and {MAX_PROBE_TIMEOUT} s")
    if not MIN_CONCURRENCY <= concurrency <= MAX_CONCURRENCY:
        raise ValueError(f"Concurrency must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}")
    longest = max(download_duration, upload_duration)
    if probe_timeout <= longest:
        raise ValueError(
            f"Probe timeout ({probe_timeout:g} s) must exceed the transfer duration ({longest:g} s)"
        )


def _make_sink(log_file: str, json_output: bool) -> ReportSink:
    if log_file:
        return FileSink(log_file)
    if json_output:
        return MemorySink()
    return ConsoleSink(console)


# ---------------------------------------------------------------------------
# Core runner
# ---------------------------------------------------------------------------

async def run_benchmark(
    *,
    server_ids: Optional[List[int]] = None,
    list_servers: bool = False,
    json_output: bool = False,
    output_file: Optional[str] = None,
    log_file: str = "",
    probe_timeout: float,
    concurrency: int,
    connections: int,
    ping_count: int,
    download_duration: float,
    upload_duration: float,
    saving_mode: bool = False,
) -> Optional[Dict[str, Any]]:
    """Locate, fetch the catalog, select targets and benchmark them."""

    show_ui = not json_output

    if show_ui:
        print_header()

    async with ServerDirectory() as directory:
        if show_ui:
            console.print("[dim]Fetching client info...[/dim]")
        client = await directory.locate()
        if show_ui:
            print_client_info(client)
            console.print("[dim]Fetching server list...[/dim]")
        catalog = await directory.fetch_catalog(client.coordinate)

    if list_servers:
        if json_output:
            print(json.dumps([s.to_dict() for s in catalog], indent=2))
        else:
            print_server_list(catalog)
        return None

    targets = select_targets(catalog, server_ids or [])

    probes = SpeedtestProbes(
        ping_count=ping_count,
        download_duration=download_duration,
        upload_duration=upload_duration,
        connections=connections,
        saving_mode=saving_mode,
    )
    sink = _make_sink(log_file, json_output)
    orchestrator = BenchmarkOrchestrator(
        probes,
        sink,
        probe_timeout=probe_timeout,
        concurrency=concurrency,
    )

    try:
        report = await orchestrator.run(targets)
    finally:
        if isinstance(sink, FileSink):
            sink.close()

    if show_ui:
        console.print()
        print_result_table(report)
        if log_file:
            console.print(f"[green]Report appended to:[/green] {log_file}")

    result_json = create_result_json(report.to_dict(), client.to_dict())

    if json_output:
        print(json.dumps(result_json, indent=2))

    if output_file:
        save_json(result_json, output_file)
        if show_ui:
            console.print(f"[green]Results saved to:[/green] {output_file}")

    return result_json


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser(config: Dict[str, Any]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="speedbench",
        description="Benchmark throughput and latency against speedtest.net servers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Server selection
    parser.add_argument("--list", "-l", dest="list_servers", action="store_true", help="Show available speedtest.net servers and exit")
    parser.add_argument("--server", "-s", dest="servers", type=int, action="append", metavar="ID", help="Server ID to benchmark (repeatable; default: nearest)")

    # Output
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--output", "-o", type=str, metavar="FILE", help="Save results to JSON file")
    parser.add_argument("--log-file", type=str, default=config["log_file"], metavar="FILE", help="Append the report to FILE instead of the console")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="More log output (-vv for debug)")

    # Test parameters
    parser.add_argument("--saving-mode", action="store_true", default=config["saving_mode"], help="Use less memory, though lower accuracy on fast links")
    parser.add_argument("--timeout", dest="probe_timeout", type=float, default=config["probe_timeout"], metavar="SECS", help="Abandon a probe after SECS seconds (default: %(default)s)")
    parser.add_argument("--concurrency", type=int, default=config["concurrency"], metavar="N", help="Benchmark up to N servers in parallel (default: %(default)s)")
    parser.add_argument("--connections", type=int, default=config["connections"], metavar="N", help="Concurrent transfer connections (default: %(default)s)")
    parser.add_argument("--ping-count", type=int, default=config["ping_count"], metavar="N", help="Number of ping samples (default: %(default)s)")
    parser.add_argument("--download-duration", type=float, default=config["download_duration"], metavar="SECS", help="Download test duration (default: %(default)s)")
    parser.add_argument("--upload-duration", type=float, default=config["upload_duration"], metavar="SECS", help="Upload test duration (default: %(default)s)")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    config = load_config()
    args = build_parser(config).parse_args(argv)

    configure_logging(args.verbose)

    try:
        _validate(
            ping_count=args.ping_count,
            download_duration=args.download_duration,
            upload_duration=args.upload_duration,
            connections=args.connections,
            probe_timeout=args.probe_timeout,
            concurrency=args.concurrency,
        )
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    server_ids = args.servers if args.servers is not None else list(config["servers"])

    try:
        asyncio.run(
            run_benchmark(
                server_ids=server_ids,
                list_servers=args.list_servers,
                json_output=args.json,
                output_file=args.output,
                log_file=args.log_file,
                probe_timeout=args.probe_timeout,
                concurrency=args.concurrency,
                connections=args.connections,
                ping_count=args.ping_count,
                download_duration=args.download_duration,
                upload_duration=args.upload_duration,
                saving_mode=args.saving_mode,
            )
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except (SpeedbenchError, OSError) as exc:
        logger.debug("Run aborted", exc_info=True)
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
