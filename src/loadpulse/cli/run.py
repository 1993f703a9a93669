"""``loadpulse run``: execute a load test and print its summary."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from loadpulse._internal.config import (
    API_URL_KEY,
    DURATION_SECONDS_KEY,
    RATE_PER_VU_KEY,
    TEST_ID_KEY,
    VIRTUAL_USERS_KEY,
    LoadTestConfig,
    load_settings,
)
from loadpulse._internal.errors import LoadPulseError
from loadpulse.engine.orchestrator import run_load_test
from loadpulse.reporting.publisher import build_publisher

if TYPE_CHECKING:
    from loadpulse.metrics.summary import LoadTestSummary

console = Console(stderr=True)


def _print_summary(summary: LoadTestSummary) -> None:
    """Print the final summary table.

    Args:
        summary: Completed test summary.
    """
    table = Table(
        title="Load Test Summary",
        show_header=True,
        header_style="bold green",
        expand=True,
    )
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if summary.test_id:
        table.add_row("Test ID", summary.test_id)
    table.add_row("Target URL", summary.target_url)
    table.add_row("Total Duration", f"{summary.duration_seconds:.2f}s")
    table.add_row("Successful Requests", str(summary.successful_requests))
    table.add_row("Failed Requests", str(summary.failed_requests))
    table.add_row("Transactions/sec (TPS)", f"{summary.transactions_per_second:.2f}")
    table.add_row("Error Rate", f"{summary.error_rate * 100:.2f}%")

    latency = summary.latency
    if latency.count:
        table.add_row("p50 Latency", f"{latency.p50_ms:.1f}ms")
        table.add_row("p95 Latency", f"{latency.p95_ms:.1f}ms")
        table.add_row("p99 Latency", f"{latency.p99_ms:.1f}ms")

    console.print(table)

    failures = summary.failures
    if failures.by_status or failures.by_error_type:
        err_table = Table(
            title="Failures",
            show_header=True,
            header_style="bold red",
            expand=True,
        )
        err_table.add_column("Cause")
        err_table.add_column("Count", justify="right")
        for status, count in sorted(failures.by_status.items()):
            err_table.add_row(f"HTTP {status}", str(count))
        for error_type, count in sorted(failures.by_error_type.items()):
            err_table.add_row(error_type, str(count))
        console.print(err_table)


def run_cmd(
    api_url: str = typer.Argument(..., help="Target URL requested by every virtual user."),
    virtual_users: str = typer.Argument(..., help="Number of virtual users (>= 1)."),
    rate_per_vu: str = typer.Argument(
        ..., help="Requests per second for each virtual user (may be fractional)."
    ),
    duration_seconds: str = typer.Argument(..., help="Test duration in whole seconds."),
    test_id: str = typer.Option(
        "",
        "--test-id",
        "-t",
        envvar="LOADPULSE_TEST_ID",
        help="Identifier copied into the published summary.",
    ),
    publish_url: str | None = typer.Option(
        None,
        "--publish-url",
        help="POST the summary JSON here (overrides LOADPULSE_PUBLISH_URL).",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the full summary as JSON to this file.",
    ),
    fail_on_errors: bool = typer.Option(
        False,
        "--fail-on-errors",
        help="Exit non-zero if any request failed.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit structured JSON log lines.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging, including every request.",
    ),
) -> None:
    """Run a rate-limited load test and print the summary."""
    # Arguments stay strings so every parse error surfaces as a ConfigError
    raw: dict[str, object] = {
        API_URL_KEY: api_url,
        VIRTUAL_USERS_KEY: virtual_users,
        RATE_PER_VU_KEY: rate_per_vu,
        DURATION_SECONDS_KEY: duration_seconds,
    }
    if test_id:
        raw[TEST_ID_KEY] = test_id

    try:
        config = LoadTestConfig.from_mapping(raw)
        settings = load_settings()
    except LoadPulseError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    publisher = build_publisher(
        publish_url=publish_url if publish_url is not None else settings.publish_url,
        publish_timeout=settings.publish_timeout,
        output_path=output,
    )

    console.print(
        Panel(
            f"[bold]Target URL:[/bold]    {config.target_url}\n"
            f"[bold]Virtual Users:[/bold] {config.virtual_users}\n"
            f"[bold]Rate per VU:[/bold]   {config.rate_per_user:g} req/s\n"
            f"[bold]Duration:[/bold]      {config.duration_seconds}s",
            title="LoadPulse",
            border_style="cyan",
        )
    )

    log_level = logging.DEBUG if verbose else logging.INFO
    try:
        with console.status("Running load test..."):
            summary = run_load_test(
                config,
                settings=settings,
                publisher=publisher,
                log_level=log_level,
                json_logs=json_logs,
            )
    except LoadPulseError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(summary)

    if fail_on_errors and summary.failed_requests > 0:
        console.print(
            f"[red]FAIL:[/red] {summary.failed_requests} of "
            f"{summary.total_requests} requests failed"
        )
        raise typer.Exit(code=1)

    console.print("[green]Load test completed.[/green]")
