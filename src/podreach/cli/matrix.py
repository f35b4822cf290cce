"""CLI command: podreach matrix — every pod pair across namespaces."""

from __future__ import annotations

import click
from rich.console import Console

from podreach.cli._common import (
    build_provider,
    fatal_errors,
    normalize_protocol,
    protocol_option,
)
from podreach.reachability import analyze_pairs, namespace_pairs
from podreach.report import matrix_table

console = Console()


@click.command()
@click.option(
    "--namespace",
    "-n",
    "namespaces",
    multiple=True,
    default=("default",),
    show_default=True,
    help="Namespace whose pods take part. Repeatable.",
)
@protocol_option
@click.option(
    "--workers",
    type=click.IntRange(min=1),
    default=None,
    help="Parallel analyses (default: PODREACH_MAX_WORKERS or 8).",
)
@click.pass_context
@fatal_errors
def matrix(
    ctx: click.Context,
    namespaces: tuple[str, ...],
    protocol: str | None,
    port: str | None,
    workers: int | None,
) -> None:
    """Analyse every ordered pair of pods in the given namespaces."""
    protocol, port = normalize_protocol(protocol, port)
    config = ctx.obj["config"]
    provider = build_provider(ctx)

    pairs = namespace_pairs(provider, namespaces)
    if not pairs:
        console.print("[yellow]Fewer than two pods found.[/yellow]")
        return

    results = analyze_pairs(
        provider,
        pairs,
        protocol=protocol,
        port=port,
        max_workers=workers or config.max_workers,
    )
    console.print(matrix_table(results))

    blocked = sum(
        1 for r in results if r.verdict is not None and not r.verdict.reachable
    )
    failed = sum(1 for r in results if r.error is not None)
    console.print(f"\n{len(results)} pairs, {blocked} blocked, {failed} failed")
