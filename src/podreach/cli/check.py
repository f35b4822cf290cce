"""CLI command: podreach check — can one pod reach another?"""

from __future__ import annotations

import json
import sys

import click
from rich.console import Console

from podreach.cli._common import (
    build_provider,
    fatal_errors,
    normalize_protocol,
    protocol_option,
)
from podreach.reachability import Endpoint, ReachabilityAnalyzer
from podreach.report import print_verdict

console = Console()


@click.command()
@click.option(
    "--source", "-s", required=True, help="Source pod name, or NAMESPACE/NAME."
)
@click.option(
    "--source-namespace",
    "--sn",
    "-S",
    default="default",
    show_default=True,
    help="Namespace of the source pod when not given in --source.",
)
@click.option(
    "--destination",
    "-d",
    required=True,
    help="Destination pod name, or NAMESPACE/NAME.",
)
@click.option(
    "--destination-namespace",
    "--dn",
    "-D",
    default="default",
    show_default=True,
    help="Namespace of the destination pod when not given in --destination.",
)
@protocol_option
@click.option("--json", "as_json", is_flag=True, help="Print the verdict as JSON.")
@click.option(
    "--exit-code",
    is_flag=True,
    help="Exit with status 2 when the connection is blocked.",
)
@click.pass_context
@fatal_errors
def check(
    ctx: click.Context,
    source: str,
    source_namespace: str,
    destination: str,
    destination_namespace: str,
    protocol: str | None,
    port: str | None,
    as_json: bool,
    exit_code: bool,
) -> None:
    """Check whether SOURCE can reach DESTINATION under the NetworkPolicies."""
    protocol, port = normalize_protocol(protocol, port)
    analyzer = ReachabilityAnalyzer(build_provider(ctx))
    verdict = analyzer.analyze(
        Endpoint.parse(source, source_namespace),
        Endpoint.parse(destination, destination_namespace),
        protocol=protocol,
        port=port,
    )

    if as_json:
        click.echo(json.dumps(verdict.to_dict(), indent=2))
    else:
        print_verdict(console, verdict)

    if exit_code and not verdict.reachable:
        sys.exit(2)
