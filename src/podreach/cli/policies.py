"""CLI command: podreach policies — which policies select a pod."""

from __future__ import annotations

import click
from rich.console import Console

from podreach.cli._common import build_provider, fatal_errors
from podreach.policy.aggregator import policies_for_workload
from podreach.report import policies_table

console = Console()


@click.command()
@click.option("--workload", "-w", required=True, help="Pod name.")
@click.option("--namespace", "-n", default="default", show_default=True)
@click.pass_context
@fatal_errors
def policies(ctx: click.Context, workload: str, namespace: str) -> None:
    """List the NetworkPolicies selecting a pod and the directions they govern."""
    provider = build_provider(ctx)
    target = provider.get_workload(namespace, workload)
    selected = policies_for_workload(target, provider.list_policies(namespace))

    if not selected:
        console.print(
            f"No NetworkPolicy selects {target.key}: all traffic is allowed."
        )
        return
    console.print(policies_table(target, selected))
