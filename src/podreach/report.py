"""Human-readable reports for verdicts, batches and policy listings."""

from __future__ import annotations

from collections.abc import Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from podreach.policy.evaluator import applies_to_egress, applies_to_ingress
from podreach.policy.models import NetworkPolicy, Workload
from podreach.policy.selector import describe_selector
from podreach.reachability import ConnectionVerdict, PairResult


def _endpoint(w: Workload) -> str:
    return f"[{w.kind}:{w.name}]-[Namespace:{w.namespace}]"


def verdict_lines(verdict: ConnectionVerdict) -> list[str]:
    """Plain-text lines describing a verdict and the reason for it."""
    src, dst = verdict.source, verdict.destination
    pair = f"{_endpoint(src)} to {_endpoint(dst)}"
    lines: list[str] = []

    if not verdict.reachable:
        lines.append(f"{pair} is not reachable")
        for side, policies in (
            (src, verdict.source_policies),
            (dst, verdict.destination_policies),
        ):
            if not policies:
                continue
            names = ",".join(p.name for p in policies)
            lines.append(
                f"Reason: [Policy:{names}]-[Namespace:{side.namespace}] "
                f"on {_endpoint(side)} is blocking the connection"
            )
        return lines

    if not verdict.port_requested:
        lines.append(f"{pair} is reachable")
    elif verdict.reachable_on_port:
        lines.append(f"{pair} is reachable on {verdict.protocol}:{verdict.port}")
    else:
        lines.append(f"{pair} is not reachable on {verdict.protocol}:{verdict.port}")

    policy = verdict.governing_policy
    if policy is not None:
        lines.append(
            f"Reason: [Rule:{verdict.matched_rule}]-[Policy:{policy.name}]-"
            f"[Namespace:{policy.namespace}] allows the connection"
        )
    else:
        lines.append(
            "Reason: No policy rule working on the connection, "
            "allows the connection by default"
        )
    return lines


def print_verdict(console: Console, verdict: ConnectionVerdict) -> None:
    ok = verdict.reachable and (
        verdict.reachable_on_port or not verdict.port_requested
    )
    head, *reasons = verdict_lines(verdict)
    style = "bold green" if ok else "bold red"
    console.print(Text(head, style=style), soft_wrap=True)
    for line in reasons:
        console.print(Text(line, style="dim"), soft_wrap=True)


def matrix_table(results: Sequence[PairResult], title: str = "Reachability") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("Source", style="cyan")
    table.add_column("Destination", style="cyan")
    table.add_column("Verdict", style="bold")
    table.add_column("Port")
    table.add_column("Reason", max_width=60)

    for r in results:
        if r.error is not None:
            table.add_row(
                str(r.source),
                str(r.destination),
                "[red]error[/red]",
                "",
                Text(str(r.error)),
            )
            continue

        v = r.verdict
        assert v is not None
        if v.reachable:
            verdict = "[green]allowed[/green]"
        else:
            verdict = "[red]blocked[/red]"

        if not v.port_requested or not v.reachable:
            port = "-"
        elif v.reachable_on_port:
            port = "[green]open[/green]"
        else:
            port = "[yellow]closed[/yellow]"

        if v.governing_policy is not None:
            reason = f"{v.governing_policy.name} ({v.matched_rule})"
        elif v.reachable:
            reason = "default allow"
        else:
            names = [p.name for p in v.source_policies + v.destination_policies]
            reason = "blocked by " + ",".join(dict.fromkeys(names))
        table.add_row(
            str(r.source), str(r.destination), verdict, port, Text(reason)
        )
    return table


def policies_table(workload: Workload, policies: Sequence[NetworkPolicy]) -> Table:
    table = Table(title=f"Policies selecting {workload.key}")
    table.add_column("Policy", style="cyan")
    table.add_column("Pod selector")
    table.add_column("Ingress")
    table.add_column("Egress")

    for p in policies:
        table.add_row(
            p.name,
            Text(describe_selector(p.pod_selector)),
            _direction_cell(applies_to_ingress(p), len(p.ingress)),
            _direction_cell(applies_to_egress(p), len(p.egress)),
        )
    return table


def _direction_cell(applies: bool, rule_count: int) -> str:
    if not applies:
        return "[dim]-[/dim]"
    if rule_count == 0:
        return "[red]deny all[/red]"
    return f"{rule_count} rule(s)"
