"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from podreach import __version__
from podreach.config import PodReachConfig


@click.group()
@click.version_option(version=__version__, prog_name="podreach")
@click.option(
    "--kubeconfig",
    "-k",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a kubeconfig file (default: $KUBECONFIG or ~/.kube/config).",
)
@click.option("--context", default=None, help="Kubeconfig context to use.")
@click.option("--in-cluster", is_flag=True, help="Use in-cluster service account.")
@click.option(
    "--manifests",
    "-m",
    type=click.Path(exists=True, dir_okay=False),
    multiple=True,
    help="Analyse YAML manifests instead of a live cluster. Repeatable.",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(
    ctx: click.Context,
    kubeconfig: str | None,
    context: str | None,
    in_cluster: bool,
    manifests: tuple[str, ...],
    verbose: bool,
) -> None:
    """PodReach — analyse pod connectivity from Kubernetes NetworkPolicies."""
    config = PodReachConfig.load()
    if kubeconfig:
        config.kubeconfig = kubeconfig
    if context:
        config.context = context
    config.in_cluster = in_cluster
    config.verbose = verbose

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["manifests"] = manifests

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from podreach.cli.check import check  # noqa: F811
    from podreach.cli.matrix import matrix  # noqa: F811
    from podreach.cli.policies import policies  # noqa: F811

    main.add_command(check)
    main.add_command(matrix)
    main.add_command(policies)


_register_commands()
