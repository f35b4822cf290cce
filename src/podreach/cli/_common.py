"""Helpers shared by CLI commands."""

from __future__ import annotations

import sys
from collections.abc import Callable
from functools import wraps
from typing import Any

import click
from rich.console import Console
from rich.text import Text

from podreach.errors import PodReachError
from podreach.policy.evaluator import check_protocol_port
from podreach.provider.base import DataProvider
from podreach.provider.kube import KubeProvider
from podreach.provider.snapshot import SnapshotProvider

err_console = Console(stderr=True)

PROTOCOLS = ("TCP", "UDP", "SCTP")


def protocol_option(fn: Callable[..., Any]) -> Callable[..., Any]:
    fn = click.option(
        "--port",
        default=None,
        help="Port number or named port. Requires --protocol.",
    )(fn)
    return click.option(
        "--protocol",
        "-p",
        type=click.Choice(PROTOCOLS, case_sensitive=False),
        default=None,
        help="Protocol of the connection. Requires --port.",
    )(fn)


def normalize_protocol(
    protocol: str | None, port: str | None
) -> tuple[str | None, str | None]:
    check_protocol_port(protocol, port)
    return (protocol.upper() if protocol else None), port


def build_provider(ctx: click.Context) -> DataProvider:
    """Snapshot provider when manifests were given, live cluster otherwise."""
    manifests = ctx.obj.get("manifests") or ()
    if manifests:
        return SnapshotProvider.from_files(manifests)
    return KubeProvider.from_config(ctx.obj["config"])


def fatal_errors(fn: Callable[..., Any]) -> Callable[..., Any]:
    """Turn PodReachError into a message on stderr and exit status 1."""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except PodReachError as exc:
            err_console.print(Text(f"Error: {exc}", style="red"))
            sys.exit(1)

    return wrapper
