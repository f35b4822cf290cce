"""Error taxonomy shared by providers, the decision engine and the CLI."""

from __future__ import annotations


class PodReachError(Exception):
    """Base class for fatal analysis errors.

    ``step`` names the analysis stage that failed (endpoint resolution,
    policy listing, selector parsing, ...) and prefixes the message.
    """

    def __init__(self, message: str, step: str = "") -> None:
        self.step = step
        self.detail = message
        super().__init__(f"{step}: {message}" if step else message)


class NotFoundError(PodReachError):
    """A workload or namespace does not exist."""


class InvalidInputError(PodReachError, ValueError):
    """Malformed user input or policy content. Never retried."""


class TransientProviderError(PodReachError):
    """The data source kept failing after all retries were spent."""
