"""DataProvider protocol — every source of cluster state must satisfy this."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from podreach.policy.models import Namespace, NetworkPolicy, Workload


@runtime_checkable
class DataProvider(Protocol):
    """Read-only access to workloads, namespaces and policies.

    Implementations raise NotFoundError for missing objects and must be
    safe to call from several threads at once.
    """

    def get_workload(self, namespace: str, name: str) -> Workload:
        """Return the named workload."""
        ...

    def get_namespace(self, name: str) -> Namespace:
        """Return the named namespace."""
        ...

    def list_policies(self, namespace: str) -> list[NetworkPolicy]:
        """Return every NetworkPolicy in ``namespace`` in a stable order."""
        ...

    def list_workloads(self, namespace: str) -> list[Workload]:
        """Return every workload in ``namespace``."""
        ...
