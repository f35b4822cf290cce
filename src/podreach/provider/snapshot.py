"""In-memory provider backed by model objects or YAML manifest files."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from podreach.errors import NotFoundError
from podreach.policy.loader import (
    NAMESPACE_NAME_LABEL,
    Manifests,
    load_manifests,
)
from podreach.policy.models import Namespace, NetworkPolicy, Workload

logger = logging.getLogger(__name__)


class SnapshotProvider:
    """Serves a fixed snapshot of cluster state. Never mutated after construction.

    Namespaces that are referenced by a pod or policy but never declared are
    synthesized with only the implicit ``kubernetes.io/metadata.name`` label,
    the way the API server labels every namespace.
    """

    def __init__(
        self,
        workloads: Iterable[Workload] = (),
        namespaces: Iterable[Namespace] = (),
        policies: Iterable[NetworkPolicy] = (),
    ) -> None:
        self._workloads: dict[tuple[str, str], Workload] = {}
        for w in workloads:
            self._workloads[(w.namespace, w.name)] = w

        self._namespaces: dict[str, Namespace] = {ns.name: ns for ns in namespaces}
        self._policies: dict[str, list[NetworkPolicy]] = {}
        for p in policies:
            self._policies.setdefault(p.namespace, []).append(p)

        referenced = {ns for ns, _ in self._workloads} | set(self._policies)
        for name in sorted(referenced - set(self._namespaces)):
            logger.debug("Synthesizing undeclared namespace %r", name)
            self._namespaces[name] = Namespace(
                name=name, labels={NAMESPACE_NAME_LABEL: name}
            )

    @classmethod
    def from_manifests(cls, manifests: Manifests) -> SnapshotProvider:
        return cls(
            workloads=manifests.workloads,
            namespaces=manifests.namespaces,
            policies=manifests.policies,
        )

    @classmethod
    def from_files(cls, paths: Iterable[str | Path]) -> SnapshotProvider:
        """Build a snapshot from one or more YAML manifest files."""
        manifests = Manifests()
        for path in paths:
            manifests.extend(load_manifests(path))
        return cls.from_manifests(manifests)

    def get_workload(self, namespace: str, name: str) -> Workload:
        try:
            return self._workloads[(namespace, name)]
        except KeyError:
            raise NotFoundError(
                f"pod {namespace}/{name} not found", step="endpoint resolution"
            ) from None

    def get_namespace(self, name: str) -> Namespace:
        try:
            return self._namespaces[name]
        except KeyError:
            raise NotFoundError(
                f"namespace {name} not found", step="endpoint resolution"
            ) from None

    def list_policies(self, namespace: str) -> list[NetworkPolicy]:
        return list(self._policies.get(namespace, ()))

    def list_workloads(self, namespace: str) -> list[Workload]:
        return [w for (ns, _), w in self._workloads.items() if ns == namespace]
