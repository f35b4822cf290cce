"""Data models — immutable snapshots of workloads, namespaces and policies."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

_EMPTY: Mapping[str, str] = MappingProxyType({})


def _freeze(labels: Mapping[str, str] | None) -> Mapping[str, str]:
    if not labels:
        return _EMPTY
    return MappingProxyType(dict(labels))


class Direction(enum.Enum):
    """Traffic direction a policy can govern."""

    INGRESS = "Ingress"
    EGRESS = "Egress"


class Operator(enum.Enum):
    """Set-based selector operators."""

    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"


@dataclass(frozen=True)
class Workload:
    """A pod (or any labelled workload) at analysis time."""

    name: str
    namespace: str
    labels: Mapping[str, str] = field(default_factory=dict)
    kind: str = "Pod"

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _freeze(self.labels))

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class Namespace:
    name: str
    labels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", _freeze(self.labels))


@dataclass(frozen=True)
class SelectorRequirement:
    """One ``matchExpressions`` entry."""

    key: str
    operator: str
    values: tuple[str, ...] = ()


@dataclass(frozen=True)
class LabelSelector:
    """A label selector. No requirements at all means "select everything"."""

    match_labels: Mapping[str, str] = field(default_factory=dict)
    match_expressions: tuple[SelectorRequirement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "match_labels", _freeze(self.match_labels))

    @property
    def is_empty(self) -> bool:
        return not self.match_labels and not self.match_expressions


# ---------------------------------------------------------------------------
# Rule peers. Each combination of pod/namespace selectors is its own type so
# that "selector absent" and "selector present but empty" never get confused.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExternalPeer:
    """A peer with no pod or namespace selector (ipBlock). Never matches a workload."""

    cidr: str = ""


@dataclass(frozen=True)
class PodPeer:
    """Pod selector only, implicitly scoped to the policy's namespace."""

    pod_selector: LabelSelector


@dataclass(frozen=True)
class NamespacePeer:
    """Namespace selector only: every pod in the selected namespaces."""

    namespace_selector: LabelSelector


@dataclass(frozen=True)
class PodNamespacePeer:
    """Pods matching ``pod_selector`` in namespaces matching ``namespace_selector``."""

    pod_selector: LabelSelector
    namespace_selector: LabelSelector


Peer = ExternalPeer | PodPeer | NamespacePeer | PodNamespacePeer


def make_peer(
    pod_selector: LabelSelector | None,
    namespace_selector: LabelSelector | None,
    cidr: str = "",
) -> Peer:
    """Pick the peer variant for a given selector combination."""
    if pod_selector is not None and namespace_selector is not None:
        return PodNamespacePeer(pod_selector, namespace_selector)
    if pod_selector is not None:
        return PodPeer(pod_selector)
    if namespace_selector is not None:
        return NamespacePeer(namespace_selector)
    return ExternalPeer(cidr=cidr)


@dataclass(frozen=True)
class PortSpec:
    """A protocol/port pair from a rule. ``port`` may be numeric or a named port."""

    protocol: str = "TCP"
    port: int | str | None = None


@dataclass(frozen=True)
class Rule:
    """A single ingress or egress rule."""

    peers: tuple[Peer, ...] = ()
    ports: tuple[PortSpec, ...] = ()


@dataclass(frozen=True)
class NetworkPolicy:
    """A namespaced NetworkPolicy.

    ``policy_types`` is ``None`` when the policy does not declare
    ``policyTypes`` at all, which is not the same as an empty tuple.
    """

    name: str
    namespace: str
    pod_selector: LabelSelector = field(default_factory=LabelSelector)
    policy_types: tuple[Direction, ...] | None = None
    ingress: tuple[Rule, ...] = ()
    egress: tuple[Rule, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def rules_for(self, direction: Direction) -> tuple[Rule, ...]:
        return self.ingress if direction is Direction.INGRESS else self.egress
