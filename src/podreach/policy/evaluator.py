"""Policy evaluator — applicability, peer and port matching for single rules."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from functools import singledispatch

from podreach.errors import InvalidInputError
from podreach.policy.models import (
    Direction,
    ExternalPeer,
    Namespace,
    NamespacePeer,
    NetworkPolicy,
    Peer,
    PodNamespacePeer,
    PodPeer,
    PortSpec,
    Rule,
    Workload,
)
from podreach.policy.selector import EVERYTHING, describe_selector, matches

logger = logging.getLogger(__name__)


def applies_to_ingress(policy: NetworkPolicy) -> bool:
    """A policy governs ingress unless it declares policyTypes without Ingress."""
    if policy.policy_types is None:
        return True
    return Direction.INGRESS in policy.policy_types


def applies_to_egress(policy: NetworkPolicy) -> bool:
    """Return True if the policy governs egress traffic.

    Without policyTypes the presence of egress rules decides. With
    policyTypes, an explicit Egress entry applies even with zero egress
    rules: that is a deny-all-egress policy.
    """
    if policy.policy_types is None:
        return bool(policy.egress)
    return Direction.EGRESS in policy.policy_types


def applies_to(policy: NetworkPolicy, direction: Direction) -> bool:
    if direction is Direction.INGRESS:
        return applies_to_ingress(policy)
    return applies_to_egress(policy)


# ---------------------------------------------------------------------------
# Peer matching. One implementation per peer variant; each returns a short
# provenance string on match and None otherwise.
# ---------------------------------------------------------------------------


@singledispatch
def peer_matches(
    peer: Peer, workload: Workload, namespace: Namespace, policy_namespace: str
) -> str | None:
    """Check whether ``workload`` (living in ``namespace``) is selected by ``peer``.

    ``policy_namespace`` is the namespace of the policy owning the rule;
    a bare pod selector only selects pods in that namespace.
    """
    raise TypeError(f"Unsupported peer type: {type(peer).__name__}")


@peer_matches.register
def _(
    peer: PodNamespacePeer,
    workload: Workload,
    namespace: Namespace,
    policy_namespace: str,
) -> str | None:
    if matches(workload.labels, peer.pod_selector) and matches(
        namespace.labels, peer.namespace_selector
    ):
        return (
            "PodSelector/NamespaceSelector:"
            f"{describe_selector(peer.pod_selector)}/"
            f"{describe_selector(peer.namespace_selector)}"
        )
    return None


@peer_matches.register
def _(
    peer: PodPeer,
    workload: Workload,
    namespace: Namespace,
    policy_namespace: str,
) -> str | None:
    if workload.namespace == policy_namespace and matches(
        workload.labels, peer.pod_selector
    ):
        return f"PodSelector:{describe_selector(peer.pod_selector)}"
    return None


@peer_matches.register
def _(
    peer: NamespacePeer,
    workload: Workload,
    namespace: Namespace,
    policy_namespace: str,
) -> str | None:
    # Pod labels are irrelevant here: the pod side selects everything.
    if matches(workload.labels, EVERYTHING) and matches(
        namespace.labels, peer.namespace_selector
    ):
        return f"NamespaceSelector:{describe_selector(peer.namespace_selector)}"
    return None


@peer_matches.register
def _(
    peer: ExternalPeer,
    workload: Workload,
    namespace: Namespace,
    policy_namespace: str,
) -> str | None:
    # ipBlock peers address cluster-external ranges; pod IPs are ephemeral.
    logger.debug("Skipping address-based peer %r for %s", peer.cidr, workload.key)
    return None


def match_peers(
    peers: Iterable[Peer],
    workload: Workload,
    namespace: Namespace,
    policy_namespace: str,
) -> str | None:
    """First-match-wins over a rule's peers. An empty peer list matches nothing."""
    for peer in peers:
        provenance = peer_matches(peer, workload, namespace, policy_namespace)
        if provenance is not None:
            return provenance
    return None


def rule_matches(
    rule: Rule, workload: Workload, namespace: Namespace, policy_namespace: str
) -> str | None:
    return match_peers(rule.peers, workload, namespace, policy_namespace)


def check_protocol_port(protocol: str | None, port: str | None) -> None:
    """Protocol and port must be given together or not at all."""
    if bool(protocol) != bool(port):
        raise InvalidInputError(
            "Please provide protocol and port pair", step="port matching"
        )


def port_matches(
    protocol: str | None, port: str | None, ports: Iterable[PortSpec]
) -> bool:
    """Return True if ``protocol``/``port`` is listed in ``ports``.

    With neither given there is nothing to filter and the result is True.
    ``port`` is compared as text against named ports and numeric ports alike.
    """
    check_protocol_port(protocol, port)
    if not protocol and not port:
        return True

    for spec in ports:
        if spec.protocol != protocol or spec.port is None:
            continue
        if str(spec.port) == port:
            return True
    return False
