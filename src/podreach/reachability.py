"""Reachability decider — combines source egress and destination ingress
evaluation into one verdict."""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any

from podreach.errors import PodReachError
from podreach.policy.aggregator import RuleSet, aggregate_rules
from podreach.policy.evaluator import check_protocol_port, port_matches, rule_matches
from podreach.policy.models import Direction, Namespace, NetworkPolicy, Workload
from podreach.provider.base import DataProvider

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    ALLOWED = "allowed"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class Endpoint:
    """A workload reference by namespace and name."""

    namespace: str
    name: str

    @classmethod
    def parse(cls, ref: str, default_namespace: str = "default") -> Endpoint:
        """Parse ``namespace/name`` or a bare ``name``."""
        namespace, sep, name = ref.partition("/")
        if not sep:
            return cls(default_namespace, ref)
        return cls(namespace, name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ConnectionVerdict:
    """Result of analysing one source → destination connection.

    ``reachable_on_port`` is only meaningful when both protocol and port
    were requested. ``governing_policy`` is set only when a rule matched.
    """

    source: Workload
    destination: Workload
    reachable: bool
    reachable_on_port: bool
    protocol: str | None = None
    port: str | None = None
    matched_rule: str = ""
    matched_direction: Direction | None = None
    governing_policy: NetworkPolicy | None = None
    source_policies: tuple[NetworkPolicy, ...] = ()
    destination_policies: tuple[NetworkPolicy, ...] = ()

    @property
    def outcome(self) -> Outcome:
        return Outcome.ALLOWED if self.reachable else Outcome.BLOCKED

    @property
    def is_default(self) -> bool:
        """Allowed because no policy restricts either side."""
        return self.reachable and self.governing_policy is None

    @property
    def port_requested(self) -> bool:
        return bool(self.protocol and self.port)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source.key,
            "destination": self.destination.key,
            "outcome": self.outcome.value,
            "reachable": self.reachable,
            "reachable_on_port": self.reachable_on_port,
            "protocol": self.protocol,
            "port": self.port,
            "matched_rule": self.matched_rule or None,
            "matched_direction": (
                self.matched_direction.value if self.matched_direction else None
            ),
            "governing_policy": (
                self.governing_policy.key if self.governing_policy else None
            ),
            "source_policies": [p.name for p in self.source_policies],
            "destination_policies": [p.name for p in self.destination_policies],
        }


class ReachabilityAnalyzer:
    """Decides whether traffic from one workload to another is allowed.

    Egress rules of the source are checked first, then ingress rules of the
    destination; the first rule whose peers select the other end wins,
    whatever its port outcome. With no matching rule the connection is
    allowed only when neither side has a policy governing the relevant
    direction.
    """

    def __init__(self, provider: DataProvider) -> None:
        self._provider = provider

    def analyze(
        self,
        source: Endpoint,
        destination: Endpoint,
        protocol: str | None = None,
        port: str | None = None,
    ) -> ConnectionVerdict:
        check_protocol_port(protocol, port)

        src = self._provider.get_workload(source.namespace, source.name)
        dst = self._provider.get_workload(destination.namespace, destination.name)
        src_ns = self._provider.get_namespace(src.namespace)
        dst_ns = self._provider.get_namespace(dst.namespace)

        egress = aggregate_rules(
            src, Direction.EGRESS, self._provider.list_policies(src.namespace)
        )
        ingress = aggregate_rules(
            dst, Direction.INGRESS, self._provider.list_policies(dst.namespace)
        )

        base = dict(
            source=src,
            destination=dst,
            protocol=protocol or None,
            port=port or None,
            source_policies=egress.policies,
            destination_policies=ingress.policies,
        )

        # Egress rules select the destination, ingress rules select the source.
        for rules, peer, peer_ns in ((egress, dst, dst_ns), (ingress, src, src_ns)):
            verdict = self._first_match(rules, peer, peer_ns, protocol, port, base)
            if verdict is not None:
                return verdict

        if not egress.restricts and not ingress.restricts:
            logger.debug("%s -> %s allowed by default", src.key, dst.key)
            return ConnectionVerdict(reachable=True, reachable_on_port=True, **base)

        logger.debug("%s -> %s blocked", src.key, dst.key)
        return ConnectionVerdict(reachable=False, reachable_on_port=False, **base)

    @staticmethod
    def _first_match(
        rules: RuleSet,
        peer: Workload,
        peer_ns: Namespace,
        protocol: str | None,
        port: str | None,
        base: dict[str, Any],
    ) -> ConnectionVerdict | None:
        for bound in rules.rules:
            provenance = rule_matches(bound.rule, peer, peer_ns, bound.policy.namespace)
            if provenance is None:
                continue
            logger.debug(
                "%s rule of %s matched %s via %s",
                rules.direction.value,
                bound.policy.key,
                peer.key,
                provenance,
            )
            return ConnectionVerdict(
                reachable=True,
                reachable_on_port=port_matches(protocol, port, bound.rule.ports),
                matched_rule=provenance,
                matched_direction=rules.direction,
                governing_policy=bound.policy,
                **base,
            )
        return None


@dataclass
class PairResult:
    """Outcome of one pair in a batch: either a verdict or the fatal error."""

    source: Endpoint
    destination: Endpoint
    verdict: ConnectionVerdict | None = None
    error: PodReachError | None = None


def analyze_pairs(
    provider: DataProvider,
    pairs: Sequence[tuple[Endpoint, Endpoint]],
    protocol: str | None = None,
    port: str | None = None,
    max_workers: int = 8,
) -> list[PairResult]:
    """Analyse many independent pairs on a bounded thread pool.

    Results come back in input order. A fatal error in one pair is recorded
    on that pair only.
    """
    check_protocol_port(protocol, port)
    analyzer = ReachabilityAnalyzer(provider)

    def _one(pair: tuple[Endpoint, Endpoint]) -> PairResult:
        src, dst = pair
        try:
            verdict = analyzer.analyze(src, dst, protocol, port)
        except PodReachError as exc:
            logger.warning("Analysis of %s -> %s failed: %s", src, dst, exc)
            return PairResult(src, dst, error=exc)
        return PairResult(src, dst, verdict=verdict)

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        return list(executor.map(_one, pairs))


def namespace_pairs(
    provider: DataProvider, namespaces: Sequence[str]
) -> list[tuple[Endpoint, Endpoint]]:
    """All ordered pairs of distinct workloads across ``namespaces``."""
    endpoints = [
        Endpoint(w.namespace, w.name)
        for ns in namespaces
        for w in sorted(provider.list_workloads(ns), key=lambda w: w.name)
    ]
    return [(a, b) for a in endpoints for b in endpoints if a != b]
