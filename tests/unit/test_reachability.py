"""Tests for the reachability decider and batch analysis."""

from __future__ import annotations

import pytest

from podreach.errors import InvalidInputError, NotFoundError
from podreach.policy.models import (
    Direction,
    LabelSelector,
    Namespace,
    NamespacePeer,
    NetworkPolicy,
    PodPeer,
    PortSpec,
    Rule,
    Workload,
)
from podreach.provider.snapshot import SnapshotProvider
from podreach.reachability import (
    Endpoint,
    Outcome,
    ReachabilityAnalyzer,
    analyze_pairs,
    namespace_pairs,
)

CLIENT = Workload(name="client", namespace="default", labels={"app": "client"})
REDIS = Workload(name="redis", namespace="default", labels={"app": "redis"})
SCANNER = Workload(name="scanner", namespace="other", labels={"app": "scanner"})
NAMESPACES = (
    Namespace(name="default", labels={"env": "prod"}),
    Namespace(name="other", labels={"team": "blue"}),
)

SRC = Endpoint("default", "client")
DST = Endpoint("default", "redis")


def _sel(**labels: str) -> LabelSelector:
    return LabelSelector(match_labels=labels)


def _analyze(policies, src=SRC, dst=DST, protocol=None, port=None):
    provider = SnapshotProvider(
        workloads=(CLIENT, REDIS, SCANNER), namespaces=NAMESPACES, policies=policies
    )
    return ReachabilityAnalyzer(provider).analyze(src, dst, protocol, port)


def _redis_ingress(**kwargs) -> NetworkPolicy:
    defaults = dict(
        name="redis-ingress",
        namespace="default",
        pod_selector=_sel(app="redis"),
        policy_types=(Direction.INGRESS,),
        ingress=(
            Rule(peers=(PodPeer(_sel(app="client")),), ports=(PortSpec("TCP", 6379),)),
        ),
    )
    defaults.update(kwargs)
    return NetworkPolicy(**defaults)


class TestScenarios:
    def test_no_policies_allows_by_default(self):
        verdict = _analyze([], protocol="TCP", port="1234")
        assert verdict.outcome is Outcome.ALLOWED
        assert verdict.reachable_on_port
        assert verdict.governing_policy is None
        assert verdict.is_default

    def test_ingress_rule_allows_on_port(self):
        policy = _redis_ingress()
        verdict = _analyze([policy], protocol="TCP", port="6379")
        assert verdict.reachable
        assert verdict.reachable_on_port
        assert verdict.governing_policy == policy
        assert verdict.matched_rule == "PodSelector:app=client"
        assert verdict.matched_direction is Direction.INGRESS

    def test_ingress_rule_allows_peer_but_not_port(self):
        verdict = _analyze([_redis_ingress()], protocol="TCP", port="9999")
        assert verdict.reachable
        assert not verdict.reachable_on_port
        assert verdict.governing_policy is not None

    def test_ingress_declared_without_rules_blocks(self):
        policy = _redis_ingress(ingress=())
        verdict = _analyze([policy])
        assert verdict.outcome is Outcome.BLOCKED
        assert not verdict.reachable_on_port
        assert verdict.governing_policy is None
        assert verdict.destination_policies == (policy,)
        assert verdict.source_policies == ()

    def test_namespace_selector_ignores_source_labels(self):
        unlabelled = Workload(name="client", namespace="default")
        provider = SnapshotProvider(
            workloads=(unlabelled, REDIS),
            namespaces=NAMESPACES,
            policies=[
                _redis_ingress(ingress=(Rule(peers=(NamespacePeer(_sel(env="prod")),)),))
            ],
        )
        verdict = ReachabilityAnalyzer(provider).analyze(SRC, DST)
        assert verdict.reachable
        assert verdict.matched_rule == "NamespaceSelector:env=prod"


class TestDecisionOrder:
    def test_explicit_egress_without_rules_blocks(self):
        deny_egress = NetworkPolicy(
            name="deny-egress",
            namespace="default",
            pod_selector=_sel(app="client"),
            policy_types=(Direction.EGRESS,),
        )
        verdict = _analyze([deny_egress])
        assert not verdict.reachable
        assert verdict.source_policies == (deny_egress,)

    def test_egress_declared_by_rules_only(self):
        # No policyTypes but egress rules present: egress is governed.
        egress_policy = NetworkPolicy(
            name="client-egress",
            namespace="default",
            pod_selector=_sel(app="client"),
            egress=(Rule(peers=(PodPeer(_sel(app="nobody")),)),),
        )
        assert not _analyze([egress_policy]).reachable

    def test_ingress_only_policy_on_source_does_not_restrict_egress(self):
        client_ingress = NetworkPolicy(
            name="client-ingress",
            namespace="default",
            pod_selector=_sel(app="client"),
            policy_types=(Direction.INGRESS,),
        )
        verdict = _analyze([client_ingress])
        assert verdict.reachable
        assert verdict.is_default
        assert verdict.source_policies == (client_ingress,)

    def test_egress_rule_selects_destination(self):
        egress_policy = NetworkPolicy(
            name="client-egress",
            namespace="default",
            pod_selector=_sel(app="client"),
            policy_types=(Direction.EGRESS,),
            egress=(Rule(peers=(PodPeer(_sel(app="redis")),)),),
        )
        verdict = _analyze([egress_policy, _redis_ingress(ingress=())])
        assert verdict.reachable
        assert verdict.matched_direction is Direction.EGRESS
        assert verdict.governing_policy == egress_policy

    def test_egress_match_wins_over_ingress_even_on_port(self):
        egress_policy = NetworkPolicy(
            name="client-egress",
            namespace="default",
            pod_selector=_sel(app="client"),
            egress=(
                Rule(peers=(PodPeer(_sel(app="redis")),), ports=(PortSpec("TCP", 1),)),
            ),
        )
        verdict = _analyze(
            [egress_policy, _redis_ingress()], protocol="TCP", port="6379"
        )
        assert verdict.governing_policy == egress_policy
        assert not verdict.reachable_on_port

    def test_first_egress_rule_wins(self):
        first = Rule(peers=(PodPeer(_sel(app="redis")),), ports=(PortSpec("TCP", 80),))
        second = Rule(peers=(PodPeer(_sel(app="redis")),), ports=(PortSpec("TCP", 443),))
        policy = NetworkPolicy(
            name="client-egress",
            namespace="default",
            pod_selector=_sel(app="client"),
            egress=(first, second),
        )
        verdict = _analyze([policy], protocol="TCP", port="443")
        assert verdict.reachable
        assert not verdict.reachable_on_port

    def test_pod_selector_is_scoped_to_policy_namespace(self):
        # scanner lives in "other"; a bare podSelector in "default" cannot select it.
        policy = _redis_ingress(
            ingress=(Rule(peers=(PodPeer(_sel(app="scanner")),)),)
        )
        verdict = _analyze([policy], src=Endpoint("other", "scanner"))
        assert not verdict.reachable

    def test_empty_peer_list_matches_nothing(self):
        policy = _redis_ingress(ingress=(Rule(ports=(PortSpec("TCP", 6379),)),))
        assert not _analyze([policy]).reachable


class TestErrors:
    def test_missing_workload(self):
        with pytest.raises(NotFoundError):
            _analyze([], src=Endpoint("default", "ghost"))

    def test_half_protocol_pair_fails_before_lookup(self):
        with pytest.raises(InvalidInputError):
            _analyze([], src=Endpoint("default", "ghost"), protocol="TCP")


class TestVerdict:
    def test_to_dict(self):
        data = _analyze([_redis_ingress()], protocol="TCP", port="6379").to_dict()
        assert data["outcome"] == "allowed"
        assert data["governing_policy"] == "default/redis-ingress"
        assert data["matched_direction"] == "Ingress"
        assert data["destination_policies"] == ["redis-ingress"]

    def test_endpoint_parse(self):
        assert Endpoint.parse("ns/pod") == Endpoint("ns", "pod")
        assert Endpoint.parse("pod") == Endpoint("default", "pod")
        assert str(Endpoint("a", "b")) == "a/b"


class TestBatch:
    def test_analyze_pairs_keeps_order_and_isolates_errors(self):
        provider = SnapshotProvider(
            workloads=(CLIENT, REDIS), namespaces=NAMESPACES, policies=[_redis_ingress()]
        )
        pairs = [
            (Endpoint("default", "client"), Endpoint("default", "redis")),
            (Endpoint("default", "ghost"), Endpoint("default", "redis")),
            (Endpoint("default", "redis"), Endpoint("default", "client")),
        ]
        results = analyze_pairs(provider, pairs, max_workers=2)

        assert [r.source.name for r in results] == ["client", "ghost", "redis"]
        assert results[0].verdict is not None and results[0].verdict.reachable
        assert isinstance(results[1].error, NotFoundError)
        assert results[1].verdict is None
        assert results[2].verdict is not None and results[2].verdict.is_default

    def test_analyze_pairs_validates_protocol(self):
        with pytest.raises(InvalidInputError):
            analyze_pairs(SnapshotProvider(), [], port="80")

    def test_namespace_pairs(self, cluster_provider):
        pairs = namespace_pairs(cluster_provider, ["default"])
        assert len(pairs) == 6
        assert all(a != b for a, b in pairs)
        assert pairs[0] == (Endpoint("default", "client"), Endpoint("default", "redis"))
