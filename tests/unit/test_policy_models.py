"""Tests for policy data models."""

import dataclasses

import pytest

from podreach.policy.models import (
    Direction,
    ExternalPeer,
    LabelSelector,
    NamespacePeer,
    NetworkPolicy,
    PodNamespacePeer,
    PodPeer,
    Rule,
    Workload,
    make_peer,
)


def test_direction_values():
    assert Direction.INGRESS.value == "Ingress"
    assert Direction.EGRESS.value == "Egress"


def test_workload_frozen():
    pod = Workload(name="web", namespace="default", labels={"app": "web"})
    assert pod.key == "default/web"
    assert pod.kind == "Pod"
    with pytest.raises(dataclasses.FrozenInstanceError):
        pod.name = "other"  # type: ignore[misc]


def test_workload_labels_are_read_only():
    source = {"app": "web"}
    pod = Workload(name="web", namespace="default", labels=source)
    source["app"] = "changed"
    assert pod.labels["app"] == "web"
    with pytest.raises(TypeError):
        pod.labels["app"] = "x"  # type: ignore[index]


def test_selector_is_empty():
    assert LabelSelector().is_empty
    assert not LabelSelector(match_labels={"a": "b"}).is_empty


def test_make_peer_variants():
    pods = LabelSelector(match_labels={"app": "web"})
    nss = LabelSelector()
    assert make_peer(pods, nss) == PodNamespacePeer(pods, nss)
    assert make_peer(pods, None) == PodPeer(pods)
    assert make_peer(None, nss) == NamespacePeer(nss)
    assert make_peer(None, None, cidr="10.0.0.0/8") == ExternalPeer("10.0.0.0/8")


def test_policy_defaults():
    policy = NetworkPolicy(name="p", namespace="default")
    assert policy.policy_types is None
    assert policy.pod_selector.is_empty
    assert policy.key == "default/p"


def test_rules_for_direction():
    rule_in, rule_out = Rule(), Rule(peers=(ExternalPeer(),))
    policy = NetworkPolicy(
        name="p", namespace="default", ingress=(rule_in,), egress=(rule_out,)
    )
    assert policy.rules_for(Direction.INGRESS) == (rule_in,)
    assert policy.rules_for(Direction.EGRESS) == (rule_out,)
