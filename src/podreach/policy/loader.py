"""Parse Kubernetes manifests (dicts or YAML) into model objects."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from podreach.errors import InvalidInputError
from podreach.policy.models import (
    Direction,
    LabelSelector,
    Namespace,
    NetworkPolicy,
    Peer,
    PortSpec,
    Rule,
    SelectorRequirement,
    Workload,
    make_peer,
)
from podreach.policy.selector import validate_selector

logger = logging.getLogger(__name__)

NAMESPACE_NAME_LABEL = "kubernetes.io/metadata.name"

_MANIFEST = "manifest parsing"
_SELECTOR = "selector parsing"


@dataclass
class Manifests:
    """Objects collected from one or more manifest documents."""

    workloads: list[Workload] = field(default_factory=list)
    namespaces: list[Namespace] = field(default_factory=list)
    policies: list[NetworkPolicy] = field(default_factory=list)

    def extend(self, other: Manifests) -> None:
        self.workloads.extend(other.workloads)
        self.namespaces.extend(other.namespaces)
        self.policies.extend(other.policies)


def load_manifests(path: str | Path) -> Manifests:
    """Load every Pod, Namespace and NetworkPolicy from a YAML file."""
    text = Path(path).read_text(encoding="utf-8")
    return load_manifests_from_string(text)


def load_manifests_from_string(text: str) -> Manifests:
    """Parse a (possibly multi-document) YAML string of manifests."""
    try:
        documents = [d for d in yaml.safe_load_all(text) if d is not None]
    except yaml.YAMLError as exc:
        raise InvalidInputError(str(exc), step=_MANIFEST) from exc

    manifests = Manifests()
    for doc in documents:
        if not isinstance(doc, Mapping):
            raise InvalidInputError("Manifest YAML must be a mapping", step=_MANIFEST)
        _collect(doc, manifests)
    return manifests


def _collect(doc: Mapping[str, Any], manifests: Manifests) -> None:
    kind = str(doc.get("kind") or "")
    if kind.endswith("List"):
        item_kind = kind[: -len("List")]
        for item in _entries(doc.get("items"), f"{kind}.items"):
            if item_kind and "kind" not in item:
                item = {**item, "kind": item_kind}
            _collect(item, manifests)
    elif kind == "Pod":
        manifests.workloads.append(parse_workload(doc))
    elif kind == "Namespace":
        manifests.namespaces.append(parse_namespace(doc))
    elif kind == "NetworkPolicy":
        manifests.policies.append(parse_network_policy(doc))
    else:
        logger.debug("Ignoring manifest of kind %r", kind)


# ---------------------------------------------------------------------------
# Shape checks. YAML gives us arbitrary nesting; anything that is not the
# expected mapping/list shape is an InvalidInputError, never a raw TypeError.
# ---------------------------------------------------------------------------


def _mapping(value: Any, what: str, step: str = _MANIFEST) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise InvalidInputError(f"{what} must be a mapping, got {value!r}", step=step)
    return value


def _entries(
    value: Any, what: str, step: str = _MANIFEST
) -> list[Mapping[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InvalidInputError(f"{what} must be a list, got {value!r}", step=step)
    return [_mapping(v, f"{what} entry", step) for v in value]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _string_map(value: Any, what: str, step: str = _MANIFEST) -> dict[str, str]:
    """Labels and matchLabels are stringified the same way so ``1`` equals ``"1"``."""
    return {str(k): _text(v) for k, v in _mapping(value, what, step).items()}


def _metadata(doc: Mapping[str, Any]) -> Mapping[str, Any]:
    meta = _mapping(doc.get("metadata"), "metadata")
    if not meta.get("name"):
        raise InvalidInputError(
            f"{doc.get('kind') or 'object'} manifest has no metadata.name",
            step=_MANIFEST,
        )
    return meta


def parse_workload(doc: Mapping[str, Any]) -> Workload:
    meta = _metadata(doc)
    return Workload(
        name=str(meta["name"]),
        namespace=str(meta.get("namespace") or "default"),
        labels=_string_map(meta.get("labels"), "metadata.labels"),
        kind=str(doc.get("kind") or "Pod"),
    )


def parse_namespace(doc: Mapping[str, Any]) -> Namespace:
    meta = _metadata(doc)
    name = str(meta["name"])
    labels = _string_map(meta.get("labels"), "metadata.labels")
    labels.setdefault(NAMESPACE_NAME_LABEL, name)
    return Namespace(name=name, labels=labels)


def parse_selector(data: Mapping[str, Any] | None) -> LabelSelector | None:
    """Parse a LabelSelector mapping. ``None`` stays ``None`` (selector absent)."""
    if data is None:
        return None
    data = _mapping(data, "label selector", _SELECTOR)

    expressions: list[SelectorRequirement] = []
    for expr in _entries(data.get("matchExpressions"), "matchExpressions", _SELECTOR):
        values = expr.get("values")
        if values is not None and not isinstance(values, list):
            raise InvalidInputError(
                f"matchExpressions values must be a list, got {values!r}",
                step=_SELECTOR,
            )
        expressions.append(
            SelectorRequirement(
                key=_text(expr.get("key")),
                operator=_text(expr.get("operator")),
                values=tuple(_text(v) for v in values or ()),
            )
        )
    selector = LabelSelector(
        match_labels=_string_map(data.get("matchLabels"), "matchLabels", _SELECTOR),
        match_expressions=tuple(expressions),
    )
    validate_selector(selector)
    return selector


def _parse_peers(peers_data: Any, what: str) -> tuple[Peer, ...]:
    peers: list[Peer] = []
    for p in _entries(peers_data, what):
        ip_block = _mapping(p.get("ipBlock"), "ipBlock")
        peers.append(
            make_peer(
                parse_selector(p.get("podSelector")),
                parse_selector(p.get("namespaceSelector")),
                cidr=_text(ip_block.get("cidr")),
            )
        )
    return tuple(peers)


def _parse_ports(ports_data: Any) -> tuple[PortSpec, ...]:
    ports: list[PortSpec] = []
    for p in _entries(ports_data, "ports"):
        port = p.get("port")
        if port is not None and not isinstance(port, (int, str)):
            raise InvalidInputError(
                f"port must be a number or a name, got {port!r}", step=_MANIFEST
            )
        ports.append(PortSpec(protocol=_text(p.get("protocol")) or "TCP", port=port))
    return tuple(ports)


def _parse_rules(rules_data: Any, section: str, peer_key: str) -> tuple[Rule, ...]:
    return tuple(
        Rule(
            peers=_parse_peers(r.get(peer_key), f"{section}.{peer_key}"),
            ports=_parse_ports(r.get("ports")),
        )
        for r in _entries(rules_data, section)
    )


def _parse_policy_types(raw: Any) -> tuple[Direction, ...] | None:
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise InvalidInputError(
            f"policyTypes must be a list, got {raw!r}", step=_MANIFEST
        )
    try:
        return tuple(Direction(t) for t in raw)
    except ValueError as exc:
        raise InvalidInputError(str(exc), step=_MANIFEST) from exc


def parse_network_policy(doc: Mapping[str, Any]) -> NetworkPolicy:
    meta = _metadata(doc)
    spec = _mapping(doc.get("spec"), "spec")
    return NetworkPolicy(
        name=str(meta["name"]),
        namespace=str(meta.get("namespace") or "default"),
        pod_selector=parse_selector(spec.get("podSelector") or {}) or LabelSelector(),
        policy_types=_parse_policy_types(spec.get("policyTypes")),
        ingress=_parse_rules(spec.get("ingress"), "ingress", "from"),
        egress=_parse_rules(spec.get("egress"), "egress", "to"),
    )
