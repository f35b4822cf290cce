"""Rule aggregation — the logical OR of every applicable policy's rules."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from podreach.policy.evaluator import applies_to
from podreach.policy.models import Direction, NetworkPolicy, Rule, Workload
from podreach.policy.selector import matches

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundRule:
    """A rule together with the policy it came from."""

    rule: Rule
    policy: NetworkPolicy


@dataclass(frozen=True)
class RuleSet:
    """Flattened rules for one workload and one direction.

    ``has_policy`` is False when no policy selects the workload at all;
    ``has_direction_policy`` is False when selecting policies exist but none
    governs ``direction``. Either case leaves the direction unrestricted.
    """

    direction: Direction
    rules: tuple[BoundRule, ...] = ()
    policies: tuple[NetworkPolicy, ...] = ()
    has_policy: bool = False
    has_direction_policy: bool = False

    @property
    def restricts(self) -> bool:
        return self.has_policy and self.has_direction_policy


def policies_for_workload(
    workload: Workload, policies: Iterable[NetworkPolicy]
) -> list[NetworkPolicy]:
    """Policies in the workload's namespace whose podSelector selects it."""
    return [
        p
        for p in policies
        if p.namespace == workload.namespace and matches(workload.labels, p.pod_selector)
    ]


def aggregate_rules(
    workload: Workload,
    direction: Direction,
    policies: Iterable[NetworkPolicy],
) -> RuleSet:
    """Collect, in policy order then rule order, every rule that applies to
    ``workload`` for ``direction``."""
    selected = policies_for_workload(workload, policies)

    rules: list[BoundRule] = []
    has_direction_policy = False
    for policy in selected:
        if not applies_to(policy, direction):
            continue
        has_direction_policy = True
        rules.extend(BoundRule(rule, policy) for rule in policy.rules_for(direction))

    logger.debug(
        "%s %s: %d selecting policies, %d %s rules",
        workload.key,
        direction.value,
        len(selected),
        len(rules),
        direction.value.lower(),
    )
    return RuleSet(
        direction=direction,
        rules=tuple(rules),
        policies=tuple(selected),
        has_policy=bool(selected),
        has_direction_policy=has_direction_policy,
    )
