"""Label selector evaluation, validation and rendering."""

from __future__ import annotations

from collections.abc import Mapping

from podreach.errors import InvalidInputError
from podreach.policy.models import LabelSelector, Operator, SelectorRequirement

_STEP = "selector parsing"

# Explicit "matches everything" selector, substituted for the missing pod
# selector of a namespace-only peer.
EVERYTHING = LabelSelector()


def validate_selector(selector: LabelSelector) -> None:
    """Raise InvalidInputError if the selector could never be compiled."""
    for key, value in selector.match_labels.items():
        if not key:
            raise InvalidInputError("matchLabels contains an empty key", step=_STEP)
        if not isinstance(value, str):
            raise InvalidInputError(
                f"matchLabels value for {key!r} must be a string, got {value!r}",
                step=_STEP,
            )
    for req in selector.match_expressions:
        _validate_requirement(req)


def _validate_requirement(req: SelectorRequirement) -> None:
    if not req.key:
        raise InvalidInputError("matchExpressions entry has an empty key", step=_STEP)
    try:
        op = Operator(req.operator)
    except ValueError:
        raise InvalidInputError(
            f"{req.operator!r} is not a valid label selector operator", step=_STEP
        ) from None
    if op in (Operator.IN, Operator.NOT_IN) and not req.values:
        raise InvalidInputError(
            f"values must be non-empty for operator {op.value} on key {req.key!r}",
            step=_STEP,
        )
    if op in (Operator.EXISTS, Operator.DOES_NOT_EXIST) and req.values:
        raise InvalidInputError(
            f"values must be empty for operator {op.value} on key {req.key!r}",
            step=_STEP,
        )


def matches(labels: Mapping[str, str], selector: LabelSelector | None) -> bool:
    """Return True if ``labels`` satisfy every requirement of ``selector``.

    ``None`` and an empty selector both match any label set. Callers only
    pass ``None`` where "everything" is intended; peers never rely on it.
    """
    if selector is None or selector.is_empty:
        return True
    validate_selector(selector)

    for key, value in selector.match_labels.items():
        if labels.get(key) != value:
            return False
    return all(_requirement_matches(labels, req) for req in selector.match_expressions)


def _requirement_matches(labels: Mapping[str, str], req: SelectorRequirement) -> bool:
    op = Operator(req.operator)
    present = req.key in labels
    if op is Operator.IN:
        return present and labels[req.key] in req.values
    if op is Operator.NOT_IN:
        return not present or labels[req.key] not in req.values
    if op is Operator.EXISTS:
        return present
    return not present


def describe_selector(selector: LabelSelector | None) -> str:
    """Render a selector in kubectl-style text, e.g. ``app=web,tier in (a,b)``."""
    if selector is None or selector.is_empty:
        return "<all>"

    parts: list[str] = [f"{k}={v}" for k, v in sorted(selector.match_labels.items())]
    for req in selector.match_expressions:
        values = ",".join(sorted(req.values))
        if req.operator == Operator.IN.value:
            parts.append(f"{req.key} in ({values})")
        elif req.operator == Operator.NOT_IN.value:
            parts.append(f"{req.key} notin ({values})")
        elif req.operator == Operator.EXISTS.value:
            parts.append(req.key)
        else:
            parts.append(f"!{req.key}")
    return ",".join(parts)
