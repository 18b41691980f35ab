"""Taint construction and identity helpers.

The Kubernetes API rejects a node whose taints share a ``(key, effect)`` pair::

    Node "XYZ" is invalid: metadata.taints[1]: Duplicate value: ...:
    taints must be unique by key and effect pair

so two taints are considered identical when their key and effect match,
regardless of value or time added.
"""

from collections.abc import Iterable
from datetime import datetime, timezone

from kubernetes.client import V1Taint

from tainter.models.matcher import NO_EXECUTE, TaintTemplate


def synthesize_taint(template: TaintTemplate, now: datetime | None = None) -> V1Taint:
    """Build the concrete taint to add to a node.

    Only ``NoExecute`` taints carry a time added; it tells the taint manager
    when eviction grace periods started.

    Args:
        template: Taint from the matcher configuration
        now: Timestamp to use for ``NoExecute`` taints (defaults to the current UTC time)

    Returns:
        A new ``V1Taint``
    """
    time_added = None
    if template.effect == NO_EXECUTE:
        time_added = now or datetime.now(timezone.utc)
    return V1Taint(
        key=template.key,
        value=template.value,
        effect=template.effect,
        time_added=time_added,
    )


def taint_identity(taint) -> tuple[str, str]:
    """Return the ``(key, effect)`` pair that identifies a taint on a node."""
    return taint.key, taint.effect


def identical_taints(this, that) -> bool:
    return taint_identity(this) == taint_identity(that)


def node_has_taint(haystack: Iterable, needle) -> bool:
    """Whether any taint in ``haystack`` is identical to ``needle``."""
    return any(identical_taints(taint, needle) for taint in haystack)


def taint_to_string(taint) -> str:
    """Render a taint as ``key[=value]:effect[/time_added]``."""
    value = f"={taint.value}" if getattr(taint, "value", None) is not None else ""
    time_added = getattr(taint, "time_added", None)
    suffix = f"/{time_added.isoformat()}" if time_added is not None else ""
    return f"{taint.key}{value}:{taint.effect}{suffix}"


def taints_to_string(taints: Iterable) -> str:
    return "[" + ", ".join(taint_to_string(t) for t in taints) + "]"
