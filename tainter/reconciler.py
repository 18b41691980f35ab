"""Node reconciliation: decide which taints a node needs and add them."""

import threading
from collections.abc import Iterable, Sequence

from kubernetes.client import V1Node, V1NodeCondition, V1Taint

from tainter.exceptions import ConflictError, KubernetesError, MalformedNodeError, WatchError
from tainter.kube import NodeClient
from tainter.logging_config import get_logger
from tainter.models.matcher import ConditionPattern, Matcher
from tainter.taints import (
    node_has_taint,
    synthesize_taint,
    taint_identity,
    taint_to_string,
    taints_to_string,
)

logger = get_logger(__name__)


def is_node_eligible(
    node_name: str, conditions: Sequence[V1NodeCondition], patterns: Sequence[ConditionPattern]
) -> bool:
    """Whether every pattern is satisfied by at least one of the node's conditions.

    Patterns are checked in order and the check stops at the first pattern no
    condition satisfies. A matcher without patterns is eligible.
    """
    for pattern in patterns:
        match = next((c for c in conditions if pattern.matches(c)), None)
        if match is None:
            return False
        logger.info(
            f"Node matches condition node={node_name} "
            f"node_condition={match.type}={match.status} condition=({pattern})"
        )
    return True


class Reconciler:
    """Adds configured taints to nodes whose conditions match."""

    def __init__(self, node_client: NodeClient, matchers: Sequence[Matcher]):
        """Initialize the reconciler.

        Args:
            node_client: Client used to write updated nodes
            matchers: Matchers in the order they are evaluated
        """
        self.node_client = node_client
        self.matchers = tuple(matchers)
        self._stop = threading.Event()

    def stop(self) -> None:
        """Ask ``run`` to return once the current event is handled."""
        self._stop.set()

    def run(self, events: Iterable[V1Node | None]) -> None:
        """Reconcile every node the event source delivers, one at a time.

        The source is expected to be endless; ``run`` returns only after
        ``stop()`` or when a finite source is exhausted.
        """
        logger.info(f"Starting reconciler with {len(self.matchers)} matchers")
        stream = iter(events)
        while not self._stop.is_set():
            try:
                node = next(stream)
            except StopIteration:
                logger.info("Node event stream ended")
                return
            except WatchError as e:
                logger.error(f"Error watching nodes error={e.message} details={e.details or ''}")
                continue

            if node is None:
                logger.debug("Node is none")
                continue

            try:
                self.process_node(node)
            except MalformedNodeError as e:
                logger.error(f"Skipping malformed node: {e.message}")
            except Exception as e:
                logger.error(f"Unexpected error processing node: {e}", exc_info=True)

        logger.info("Reconciler stopped")

    def process_node(self, node: V1Node) -> list[V1Taint]:
        """Evaluate every matcher against a node and add the taints it lacks.

        Returns:
            The taints that were sent to the API server, empty if none were needed

        Raises:
            MalformedNodeError: If the node has no name, status or spec
        """
        metadata = node.metadata
        node_name = metadata.name if metadata else None
        if not node_name:
            raise MalformedNodeError("Node has no name")
        logger.info(f"Processing node node_name={node_name}")

        if node.status is None:
            raise MalformedNodeError(f"Node {node_name} has no status")

        conditions = node.status.conditions
        # Without conditions there is nothing to tell whether the node is eligible.
        if not conditions:
            logger.debug(f"Node has no conditions node={node_name}")
            return []

        if node.spec is None:
            raise MalformedNodeError(f"Node {node_name} has no spec")
        existing = list(node.spec.taints or [])

        taints_to_add = self.taints_to_add(node_name, conditions, existing)
        if not taints_to_add:
            return []

        self.apply_taints(node, existing, taints_to_add)
        return taints_to_add

    def taints_to_add(
        self, node_name: str, conditions: Sequence[V1NodeCondition], existing: Sequence[V1Taint]
    ) -> list[V1Taint]:
        """Synthesize the taints of every eligible matcher the node does not have yet."""
        taints: list[V1Taint] = []
        queued: set[tuple[str, str]] = set()

        for matcher in self.matchers:
            if not is_node_eligible(node_name, conditions, matcher.conditions):
                continue

            template = matcher.taint

            if node_has_taint(existing, template):
                logger.info(
                    f"Node matches conditions but already has taint node={node_name} "
                    f"taint={taint_to_string(template)}"
                )
                continue

            if taint_identity(template) in queued:
                logger.info(
                    f"Node matches conditions but taint is already queued node={node_name} "
                    f"taint={taint_to_string(template)}"
                )
                continue

            queued.add(taint_identity(template))
            taints.append(synthesize_taint(template))

        return taints

    def apply_taints(self, node: V1Node, existing: list[V1Taint], new_taints: list[V1Taint]) -> bool:
        """Append taints to the node and replace it on the API server.

        Conflicts are expected when another writer updates the node first. That
        write produces a new watch event, and the node is reconciled again from
        the fresh object, so nothing is retried here.

        Returns:
            True if the node was updated
        """
        if not new_taints:
            return False

        node_name = node.metadata.name
        taints_string = taints_to_string(new_taints)
        node.spec.taints = existing + new_taints

        logger.info(f"Adding taints to node node={node_name} taints={taints_string}")
        try:
            self.node_client.replace(node)
        except ConflictError as e:
            logger.info(
                f"Received conflict error when trying to add taints to node "
                f"error={e.details or e.message} node={node_name} taints={taints_string}"
            )
            return False
        except KubernetesError as e:
            logger.error(
                f"Error adding taints to node error={e.details or e.message} "
                f"node={node_name} taints={taints_string}"
            )
            return False

        logger.info(f"Successfully added taints to node node={node_name} taints={taints_string}")
        return True
