"""Kubernetes API access: credentials, node updates and error classification."""

import json
import os
from pathlib import Path

from kubernetes import client, config
from kubernetes.client import V1Node
from kubernetes.client.rest import ApiException

from tainter.exceptions import ConflictError, KubernetesError
from tainter.logging_config import get_logger

logger = get_logger(__name__)

FIELD_MANAGER = "tainter"

CONFLICT_MESSAGE = (
    "the object has been modified; please apply your changes to the latest version and try again"
)


def load_kube_config() -> None:
    """Load cluster credentials.

    Uses the pod's service account when running inside a cluster, otherwise the
    kubeconfig named by ``KUBECONFIG`` (default ``~/.kube/config``).

    Raises:
        KubernetesError: If no usable configuration is found
    """
    try:
        if os.environ.get("KUBERNETES_SERVICE_HOST"):
            logger.debug("Loading in-cluster Kubernetes configuration")
            config.load_incluster_config()
            return

        kubeconfig = os.environ.get("KUBECONFIG", "~/.kube/config")
        kubeconfig_path = Path(kubeconfig).expanduser()
        logger.debug(f"Loading kubeconfig from {kubeconfig_path}")
        config.load_kube_config(config_file=str(kubeconfig_path))
    except Exception as e:
        raise KubernetesError(
            f"Failed to load Kubernetes configuration: {e}",
            "Run inside a cluster with a service account, or point KUBECONFIG at a valid kubeconfig",
        )


def core_v1() -> client.CoreV1Api:
    return client.CoreV1Api()


def _error_body(error: ApiException) -> dict:
    if not error.body:
        return {}
    try:
        body = json.loads(error.body)
    except (TypeError, ValueError):
        return {"message": str(error.body)}
    return body if isinstance(body, dict) else {}


def is_conflict_error(error: Exception) -> bool:
    """Whether an API error is an optimistic-concurrency rejection.

    The API server answers a replace carrying a stale ``resourceVersion`` with
    ``409 Conflict`` and a status whose message says the object has been
    modified.
    """
    if not isinstance(error, ApiException) or error.status != 409:
        return False
    body = _error_body(error)
    return body.get("reason") == "Conflict" or CONFLICT_MESSAGE in str(body.get("message", ""))


def describe_api_error(error: ApiException) -> str:
    """Summarize an API error as ``status reason: message``."""
    body = _error_body(error)
    message = body.get("message") or error.reason or "unknown error"
    return f"{error.status} {body.get('reason') or error.reason}: {message}"


class NodeClient:
    """Writes node objects back to the API server."""

    def __init__(self, api: client.CoreV1Api, field_manager: str = FIELD_MANAGER):
        """Initialize the client.

        Args:
            api: CoreV1 API used for node requests
            field_manager: Name recorded as the manager of the fields we write
        """
        self.api = api
        self.field_manager = field_manager

    def replace(self, node: V1Node) -> V1Node:
        """Replace a node with the given object.

        The object still carries the ``resourceVersion`` it was read with, so
        the API server refuses the update if the node changed since.

        Raises:
            ConflictError: If the node was modified concurrently
            KubernetesError: For any other failure
        """
        name = node.metadata.name
        try:
            return self.api.replace_node(name, node, field_manager=self.field_manager)
        except ApiException as e:
            if is_conflict_error(e):
                raise ConflictError(f"Node {name} was modified concurrently", describe_api_error(e))
            raise KubernetesError(f"Failed to replace node {name}", describe_api_error(e))
        except Exception as e:
            raise KubernetesError(f"Failed to replace node {name}", f"{type(e).__name__}: {e}")
