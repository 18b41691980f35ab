"""Pytest configuration and shared fixtures."""

import os

import pytest
from hypothesis import Verbosity, settings
from kubernetes.client import (
    V1Node,
    V1NodeCondition,
    V1NodeSpec,
    V1NodeStatus,
    V1ObjectMeta,
    V1Taint,
)

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))


def build_node(
    name: str = "node-1",
    conditions: list[tuple[str, str]] | None = None,
    taints: list[V1Taint] | None = None,
    resource_version: str = "1",
) -> V1Node:
    """Build a node with ``(type, status)`` conditions and the given taints."""
    node_conditions = None
    if conditions is not None:
        node_conditions = [V1NodeCondition(type=t, status=s) for t, s in conditions]
    return V1Node(
        metadata=V1ObjectMeta(name=name, resource_version=resource_version),
        spec=V1NodeSpec(taints=taints),
        status=V1NodeStatus(conditions=node_conditions),
    )


@pytest.fixture
def make_node():
    """Factory for node objects."""
    return build_node


@pytest.fixture
def sample_settings_data():
    """Sample settings document for testing."""
    return {
        "server": {"host": "0.0.0.0", "port": 8080},
        "log": {"max_level": "info"},
        "reconciler": {
            "matchers": [
                {
                    "taint": {"effect": "NoExecute", "key": "pressure", "value": "memory"},
                    "conditions": [
                        {"type": "NetworkInterfaceCard", "status": "Kaput|Ruined"},
                        {"type": "PrivateLink", "status": "severed"},
                    ],
                }
            ]
        },
    }


@pytest.fixture
def settings_file(tmp_path, sample_settings_data):
    """Write the sample settings to a YAML file and return its path."""
    import yaml

    path = tmp_path / "tainter.yaml"
    with open(path, "w") as f:
        yaml.dump(sample_settings_data, f, default_flow_style=False)
    return path
