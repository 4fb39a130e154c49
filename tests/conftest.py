"""
Fixtures partagées des tests nodesearch.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest
import yaml

from nodesearch.config.search_config import DEFAULT_ATTRIBUTES
from nodesearch.core.node import Node, deep_merge


@pytest.fixture
def make_node() -> Callable[..., Node]:
    """Fabrique un nœud courant avec les attributs par défaut."""

    def _make(attributes: Optional[Dict[str, Any]] = None, environment: str = "_default",
              name: str = "chefspec.local") -> Node:
        attrs = deep_merge(DEFAULT_ATTRIBUTES, {"fqdn": name})
        return Node(name, environment=environment, attributes=deep_merge(attrs, attributes or {}))

    return _make


@pytest.fixture
def fleet() -> List[Node]:
    return [
        Node("cache1", "production", ["infra-caching"],
             {"memcached": {"listen": "10.0.0.9", "port": 11211}}),
        Node("cache2", "production", ["infra-caching"],
             {"memcached": {"listen": "10.0.0.10", "port": 11211}}),
        Node("cache-staging", "staging", ["infra-caching"],
             {"memcached": {"listen": "10.1.0.1", "port": 11211}}),
        Node("mq1", "production", ["openstack-ops-mq"],
             {"openstack": {"mq": {"listen": "10.0.0.31", "port": 5672}}}),
        Node("mq2", "production", ["openstack-ops-mq", "infra-caching"],
             {"openstack": {"mq": {"listen": "10.0.0.4", "port": 5672}},
              "memcached": {"listen": "10.0.0.4"}}),
    ]


@pytest.fixture
def inventory_file(tmp_path: Path, fleet: List[Node]) -> Path:
    path = tmp_path / "nodes.yaml"
    path.write_text(yaml.safe_dump({"nodes": [n.to_dict() for n in fleet]}), encoding="utf-8")
    return path


@pytest.fixture
def node_file(tmp_path: Path) -> Path:
    path = tmp_path / "node.yaml"
    path.write_text(yaml.safe_dump({
        "name": "controller1",
        "chef_environment": "production",
        "roles": ["openstack-controller"],
        "attributes": {"openstack": {"mq": {"port": 5672}}},
    }), encoding="utf-8")
    return path
