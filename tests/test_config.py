"""Tests de la configuration (nœud courant, surcharges, validation)."""

import pytest

from nodesearch.config.search_config import (
    ConfigError,
    env_overrides,
    get_settings,
    load_node,
    validate_config,
)


def test_env_overrides_empty():
    assert env_overrides({}) == {}


def test_env_overrides_lists_and_scalars():
    overrides = env_overrides({
        "NODESEARCH_MEMCACHED_SERVERS": "1.1.1.1:11211, 2.2.2.2:11211",
        "NODESEARCH_MQ_SERVERS": "",
        "NODESEARCH_MQ_HOST": "3.3.3.3",
        "NODESEARCH_MQ_PORT": "5671",
        "NODESEARCH_MQ_ROLE": "rabbit",
    })

    assert overrides == {"openstack": {
        "memcached_servers": ["1.1.1.1:11211", "2.2.2.2:11211"],
        "mq": {"servers": [], "host": "3.3.3.3", "port": 5671, "server_role": "rabbit"},
    }}


def test_load_node_from_file(node_file):
    node = load_node(str(node_file), environ={})

    assert node.name == "controller1"
    assert node.environment == "production"
    assert node.lookup("openstack", "mq", "port") == 5672
    assert node.lookup("openstack", "mq", "server_role") == "openstack-ops-mq"


def test_load_node_env_wins(node_file):
    node = load_node(str(node_file), environ={
        "NODESEARCH_ENVIRONMENT": "staging",
        "NODESEARCH_MQ_PORT": "5671",
    })

    assert node.environment == "staging"
    assert node.lookup("openstack", "mq", "port") == 5671


def test_load_node_without_file(tmp_path):
    node = load_node(str(tmp_path / "absent.yaml"), environ={})

    assert node.environment == "_default"
    assert node.lookup("openstack", "mq", "server_role") == "openstack-ops-mq"
    assert node.lookup("openstack", "memcached_servers") is None


def test_validate_config_ok(inventory_file):
    settings = {**get_settings(), "backend": "inventory", "inventory_path": str(inventory_file), "cache_ttl": 0}

    assert validate_config(settings) == []


def test_validate_config_errors(tmp_path):
    settings = {
        **get_settings(),
        "backend": "http",
        "search_url": "",
        "search_timeout": 0,
        "search_rows": 10,
        "cache_ttl": -1,
    }

    errors = validate_config(settings)

    assert len(errors) == 3
    assert any("NODESEARCH_SEARCH_URL" in e for e in errors)


def test_validate_config_unknown_backend_and_missing_inventory(tmp_path):
    assert validate_config({**get_settings(), "backend": "ldap"})[0].startswith("Backend inconnu")
    missing = {**get_settings(), "backend": "inventory", "inventory_path": str(tmp_path / "x.yaml")}
    assert any("Inventaire introuvable" in e for e in validate_config(missing))


def test_env_overrides_rejects_non_numeric_port():
    with pytest.raises(ConfigError, match="NODESEARCH_MQ_PORT"):
        env_overrides({"NODESEARCH_MQ_PORT": "abc"})


@pytest.mark.parametrize("content", [
    "name: [unclosed",
    "- controller1\n- controller2\n",
    "name: controller1\nattributes: [a, b]\n",
])
def test_load_node_rejects_invalid_file(tmp_path, content):
    path = tmp_path / "node.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_node(str(path), environ={})


def test_load_node_rejects_invalid_port(node_file):
    with pytest.raises(ConfigError):
        load_node(str(node_file), environ={"NODESEARCH_MQ_PORT": "abc"})
