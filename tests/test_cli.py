"""Tests de la ligne de commande."""

import json

import pytest

from nodesearch.cli import main


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in ("NODESEARCH_MEMCACHED_SERVERS", "NODESEARCH_MQ_SERVERS", "NODESEARCH_MQ_HOST",
                "NODESEARCH_MQ_PORT", "NODESEARCH_MQ_ROLE", "NODESEARCH_ENVIRONMENT"):
        monkeypatch.delenv(var, raising=False)


def _run(capsys, inventory_file, node_file, *args):
    code = main(["--inventory", str(inventory_file), "--node-file", str(node_file), *args])
    return code, capsys.readouterr()


def test_memcached(capsys, inventory_file, node_file):
    code, out = _run(capsys, inventory_file, node_file, "memcached")

    assert code == 0
    assert out.out.splitlines() == ["10.0.0.10:11211", "10.0.0.4:11211", "10.0.0.9:11211"]


def test_memcached_json(capsys, inventory_file, node_file):
    code, out = _run(capsys, inventory_file, node_file, "--json", "memcached", "--role", "nope")

    assert code == 0
    assert json.loads(out.out) == []


def test_search(capsys, inventory_file, node_file):
    code, out = _run(capsys, inventory_file, node_file, "search", "openstack-ops-mq")

    assert code == 0
    assert out.out.split() == ["mq1", "mq2"]


def test_rabbit(capsys, inventory_file, node_file):
    assert _run(capsys, inventory_file, node_file, "rabbit-servers")[1].out.strip() == "10.0.0.31:5672,10.0.0.4:5672"
    assert _run(capsys, inventory_file, node_file, "rabbit-server")[1].out.strip() == "10.0.0.31:5672"


def test_rabbit_server_from_environment(capsys, monkeypatch, inventory_file, node_file):
    monkeypatch.setenv("NODESEARCH_MQ_HOST", "1.1.1.1")

    assert _run(capsys, inventory_file, node_file, "rabbit-server")[1].out.strip() == "1.1.1.1:5672"


def test_search_error(capsys, tmp_path, node_file):
    code, out = _run(capsys, tmp_path / "absent.yaml", node_file, "memcached")

    assert code == 1
    assert "Erreur" in out.err


def test_check_config(capsys, inventory_file, node_file, tmp_path):
    assert _run(capsys, inventory_file, node_file, "check-config")[0] == 0
    code, out = _run(capsys, tmp_path / "absent.yaml", node_file, "check-config")
    assert code == 1
    assert "Inventaire introuvable" in out.err


@pytest.mark.parametrize("content", ["name: [unclosed", "- controller1\n- controller2\n"])
def test_invalid_node_file(capsys, inventory_file, tmp_path, content):
    bad = tmp_path / "bad-node.yaml"
    bad.write_text(content, encoding="utf-8")

    code, out = _run(capsys, inventory_file, bad, "memcached")

    assert code == 1
    assert "Fichier nœud" in out.err


def test_invalid_port_from_environment(capsys, monkeypatch, inventory_file, node_file):
    monkeypatch.setenv("NODESEARCH_MQ_PORT", "abc")

    code, out = _run(capsys, inventory_file, node_file, "rabbit-servers")

    assert code == 1
    assert "NODESEARCH_MQ_PORT" in out.err
