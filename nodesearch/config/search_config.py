"""Configuration de la recherche et du nœud courant."""

import os
import socket
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from nodesearch.config.logging_config import get_logger
from nodesearch.core.node import Node, deep_merge

logger = get_logger(__name__)

PROJECT_ROOT = Path(__file__).parents[2]

# Backend de recherche
SEARCH_BACKEND = os.getenv("NODESEARCH_BACKEND", "inventory")
INVENTORY_PATH = os.getenv("NODESEARCH_INVENTORY", str(PROJECT_ROOT / "inventory" / "nodes.yaml"))
SEARCH_URL = os.getenv("NODESEARCH_SEARCH_URL", "")
SEARCH_TIMEOUT = float(os.getenv("NODESEARCH_SEARCH_TIMEOUT", "5"))
SEARCH_ROWS = int(os.getenv("NODESEARCH_SEARCH_ROWS", "1000"))

# Cache Redis (0 = désactivé)
SEARCH_CACHE_TTL = int(os.getenv("NODESEARCH_CACHE_TTL", "0"))
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_SEARCH_DB = int(os.getenv("REDIS_SEARCH_DB", "3"))

REDIS_CONFIG = {
    "host": REDIS_HOST,
    "port": REDIS_PORT,
    "db": REDIS_SEARCH_DB,
    "decode_responses": True
}

# Nœud courant
NODE_FILE = os.getenv("NODESEARCH_NODE_FILE", str(PROJECT_ROOT / "inventory" / "node.yaml"))

DEFAULT_ATTRIBUTES: Dict[str, Any] = {
    "openstack": {
        "mq": {
            "server_role": "openstack-ops-mq",
            "port": 5672
        }
    }
}

BACKENDS = ("inventory", "http")


class ConfigError(Exception):
    """Configuration du nœud courant invalide (fichier YAML, variables d'environnement)."""


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Attributs surchargés par les variables d'environnement.

    Une variable définie mais vide donne une liste vide, ce qui désactive la
    recherche pour les listes statiques.
    """
    environ = os.environ if environ is None else environ
    mq: Dict[str, Any] = {}
    overrides: Dict[str, Any] = {}

    if "NODESEARCH_MEMCACHED_SERVERS" in environ:
        overrides["memcached_servers"] = _split_list(environ["NODESEARCH_MEMCACHED_SERVERS"])
    if "NODESEARCH_MQ_SERVERS" in environ:
        mq["servers"] = _split_list(environ["NODESEARCH_MQ_SERVERS"])
    if environ.get("NODESEARCH_MQ_HOST"):
        mq["host"] = environ["NODESEARCH_MQ_HOST"]
    if environ.get("NODESEARCH_MQ_PORT"):
        try:
            mq["port"] = int(environ["NODESEARCH_MQ_PORT"])
        except ValueError as e:
            raise ConfigError(f"NODESEARCH_MQ_PORT doit être un entier: {environ['NODESEARCH_MQ_PORT']!r}") from e
    if environ.get("NODESEARCH_MQ_ROLE"):
        mq["server_role"] = environ["NODESEARCH_MQ_ROLE"]

    if mq:
        overrides["mq"] = mq
    return {"openstack": overrides} if overrides else {}


def load_node(node_file: Optional[str] = None, environ: Optional[Dict[str, str]] = None) -> Node:
    """Charge le nœud courant: défauts < fichier YAML < variables d'environnement."""
    environ = os.environ if environ is None else environ
    path = Path(node_file or NODE_FILE)

    data: Dict[str, Any] = {}
    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Fichier nœud illisible {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Fichier nœud YAML invalide {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Fichier nœud {path}: un dictionnaire est attendu, pas {type(data).__name__}")
    else:
        logger.debug(f"Pas de fichier nœud {path}, attributs par défaut")

    try:
        node = Node.from_dict({"name": socket.gethostname(), **data})
    except ValueError as e:
        raise ConfigError(f"Fichier nœud {path}: {e}") from e
    if not isinstance(node.attributes, dict):
        raise ConfigError(f"Fichier nœud {path}: 'attributes' doit être un dictionnaire")
    node = Node(
        node.name,
        environment=environ.get("NODESEARCH_ENVIRONMENT") or node.environment,
        roles=node.roles,
        attributes=deep_merge(DEFAULT_ATTRIBUTES, node.attributes),
    )
    return node.merge(env_overrides(environ))


def get_settings() -> Dict[str, Any]:
    """Paramètres du backend de recherche (voir `create_backend`)."""
    return {
        "backend": SEARCH_BACKEND,
        "inventory_path": INVENTORY_PATH,
        "search_url": SEARCH_URL,
        "search_timeout": SEARCH_TIMEOUT,
        "search_rows": SEARCH_ROWS,
        "cache_ttl": SEARCH_CACHE_TTL,
        "redis": REDIS_CONFIG
    }


def validate_config(settings: Optional[Dict[str, Any]] = None) -> List[str]:
    """Valider la configuration et retourner les erreurs."""
    settings = settings or get_settings()
    errors = []

    if settings["backend"] not in BACKENDS:
        errors.append(f"Backend inconnu: {settings['backend']} (attendu: {', '.join(BACKENDS)})")

    if settings["backend"] == "inventory" and not Path(settings["inventory_path"]).exists():
        errors.append(f"Inventaire introuvable: {settings['inventory_path']}")

    if settings["backend"] == "http" and not settings["search_url"]:
        errors.append("NODESEARCH_SEARCH_URL doit être défini pour le backend http")

    if settings["search_timeout"] <= 0:
        errors.append("NODESEARCH_SEARCH_TIMEOUT doit être positif")

    if settings["search_rows"] <= 0:
        errors.append("NODESEARCH_SEARCH_ROWS doit être positif")

    if settings["cache_ttl"] < 0:
        errors.append("NODESEARCH_CACHE_TTL ne peut pas être négatif")

    return errors
