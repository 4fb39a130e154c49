"""Découverte des pairs d'un nœud (serveurs memcached, brokers RabbitMQ).

Chaque opération préfère une liste statique lue dans les attributs du nœud
courant et ne recherche les pairs dans l'index que si elle est absente.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional
from nodesearch.config.logging_config import get_logger
from nodesearch.config.search_config import ConfigError
from nodesearch.core.node import Node, lookup
from nodesearch.core.search import NODE_INDEX, SearchBackend, build_query

logger = get_logger(__name__)

DEFAULT_MEMCACHED_ROLE = "infra-caching"
DEFAULT_MEMCACHED_PORT = "11211"


def _endpoints(records: Iterable[Any], listen_path: List[str], port_path: List[str],
               default_port: Any) -> List[str]:
    """Formate les enregistrements en "host:port", dédoublonnés et triés.

    Le tri porte sur la chaîne obtenue, pas sur la valeur numérique de l'IP.
    """
    endpoints = set()
    for record in records:
        listen = lookup(record, *listen_path)
        if listen is None:
            logger.warning(f"Nœud sans attribut {'.'.join(listen_path)} ignoré: {_record_name(record)}")
            continue
        port = lookup(record, *port_path)
        if port is None:
            port = default_port
        endpoints.add(f"{listen}:{port}")
    return sorted(endpoints)


def _record_name(record: Any) -> str:
    if isinstance(record, Node):
        return record.name
    return str(record.get("name", "?")) if isinstance(record, dict) else repr(record)


def _static_list(value: Any, attribute: str) -> List[Any]:
    """Liste statique lue dans les attributs; une chaîne seule vaut une liste d'un élément."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ConfigError(f"{attribute} doit être une liste, pas {type(value).__name__}: {value!r}")


class EndpointDiscoveryMixin(ABC):
    """Opérations de découverte.

    La classe hôte fournit `node` (le nœud courant) et `search(index, query)`.
    """

    node: Node

    @abstractmethod
    def search(self, index: str, query: str) -> Optional[List[Node]]:
        """Interroge l'index de recherche (voir `SearchBackend.search`)."""
        pass

    def search_for(self, role: str) -> List[Node]:
        """Nœuds portant `role` dans l'environnement du nœud courant."""
        query = build_query(self.node.environment, role)
        results = self.search(NODE_INDEX, query) or []
        logger.debug(f"Recherche '{query}': {len(results)} nœud(s)")
        return list(results)

    def memcached_servers(self, role: str = DEFAULT_MEMCACHED_ROLE) -> List[str]:
        """Liste des serveurs memcached "host:port".

        `openstack.memcached_servers` est renvoyé tel quel s'il est défini,
        même vide. Sinon les nœuds `role` sont recherchés.
        """
        static = self.node.lookup("openstack", "memcached_servers")
        if static is not None:
            return _static_list(static, "openstack.memcached_servers")
        return _endpoints(
            self.search_for(role),
            ["memcached", "listen"],
            ["memcached", "port"],
            DEFAULT_MEMCACHED_PORT,
        )

    def rabbit_servers(self) -> str:
        """Brokers RabbitMQ "host:port" séparés par des virgules."""
        port = self.node.lookup("openstack", "mq", "port")
        servers = self.node.lookup("openstack", "mq", "servers")
        if servers is not None:
            return ",".join(f"{server}:{port}" for server in _static_list(servers, "openstack.mq.servers"))

        role = self.node.lookup("openstack", "mq", "server_role")
        return ",".join(_endpoints(
            self.search_for(role),
            ["openstack", "mq", "listen"],
            ["openstack", "mq", "port"],
            port,
        ))

    def rabbit_server(self) -> str:
        """Un seul broker: `openstack.mq.host` s'il est défini, sinon le premier de la liste."""
        host = self.node.lookup("openstack", "mq", "host")
        if host is not None:
            port = self.node.lookup("openstack", "mq", "port")
            return f"{host}:{port}"
        return self.rabbit_servers().split(",")[0]


class Discovery(EndpointDiscoveryMixin):
    def __init__(self, node: Node, backend: SearchBackend) -> None:
        self.node = node
        self.backend = backend

    def search(self, index: str, query: str) -> List[Node]:
        return self.backend.search(index, query)
