"""Backends de recherche de nœuds.

La recherche elle-même est externe: on consomme un index qui, pour une requête
`champ:valeur AND champ:valeur`, renvoie les nœuds correspondants. Trois
implémentations sont fournies:
- `InventorySearch`: inventaire YAML local (ou liste en mémoire)
- `HttpSearch`: API de recherche d'un serveur de configuration, via httpx
- `CachedSearch`: cache Redis en lecture devant un autre backend
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union
import json
import httpx
import redis
import yaml
from nodesearch.config.logging_config import get_logger
from nodesearch.core.node import Node, lookup

logger = get_logger(__name__)

NODE_INDEX = "node"
WILDCARD = "*"


class SearchError(Exception):
    """Erreur levée par un backend de recherche."""


def build_query(environment: str, role: str) -> str:
    """Requête des nœuds portant `role` dans `environment`."""
    return f"chef_environment:{environment} AND roles:{role}"


def parse_query(query: str) -> List[Tuple[str, str]]:
    """Découpe une conjonction `a:b AND c:d` en couples (champ, valeur)."""
    terms: List[Tuple[str, str]] = []
    for raw in query.split(" AND "):
        term = raw.strip()
        field, sep, value = term.partition(":")
        if not sep or not field or not value:
            raise SearchError(f"Terme de requête invalide: {term!r}")
        terms.append((field, value))
    return terms


class SearchBackend(ABC):
    """Interface commune des backends de recherche."""

    name = "abstract"

    @abstractmethod
    def search(self, index: str, query: str) -> List[Node]:
        """Retourne les nœuds de `index` qui satisfont `query`.

        Args:
            index: collection interrogée (toujours "node" ici)
            query: conjonction de termes `champ:valeur`

        Returns:
            Liste de nœuds, éventuellement vide
        """
        pass


class InventorySearch(SearchBackend):
    """Recherche dans un inventaire YAML.

    Format attendu::

        nodes:
          - name: mq1.lan
            chef_environment: production
            roles: [openstack-ops-mq]
            attributes:
              openstack: {mq: {listen: 10.0.0.1, port: 5672}}
    """

    name = "inventory"

    def __init__(self, path: Optional[Union[str, Path]] = None, nodes: Optional[List[Node]] = None) -> None:
        if path is None and nodes is None:
            raise ValueError("InventorySearch attend un chemin ou une liste de nœuds")
        self.path = Path(path) if path is not None else None
        self._nodes = nodes

    def load(self) -> List[Node]:
        """Charge (ou relit) l'inventaire."""
        if self._nodes is not None:
            return self._nodes
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise SearchError(f"Inventaire illisible {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise SearchError(f"Inventaire YAML invalide {self.path}: {e}") from e

        entries = data.get("nodes", []) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise SearchError(f"Inventaire {self.path}: 'nodes' doit être une liste")
        try:
            return [Node.from_dict(entry) for entry in entries]
        except ValueError as e:
            raise SearchError(f"Inventaire {self.path}: {e}") from e

    def search(self, index: str, query: str) -> List[Node]:
        if index != NODE_INDEX:
            return []
        terms = parse_query(query)
        return [node for node in self.load() if all(self._match(node, f, v) for f, v in terms)]

    @staticmethod
    def _match(node: Node, field: str, value: str) -> bool:
        if field == "chef_environment":
            return value == WILDCARD or node.environment == value
        if field in ("roles", "role"):
            return (value == WILDCARD and bool(node.roles)) or value in node.roles
        if field == "name":
            return value == WILDCARD or node.name == value

        # Champ quelconque: chemin d'attribut pointé
        found = lookup(node, *field.split("."))
        if found is None:
            return False
        if value == WILDCARD:
            return True
        if isinstance(found, list):
            return value in [str(item) for item in found]
        return str(found) == value


class HttpSearch(SearchBackend):
    """Recherche via l'API HTTP d'un serveur de configuration.

    `GET {base_url}/search/{index}?q=...&start=...&rows=...` doit renvoyer
    `{"total": N, "start": S, "rows": [document nœud, ...]}`.
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        rows: int = 1000,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.BaseTransport] = None
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.rows = rows
        self.headers = {"Accept": "application/json", **(headers or {})}
        self._transport = transport

    def search(self, index: str, query: str) -> List[Node]:
        nodes: List[Node] = []
        start = 0
        try:
            with httpx.Client(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                transport=self._transport,
            ) as client:
                while True:
                    response = client.get(
                        f"/search/{index}",
                        params={"q": query, "start": start, "rows": self.rows},
                    )
                    if response.status_code == 404:
                        logger.debug(f"Index {index} inconnu de {self.base_url}")
                        return []
                    response.raise_for_status()
                    payload = response.json()

                    rows = payload.get("rows") or []
                    nodes.extend(Node.from_chef_json(row) for row in rows)
                    start += len(rows)
                    total = payload.get("total", start)
                    if not rows or start >= total:
                        break
        except httpx.HTTPError as e:
            raise SearchError(f"Recherche {index} '{query}' échouée sur {self.base_url}: {e}") from e
        except ValueError as e:
            raise SearchError(f"Réponse invalide de {self.base_url}: {e}") from e
        return nodes


class CachedSearch(SearchBackend):
    """Cache Redis en lecture devant un autre backend."""

    name = "cached"

    def __init__(self, backend: SearchBackend, redis_client: redis.Redis, ttl: int = 60) -> None:
        self.backend = backend
        self.redis_client = redis_client
        self.ttl = ttl

    @staticmethod
    def cache_key(index: str, query: str) -> str:
        return f"nodesearch:search:{index}:{query}"

    def search(self, index: str, query: str) -> List[Node]:
        key = self.cache_key(index, query)
        try:
            cached = self.redis_client.get(key)
            if cached:
                return [Node.from_dict(entry) for entry in json.loads(cached)]
        except (redis.RedisError, ValueError) as e:
            logger.warning(f"Cache Redis indisponible pour {key}: {e}")

        nodes = self.backend.search(index, query)

        try:
            self.redis_client.setex(key, self.ttl, json.dumps([n.to_dict() for n in nodes]))
        except redis.RedisError as e:
            logger.warning(f"Impossible d'écrire {key} dans Redis: {e}")
        return nodes


def create_backend(settings: Dict[str, Any], redis_client: Optional[redis.Redis] = None) -> SearchBackend:
    """Construit le backend décrit par `settings` (voir `get_settings`)."""
    kind = settings.get("backend", "inventory")
    if kind == "inventory":
        backend: SearchBackend = InventorySearch(settings["inventory_path"])
    elif kind == "http":
        if not settings.get("search_url"):
            raise SearchError("Backend http sans URL de recherche")
        backend = HttpSearch(
            settings["search_url"],
            timeout=settings.get("search_timeout", 5.0),
            rows=settings.get("search_rows", 1000),
        )
    else:
        raise SearchError(f"Backend de recherche inconnu: {kind}")

    ttl = settings.get("cache_ttl", 0)
    if ttl > 0:
        client = redis_client or redis.Redis(**settings["redis"])
        logger.debug(f"Cache Redis actif (ttl={ttl}s) devant le backend {backend.name}")
        return CachedSearch(backend, client, ttl)
    return backend
