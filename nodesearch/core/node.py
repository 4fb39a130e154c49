"""Modèle d'un nœud de la flotte.

Un nœud est un sac d'attributs imbriqués (clé -> valeur ou sous-dictionnaire),
accompagné de son nom, de son environnement de déploiement et de ses rôles.
"""

import copy
from typing import Any, Dict, List, Optional

DEFAULT_ENVIRONMENT = "_default"

# Ordre de précédence des attributs d'un document nœud (le dernier gagne)
PRECEDENCE_LEVELS = ("default", "normal", "override", "automatic")


def deep_merge(base: Dict[str, Any], other: Dict[str, Any]) -> Dict[str, Any]:
    """Fusionne récursivement `other` dans une copie de `base`.

    Les sous-dictionnaires sont fusionnés clé par clé, les listes et
    scalaires de `other` remplacent ceux de `base`. Aucune entrée n'est modifiée.
    """
    merged = copy.deepcopy(base)
    for key, value in (other or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class Node:
    def __init__(
        self,
        name: str,
        environment: str = DEFAULT_ENVIRONMENT,
        roles: Optional[List[str]] = None,
        attributes: Optional[Dict[str, Any]] = None
    ) -> None:
        """Initialise un nœud.

        Args:
            name: nom (FQDN ou nom court) du nœud
            environment: environnement de déploiement (`chef_environment`)
            roles: rôles attribués au nœud
            attributes: attributs imbriqués du nœud
        """
        self.name = name
        self.environment = environment or DEFAULT_ENVIRONMENT
        self.roles: List[str] = list(roles or [])
        self.attributes: Dict[str, Any] = attributes or {}

    def __getitem__(self, key: str) -> Any:
        return self.attributes[key]

    def __contains__(self, key: str) -> bool:
        return key in self.attributes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"Node({self.name!r}, environment={self.environment!r}, roles={self.roles!r})"

    def get(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def lookup(self, *path: str, default: Any = None) -> Any:
        """Lit un attribut imbriqué, ex: `lookup("openstack", "mq", "port")`.

        Retourne `default` dès qu'un niveau manque ou n'est pas un dictionnaire.
        """
        return lookup(self.attributes, *path, default=default)

    def merge(self, attributes: Dict[str, Any]) -> "Node":
        """Retourne un nouveau nœud dont les attributs sont fusionnés avec `attributes`."""
        return Node(
            self.name,
            environment=self.environment,
            roles=self.roles,
            attributes=deep_merge(self.attributes, attributes),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convertit le nœud en entrée d'inventaire."""
        return {
            "name": self.name,
            "chef_environment": self.environment,
            "roles": list(self.roles),
            "attributes": copy.deepcopy(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Node":
        """Construit un nœud depuis une entrée d'inventaire YAML."""
        if not isinstance(data, dict):
            raise ValueError(f"Entrée de nœud invalide: {data!r}")
        if "name" not in data:
            raise ValueError(f"Entrée de nœud sans nom: {data!r}")
        environment = data.get("chef_environment", data.get("environment", DEFAULT_ENVIRONMENT))
        return cls(
            str(data["name"]),
            environment=environment,
            roles=data.get("roles") or [],
            attributes=data.get("attributes") or {},
        )

    @classmethod
    def from_chef_json(cls, data: Dict[str, Any]) -> "Node":
        """Construit un nœud depuis le document renvoyé par un serveur de configuration.

        Les niveaux d'attributs sont fusionnés selon `PRECEDENCE_LEVELS`.
        Les rôles viennent de `automatic.roles` s'ils existent, sinon de la
        `run_list` (`role[nom]`).
        """
        attributes: Dict[str, Any] = {}
        for level in PRECEDENCE_LEVELS:
            attributes = deep_merge(attributes, data.get(level) or {})

        roles = attributes.get("roles")
        if not isinstance(roles, list):
            roles = [
                item[len("role["):-1]
                for item in data.get("run_list") or []
                if item.startswith("role[") and item.endswith("]")
            ]

        return cls(
            data.get("name", ""),
            environment=data.get("chef_environment", DEFAULT_ENVIRONMENT),
            roles=roles,
            attributes=attributes,
        )


def lookup(record: Any, *path: str, default: Any = None) -> Any:
    """Parcourt `path` dans un dictionnaire ou un `Node`."""
    current = record.attributes if isinstance(record, Node) else record
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current
