"""Ligne de commande nodesearch.

Exemples:
    nodesearch memcached --role infra-caching
    nodesearch rabbit-servers
    nodesearch --inventory inventory/nodes.yaml search openstack-ops-mq --json
"""

import argparse
import json
import sys
from typing import List, Optional
from nodesearch.config.logging_config import setup_logging, get_logger
from nodesearch.config.search_config import ConfigError, get_settings, load_node, validate_config
from nodesearch.core.discovery import DEFAULT_MEMCACHED_ROLE, Discovery
from nodesearch.core.search import SearchError, create_backend

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="nodesearch", description="Découverte des pairs memcached et RabbitMQ")
    parser.add_argument("--inventory", type=str, help="Inventaire YAML (force le backend inventory)")
    parser.add_argument("--url", type=str, help="URL de l'API de recherche (force le backend http)")
    parser.add_argument("--node-file", type=str, help="Fichier YAML décrivant le nœud courant")
    parser.add_argument("--json", action="store_true", help="Sortie JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Logs de debug sur la console")

    sub = parser.add_subparsers(dest="command", required=True)
    search = sub.add_parser("search", help="Nœuds portant un rôle dans l'environnement courant")
    search.add_argument("role", type=str)
    memcached = sub.add_parser("memcached", help="Serveurs memcached host:port")
    memcached.add_argument("--role", type=str, default=DEFAULT_MEMCACHED_ROLE)
    sub.add_parser("rabbit-servers", help="Brokers RabbitMQ séparés par des virgules")
    sub.add_parser("rabbit-server", help="Broker RabbitMQ principal")
    sub.add_parser("check-config", help="Valide la configuration")
    return parser


def _settings_from_args(args: argparse.Namespace) -> dict:
    settings = get_settings()
    if args.inventory:
        settings = {**settings, "backend": "inventory", "inventory_path": args.inventory}
    if args.url:
        settings = {**settings, "backend": "http", "search_url": args.url}
    return settings


def _emit(value, as_json: bool) -> None:
    if as_json:
        print(json.dumps(value))
    elif isinstance(value, list):
        for item in value:
            print(item)
    else:
        print(value)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        setup_logging(log_file="", level="DEBUG")

    settings = _settings_from_args(args)

    if args.command == "check-config":
        errors = validate_config(settings)
        if errors:
            print("Erreurs de configuration:", file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)
            return 1
        print("Configuration valide")
        return 0

    try:
        discovery = Discovery(load_node(args.node_file), create_backend(settings))
        if args.command == "search":
            result = [n.name for n in discovery.search_for(args.role)]
        elif args.command == "memcached":
            result = discovery.memcached_servers(args.role)
        elif args.command == "rabbit-servers":
            result = discovery.rabbit_servers()
        else:
            result = discovery.rabbit_server()
    except (SearchError, ConfigError) as e:
        logger.debug("Recherche échouée", exc_info=True)
        print(f"Erreur: {e}", file=sys.stderr)
        return 1

    _emit(result, args.json)
    return 0


if __name__ == "__main__":
    sys.exit(main())
