"""API endpoints pour la découverte des pairs."""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
from pydantic import BaseModel
from nodesearch.config.logging_config import get_logger
from nodesearch.config.search_config import ConfigError, get_settings, load_node
from nodesearch.core.discovery import DEFAULT_MEMCACHED_ROLE, Discovery
from nodesearch.core.search import SearchBackend, SearchError, build_query, create_backend

logger = get_logger(__name__)

router = APIRouter(prefix="/api/discovery", tags=["discovery"])

DISCOVERY_ERRORS = (SearchError, ConfigError)

# Backend partagé entre les requêtes (un seul pool Redis quand le cache est actif)
_backend: Optional[SearchBackend] = None


class SearchResult(BaseModel):
    role: str
    query: str
    nodes: List[str]
    total: int


class MemcachedServers(BaseModel):
    role: str
    servers: List[str]


class RabbitServers(BaseModel):
    servers: str
    hosts: List[str]


class RabbitServer(BaseModel):
    server: str


def get_backend() -> SearchBackend:
    """Backend de recherche construit au premier appel puis réutilisé."""
    global _backend
    if _backend is None:
        _backend = create_backend(get_settings())
    return _backend


def get_discovery() -> Discovery:
    """Construit la découverte depuis la configuration (surchargée dans les tests)."""
    try:
        return Discovery(load_node(), get_backend())
    except DISCOVERY_ERRORS as e:
        raise _unavailable(e)


def _unavailable(e: Exception) -> HTTPException:
    logger.error(f"Découverte impossible: {e}")
    return HTTPException(status_code=503, detail=f"Recherche indisponible: {str(e)}")


@router.get("/search/{role}", response_model=SearchResult)
def search_role(role: str, discovery: Discovery = Depends(get_discovery)):
    """Nœuds portant `role` dans l'environnement courant."""
    try:
        nodes = discovery.search_for(role)
    except DISCOVERY_ERRORS as e:
        raise _unavailable(e)
    return SearchResult(
        role=role,
        query=build_query(discovery.node.environment, role),
        nodes=[n.name for n in nodes],
        total=len(nodes),
    )


@router.get("/memcached", response_model=MemcachedServers)
def memcached_servers(
    role: str = Query(DEFAULT_MEMCACHED_ROLE),
    discovery: Discovery = Depends(get_discovery)
):
    """Serveurs memcached "host:port"."""
    try:
        servers = discovery.memcached_servers(role)
    except DISCOVERY_ERRORS as e:
        raise _unavailable(e)
    return MemcachedServers(role=role, servers=list(servers))


@router.get("/rabbit/servers", response_model=RabbitServers)
def rabbit_servers(discovery: Discovery = Depends(get_discovery)):
    """Liste des brokers RabbitMQ."""
    try:
        servers = discovery.rabbit_servers()
    except DISCOVERY_ERRORS as e:
        raise _unavailable(e)
    return RabbitServers(servers=servers, hosts=[s for s in servers.split(",") if s])


@router.get("/rabbit/server", response_model=RabbitServer)
def rabbit_server(discovery: Discovery = Depends(get_discovery)):
    """Broker RabbitMQ principal."""
    try:
        return RabbitServer(server=discovery.rabbit_server())
    except DISCOVERY_ERRORS as e:
        raise _unavailable(e)


@router.get("/health")
def health(discovery: Discovery = Depends(get_discovery)):
    """Backend configuré et environnement du nœud courant."""
    return {
        "status": "ok",
        "backend": discovery.backend.name,
        "node": discovery.node.name,
        "environment": discovery.node.environment
    }
