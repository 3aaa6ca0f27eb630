"""Data models for Homeport."""
from homeport.models.dns import DNSRecord, DomainSelection, Zone
from homeport.models.network import NetworkInfo, is_valid_ipv4
from homeport.models.proxy import (
    ContainerState,
    ContainerStatus,
    ProxyState,
    RouteConfig,
    safe_name,
)

__all__ = [
    'Zone',
    'DNSRecord',
    'DomainSelection',
    'NetworkInfo',
    'is_valid_ipv4',
    'ContainerState',
    'ContainerStatus',
    'ProxyState',
    'RouteConfig',
    'safe_name',
]
