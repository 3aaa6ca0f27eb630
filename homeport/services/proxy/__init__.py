"""Reverse proxy (Traefik) configuration."""
from homeport.services.proxy.traefik import ProxySetupResult, TraefikConfigurator

__all__ = ['TraefikConfigurator', 'ProxySetupResult']
