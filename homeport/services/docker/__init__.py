"""Local Docker engine integration."""
from homeport.services.docker.placeholder import PlaceholderOutcome, PlaceholderService
from homeport.services.docker.runtime import ContainerRuntime, PortListener

__all__ = ['ContainerRuntime', 'PortListener', 'PlaceholderService', 'PlaceholderOutcome']
