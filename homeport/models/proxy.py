"""Reverse proxy and container state models."""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

_UNSAFE_NAME_CHARS = re.compile(r'[._]')


def safe_name(domain: str) -> str:
    """Derive a router/service identifier from a domain.

    Dots and underscores become hyphens: "app.example.com" -> "app-example-com".
    """
    return _UNSAFE_NAME_CHARS.sub('-', domain)


class ContainerStatus(Enum):
    RUNNING = "running"
    STOPPED = "stopped"
    ABSENT = "absent"


@dataclass(frozen=True)
class ContainerState:
    """Queried state of a named container."""

    name: str
    status: ContainerStatus
    ports_bound: bool = False

    @property
    def running(self) -> bool:
        return self.status == ContainerStatus.RUNNING


class ProxyState(Enum):
    """Lifecycle of the reverse proxy across a setup run."""

    NOT_CONFIGURED = "not-configured"
    CONFIG_WRITTEN = "config-written"
    RUNNING = "running"
    RELOADED = "reloaded"
    RELOAD_FAILED = "reload-failed"


@dataclass(frozen=True)
class RouteConfig:
    """Routing rule pair for one domain."""

    domain: str
    name: str
    backend_url: str
    cert_resolver: str
    redirect_middleware: str = "redirect-to-https"

    @classmethod
    def for_domain(cls, domain: str, backend_url: str, cert_resolver: str) -> "RouteConfig":
        return cls(domain=domain, name=safe_name(domain), backend_url=backend_url, cert_resolver=cert_resolver)

    @property
    def http_router(self) -> str:
        return f"{self.name}-http"

    @property
    def https_router(self) -> str:
        return f"{self.name}-https"

    @property
    def service(self) -> str:
        return f"{self.name}-service"

    @property
    def rule(self) -> str:
        return f"Host(`{self.domain}`)"

    def routers(self) -> Dict[str, Dict[str, Any]]:
        return {
            self.http_router: {
                "rule": self.rule,
                "entryPoints": ["web"],
                "middlewares": [self.redirect_middleware],
                "service": self.service,
            },
            self.https_router: {
                "rule": self.rule,
                "entryPoints": ["websecure"],
                "service": self.service,
                "tls": {"certResolver": self.cert_resolver},
            },
        }

    def service_definition(self) -> Dict[str, Any]:
        return {"loadBalancer": {"servers": [{"url": self.backend_url}]}}
