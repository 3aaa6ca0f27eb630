"""
Traefik reverse proxy configuration and lifecycle.

Writes three artifacts under <config_dir>/traefik:
1. config/traefik.yml   - static config (entrypoints, providers, ACME resolver)
2. docker-compose.yml   - the traefik service with its mounts and dashboard labels
3. config/dynamic.yml   - per-domain routers and services, fully rewritten each run

then starts the proxy (first run) or restarts it (subsequent runs).
"""
import os
import re
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml
from rich.console import Console

from homeport.core.config import HomeportConfig
from homeport.core.errors import ProxyConfigError
from homeport.core.logger import console as default_console
from homeport.core.logger import get_logger
from homeport.core.prompts import Prompter
from homeport.models.dns import DomainSelection
from homeport.models.proxy import ProxyState, RouteConfig
from homeport.services.docker.runtime import ContainerRuntime

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r'^[\w+\-.]+@[a-z\d\-]+(\.[a-z\d\-]+)*\.[a-z]+$', re.IGNORECASE)

REDIRECT_MIDDLEWARE = "redirect-to-https"
BACKEND_HOST = "host.docker.internal"


def is_valid_email(candidate: Optional[str]) -> bool:
    return bool(candidate) and bool(EMAIL_PATTERN.match(candidate))


@dataclass
class ProxySetupResult:
    """What one setup run produced."""

    state: ProxyState
    email: str
    routes: List[RouteConfig] = field(default_factory=list)


class TraefikConfigurator:
    """
    Generate Traefik configuration and make the container reflect it.

    Example:
        configurator = TraefikConfigurator(runtime, config, prompter)
        result = configurator.setup(selections, email="ops@example.com")
    """

    def __init__(
        self,
        runtime: ContainerRuntime,
        config: HomeportConfig,
        prompter: Prompter,
        console: Optional[Console] = None,
    ):
        self.runtime = runtime
        self.config = config
        self.prompter = prompter
        self.console = console or default_console

        self.base_dir = config.proxy_dir
        self.config_dir = self.base_dir / "config"
        self.static_file = self.config_dir / "traefik.yml"
        self.dynamic_file = self.config_dir / "dynamic.yml"
        self.compose_file = self.base_dir / "docker-compose.yml"
        self.acme_file = self.base_dir / "acme.json"
        self.email_file = self.base_dir / ".email"

        self.state = ProxyState.NOT_CONFIGURED

    @property
    def backend_url(self) -> str:
        return f"http://{BACKEND_HOST}:{self.config.backend_port}"

    def setup(self, domains: Sequence[DomainSelection], email: Optional[str] = None) -> ProxySetupResult:
        """Write every artifact, then start or reload the proxy.

        Raises:
            ProxyConfigError: invalid email, or the proxy could not be brought up
        """
        logger.info("Configuring Traefik...")
        self.setup_directories()
        email = self.resolve_email(email)

        routes = self.build_routes(domains)
        self.write_yaml(self.static_file, self.build_static_config(email))
        self.write_yaml(self.compose_file, self.build_compose())
        dynamic = self.build_dynamic_config(routes)
        logger.debug(f"dynamic config: {dynamic}")
        self.write_yaml(self.dynamic_file, dynamic)
        self.state = ProxyState.CONFIG_WRITTEN
        logger.info(f"✓ Proxy configuration written to {self.base_dir}")

        self.ensure_running()
        self.show_routes(routes)
        logger.info("✓ Traefik setup complete")
        return ProxySetupResult(state=self.state, email=email, routes=routes)

    # Filesystem

    def setup_directories(self) -> None:
        for directory in (self.base_dir, self.config_dir):
            directory.mkdir(parents=True, exist_ok=True)
            os.chmod(directory, 0o700)

        # Traefik refuses an ACME store readable by others
        if not self.acme_file.exists():
            self.acme_file.write_text("{}")
        os.chmod(self.acme_file, 0o600)

    def resolve_email(self, email: Optional[str] = None) -> str:
        """Return the ACME contact email, reusing or prompting as needed."""
        if email:
            if not is_valid_email(email):
                raise ProxyConfigError(f"Invalid email address: {email}")
            self._save_email(email)
            return email

        saved = self.load_saved_email()
        if saved and self.prompter.confirm(f"Use saved email {saved}?", default=True):
            return saved

        email = self.prompter.ask(
            "Email address for Let's Encrypt certificates",
            validator=is_valid_email,
            error_message="Enter a valid email address.",
        )
        self._save_email(email)
        return email

    def load_saved_email(self) -> Optional[str]:
        if not self.email_file.is_file():
            return None
        saved = self.email_file.read_text().strip()
        return saved if is_valid_email(saved) else None

    def _save_email(self, email: str) -> None:
        self.email_file.write_text(email)
        os.chmod(self.email_file, 0o600)

    def write_yaml(self, path: Path, content: Dict[str, Any]) -> None:
        """Serialize to a sibling temp file, then rename over the target."""
        text = yaml.safe_dump(content, default_flow_style=False, sort_keys=False)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as handle:
                handle.write(text)
            os.replace(temp_path, path)
        finally:
            Path(temp_path).unlink(missing_ok=True)
        logger.debug(f"Wrote {path}")

    # Generated artifacts

    def build_routes(self, domains: Sequence[DomainSelection]) -> List[RouteConfig]:
        return [
            RouteConfig.for_domain(selection.domain, self.backend_url, self.config.cert_resolver)
            for selection in domains
        ]

    def build_dynamic_config(self, routes: Sequence[RouteConfig]) -> Dict[str, Any]:
        routers: Dict[str, Any] = {}
        services: Dict[str, Any] = {}
        for route in routes:
            routers.update(route.routers())
            services[route.service] = route.service_definition()

        return {
            "http": {
                "middlewares": {
                    REDIRECT_MIDDLEWARE: {
                        "redirectScheme": {"scheme": "https", "permanent": True},
                    },
                },
                "routers": routers,
                "services": services,
            },
        }

    def build_static_config(self, email: str) -> Dict[str, Any]:
        return {
            "api": {"dashboard": True, "debug": False},
            "entryPoints": {
                "web": {
                    "address": ":80",
                    "http": {
                        "redirections": {
                            "entryPoint": {"to": "websecure", "scheme": "https", "permanent": True},
                        },
                    },
                },
                "websecure": {"address": ":443"},
            },
            "providers": {
                "docker": {
                    "endpoint": "unix:///var/run/docker.sock",
                    "exposedByDefault": False,
                    "network": self.config.proxy_network,
                    "watch": True,
                },
                "file": {"filename": "/etc/traefik/dynamic.yml", "watch": True},
            },
            "certificatesResolvers": {
                self.config.cert_resolver: {
                    "acme": {
                        "email": email,
                        "storage": "/acme.json",
                        "tlsChallenge": {},
                    },
                },
            },
            "log": {"level": "DEBUG" if self.config.debug else "INFO", "format": "json"},
            "accessLog": {"format": "json"},
        }

    def build_compose(self) -> Dict[str, Any]:
        network = self.config.proxy_network
        dashboard = self.config.dashboard_port
        return {
            "services": {
                "traefik": {
                    "image": self.config.proxy_image,
                    "container_name": self.config.proxy_container,
                    "restart": "unless-stopped",
                    "security_opt": ["no-new-privileges:true"],
                    "networks": [network],
                    "ports": ["80:80", "443:443", f"{dashboard}:8080"],
                    "extra_hosts": [f"{BACKEND_HOST}:host-gateway"],
                    "volumes": [
                        "/var/run/docker.sock:/var/run/docker.sock:ro",
                        f"{self.static_file}:/etc/traefik/traefik.yml:ro",
                        f"{self.dynamic_file}:/etc/traefik/dynamic.yml:ro",
                        f"{self.acme_file}:/acme.json",
                    ],
                    "labels": [
                        "traefik.enable=true",
                        "traefik.http.routers.dashboard.rule=Host(`traefik.localhost`)",
                        "traefik.http.routers.dashboard.service=api@internal",
                        "traefik.http.routers.dashboard.middlewares=auth",
                        f"traefik.http.middlewares.auth.basicauth.users={self.config.dashboard_users}",
                    ],
                },
            },
            "networks": {network: {"name": network, "driver": "bridge"}},
        }

    # Lifecycle

    def ensure_running(self) -> ProxyState:
        """Restart a running proxy, otherwise bring it up from the compose file."""
        if self.runtime.is_running(self.config.proxy_container):
            return self.reload()
        return self.start()

    def start(self) -> ProxyState:
        logger.info("Starting Traefik container...")

        if self.runtime.exists(self.config.proxy_container):
            self.runtime.stop_and_remove(self.config.proxy_container)

        result = self.runtime.compose_up(self.base_dir)
        if not result.ok:
            raise ProxyConfigError(f"Traefik failed to start: {result.output}")

        logger.info("✓ Traefik started")
        self.state = ProxyState.RUNNING

        if self.config.startup_grace:
            time.sleep(self.config.startup_grace)
        self.check_status()
        return self.state

    def reload(self) -> ProxyState:
        logger.info("Reloading Traefik configuration...")
        result = self.runtime.compose_restart(self.base_dir)
        if result.ok:
            logger.info("✓ Traefik restarted")
            self.state = ProxyState.RELOADED
        else:
            logger.warning(
                f"⚠ Traefik restart failed, it may still be serving the previous config: {result.output}"
            )
            self.state = ProxyState.RELOAD_FAILED
        return self.state

    def check_status(self) -> None:
        self.console.print(f"\n[cyan]Traefik dashboard: http://localhost:{self.config.dashboard_port}[/cyan]")
        self.console.print("[dim]   (basic auth: admin / admin)[/dim]")

        logs = self.runtime.logs(self.config.proxy_container, tail=5)
        if "error" in logs.lower():
            logger.warning("⚠ Traefik logs contain errors:")
            self.console.print(logs, style="dim", markup=False)

    def show_routes(self, routes: Sequence[RouteConfig]) -> None:
        self.console.print("\n[yellow]Domain routing:[/yellow]")
        for route in routes:
            self.console.print(f"   • [green]{route.domain}[/green] → localhost:{self.config.backend_port}")
            self.console.print(f"[dim]     HTTP:  http://{route.domain} (redirects to HTTPS)[/dim]")
            self.console.print(f"[dim]     HTTPS: https://{route.domain} (Let's Encrypt certificate)[/dim]")

        if routes:
            self.console.print("\n[yellow]Certificates are being issued...[/yellow]")
            self.console.print("[dim]   The first issuance can take a minute or two.[/dim]")
