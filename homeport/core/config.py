"""Homeport runtime configuration and settings."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class HomeportConfig:
    """Runtime configuration for Homeport operations.

    Attributes:
        config_dir: Operator-owned directory for credentials and generated files
        api_base_url: DNS provider API root
        http_timeout: Timeout in seconds for every HTTP call (default: 10)
        command_timeout: Timeout in seconds for container engine commands (default: 120)
        backend_port: Host port the proxy forwards every domain to (default: 3000)
        record_ttl: TTL for newly created DNS records (default: 300)
        startup_grace: Seconds to wait after starting a container (default: 3)
        debug: Verbose diagnostic output
    """

    config_dir: Path = field(default_factory=lambda: Path.home() / ".homeport")
    api_base_url: str = "https://api.cloudflare.com/client/v4"
    token_page_url: str = "https://dash.cloudflare.com/profile/api-tokens"

    http_timeout: int = 10
    command_timeout: int = 120

    backend_port: int = 3000
    record_ttl: int = 300
    startup_grace: int = 3

    # Reverse proxy
    proxy_container: str = "traefik"
    proxy_image: str = "traefik:v3.0"
    proxy_network: str = "traefik-net"
    cert_resolver: str = "myresolver"
    dashboard_port: int = 8080
    # htpasswd entry for admin:admin, `$` doubled for compose interpolation
    dashboard_users: str = "admin:$$2y$$10$$YFPx3EmK6lN5bPG.zPNvp.UYQhkPvNnkZ7J4zYu2GODXJfHZXfYbK"

    # Placeholder service
    placeholder_container: str = "homeport-welcome"
    placeholder_image: str = "homeport-welcome:latest"
    placeholder_network: str = "homeport-proxy"

    debug: bool = False

    @property
    def token_file(self) -> Path:
        return self.config_dir / "cloudflare_token"

    @property
    def proxy_dir(self) -> Path:
        return self.config_dir / "traefik"

    @property
    def placeholder_dir(self) -> Path:
        return self.config_dir / "welcome"

    @classmethod
    def from_env(cls) -> "HomeportConfig":
        """Create config from environment variables.

        Environment variables:
            HOMEPORT_CONFIG_DIR: Directory for credentials and generated files
            HOMEPORT_API_URL: DNS provider API root
            HOMEPORT_HTTP_TIMEOUT: HTTP timeout in seconds
            HOMEPORT_COMMAND_TIMEOUT: External command timeout in seconds
            HOMEPORT_BACKEND_PORT: Backend port routed to by the proxy
            HOMEPORT_RECORD_TTL: TTL for created DNS records
            HOMEPORT_STARTUP_GRACE: Seconds to wait after container start
            HOMEPORT_DEBUG: Enable debug output (1/true)

        Returns:
            HomeportConfig instance with values from environment or defaults
        """
        config_dir = os.getenv("HOMEPORT_CONFIG_DIR")
        return cls(
            config_dir=Path(config_dir).expanduser() if config_dir else Path.home() / ".homeport",
            api_base_url=os.getenv("HOMEPORT_API_URL", cls.api_base_url).rstrip("/"),
            http_timeout=int(os.getenv("HOMEPORT_HTTP_TIMEOUT", cls.http_timeout)),
            command_timeout=int(os.getenv("HOMEPORT_COMMAND_TIMEOUT", cls.command_timeout)),
            backend_port=int(os.getenv("HOMEPORT_BACKEND_PORT", cls.backend_port)),
            record_ttl=int(os.getenv("HOMEPORT_RECORD_TTL", cls.record_ttl)),
            startup_grace=int(os.getenv("HOMEPORT_STARTUP_GRACE", cls.startup_grace)),
            debug=_env_flag("HOMEPORT_DEBUG"),
        )


# Global config instance (can be overridden)
_config: Optional[HomeportConfig] = None


def get_config() -> HomeportConfig:
    """Get the global Homeport configuration.

    Returns:
        HomeportConfig instance (creates from environment if not set)
    """
    global _config
    if _config is None:
        _config = HomeportConfig.from_env()
    return _config


def set_config(config: Optional[HomeportConfig]):
    """Set the global Homeport configuration.

    Args:
        config: HomeportConfig instance to use globally, or None to reset
    """
    global _config
    _config = config
