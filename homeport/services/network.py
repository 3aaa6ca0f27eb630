"""Public/internal address discovery and external port negotiation."""
import socket
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import psutil
import requests
from rich.console import Console

from homeport.core.logger import console as default_console
from homeport.core.logger import get_logger
from homeport.core.prompts import Prompter
from homeport.models.network import (
    STANDARD_HTTP_PORT,
    STANDARD_HTTPS_PORT,
    NetworkInfo,
    is_valid_ipv4,
    is_valid_port,
)

logger = get_logger(__name__)

PUBLIC_IP_ENDPOINTS = (
    "https://ifconfig.me/ip",
    "https://ipecho.net/plain",
    "https://icanhazip.com",
)

# Interfaces tried first on macOS (Wi-Fi, Ethernet) and common Linux NICs
PREFERRED_INTERFACES = ("en0", "en1", "eth0", "wlan0")

# Virtual interfaces that never carry the LAN address
VIRTUAL_INTERFACE_PREFIXES = ("docker", "br-", "veth", "virbr", "lo", "utun", "tun", "tap", "cni", "flannel")

DEFAULT_CUSTOM_HTTP = 8080
DEFAULT_CUSTOM_HTTPS = 8443


class NetworkProbe:
    """Determine how the home server is addressed from outside and inside."""

    def __init__(
        self,
        prompter: Prompter,
        console: Optional[Console] = None,
        http_timeout: int = 10,
        endpoints: Sequence[str] = PUBLIC_IP_ENDPOINTS,
        interface_source: Optional[Callable[[], Dict[str, list]]] = None,
    ):
        self.prompter = prompter
        self.console = console or default_console
        self.http_timeout = http_timeout
        self.endpoints = tuple(endpoints)
        self.interface_source = interface_source or psutil.net_if_addrs

    def discover(self) -> NetworkInfo:
        """Run every probe once and return the combined result."""
        logger.info("Checking network addresses...")
        public_ip = self.detect_public_ip()
        logger.info(f"✓ Public IP: {public_ip}")
        internal_ip = self.detect_internal_ip()
        logger.info(f"✓ Internal IP: {internal_ip}")
        external_http, external_https, custom = self.negotiate_ports()
        return NetworkInfo(
            public_ip=public_ip,
            internal_ip=internal_ip,
            external_http=external_http,
            external_https=external_https,
            uses_custom_ports=custom,
        )

    def detect_public_ip(self) -> str:
        """Ask external echo services for our address, then the operator."""
        for endpoint in self.endpoints:
            try:
                response = requests.get(endpoint, timeout=self.http_timeout)
            except requests.RequestException as e:
                logger.debug(f"{endpoint} failed: {e}")
                continue

            candidate = response.text.strip()
            if response.status_code == 200 and is_valid_ipv4(candidate):
                return candidate
            logger.debug(f"{endpoint} returned HTTP {response.status_code}: {candidate[:60]!r}")

        logger.warning("⚠ Could not detect the public IP automatically")
        return self._ask_ip("Enter the public IP")

    def detect_internal_ip(self) -> str:
        """Pick the LAN IPv4 address from local interfaces."""
        try:
            candidate = pick_internal_ip(self.interface_source())
        except (OSError, psutil.Error) as e:
            logger.debug(f"Interface enumeration failed: {e}")
            candidate = None

        if candidate:
            return candidate

        logger.warning("⚠ Could not detect the internal IP automatically")
        return self._ask_ip("Enter the internal IP (e.g. 192.168.1.100)")

    def negotiate_ports(self) -> Tuple[int, int, bool]:
        """Ask how the router forwards traffic to the proxy's 80/443.

        Returns:
            (external_http, external_https, uses_custom_ports)
        """
        self.console.print("\n[yellow]External port setup[/yellow]")
        self.console.print("[dim]The proxy always listens on 80 and 443 on this host.[/dim]")

        choice = self.prompter.select(
            "How does your router forward traffic?",
            [
                "Router forwards 80 and 443 directly (default)",
                f"Router forwards other ports (e.g. {DEFAULT_CUSTOM_HTTP}→80, {DEFAULT_CUSTOM_HTTPS}→443)",
            ],
        )

        if choice == 0:
            logger.info("✓ Using standard ports 80 and 443")
            return STANDARD_HTTP_PORT, STANDARD_HTTPS_PORT, False

        http_port = int(self.prompter.ask(
            "External HTTP port",
            default=str(DEFAULT_CUSTOM_HTTP),
            validator=is_valid_port,
            error_message="Enter a port between 1 and 65535.",
        ))
        https_port = int(self.prompter.ask(
            "External HTTPS port",
            default=str(DEFAULT_CUSTOM_HTTPS),
            validator=is_valid_port,
            error_message="Enter a port between 1 and 65535.",
        ))
        logger.info(f"✓ External ports: HTTP {http_port}, HTTPS {https_port}")
        return http_port, https_port, True

    def show_port_forwarding_guide(self, network: NetworkInfo) -> None:
        if not network.uses_custom_ports:
            return

        self.console.print("\n[yellow]Router port forwarding:[/yellow]")
        self.console.print("━" * 50)
        self.console.print(f"External port {network.external_http} → {network.internal_ip}:{STANDARD_HTTP_PORT}")
        self.console.print(f"External port {network.external_https} → {network.internal_ip}:{STANDARD_HTTPS_PORT}")
        self.console.print("━" * 50)
        self.console.print("[cyan]Set these up in your router's admin page.[/cyan]")
        self.console.print("[dim]Usually reachable at http://192.168.1.1[/dim]")

    def _ask_ip(self, message: str) -> str:
        return self.prompter.ask(
            message,
            validator=is_valid_ipv4,
            error_message="Enter a valid IPv4 address, e.g. 203.0.113.5",
        )


def pick_internal_ip(interfaces: Dict[str, list]) -> Optional[str]:
    """Choose a non-loopback IPv4 address from psutil.net_if_addrs() output.

    Preferred physical interfaces win, then any non-virtual interface,
    then any interface at all.
    """
    def ipv4_of(addresses) -> List[str]:
        found = []
        for address in addresses:
            if address.family != socket.AF_INET:
                continue
            ip = address.address
            if is_valid_ipv4(ip) and not ip.startswith("127."):
                found.append(ip)
        return found

    for name in PREFERRED_INTERFACES:
        found = ipv4_of(interfaces.get(name, []))
        if found:
            return found[0]

    fallback = None
    for name, addresses in interfaces.items():
        found = ipv4_of(addresses)
        if not found:
            continue
        if not name.startswith(VIRTUAL_INTERFACE_PREFIXES):
            return found[0]
        fallback = fallback or found[0]

    return fallback
