"""Network addressing models."""
import re
from dataclasses import dataclass
from typing import Optional

STANDARD_HTTP_PORT = 80
STANDARD_HTTPS_PORT = 443

HOSTNAME_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$", re.IGNORECASE)


def is_valid_ipv4(candidate: Optional[str]) -> bool:
    """Return True for a dotted-quad IPv4 address.

    Exactly four dot-separated octets, each a plain decimal 0-255 with no
    sign, whitespace, or leading zeros ("01" is rejected).
    """
    if not candidate:
        return False

    parts = candidate.split('.')
    if len(parts) != 4:
        return False

    for part in parts:
        if not part.isdigit() or not part.isascii():
            return False
        if str(int(part)) != part:
            return False
        if not 0 <= int(part) <= 255:
            return False
    return True


def is_valid_hostname(candidate: Optional[str]) -> bool:
    """Return True for a dotted DNS name such as "home.duckdns.org".

    At least two labels. A name made only of digits and dots is never a
    hostname, so a malformed IPv4 address cannot pass as one.
    """
    if not candidate or len(candidate) > 253:
        return False
    name = candidate[:-1] if candidate.endswith(".") else candidate
    if all(c.isdigit() or c == "." for c in name):
        return False
    labels = name.split(".")
    if len(labels) < 2:
        return False
    return all(HOSTNAME_LABEL.match(label) for label in labels)


def is_valid_port(candidate) -> bool:
    try:
        port = int(str(candidate).strip())
    except (TypeError, ValueError):
        return False
    return 1 <= port <= 65535


@dataclass(frozen=True)
class NetworkInfo:
    """Result of network discovery, computed once per run."""

    public_ip: str
    internal_ip: str
    external_http: int = STANDARD_HTTP_PORT
    external_https: int = STANDARD_HTTPS_PORT
    uses_custom_ports: bool = False

    def http_url(self, domain: str) -> str:
        if self.uses_custom_ports:
            return f"http://{domain}:{self.external_http}"
        return f"http://{domain}"

    def https_url(self, domain: str) -> str:
        if self.uses_custom_ports:
            return f"https://{domain}:{self.external_https}"
        return f"https://{domain}"
