"""Error taxonomy for Homeport workflows.

Components raise these exceptions and never exit the process themselves.
The pipeline driver turns them into failed step results and the CLI maps
the failure kind to a process exit code.
"""
from enum import Enum
from typing import Optional


class FailureKind(Enum):
    """Terminal failure categories, each bound to an exit code."""

    CREDENTIAL = ("credential", 2)
    NO_ZONES = ("no-zones", 3)
    ZONE_LISTING = ("zone-listing", 3)
    RUNTIME_UNAVAILABLE = ("runtime-unavailable", 4)
    DNS_RECORD = ("dns-record", 5)
    PLACEHOLDER = ("placeholder", 6)
    PROXY = ("proxy", 7)
    INPUT = ("input", 8)

    def __init__(self, label: str, exit_code: int):
        self.label = label
        self.exit_code = exit_code


class HomeportError(Exception):
    """Base error for all Homeport failures."""

    kind = FailureKind.INPUT

    def __init__(self, message: str, kind: Optional[FailureKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def exit_code(self) -> int:
        return self.kind.exit_code


class CredentialError(HomeportError):
    """No usable DNS provider credential could be obtained."""

    kind = FailureKind.CREDENTIAL


class DNSProviderError(HomeportError):
    """A DNS provider API call failed.

    Attributes:
        status_code: HTTP status of the failing call (None for transport errors)
        body: Raw response body, shown in debug output
    """

    kind = FailureKind.DNS_RECORD

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        kind: Optional[FailureKind] = None,
    ):
        super().__init__(message, kind)
        self.status_code = status_code
        self.body = body


class ContainerRuntimeError(HomeportError):
    """The container engine is missing or not running."""

    kind = FailureKind.RUNTIME_UNAVAILABLE


class PlaceholderError(HomeportError):
    """The placeholder service could not be built or started."""

    kind = FailureKind.PLACEHOLDER


class ProxyConfigError(HomeportError):
    """The reverse proxy could not be configured or brought up."""

    kind = FailureKind.PROXY
