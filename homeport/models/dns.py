"""DNS provider data models."""
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Zone(BaseModel):
    """A DNS-managed domain owned by the authenticated account."""

    model_config = ConfigDict(extra='ignore', frozen=True)

    id: str
    name: str
    status: str = "unknown"

    @property
    def label(self) -> str:
        return f"{self.name} ({self.status})"


class DNSRecord(BaseModel):
    """A provider-side A or CNAME record."""

    model_config = ConfigDict(extra='ignore', frozen=True)

    id: str
    type: str
    name: str
    content: str
    proxied: bool = False
    ttl: int = Field(1, description="1 means 'automatic' on Cloudflare")

    @field_validator('type')
    @classmethod
    def normalize_type(cls, v):
        return v.upper()

    def matches(self, record_type: str, content: str) -> bool:
        """True when type and content already equal the desired state."""
        return self.type == record_type.upper() and self.content == content


@dataclass(frozen=True)
class DomainSelection:
    """Operator-chosen deployment target inside one zone."""

    domain: str
    zone_id: str
    zone_name: str

    @property
    def is_apex(self) -> bool:
        return self.domain == self.zone_name
