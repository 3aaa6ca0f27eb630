"""HTTP client for the Cloudflare v4 DNS API."""
from typing import Any, Dict, List, Optional

import requests

from homeport.core.errors import DNSProviderError
from homeport.core.logger import get_logger
from homeport.models.dns import DNSRecord, Zone

logger = get_logger(__name__)

DEFAULT_API_URL = "https://api.cloudflare.com/client/v4"


class CloudflareClient:
    """Thin wrapper over the zone and DNS record endpoints.

    Every call uses bearer-token auth. A response is successful only with
    HTTP 200; anything else raises DNSProviderError carrying the status code
    and raw body.
    """

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    def verify_token(self) -> bool:
        """Return True when the provider accepts the token."""
        try:
            data = self._request("GET", "/user/tokens/verify")
        except DNSProviderError as e:
            logger.debug(f"Token verification failed: {e}")
            return False
        return data.get("success", True) is not False

    def list_zones(self) -> List[Zone]:
        data = self._request("GET", "/zones")
        return [Zone.model_validate(item) for item in data.get("result") or []]

    def list_records(self, zone_id: str, name: str, record_type: str) -> List[DNSRecord]:
        data = self._request(
            "GET",
            f"/zones/{zone_id}/dns_records",
            params={"type": record_type, "name": name},
        )
        return [DNSRecord.model_validate(item) for item in data.get("result") or []]

    def create_record(
        self,
        zone_id: str,
        name: str,
        record_type: str,
        content: str,
        ttl: int = 300,
        proxied: bool = False,
    ) -> Dict[str, Any]:
        payload = {
            "type": record_type,
            "name": name,
            "content": content,
            "ttl": ttl,
            "proxied": proxied,
        }
        return self._request("POST", f"/zones/{zone_id}/dns_records", json=payload)

    def update_record(self, zone_id: str, record_id: str, content: str) -> Dict[str, Any]:
        return self._request(
            "PATCH",
            f"/zones/{zone_id}/dns_records/{record_id}",
            json={"content": content},
        )

    def delete_record(self, zone_id: str, record_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/zones/{zone_id}/dns_records/{record_id}")

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise DNSProviderError(f"{method} {path} failed: {e}") from e

        if response.status_code != 200:
            logger.debug(f"{method} {path} -> HTTP {response.status_code}: {response.text}")
            raise DNSProviderError(
                f"{method} {path} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DNSProviderError(
                f"{method} {path} returned invalid JSON",
                status_code=response.status_code,
                body=response.text,
            ) from e
